"""Image pipeline value types.

``Hint`` is produced once per run from the generated document.
``GeneratedImage`` lives only between generation and upload.
``UploadedImage`` feeds the splicer and, finally, the lesson row.
"""

from __future__ import annotations

from dataclasses import dataclass

from models.lesson import ImageRecord


@dataclass(frozen=True)
class Hint:
    text: str  # cleaned hint phrase
    matched_line: str  # literal text found in the document


@dataclass
class GeneratedImage:
    payload: bytes
    prompt: str
    hint: Hint
    provider: str = ""
    model: str = ""


@dataclass(frozen=True)
class UploadedImage:
    url: str
    prompt: str
    hint: Hint
    path: str = ""

    def to_record(self, spliced: bool = True) -> ImageRecord:
        return ImageRecord(
            url=self.url,
            prompt=self.prompt,
            hint=self.hint.text,
            path=self.path,
            spliced=spliced,
        )
