"""Content splicer — inserts image references after their hint lines.

Insertion points are computed against an immutable snapshot of the
document, then applied in one ordered pass over a copy.  Hint lines are
located as literal strings (first occurrence), never as patterns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

from errors import SpliceMismatch
from models.image import UploadedImage

logger = logging.getLogger(__name__)


def reference_token(image: UploadedImage) -> str:
    """Markdown image reference placed on its own paragraph below the hint."""
    alt = image.hint.text.replace("[", "").replace("]", "")
    return f"\n\n![{alt}]({image.url})"


@dataclass(frozen=True)
class Insertion:
    offset: int
    token: str
    image: UploadedImage


@dataclass
class SpliceResult:
    content: str
    spliced: list[UploadedImage] = field(default_factory=list)
    mismatches: list[SpliceMismatch] = field(default_factory=list)


def _line_end(text: str, start: int) -> int:
    end = text.find("\n", start)
    if end == -1:
        return len(text)
    if end > 0 and text[end - 1] == "\r":
        return end - 1
    return end


def plan_insertions(
    snapshot: str, images: Sequence[UploadedImage]
) -> tuple[list[Insertion], list[SpliceMismatch]]:
    """Locate the insertion point of every image in *snapshot*.

    Returns insertions in image order and one :class:`SpliceMismatch` per
    image whose hint line is absent.  *snapshot* is not modified.
    """
    insertions: list[Insertion] = []
    mismatches: list[SpliceMismatch] = []

    for image in images:
        line = image.hint.matched_line
        pos = snapshot.find(line) if line else -1
        if pos == -1:
            mismatches.append(SpliceMismatch(line))
            continue
        insertions.append(Insertion(_line_end(snapshot, pos + len(line)), reference_token(image), image))

    return insertions, mismatches


def apply_insertions(snapshot: str, insertions: Sequence[Insertion]) -> str:
    """Apply *insertions* in a single left-to-right pass.

    Insertions sharing an offset keep their relative (image) order.
    """
    ordered = sorted(enumerate(insertions), key=lambda pair: (pair[1].offset, pair[0]))
    parts: list[str] = []
    cursor = 0
    for _, ins in ordered:
        parts.append(snapshot[cursor:ins.offset])
        parts.append(ins.token)
        cursor = ins.offset
    parts.append(snapshot[cursor:])
    return "".join(parts)


def splice_images(document: str, images: Sequence[UploadedImage]) -> SpliceResult:
    """Insert a reference token after each image's hint line.

    Pure: the same document and image set always give the same output.
    Images whose hint line is missing are left out and reported as
    mismatches.
    """
    insertions, mismatches = plan_insertions(document, images)
    for mismatch in mismatches:
        logger.warning("Splice mismatch: %s", mismatch)

    content = apply_insertions(document, insertions)
    logger.info("Spliced %d/%d image(s) into document", len(insertions), len(images))
    return SpliceResult(
        content=content,
        spliced=[ins.image for ins in insertions],
        mismatches=mismatches,
    )
