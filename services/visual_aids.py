"""Visual-aid extraction and image prompt building.

The lesson prompt asks the model to mark illustration spots with a
``Visual Aid Suggestion:`` line.  :func:`extract_hints` collects those
lines; :func:`build_image_prompt` turns one hint plus supporting context
harvested from the document into an image-generation prompt.

No marker in the text means no hints — images are never guessed.
"""

from __future__ import annotations

import logging
import re

from config.prompts.lesson import VISUAL_AID_MARKER
from models.image import Hint

logger = logging.getLogger(__name__)

MAX_HINTS = 3
MAX_SUPPORTING_CONCEPTS = 5

# Optional bold around the marker, optional colon, then the phrase: the rest
# of the line, or the next line when the marker ends its own line.  A blank
# line after the marker ends the match.
_HINT_RE = re.compile(
    r"(?:\*\*)?" + re.escape(VISUAL_AID_MARKER)
    + r"(?![a-z])[:\t ]*(?:\*\*)?[:\t ]*(?:\r?\n[\t ]*)?([^\s:][^\n]*)",
    re.IGNORECASE,
)

_TITLE_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_HEADER_RE = re.compile(r"^#{2,3}\s+(.+)$", re.MULTILINE)
_ANY_HEADER_LINE_RE = re.compile(r"^#{1,3}\s+.+$", re.MULTILINE)
_EXCLUDED_HEADERS = ("exercise", "summary", "introduction", "visual aid")
_DESCRIPTIVE_WORDS = ("picture", "illustration", "image", "showing", "diagram")


def clean_hint_text(raw: str) -> str:
    """Strip emphasis markup and a trailing period from a hint phrase."""
    text = raw.strip().replace("**", "")
    text = re.sub(r"[*_]", "", text)
    text = re.sub(r"\.$", "", text)
    return text.strip()


def extract_hints(text: str, limit: int = MAX_HINTS) -> list[Hint]:
    """Return up to *limit* unique hints in document order.

    ``Hint.matched_line`` is the literal matched text (marker included),
    later used by the splicer to locate the insertion point.
    """
    hints: list[Hint] = []
    seen: set[str] = set()

    for match in _HINT_RE.finditer(text or ""):
        cleaned = clean_hint_text(match.group(1))
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        hints.append(Hint(text=cleaned, matched_line=match.group(0).rstrip("\r")))
        logger.info("Found visual aid: %s", cleaned[:50])
        if len(hints) >= limit:
            logger.info("Reached maximum of %d visual aid suggestions", limit)
            break

    if not hints:
        logger.info("No visual aid suggestions found — image stage will be skipped")
    return hints


def _split_subject(heading: str) -> str:
    return re.split(r"[:\-]", heading, maxsplit=1)[0].strip()


def extract_key_concepts(text: str) -> list[str]:
    """Harvest supporting context from a markdown document.

    Collects, in order: the subject of the ``#`` title, the ``##``/``###``
    headings (minus boilerplate sections), and the first three body
    sentences longer than 20 characters.
    """
    concepts: list[str] = []

    title = _TITLE_RE.search(text)
    if title:
        subject = _split_subject(title.group(1).strip())
        if subject and len(subject) < 50:
            concepts.append(subject)

    for header in _HEADER_RE.findall(text):
        concept = _split_subject(re.sub(r"^\d+\.\s+", "", header.strip()))
        lowered = concept.lower()
        if any(word in lowered for word in _EXCLUDED_HEADERS):
            continue
        if 3 < len(concept) < 50:
            concepts.append(concept)

    body = _ANY_HEADER_LINE_RE.sub("", text)
    body = re.sub(r"\*\*(.+?)\*\*", r"\1", body)
    body = re.sub(r"\*(.+?)\*", r"\1", body)
    body = re.sub(r"\[(.+?)\]\(.+?\)", r"\1", body).strip()

    sentences = [s.strip() for s in re.split(r"[.!?]+", body) if len(s.strip()) > 20]
    concepts.extend(s for s in sentences[:3] if len(s) < 200)
    return concepts


def is_descriptive(hint_text: str) -> bool:
    lowered = hint_text.lower()
    return len(hint_text) > 40 and any(word in lowered for word in _DESCRIPTIVE_WORDS)


def build_image_prompt(hint: Hint, document: str) -> str:
    """Combine a hint with up to five supporting concepts from *document*."""
    supporting = ", ".join(
        c for c in extract_key_concepts(document)[:MAX_SUPPORTING_CONCEPTS] if len(c) < 100
    )

    prompt = hint.text
    if is_descriptive(hint.text):
        if supporting:
            prompt += f". Context: {supporting}"
        return prompt + ". Educational illustration, colorful, simple and clear"

    if supporting:
        prompt += f". {supporting}"
    return prompt + ". Educational illustration, colorful, simple and clear, children friendly"
