"""Tests for services.visual_aids — hint extraction and prompt building."""

from models.image import Hint
from services.visual_aids import (
    build_image_prompt,
    clean_hint_text,
    extract_hints,
    extract_key_concepts,
)
from tests.conftest import LESSON_DOC


def test_extracts_both_marker_styles_in_order():
    hints = extract_hints(LESSON_DOC)

    assert [h.text for h in hints] == [
        "Diagram of a leaf absorbing sunlight",
        "Chart of CO2 and O2 exchange",
    ]
    assert hints[0].matched_line == "**Visual Aid Suggestion:** Diagram of a leaf absorbing sunlight."
    assert hints[1].matched_line == "Visual Aid Suggestion: Chart of CO2 and O2 exchange."


def test_no_marker_returns_empty():
    assert extract_hints("# Fractions\n\nHalves and quarters.\n") == []
    assert extract_hints("") == []


def test_caps_at_three_and_dedups():
    text = "\n".join([
        "Visual Aid Suggestion: A red apple.",
        "visual aid suggestion: A red apple",
        "VISUAL AID SUGGESTION: Two pears.",
        "Visual Aid Suggestion: Three plums.",
        "Visual Aid Suggestion: Four figs.",
    ])
    hints = extract_hints(text)

    assert [h.text for h in hints] == ["A red apple", "Two pears", "Three plums"]


def test_deterministic():
    assert extract_hints(LESSON_DOC) == extract_hints(LESSON_DOC)


def test_phrase_on_line_after_marker():
    text = "**Visual Aid Suggestion:**\nA labeled diagram of the water cycle.\n\nNext paragraph."
    hints = extract_hints(text)

    assert [h.text for h in hints] == ["A labeled diagram of the water cycle"]
    assert hints[0].matched_line == "**Visual Aid Suggestion:**\nA labeled diagram of the water cycle."


def test_blank_line_after_marker_is_not_a_hint():
    assert extract_hints("Visual Aid Suggestion:\n\nNext paragraph text.\n") == []


def test_plural_heading_is_not_a_hint():
    assert extract_hints("## Visual Aid Suggestions\n\nNone today.") == []


def test_clean_hint_text_strips_markup():
    assert clean_hint_text(" **_A map of rivers_**. ") == "A map of rivers"


def test_key_concepts_from_title_headers_and_sentences():
    concepts = extract_key_concepts(LESSON_DOC)

    assert concepts[0] == "Photosynthesis"
    assert "Learning Objectives" in concepts
    assert "Gas Exchange" in concepts
    assert not any("Summary" in c for c in concepts)
    assert any(c.startswith("Students will understand") for c in concepts)


def test_descriptive_hint_prompt():
    hint = Hint(
        text="A detailed diagram showing the parts of a flower and how bees carry pollen",
        matched_line="Visual Aid Suggestion: ...",
    )
    prompt = build_image_prompt(hint, LESSON_DOC)

    assert prompt.startswith(hint.text + ". Context: Photosynthesis")
    assert prompt.endswith(". Educational illustration, colorful, simple and clear")


def test_short_hint_prompt():
    hint = Hint(text="A leaf", matched_line="Visual Aid Suggestion: A leaf")
    prompt = build_image_prompt(hint, LESSON_DOC)

    assert prompt.startswith("A leaf. Photosynthesis, ")
    assert prompt.endswith("children friendly")


def test_prompt_without_context():
    hint = Hint(text="A leaf", matched_line="Visual Aid Suggestion: A leaf")
    assert build_image_prompt(hint, "") == (
        "A leaf. Educational illustration, colorful, simple and clear, children friendly"
    )
