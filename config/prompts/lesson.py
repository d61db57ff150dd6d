"""Lesson generation prompts.

Vendors that support system/user message separation receive
``LESSON_SYSTEM_PROMPT`` + ``build_user_prompt()``; the others
(Hugging Face, Ollama) receive ``build_combined_prompt()``.
"""

from __future__ import annotations

from models.request import GenerationRequest

VISUAL_AID_MARKER = "Visual Aid Suggestion"

LESSON_SYSTEM_PROMPT = """\
You are an expert educational content creator. Generate comprehensive, engaging \
lesson content based on the provided outline.

Guidelines:
- Create structured, well-organized content with clear sections
- Use appropriate markdown formatting (headers, lists, code blocks, etc.)
- Include practical examples and real-world applications
- Make content accessible for the specified grade level
- Adapt to the learning style preference
- Ensure content is accurate and up-to-date
- Use clear, engaging language that maintains student interest

Content Structure:
1. Introduction with learning objectives
2. Main content sections with clear explanations
3. Examples and practical applications
4. Key takeaways and summary
5. Next steps or further reading

Format the response as a complete lesson with proper markdown formatting."""

_VISUAL_AID_INSTRUCTIONS = f"""
Visual aids:
- Where an illustration would help, add a line of the form
  "**{VISUAL_AID_MARKER}:** <one-sentence description of the picture>"
- Use at most 3 such lines in the whole lesson, each describing a different picture"""

_REQUIREMENTS = """\
Requirements:
- School grade level: {grade_level}
- Minimum number of sections: {sections}
- Learning Style: {learning_style}
- Include Examples: {examples}
- Include Exercises: {exercises}

Please generate a complete lesson with:
1. A compelling title (start with #). Don't start the title with "Generated".
2. Clear learning objectives
3. Structured content with examples
4. Key concepts highlighted
5. Practical applications
6. Summary and next steps
{visual_aids}
Format everything in proper markdown."""


def _requirements(request: GenerationRequest) -> str:
    opts = request.content_options
    visual = opts.generate_images or opts.learning_style == "reading and visual"
    return _REQUIREMENTS.format(
        grade_level=opts.grade_level,
        sections=opts.sections,
        learning_style=opts.learning_style,
        examples="Yes" if opts.include_examples else "No",
        exercises="Yes" if opts.include_exercises else "No",
        visual_aids=_VISUAL_AID_INSTRUCTIONS + "\n" if visual else "",
    )


def build_user_prompt(request: GenerationRequest) -> str:
    return (
        f'Create a comprehensive lesson based on this outline: "{request.outline}"\n\n'
        + _requirements(request)
    )


def build_combined_prompt(request: GenerationRequest) -> str:
    return (
        "You are an expert educational content creator. "
        f'Create a comprehensive lesson based on this outline: "{request.outline}"\n\n'
        + _requirements(request)
    )
