"""Markdown rendering for question prompts and option texts.

Generated questions may contain inline code, emphasis or lists. The public
quiz view ships both the raw text and an HTML fragment so clients do not need
their own Markdown parser. Raw HTML in the source is escaped, never passed
through.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

from quiz_hub.core.models import QuizQuestion


@dataclass(slots=True)
class PromptRenderer:
    """Converts question Markdown into HTML fragments."""

    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": False})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = markdown_text.strip()
        if not sanitized:
            return ""
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render without the wrapping paragraph, for short option labels."""
        return self._markdown.renderInline(markdown_text.strip())

    def render_question(self, question: QuizQuestion) -> dict[str, object]:
        return {
            "prompt_html": self.render_fragment(question.prompt),
            "options_html": {label: self.render_inline(text) for label, text in question.options.items()},
        }


# MarkdownIt is safe to share for read-only renders across request threads.
renderer = PromptRenderer()
