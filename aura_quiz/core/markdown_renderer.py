"""Markdown rendering for question text sent to respondents.

Question text is authored in markdown by admins. Raw HTML in the source is
disabled so a question cannot inject markup into the respondent's page.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class QuestionRenderer:
    """Converts question markdown into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = MarkdownIt("commonmark", {"html": self.enable_html}).enable(
            "strikethrough"
        )

    def render_fragment(self, markdown_text: str) -> str:
        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line (an option label) without the wrapping paragraph."""
        return self._markdown.renderInline(markdown_text.strip())


renderer = QuestionRenderer()
# MarkdownIt is safe to share for read-only renders across FastAPI worker threads.
