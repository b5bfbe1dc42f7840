"""
HTML tag formatting for rendered references and inline assets.

Tags are small jinja2 templates with autoescaping on, so URLs land safely
in attributes. Inline content is emitted as-is: it is page-author code,
not user input.

Under HTML5 the ``type`` attribute is implied for ``<script>``,
``<style>`` and stylesheet ``<link>`` elements and is left out.
"""

from __future__ import annotations

from typing import Iterable

from jinja2 import Environment

from .registry import is_local

_TEMPLATES = {
    "script": '<script src="{{ src }}"{% if type %} type="{{ type }}"{% endif %}></script>',
    "stylesheet": '<link rel="stylesheet" href="{{ href }}"{% if type %} type="{{ type }}"{% endif %} />',
    "inline_script": "<script{% if type %} type=\"{{ type }}\"{% endif %}>{{ content|safe }}</script>",
    "inline_style": "<style{% if type %} type=\"{{ type }}\"{% endif %}>{{ content|safe }}</style>",
}


class HtmlTagRenderer:
    """
    Formats one-line inclusion tags.

    Args:
        base_url: Prefix for local (docroot-relative) references.
        html5: Omit the ``type`` attribute when True.
    """

    def __init__(self, base_url: str = "/", html5: bool = True) -> None:
        self.base_url = base_url
        self.html5 = html5
        self._env = Environment(autoescape=True, keep_trailing_newline=False)
        self._templates = {name: self._env.from_string(src) for name, src in _TEMPLATES.items()}

    def url(self, reference: str) -> str:
        """Absolute URL for a reference; remote URLs pass through untouched."""
        return self.base_url + reference if is_local(reference) else reference

    def _type(self, mime: str) -> str:
        return "" if self.html5 else mime

    def script(self, reference: str) -> str:
        return self._templates["script"].render(src=self.url(reference), type=self._type("text/javascript"))

    def stylesheet(self, reference: str) -> str:
        return self._templates["stylesheet"].render(href=self.url(reference), type=self._type("text/css"))

    def inline_script(self, content: str) -> str:
        return self._templates["inline_script"].render(content=content, type=self._type("text/javascript"))

    def inline_style(self, content: str) -> str:
        return self._templates["inline_style"].render(content=content, type=self._type("text/css"))

    def tags(self, kind: str, references: Iterable[str]) -> str:
        """One tag per reference, each followed by a newline."""
        render = self.script if kind == "js" else self.stylesheet
        return "".join(render(ref) + "\n" for ref in references)
