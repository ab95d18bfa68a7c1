"""Template Executor: render placeholder text against a recipient context.

Campaign authors write Go-style dot placeholders such as ``{{.FirstName}}``
or ``{{ .URL }}``. A Jinja2 extension rewrites the dot prefix away before
parsing, so the same text is also valid Jinja2 and filters work
(``{{ .FirstName | upper }}``).

Rendering is strict: a reference to a field the context does not define
raises instead of rendering as an empty string. Only ``{{ ... }}`` is
template syntax, and every byte outside a placeholder is preserved.

Usage:
    >>> from baitline.core.models import SAMPLE_CONTEXT
    >>> from baitline.core.template import execute_template
    >>> execute_template("Hi {{.FirstName}}", SAMPLE_CONTEXT)
    'Hi Foo'
"""

import re
from collections.abc import Callable
from functools import lru_cache

from jinja2 import Environment, StrictUndefined, TemplateError
from jinja2.ext import Extension

from .errors import RenderError
from .models import PhishingTemplateContext

TemplateExecutor = Callable[[str, PhishingTemplateContext], str]
"""Signature shared by :func:`execute_template` and any substitute."""

# "{{.Field" / "{{ .Field" / "{{- .Field" -> drop the leading dot
_DOT_FIELD = re.compile(r"(\{\{-?\s*)\.(?=[A-Za-z_])")

_PLACEHOLDER = re.compile(r"\{\{.*?\}\}", re.DOTALL)

# Block and comment tags are unreachable: only "{{ ... }}" is template syntax,
# so "{%" and "{#" in CSS or script text stay literal.
_UNUSED_BLOCK = ("\x00{%", "%}\x00")
_UNUSED_COMMENT = ("\x00{#", "#}\x00")

# Private use area; a sentinel is picked that occurs in neither text nor values
_SENTINEL_RANGE = range(0xE000, 0xF900)


class DotFieldExtension(Extension):
    """Accept ``{{.Field}}`` placeholders by rewriting them to ``{{Field}}``."""

    def preprocess(self, source: str, name: str | None, filename: str | None = None) -> str:
        return _DOT_FIELD.sub(r"\1", source)


@lru_cache(maxsize=None)
def _environment() -> Environment:
    """Return the shared placeholder-only environment."""
    return Environment(
        extensions=[DotFieldExtension],
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        block_start_string=_UNUSED_BLOCK[0],
        block_end_string=_UNUSED_BLOCK[1],
        comment_start_string=_UNUSED_COMMENT[0],
        comment_end_string=_UNUSED_COMMENT[1],
    )


def _pick_sentinel(text: str) -> str:
    for code in _SENTINEL_RANGE:
        if chr(code) not in text:
            return chr(code)
    raise RenderError("Text uses every private-use character; cannot protect line endings")


def _hide_carriage_returns(text: str, sentinel: str) -> str:
    """Replace ``\\r`` outside placeholders so the engine cannot normalize it.

    The engine rewrites every ``\\r\\n`` and ``\\r`` in literal text to a
    single newline style. Inside a placeholder ``\\r`` is plain whitespace
    and is left for the parser.
    """
    parts = []
    pos = 0
    for match in _PLACEHOLDER.finditer(text):
        parts.append(text[pos : match.start()].replace("\r", sentinel))
        parts.append(match.group())
        pos = match.end()
    parts.append(text[pos:].replace("\r", sentinel))
    return "".join(parts)


def execute_template(text: str, ctx: PhishingTemplateContext) -> str:
    """Render ``text`` against the recipient context.

    Only ``{{ ... }}`` placeholders are evaluated. Everything outside them,
    line endings included, is copied through unchanged, and text with no
    ``{{`` is returned as-is without parsing.

    Args:
        text: Template source, e.g. the body of an XML document part.
        ctx: Recipient context supplying placeholder values.

    Returns:
        The rendered text.

    Raises:
        RenderError: On malformed placeholder syntax or an unknown field.
    """
    if "{{" not in text:
        return text
    fields = ctx.template_fields()
    sentinel = None
    if "\r" in text:
        sentinel = _pick_sentinel(text + "".join(fields.values()))
    source = _hide_carriage_returns(text, sentinel) if sentinel else text
    try:
        rendered = _environment().from_string(source).render(fields)
    except TemplateError as e:
        raise RenderError(e.message or str(e)) from e
    return rendered.replace(sentinel, "\r") if sentinel else rendered
