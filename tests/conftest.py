"""Shared fixtures for attachment tests."""

from __future__ import annotations

import io
import zipfile
from collections.abc import Callable

import pytest
from docx import Document

from baitline.core.models import PhishingTemplateContext
from baitline.core.template import execute_template

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR{{.FirstName}}\x00\xff\xfe"
"""Binary member that happens to contain placeholder-looking bytes."""


def _build_zip(
    members: list[tuple[str, bytes]],
    compression: int = zipfile.ZIP_DEFLATED,
) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression) as zf:
        for name, data in members:
            zf.writestr(name, data)
    return buffer.getvalue()


class CountingExecutor:
    """Template executor that counts how often it is called."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, text: str, ctx: PhishingTemplateContext) -> str:
        self.calls += 1
        return execute_template(text, ctx)


@pytest.fixture
def make_zip() -> Callable[..., bytes]:
    return _build_zip


@pytest.fixture
def counting_executor() -> CountingExecutor:
    return CountingExecutor()


@pytest.fixture
def ctx() -> PhishingTemplateContext:
    return PhishingTemplateContext(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        base_url="https://login.example.com/",
        url="https://login.example.com/?rid=abc1234",
        tracking_url="https://login.example.com/track?rid=abc1234",
        from_address="IT Support",
        rid="abc1234",
    )


@pytest.fixture
def office_members() -> list[tuple[str, bytes]]:
    """Members of a minimal Word package: one templated part and one image."""
    return [
        ("[Content_Types].xml", b'<?xml version="1.0"?>\r\n<Types/>'),
        ("_rels/.rels", b'<?xml version="1.0"?>\r\n<Relationships/>'),
        (
            "word/document.xml",
            b'<?xml version="1.0"?>\r\n<w:document><w:t>Dear {{.FirstName}}</w:t></w:document>',
        ),
        ("word/media/image1.png", PNG_BYTES),
    ]


@pytest.fixture
def docx_bytes() -> bytes:
    """A real Word document with placeholders in its body."""
    doc = Document()
    doc.add_paragraph("Dear {{.FirstName}} {{.LastName}},")
    doc.add_paragraph("Please confirm your account at {{.URL}} today.")
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def plain_docx_bytes() -> bytes:
    """A real Word document with no placeholders."""
    doc = Document()
    doc.add_paragraph("Quarterly figures are attached.")
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES
