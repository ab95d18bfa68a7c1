"""Archive rewriter for zip-based Office documents.

Office Open XML files (.docx, .pptx, .xlsx and their macro-enabled
variants) are zip containers of XML parts plus binary parts such as
embedded media and compiled macro code. Only the XML-family members
(``.xml`` and ``.rels``) can hold author-written placeholders, so only
those are templated; every other member is copied through unchanged.

The output has exactly the members of the input, under the same names and
in the same order. Some Office readers are sensitive to archive layout
(``[Content_Types].xml`` is expected first), so members are never added,
dropped, or reordered.

Usage:
    >>> from baitline.attachments.archive import rewrite_archive
    >>> result = rewrite_archive(docx_bytes, lambda text: text.replace("{{.FirstName}}", "Foo"))
    >>> result.changed
    True
"""

from __future__ import annotations

import io
import logging
import zipfile
import zlib
from collections.abc import Callable
from dataclasses import dataclass

from baitline.core.errors import ContainerError, WriteError

from .formats import is_template_member

logger = logging.getLogger(__name__)

TEXT_ENCODING = "utf-8"
"""Encoding of XML parts in Office Open XML packages."""

TEXT_ERRORS = "surrogateescape"
"""Error handler that round-trips bytes which are not valid UTF-8."""


@dataclass
class ArchiveRewrite:
    """Result of rewriting an archive.

    Attributes:
        content: Bytes of the rewritten archive.
        changed: Whether any templated member's text differed after rendering.
    """

    content: bytes
    changed: bool


def _open_source(payload: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(payload))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, ValueError) as e:
        raise ContainerError(f"Not a readable zip archive: {e}") from e


def _read_member(source: zipfile.ZipFile, member: zipfile.ZipInfo) -> bytes:
    try:
        return source.read(member)
    except (
        zipfile.BadZipFile,
        zlib.error,
        NotImplementedError,
        RuntimeError,
        OSError,
        EOFError,
    ) as e:
        raise ContainerError(f"Cannot read archive member {member.filename!r}: {e}") from e


def _copy_info(member: zipfile.ZipInfo) -> zipfile.ZipInfo:
    """Return a fresh ZipInfo carrying the member's name and metadata."""
    info = zipfile.ZipInfo(member.filename, date_time=member.date_time)
    info.compress_type = member.compress_type
    info.comment = member.comment
    info.create_system = member.create_system
    info.external_attr = member.external_attr
    info.internal_attr = member.internal_attr
    return info


def rewrite_archive(payload: bytes, render: Callable[[str], str]) -> ArchiveRewrite:
    """Template the XML members of a zip archive.

    Each member is read fully into memory. Template-eligible members are
    decoded, passed through ``render``, and re-encoded; all other members
    keep their exact bytes. Any failure aborts the rewrite and no partial
    archive is returned.

    Args:
        payload: Raw bytes of the source archive.
        render: Renders one member's text. Exceptions it raises propagate
            unchanged.

    Returns:
        ArchiveRewrite with the new archive bytes and whether any member
        changed.

    Raises:
        ContainerError: If the payload or one of its members cannot be read.
        WriteError: If the output archive cannot be written.
    """
    changed = False
    buffer = io.BytesIO()

    with _open_source(payload) as source:
        try:
            writer = zipfile.ZipFile(buffer, "w")
        except (OSError, ValueError) as e:
            raise WriteError(f"Cannot create output archive: {e}") from e

        with writer:
            for member in source.infolist():
                data = _read_member(source, member)

                if not member.is_dir() and is_template_member(member.filename):
                    text = data.decode(TEXT_ENCODING, TEXT_ERRORS)
                    rendered = render(text)
                    if rendered != text:
                        logger.debug("Templated archive member %s", member.filename)
                        changed = True
                        data = rendered.encode(TEXT_ENCODING, TEXT_ERRORS)

                try:
                    writer.writestr(_copy_info(member), data)
                except (zipfile.LargeZipFile, OSError, ValueError) as e:
                    raise WriteError(
                        f"Cannot write archive member {member.filename!r}: {e}"
                    ) from e

    return ArchiveRewrite(content=buffer.getvalue(), changed=changed)
