"""Format classifier -- how an attachment is handled, keyed by file extension.

The declared MIME type of an attachment is not used: producers label Office
documents inconsistently, so the file extension is authoritative.

Handling modes:
    ARCHIVE: Zip container of XML parts (Office Open XML). Only XML-family
        members are templated, everything else is copied byte-for-byte.
    FLAT_TEXT: The whole file is template text.
    OPAQUE: Never templated; returned unchanged.

Extensions are matched case-insensitively (``REPORT.DOCX`` is an archive).
"""

from __future__ import annotations

from enum import StrEnum


class HandlingMode(StrEnum):
    """How an attachment's content is personalized."""

    ARCHIVE = "archive"
    FLAT_TEXT = "flat_text"
    OPAQUE = "opaque"


EXTENSION_MODES: dict[str, HandlingMode] = {
    # Office Open XML; .docm/.xlsm also carry a binary vbaProject.bin
    ".docx": HandlingMode.ARCHIVE,
    ".docm": HandlingMode.ARCHIVE,
    ".pptx": HandlingMode.ARCHIVE,
    ".xlsx": HandlingMode.ARCHIVE,
    ".xlsm": HandlingMode.ARCHIVE,
    # Plain text
    ".txt": HandlingMode.FLAT_TEXT,
    ".html": HandlingMode.FLAT_TEXT,
}
"""Maps a lower-cased file extension to its handling mode."""

TEMPLATE_MEMBER_EXTENSIONS: frozenset[str] = frozenset({".xml", ".rels"})
"""Archive member extensions whose content is templated."""


def _extension(name: str) -> str:
    # Path.suffix treats "_rels/.rels" as having no suffix; it must be ".rels"
    basename = name.replace("\\", "/").rpartition("/")[2]
    dot = basename.rfind(".")
    return basename[dot:].lower() if dot != -1 else ""


def register_extension(extension: str, mode: HandlingMode) -> None:
    """Add or override the handling mode for an extension.

    Args:
        extension: File extension including the dot (e.g., ".dotx").
        mode: Handling mode for files with that extension.

    Raises:
        ValueError: If the extension does not start with a dot.
    """
    if not extension.startswith(".") or len(extension) < 2:
        raise ValueError(f"Invalid extension: {extension!r}")
    EXTENSION_MODES[extension.lower()] = mode


def classify(name: str) -> HandlingMode:
    """Classify an attachment by its file name.

    Args:
        name: Attachment file name.

    Returns:
        The handling mode; OPAQUE for unknown or missing extensions.

    Example:
        >>> classify("invoice.docx")
        <HandlingMode.ARCHIVE: 'archive'>
        >>> classify("photo.jpg")
        <HandlingMode.OPAQUE: 'opaque'>
    """
    return EXTENSION_MODES.get(_extension(name), HandlingMode.OPAQUE)


def is_template_member(name: str) -> bool:
    """Return True if an archive member should be templated.

    Args:
        name: Member name inside the archive (e.g., "word/document.xml").
    """
    return _extension(name) in TEMPLATE_MEMBER_EXTENSIONS
