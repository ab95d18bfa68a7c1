"""Attachment record and the apply-template operation.

An Attachment is defined once (when a template is saved) and applied once
per recipient for the lifetime of a campaign send. Its stored content is
never modified: every call decodes the base64 payload afresh and returns a
new stream.

Attachments proven to contain no placeholders are remembered as "vanilla"
on the record instance, and later calls return the decoded bytes without
scanning them again.

Usage:
    >>> from baitline.attachments.record import Attachment
    >>> from baitline.core.models import SAMPLE_CONTEXT
    >>> attachment = Attachment.from_bytes("note.txt", b"Hi {{.FirstName}}")
    >>> attachment.apply_template(SAMPLE_CONTEXT).read()
    b'Hi Foo'
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
import threading

from pydantic import BaseModel, Field, PrivateAttr

from baitline.core.errors import DecodeError
from baitline.core.models import SAMPLE_CONTEXT, PhishingTemplateContext
from baitline.core.template import TemplateExecutor, execute_template

from .archive import TEXT_ENCODING, TEXT_ERRORS, rewrite_archive
from .formats import HandlingMode, classify

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class VanillaFlag:
    """Set-once marker that an attachment has no template placeholders.

    Safe to share between threads. Once set it stays set; setting it again
    is a no-op.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def __bool__(self) -> bool:
        return self._event.is_set()

    def set(self) -> None:
        self._event.set()


class Attachment(BaseModel):
    """An email attachment whose content may contain template placeholders.

    Attributes:
        id: Storage row ID (None until persisted). Not serialized.
        template_id: ID of the owning template. Not serialized.
        content: Base64-encoded file content.
        type: Declared MIME type. Informational only; the file extension
            decides how content is handled.
        name: File name, including the extension.
    """

    id: int | None = Field(default=None, exclude=True)
    template_id: int | None = Field(default=None, exclude=True)
    content: str
    type: str = DEFAULT_MIME_TYPE
    name: str

    _vanilla: VanillaFlag = PrivateAttr(default_factory=VanillaFlag)

    @classmethod
    def from_bytes(cls, name: str, payload: bytes, mime_type: str | None = None) -> Attachment:
        """Build an attachment from raw file bytes.

        Args:
            name: File name.
            payload: Raw file content.
            mime_type: Declared MIME type. Guessed from the name if omitted.

        Returns:
            Attachment holding the base64-encoded payload.
        """
        if mime_type is None:
            mime_type = mimetypes.guess_type(name)[0] or DEFAULT_MIME_TYPE
        return cls(
            content=base64.b64encode(payload).decode("ascii"),
            type=mime_type,
            name=name,
        )

    @property
    def is_vanilla(self) -> bool:
        """Whether a previous call proved the attachment has no placeholders."""
        return bool(self._vanilla)

    def decode(self) -> bytes:
        """Decode the stored base64 content.

        Line breaks are ignored; any other character outside the standard
        base64 alphabet is an error.

        Raises:
            DecodeError: If the content is not valid base64.
        """
        encoded = self.content.replace("\r", "").replace("\n", "")
        try:
            return base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Attachment {self.name!r} has malformed base64 content: {e}") from e

    def apply_template(
        self,
        ctx: PhishingTemplateContext,
        executor: TemplateExecutor = execute_template,
    ) -> io.BytesIO:
        """Personalize the attachment for one recipient.

        Args:
            ctx: Recipient context to render placeholders against.
            executor: Template renderer, see :mod:`baitline.core.template`.

        Returns:
            A new stream positioned at the start of the processed content.

        Raises:
            DecodeError: If the stored content is not valid base64.
            ContainerError: If an archive-format attachment is not a valid zip.
            RenderError: If a placeholder cannot be rendered.
            WriteError: If the rewritten archive cannot be built.
        """
        payload = self.decode()

        if self._vanilla:
            logger.debug("Attachment %s is vanilla, skipping templating", self.name)
            return io.BytesIO(payload)

        mode = classify(self.name)
        logger.debug("Applying template to %s as %s", self.name, mode)

        if mode == HandlingMode.ARCHIVE:
            result = rewrite_archive(payload, lambda text: executor(text, ctx))
            if not result.changed:
                self._mark_vanilla()
            return io.BytesIO(result.content)

        if mode == HandlingMode.FLAT_TEXT:
            text = payload.decode(TEXT_ENCODING, TEXT_ERRORS)
            rendered = executor(text, ctx)
            if rendered == text:
                self._mark_vanilla()
            return io.BytesIO(rendered.encode(TEXT_ENCODING, TEXT_ERRORS))

        # Opaque: returned untouched, never scanned, never marked vanilla
        return io.BytesIO(payload)

    def validate_attachment(self, executor: TemplateExecutor = execute_template) -> None:
        """Check that the attachment's placeholders render.

        Runs the full pipeline against a fixed sample recipient and discards
        the output. Used to reject a template before a campaign is launched.

        Args:
            executor: Template renderer, see :mod:`baitline.core.template`.

        Raises:
            AttachmentError: The first failure encountered, unchanged.
        """
        self.apply_template(SAMPLE_CONTEXT, executor)

    def _mark_vanilla(self) -> None:
        logger.debug("No template variables in %s, marking vanilla", self.name)
        self._vanilla.set()
