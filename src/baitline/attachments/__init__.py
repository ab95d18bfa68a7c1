"""Attachment personalization: classification, archive rewriting, and the attachment record.

Usage:
    >>> from baitline.attachments import Attachment
    >>> from baitline.core.models import SAMPLE_CONTEXT
    >>> Attachment.from_bytes("hello.txt", b"Hello World").apply_template(SAMPLE_CONTEXT).read()
    b'Hello World'
"""

from .formats import HandlingMode, classify, is_template_member, register_extension
from .record import Attachment, VanillaFlag

__all__ = [
    "Attachment",
    "HandlingMode",
    "VanillaFlag",
    "classify",
    "is_template_member",
    "register_extension",
]
