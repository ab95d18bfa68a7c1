"""Exceptions raised while personalizing attachments.

Every failure aborts the call that raised it. Callers decide whether a
failure blocks a whole campaign (pre-flight validation) or a single
recipient (sending).
"""


class AttachmentError(Exception):
    """Base class for attachment personalization failures."""


class DecodeError(AttachmentError):
    """Stored attachment content is not valid base64."""


class ContainerError(AttachmentError):
    """Content named as an archive format could not be read as a zip archive."""


class RenderError(AttachmentError):
    """A template placeholder could not be rendered.

    The message is the template engine's own message and the original
    exception is chained as ``__cause__``.
    """


class WriteError(AttachmentError):
    """The rewritten archive could not be built."""
