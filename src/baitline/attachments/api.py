"""JSON API endpoints for attachment validation and rendering.

Campaign-setup tooling calls ``/validate`` to reject attachments whose
placeholders do not render before a campaign is launched. ``/render``
returns the personalized bytes for one recipient.

All endpoints are mounted under ``/api/`` by the server module.

Usage:
    The API router is included in the FastAPI app::

        from baitline.attachments.api import api_router
        app.include_router(api_router, prefix="/api")
"""

import logging
from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from baitline.core.errors import AttachmentError
from baitline.core.models import PhishingTemplateContext

from .record import Attachment

api_router = APIRouter()


class RenderRequest(BaseModel):
    """Body of a render request.

    Attributes:
        attachment: Attachment to personalize.
        context: Recipient context, keyed by placeholder name
            (``FirstName``, ``URL``, ...) or field name.
    """

    attachment: Attachment
    context: PhishingTemplateContext


def _attachment_error(e: AttachmentError) -> JSONResponse:
    return JSONResponse({"valid": False, "error": str(e)}, status_code=422)


def _content_disposition(name: str) -> str:
    quoted = quote(name)
    if quoted != name:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{name}"'


def _internal_error() -> JSONResponse:
    return JSONResponse(
        {"valid": False, "error": "An internal error occurred while processing the attachment."},
        status_code=500,
    )


@api_router.post("/attachments/validate")
async def validate_attachment(attachment: Attachment) -> JSONResponse:
    """Check that an attachment's placeholders render.

    Args:
        attachment: Attachment definition (content, type, name).

    Returns:
        ``{"valid": true}``, or a 422 with the specific error message.
    """
    try:
        attachment.validate_attachment()
    except AttachmentError as e:
        return _attachment_error(e)
    except Exception:  # noqa: BLE001
        logging.exception("Unexpected error during attachment validation")
        return _internal_error()
    return JSONResponse({"valid": True})


@api_router.post("/attachments/render")
async def render_attachment(body: RenderRequest) -> Response:
    """Personalize an attachment for one recipient.

    Args:
        body: Attachment plus recipient context.

    Returns:
        The processed file with the attachment's declared type, or a 422
        with the error message.
    """
    attachment = body.attachment
    try:
        stream = attachment.apply_template(body.context)
    except AttachmentError as e:
        return _attachment_error(e)
    except Exception:  # noqa: BLE001
        logging.exception("Unexpected error during attachment rendering")
        return _internal_error()

    return Response(
        content=stream.getvalue(),
        media_type=attachment.type,
        headers={"Content-Disposition": _content_disposition(attachment.name)},
    )
