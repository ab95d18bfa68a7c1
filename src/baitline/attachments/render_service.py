"""Shared per-recipient rendering logic.

This module renders one attachment for many recipients, the way a campaign
send does: a single Attachment instance is shared by a pool of worker
threads, one call per recipient. It is used by the CLI and can be called
from any other front end.

A failure for one recipient is recorded and does not stop the others.

Usage:
    >>> from baitline.attachments.render_service import load_recipients, render_for_recipients
    >>> contexts = load_recipients(Path("recipients.csv"), "https://login.example.com/")
    >>> result = render_for_recipients(attachment, contexts, Path("./out/"))
    >>> for output in result.outputs:
    ...     print(output.rid, output.path)
"""

from __future__ import annotations

import csv
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from baitline.core.errors import AttachmentError
from baitline.core.models import BaseRecipient, PhishingTemplateContext, create_rid
from baitline.core.template import TemplateExecutor, execute_template

from .record import Attachment

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4
"""Default size of the rendering worker pool."""

_REQUIRED_COLUMNS = {"first_name", "last_name", "email"}


@dataclass
class RenderedOutput:
    """One recipient's rendered attachment on disk.

    Attributes:
        rid: Recipient id the attachment was rendered for.
        email: Recipient email address.
        path: Where the rendered file was written.
    """

    rid: str
    email: str
    path: Path


@dataclass
class RenderResult:
    """Result of rendering an attachment for a list of recipients.

    Attributes:
        outputs: Successfully rendered files.
        errors: One message per recipient that failed, in recipient order.
        vanilla: Whether the attachment turned out to have no placeholders.
    """

    outputs: list[RenderedOutput] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    vanilla: bool = False


def load_recipients(
    csv_path: Path,
    campaign_url: str,
    from_address: str = "",
) -> list[PhishingTemplateContext]:
    """Read recipients from a CSV file and build their template contexts.

    The file must have a header row with ``first_name``, ``last_name`` and
    ``email`` columns; ``position`` is optional. Each recipient gets a fresh
    recipient id.

    Args:
        csv_path: Path to the CSV file.
        campaign_url: Landing page URL configured on the campaign.
        from_address: Sender display name.

    Returns:
        One context per data row, in file order.

    Raises:
        ValueError: If required columns are missing.
    """
    with csv_path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = _REQUIRED_COLUMNS - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"Recipient file is missing columns: {', '.join(sorted(missing))}")

        contexts = []
        for row in reader:
            recipient = BaseRecipient(
                first_name=(row["first_name"] or "").strip(),
                last_name=(row["last_name"] or "").strip(),
                email=(row["email"] or "").strip(),
                position=(row.get("position") or "").strip(),
            )
            contexts.append(
                PhishingTemplateContext.for_recipient(
                    campaign_url, recipient, create_rid(), from_address
                )
            )
    return contexts


def _output_name(name: str) -> str:
    """Sanitize an attachment name for use as an output filename."""
    base_name = Path(name.replace("\\", "/")).name
    if not base_name or base_name in (".", ".."):
        raise ValueError(f"Invalid attachment filename: {name!r}")
    return base_name


def _check_rids(contexts: list[PhishingTemplateContext]) -> None:
    """Reject recipient ids that cannot name a distinct file inside the output dir."""
    seen: set[str] = set()
    for ctx in contexts:
        if not (ctx.rid.isascii() and ctx.rid.isalnum()):
            raise ValueError(
                f"Invalid recipient id {ctx.rid!r}: must be non-empty and alphanumeric"
            )
        if ctx.rid in seen:
            raise ValueError(f"Duplicate recipient id {ctx.rid!r}")
        seen.add(ctx.rid)


def _render_one(
    attachment: Attachment,
    ctx: PhishingTemplateContext,
    output_path: Path,
    executor: TemplateExecutor,
) -> RenderedOutput:
    stream = attachment.apply_template(ctx, executor)
    output_path.write_bytes(stream.getvalue())
    return RenderedOutput(rid=ctx.rid, email=ctx.email, path=output_path)


def render_for_recipients(
    attachment: Attachment,
    contexts: list[PhishingTemplateContext],
    output_dir: Path,
    max_workers: int = DEFAULT_WORKERS,
    executor: TemplateExecutor = execute_template,
) -> RenderResult:
    """Render an attachment once per recipient on a worker pool.

    Files are written to ``output_dir/<rid>_<name>``.

    Args:
        attachment: Attachment shared by all workers.
        contexts: One template context per recipient.
        output_dir: Directory for rendered files (created if missing).
        max_workers: Number of worker threads.
        executor: Template renderer.

    Returns:
        RenderResult with outputs in recipient order and per-recipient errors.

    Raises:
        ValueError: If the attachment name cannot be used as a filename, a
            recipient id is empty, non-alphanumeric or repeated, or
            ``max_workers`` is less than 1.
    """
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    base_name = _output_name(attachment.name)
    _check_rids(contexts)
    output_dir.mkdir(parents=True, exist_ok=True)
    result = RenderResult()
    rendered: dict[int, RenderedOutput] = {}
    failures: dict[int, str] = {}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            pool.submit(
                _render_one, attachment, ctx, output_dir / f"{ctx.rid}_{base_name}", executor
            ): (i, ctx)
            for i, ctx in enumerate(contexts)
        }
        for future in as_completed(futures):
            i, ctx = futures[future]
            try:
                rendered[i] = future.result()
            except (AttachmentError, OSError) as e:
                logger.warning("Rendering %s for %s failed: %s", attachment.name, ctx.email, e)
                failures[i] = f"{ctx.email or ctx.rid}: {e}"

    result.outputs = [rendered[i] for i in sorted(rendered)]
    result.errors = [failures[i] for i in sorted(failures)]
    result.vanilla = attachment.is_vanilla
    return result
