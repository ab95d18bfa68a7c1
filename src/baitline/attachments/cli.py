"""Attachment subcommands — personalize campaign attachments per recipient.

Commands:
    formats   List how each file extension is handled
    validate  Check that attachment placeholders render
    render    Render an attachment for one recipient or a recipient list
    serve     Start the attachment API server

Usage:
    $ baitline attach validate invoice.docx notice.html
    $ baitline attach render invoice.docx --url https://login.example.com/ --first-name Ada
    $ baitline attach render invoice.docx --url https://login.example.com/ \\
          --recipients targets.csv --output ./out/
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from baitline.core.errors import AttachmentError
from baitline.core.models import BaseRecipient, PhishingTemplateContext, create_rid

from .formats import EXTENSION_MODES, TEMPLATE_MEMBER_EXTENSIONS, HandlingMode
from .record import Attachment
from .render_service import DEFAULT_WORKERS, load_recipients, render_for_recipients
from .server import DEFAULT_HOST, DEFAULT_PORT, start_server

app = typer.Typer(
    help="Attachments — Personalize campaign attachments per recipient",
    no_args_is_help=True,
)
console = Console()

_MODE_DESCRIPTIONS: dict[HandlingMode, str] = {
    HandlingMode.ARCHIVE: "Zip container; XML members templated, others copied",
    HandlingMode.FLAT_TEXT: "Whole file templated",
    HandlingMode.OPAQUE: "Never templated",
}


def _load_attachment(path: Path) -> Attachment:
    """Read a file into an Attachment, exiting with an error if unreadable."""
    try:
        payload = path.read_bytes()
    except OSError as e:
        console.print(f"[red]X Cannot read {escape(str(path))}: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None
    return Attachment.from_bytes(path.name, payload)


@app.command()
def formats() -> None:
    """List how each file extension is handled.

    Extensions not listed are treated as opaque and never templated.
    """
    table = Table(title="Attachment Formats")
    table.add_column("Extension", style="green")
    table.add_column("Mode", style="cyan")
    table.add_column("Handling")

    for ext, mode in sorted(EXTENSION_MODES.items(), key=lambda item: (item[1], item[0])):
        table.add_row(ext, mode.value, _MODE_DESCRIPTIONS[mode])
    table.add_row("(other)", HandlingMode.OPAQUE.value, _MODE_DESCRIPTIONS[HandlingMode.OPAQUE])

    console.print(table)
    members = ", ".join(sorted(TEMPLATE_MEMBER_EXTENSIONS))
    console.print(f"\n[dim]Templated archive members: {members}[/dim]")


@app.command()
def validate(
    files: Annotated[list[Path], typer.Argument(help="Attachment file(s) to validate")],
) -> None:
    """Check that attachment placeholders render.

    Renders each file against a fixed sample recipient and reports the
    first error per file. Exits with code 1 if any file fails.
    """
    failed = 0
    for path in files:
        attachment = _load_attachment(path)
        try:
            attachment.validate_attachment()
        except AttachmentError as e:
            failed += 1
            console.print(f"[red]X {escape(path.name)}: {escape(str(e))}[/red]")
            continue
        note = " (no placeholders)" if attachment.is_vanilla else ""
        console.print(f"[green]OK[/green] {escape(path.name)}{note}")

    if failed:
        console.print(f"\n[red]{failed} of {len(files)} attachment(s) failed validation[/red]")
        raise typer.Exit(1)


@app.command()
def render(
    file: Annotated[Path, typer.Argument(help="Attachment file to render")],
    url: Annotated[str, typer.Option("--url", "-u", help="Campaign landing page URL")],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output", "-o", help="Output file (single recipient) or directory (--recipients)"
        ),
    ] = None,
    recipients: Annotated[
        Path | None,
        typer.Option(
            "--recipients",
            "-r",
            help="CSV with first_name,last_name,email[,position] columns",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    first_name: Annotated[str, typer.Option("--first-name", help="Recipient first name")] = "",
    last_name: Annotated[str, typer.Option("--last-name", help="Recipient last name")] = "",
    email: Annotated[str, typer.Option("--email", help="Recipient email address")] = "",
    position: Annotated[str, typer.Option("--position", help="Recipient job title")] = "",
    from_address: Annotated[str, typer.Option("--from", help="Sender display name")] = "",
    rid: Annotated[
        str | None, typer.Option("--rid", help="Recipient id (random if omitted)")
    ] = None,
    workers: Annotated[
        int, typer.Option("--workers", "-w", help="Worker threads for --recipients", min=1)
    ] = DEFAULT_WORKERS,
) -> None:
    """Render an attachment for one recipient or a recipient list.

    Without --recipients, renders for the recipient described by the
    --first-name/--last-name/--email/--position options and writes to
    --output (default: rendered_<name> in the current directory).

    With --recipients, renders once per CSV row into the --output
    directory (default: ./rendered/) as <rid>_<name>.
    """
    attachment = _load_attachment(file)

    if recipients is not None:
        try:
            contexts = load_recipients(recipients, url, from_address)
        except (ValueError, OSError) as e:
            console.print(f"[red]X {escape(str(e))}[/red]")
            raise typer.Exit(1) from None

        output_dir = output or Path("./rendered/")
        result = render_for_recipients(attachment, contexts, output_dir, max_workers=workers)

        console.print(
            f"\n[bold green]OK Rendered {len(result.outputs)} of {len(contexts)} "
            f"attachment(s) into {escape(str(output_dir))}[/bold green]"
        )
        for out in result.outputs:
            console.print(f"  - {escape(out.path.name)} -> [cyan]{escape(out.email)}[/cyan]")
        for err in result.errors:
            console.print(f"  [yellow]! {escape(err)}[/yellow]")
        if result.vanilla:
            console.print("[dim]No placeholders found; files are copies of the original.[/dim]")
        if result.errors:
            raise typer.Exit(1)
        return

    recipient = BaseRecipient(
        first_name=first_name, last_name=last_name, email=email, position=position
    )
    ctx = PhishingTemplateContext.for_recipient(url, recipient, rid or create_rid(), from_address)

    try:
        stream = attachment.apply_template(ctx)
    except AttachmentError as e:
        console.print(f"[red]X {escape(file.name)}: {escape(str(e))}[/red]")
        raise typer.Exit(1) from None

    output_path = output or Path(f"rendered_{file.name}")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(stream.getvalue())

    console.print(f"\n[bold green]OK Rendered:[/bold green] {escape(str(output_path))}")
    console.print(f"  RId: [cyan]{ctx.rid}[/cyan]")
    console.print(f"  URL: {escape(ctx.url)}")


@app.command()
def serve(
    port: Annotated[int, typer.Option("--port", "-p", help="Port to listen on")] = DEFAULT_PORT,
    host: Annotated[str, typer.Option("--host", "-h", help="Host to bind to")] = DEFAULT_HOST,
) -> None:
    """Start the attachment API server.

    Exposes POST /api/attachments/validate and /api/attachments/render.
    """
    start_server(host=host, port=port)
