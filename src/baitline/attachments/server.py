"""FastAPI server exposing attachment validation and rendering.

Usage:
    From the CLI (preferred):

    >>> baitline attach serve --port 8080

    Programmatic:

    >>> from baitline.attachments.server import start_server
    >>> start_server(host="127.0.0.1", port=8080)
"""

import uvicorn
from fastapi import FastAPI
from rich.console import Console

from .api import api_router

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080

console = Console()

app = FastAPI(
    title="Baitline Attachments",
    description="Per-recipient personalization of campaign attachments",
)
app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health() -> dict:
    """Return server health status.

    Returns:
        Dictionary with ``{"status": "ok"}``.
    """
    return {"status": "ok"}


def start_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Start the attachment API server.

    Runs in the foreground until interrupted with Ctrl+C.

    Args:
        host: Network interface to bind (default ``"127.0.0.1"``).
        port: TCP port to listen on (default ``8080``).
    """
    console.print(f"[bold green]Starting Baitline attachment API on {host}:{port}[/bold green]")
    console.print(f"   Validate: [blue]POST http://localhost:{port}/api/attachments/validate[/blue]")
    console.print(f"   Render:   [blue]POST http://localhost:{port}/api/attachments/render[/blue]")
    console.print("   Press [bold]Ctrl+C[/bold] to stop\n")

    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="warning",
    )
