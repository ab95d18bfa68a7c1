"""Tests for the attach CLI commands."""

from __future__ import annotations

import inspect
import io
import zipfile
from collections.abc import Callable
from pathlib import Path

import pytest
from typer.testing import CliRunner

from baitline.attachments import cli as attach_cli
from baitline.attachments.cli import app
from baitline.attachments.server import DEFAULT_HOST, DEFAULT_PORT, start_server
from baitline.cli import app as root_app


class TestFormatsCommand:
    def test_lists_extensions(self) -> None:
        result = CliRunner().invoke(app, ["formats"])
        assert result.exit_code == 0
        assert ".docx" in result.output
        assert ".html" in result.output
        assert "opaque" in result.output

    def test_via_root_app(self) -> None:
        result = CliRunner().invoke(root_app, ["attach", "formats"])
        assert result.exit_code == 0
        assert ".xlsm" in result.output


class TestValidateCommand:
    def test_all_valid(self, tmp_path: Path) -> None:
        good = tmp_path / "good.html"
        good.write_text("<p>Hello {{.FirstName}}</p>")
        plain = tmp_path / "plain.txt"
        plain.write_text("Hello World")

        result = CliRunner().invoke(app, ["validate", str(good), str(plain)])
        assert result.exit_code == 0
        assert "OK good.html" in result.output
        assert "no placeholders" in result.output

    def test_invalid_file(self, tmp_path: Path) -> None:
        good = tmp_path / "good.txt"
        good.write_text("{{.Email}}")
        bad = tmp_path / "bad.txt"
        bad.write_text("{{.Nope}}")

        result = CliRunner().invoke(app, ["validate", str(good), str(bad)])
        assert result.exit_code == 1
        assert "X bad.txt" in result.output
        assert "is undefined" in result.output
        assert "1 of 2" in result.output

    def test_corrupt_archive(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.docx"
        broken.write_bytes(b"not a zip")
        result = CliRunner().invoke(app, ["validate", str(broken)])
        assert result.exit_code == 1
        assert "zip" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = CliRunner().invoke(app, ["validate", str(tmp_path / "missing.txt")])
        assert result.exit_code == 1
        assert "Cannot read" in result.output


class TestRenderCommand:
    def test_single_recipient(self, tmp_path: Path) -> None:
        source = tmp_path / "note.txt"
        source.write_text("Hi {{.FirstName}}, visit {{.URL}}")
        out = tmp_path / "out.txt"

        result = CliRunner().invoke(
            app,
            [
                "render",
                str(source),
                "--url",
                "https://login.example.com/",
                "--first-name",
                "Ada",
                "--rid",
                "abc1234",
                "--output",
                str(out),
            ],
        )
        assert result.exit_code == 0
        assert out.read_text() == "Hi Ada, visit https://login.example.com/?rid=abc1234"
        assert "abc1234" in result.output

    def test_single_recipient_archive(
        self,
        make_zip: Callable[..., bytes],
        office_members: list[tuple[str, bytes]],
        tmp_path: Path,
    ) -> None:
        source = tmp_path / "letter.docx"
        source.write_bytes(make_zip(office_members))
        out = tmp_path / "rendered" / "letter.docx"

        result = CliRunner().invoke(
            app,
            [
                "render",
                str(source),
                "--url",
                "https://login.example.com/",
                "--first-name",
                "Grace",
                "-o",
                str(out),
            ],
        )
        assert result.exit_code == 0
        with zipfile.ZipFile(io.BytesIO(out.read_bytes())) as zf:
            assert b"Dear Grace" in zf.read("word/document.xml")

    def test_render_error(self, tmp_path: Path) -> None:
        source = tmp_path / "bad.txt"
        source.write_text("{{.Nope}}")
        out = tmp_path / "out.txt"
        result = CliRunner().invoke(
            app, ["render", str(source), "--url", "https://x.example/", "-o", str(out)]
        )
        assert result.exit_code == 1
        assert "is undefined" in result.output
        assert not out.exists()

    def test_recipient_list(self, tmp_path: Path) -> None:
        source = tmp_path / "note.txt"
        source.write_text("Hi {{.FirstName}}")
        targets = tmp_path / "targets.csv"
        targets.write_text(
            "first_name,last_name,email\nAda,Lovelace,ada@example.com\nAlan,Turing,alan@example.com\n"
        )
        out_dir = tmp_path / "out"

        result = CliRunner().invoke(
            app,
            [
                "render",
                str(source),
                "--url",
                "https://login.example.com/",
                "--recipients",
                str(targets),
                "--output",
                str(out_dir),
                "--workers",
                "2",
            ],
        )
        assert result.exit_code == 0
        assert "Rendered 2 of 2" in result.output
        contents = sorted(p.read_text() for p in out_dir.iterdir())
        assert contents == ["Hi Ada", "Hi Alan"]

    def test_recipient_list_missing_columns(self, tmp_path: Path) -> None:
        source = tmp_path / "note.txt"
        source.write_text("Hi")
        targets = tmp_path / "targets.csv"
        targets.write_text("name\nAda\n")

        result = CliRunner().invoke(
            app,
            ["render", str(source), "--url", "https://x.example/", "--recipients", str(targets)],
        )
        assert result.exit_code == 1
        assert "missing columns" in result.output

    def test_url_required(self, tmp_path: Path) -> None:
        source = tmp_path / "note.txt"
        source.write_text("Hi")
        result = CliRunner().invoke(app, ["render", str(source)])
        assert result.exit_code != 0


class TestServeCommand:
    @pytest.fixture
    def started(self, monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, int]]:
        calls: list[tuple[str, int]] = []
        monkeypatch.setattr(
            attach_cli, "start_server", lambda host, port: calls.append((host, port))
        )
        return calls

    def test_binds_loopback_by_default(self, started: list[tuple[str, int]]) -> None:
        result = CliRunner().invoke(app, ["serve"])
        assert result.exit_code == 0
        assert started == [("127.0.0.1", 8080)]
        assert (DEFAULT_HOST, DEFAULT_PORT) == ("127.0.0.1", 8080)

    def test_host_and_port_options(self, started: list[tuple[str, int]]) -> None:
        result = CliRunner().invoke(app, ["serve", "--host", "0.0.0.0", "-p", "9000"])
        assert result.exit_code == 0
        assert started == [("0.0.0.0", 9000)]

    def test_start_server_defaults_match(self) -> None:
        params = inspect.signature(start_server).parameters
        assert params["host"].default == DEFAULT_HOST
        assert params["port"].default == DEFAULT_PORT
