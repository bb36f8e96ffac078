"""Integration tests for CLI commands.

Most tests swap in the in-memory engine; the end-to-end tests run the real
local engine against a tmp data directory.
"""

import subprocess
import sys
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from randomfs_cli import __version__
from randomfs_cli.cli import app


# ========== Fixtures ==========

@pytest.fixture
def runner():
    """Create a CliRunner for in-process testing."""
    return CliRunner()


@pytest.fixture
def fake_engine(engine, isolated_config, monkeypatch):
    """Route every engine construction to the shared in-memory engine."""
    factory = MagicMock(return_value=engine)
    monkeypatch.setattr("randomfs_cli.cli.make_engine", factory)
    engine.factory = factory
    return engine


def _url_from(output: str) -> str:
    for line in output.splitlines():
        if line.startswith("rd:// URL:"):
            return line[len("rd:// URL:"):].strip()
    raise AssertionError(f"no rd:// URL in output:\n{output}")


# ========== Basics ==========

def test_help(runner):
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("store", "retrieve", "download", "parse", "stats"):
        assert command in result.stdout


def test_version(runner):
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


# ========== parse ==========

def test_parse_shows_fields(runner):
    result = runner.invoke(app, ["parse", "rd://H/text/plain/hello.txt?v=v1&size=9&ts=0"])
    assert result.exit_code == 0, result.output
    assert "Scheme:       rd" in result.stdout
    assert "File Name:    hello.txt" in result.stdout
    assert "Content Type: text/plain" in result.stdout
    assert "File Size:    9 bytes" in result.stdout
    assert "Rep Hash:     H" in result.stdout
    assert "Version:      v1" in result.stdout
    assert "1970-01-01 00:00:00 UTC" in result.stdout


def test_parse_unknown_metadata(runner):
    result = runner.invoke(app, ["parse", "rd://H/hello.txt"])
    assert result.exit_code == 0
    assert "Version:      unknown" in result.stdout


def test_parse_empty_file_name(runner):
    result = runner.invoke(app, ["parse", "rd://H/text/plain/"])
    assert result.exit_code == 0, result.output
    assert "File Name:    unknown" in result.stdout


@pytest.mark.parametrize("url,message", [
    ("not-an-rd-url", "no scheme found"),
    ("https://H/a.txt", "scheme 'https' is not 'rd'"),
    ("rd://H", "missing file name segment"),
    ("rd://H/a.txt?size=big", "file_size must be a non-negative integer"),
])
def test_parse_errors(runner, url, message):
    result = runner.invoke(app, ["parse", url])
    assert result.exit_code == 1
    assert "Error" in result.output
    assert message in result.output


def test_parse_does_not_touch_engine(runner, monkeypatch):
    factory = MagicMock()
    monkeypatch.setattr("randomfs_cli.cli.make_engine", factory)
    result = runner.invoke(app, ["parse", "rd://H/a.txt"])
    assert result.exit_code == 0
    factory.assert_not_called()


# ========== store ==========

def test_store(runner, fake_engine, write_file):
    path = write_file("hello.txt", "hello-rfs")
    result = runner.invoke(app, ["store", str(path)])

    assert result.exit_code == 0, result.output
    assert "File stored successfully!" in result.stdout
    assert _url_from(result.stdout).startswith("rd://")
    assert "/text/plain/hello.txt" in result.stdout
    assert "File Size: 9 bytes" in result.stdout
    assert "System Stats" not in result.stdout
    assert fake_engine.calls == ["store"]


def test_store_content_type_override(runner, fake_engine, write_file):
    path = write_file("notes.md", "# title")
    result = runner.invoke(app, ["store", str(path), "--content-type", "text/markdown"])
    assert result.exit_code == 0
    assert "/text/markdown/notes.md" in result.stdout


def test_store_rejects_content_type_without_subtype(runner, fake_engine, write_file):
    path = write_file("notes.md", "# title")
    result = runner.invoke(app, ["store", str(path), "--content-type", "markdown"])
    assert result.exit_code == 1
    assert "Invalid content type 'markdown'" in result.output
    fake_engine.factory.assert_not_called()
    assert fake_engine.calls == []


@pytest.mark.parametrize("args", [["store", "{path}", "--verbose"], ["-v", "store", "{path}"]])
def test_store_verbose(runner, fake_engine, write_file, args):
    path = write_file("hello.txt", "hello-rfs")
    args = [a.format(path=path) for a in args]
    result = runner.invoke(app, args)
    assert result.exit_code == 0
    assert "System Stats:" in result.stdout
    assert "Files Stored: 1" in result.stdout


def test_store_missing_file(runner, fake_engine, tmp_path):
    result = runner.invoke(app, ["store", str(tmp_path / "missing.txt")])
    assert result.exit_code == 1
    assert "Failed to read file" in result.output
    fake_engine.factory.assert_not_called()


def test_store_engine_failure(runner, isolated_config, write_file, monkeypatch):
    broken = MagicMock()
    broken.store.side_effect = OSError("disk full")
    monkeypatch.setattr("randomfs_cli.cli.make_engine", MagicMock(return_value=broken))
    path = write_file("hello.txt", "hello-rfs")

    result = runner.invoke(app, ["store", str(path)])
    assert result.exit_code == 1
    assert "Failed to store file hello.txt: disk full" in result.output
    assert "rd://" not in result.stdout


# ========== retrieve / download ==========

def test_retrieve(runner, fake_engine, write_file, tmp_path):
    locator = fake_engine.store("hello.txt", b"hello-rfs", "text/plain")
    out = tmp_path / "out.txt"

    result = runner.invoke(app, ["retrieve", locator.rep_hash, str(out)])

    assert result.exit_code == 0, result.output
    assert out.read_bytes() == b"hello-rfs"
    assert "Original Name: hello.txt" in result.stdout
    assert "Content Type:  text/plain" in result.stdout
    assert "File Size:     9 bytes" in result.stdout
    assert "Block Count:   1" in result.stdout


def test_retrieve_verbose_shows_cache_stats(runner, fake_engine, tmp_path):
    locator = fake_engine.store("a.txt", b"abc", "text/plain")
    result = runner.invoke(app, ["retrieve", "-v", locator.rep_hash, str(tmp_path / "o")])
    assert result.exit_code == 0
    assert "Cache Hits: 1" in result.stdout


def test_retrieve_unknown_hash(runner, fake_engine, tmp_path):
    out = tmp_path / "out.txt"
    result = runner.invoke(app, ["retrieve", "f" * 64, str(out)])
    assert result.exit_code == 1
    assert "Failed to retrieve file" in result.output
    assert not out.exists()


def test_download(runner, fake_engine, tmp_path):
    locator = fake_engine.store("hello.txt", b"hello-rfs", "text/plain")
    out = tmp_path / "copy.txt"

    result = runner.invoke(app, ["download", locator.to_url(), str(out)])

    assert result.exit_code == 0, result.output
    assert out.read_bytes() == b"hello-rfs"
    assert "File downloaded successfully!" in result.stdout
    assert "Output File:" in result.stdout


def test_download_bad_url_fails_fast(runner, fake_engine, tmp_path):
    result = runner.invoke(app, ["download", "not-an-rd-url", str(tmp_path / "out.bin")])
    assert result.exit_code == 1
    fake_engine.factory.assert_not_called()
    assert fake_engine.calls == []
    assert not (tmp_path / "out.bin").exists()


# ========== stats ==========

def test_stats_compact(runner, fake_engine):
    fake_engine.store("a.txt", b"abc", "text/plain")
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Files Stored:     1" in result.stdout
    assert "Total Size:       3 bytes" in result.stdout
    assert "Cache Misses:     0" in result.stdout


def test_stats_verbose_json(runner, fake_engine):
    result = runner.invoke(app, ["stats", "--verbose"])
    assert result.exit_code == 0
    assert '"files_stored": 0' in result.stdout
    assert '"cache_misses": 0' in result.stdout


def test_bad_config_is_reported(runner, fake_engine, monkeypatch):
    monkeypatch.setenv("RANDOMFS_CACHE", "lots")
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    fake_engine.factory.assert_not_called()


# ========== End-to-end with the local engine ==========

def test_store_then_download_local_engine(runner, isolated_config, write_file, tmp_path):
    data_dir = tmp_path / "rfs-data"
    path = write_file("hello.txt", "hello-rfs")

    stored = runner.invoke(app, ["--data", str(data_dir), "store", str(path)])
    assert stored.exit_code == 0, stored.output
    url = _url_from(stored.stdout)

    out = tmp_path / "out.txt"
    downloaded = runner.invoke(app, ["--data", str(data_dir), "download", url, str(out)])
    assert downloaded.exit_code == 0, downloaded.output
    assert out.read_bytes() == b"hello-rfs"

    stats = runner.invoke(app, ["--data", str(data_dir), "stats"])
    assert "Files Stored:     1" in stats.stdout
    assert "Total Size:       9 bytes" in stats.stdout


def test_module_entry_point(tmp_path):
    """python -m randomfs_cli runs the CLI."""
    result = subprocess.run(
        [sys.executable, "-m", "randomfs_cli", "--help"],
        capture_output=True,
        text=True,
        cwd=tmp_path,
    )
    assert result.returncode == 0
    assert "rd://" in result.stdout
