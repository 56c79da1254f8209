"""Tests for booksafe.config — env parsing and fail-fast validation."""

from pathlib import Path

import pytest

from booksafe import config


# ── fixture ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every setting at tmp_path and reset the cached singleton."""
    (tmp_path / "xochitl").mkdir()
    monkeypatch.setenv("XOCHITL_DIR", str(tmp_path / "xochitl"))
    monkeypatch.setenv("BOOKSAFE_DATA_DIR", str(tmp_path / "data"))
    for name in ("ROUTE_TOOL", "DNS_TIMEOUT_SECONDS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config, "_settings", None)
    return tmp_path


class TestLoad:
    def test_defaults(self, env: Path):
        settings = config.load()
        assert settings.metadata_dir == (env / "xochitl").resolve()
        assert settings.route_tool == "route"
        assert settings.dns_timeout == 30.0
        assert settings.log_level == "INFO"

    def test_data_dir_created(self, env: Path):
        settings = config.load()
        assert (env / "data").is_dir()
        assert settings.route_cache == (env / "data").resolve() / "routes.json"

    def test_overrides(self, env: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ROUTE_TOOL", "/sbin/route")
        monkeypatch.setenv("DNS_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = config.load()
        assert settings.route_tool == "/sbin/route"
        assert settings.dns_timeout == 5.0
        assert settings.log_level == "DEBUG"

    def test_cached(self, env: Path):
        assert config.load() is config.load()
        assert config.get() is config.load()


class TestLoadErrors:
    def test_missing_metadata_dir(self, env: Path, monkeypatch: pytest.MonkeyPatch, capsys):
        monkeypatch.setenv("XOCHITL_DIR", str(env / "nope"))
        with pytest.raises(SystemExit) as exc_info:
            config.load()
        assert exc_info.value.code == 1
        assert "XOCHITL_DIR" in capsys.readouterr().err

    def test_metadata_dir_is_file(self, env: Path, monkeypatch: pytest.MonkeyPatch):
        (env / "file").write_text("")
        monkeypatch.setenv("XOCHITL_DIR", str(env / "file"))
        with pytest.raises(SystemExit):
            config.load()

    def test_every_error_reported(self, env: Path, monkeypatch: pytest.MonkeyPatch, capsys):
        monkeypatch.setenv("DNS_TIMEOUT_SECONDS", "soon")
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        with pytest.raises(SystemExit):
            config.load()
        err = capsys.readouterr().err
        assert "DNS_TIMEOUT_SECONDS" in err
        assert "LOG_LEVEL" in err

    def test_non_positive_timeout(self, env: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("DNS_TIMEOUT_SECONDS", "0")
        with pytest.raises(SystemExit):
            config.load()

    def test_data_dir_is_file(self, env: Path, monkeypatch: pytest.MonkeyPatch):
        (env / "data").write_text("")
        with pytest.raises(SystemExit):
            config.load()


class TestGet:
    def test_before_load(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(config, "_settings", None)
        with pytest.raises(RuntimeError):
            config.get()
