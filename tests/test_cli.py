"""
Tests for the oauthdb-check command.
"""

import json
import logging

import pytest

from oauthdb.cli import main


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    logger = logging.getLogger("oauthdb")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def write_config(tmp_path, **values):
    path = tmp_path / "oauthdb.json"
    path.write_text(json.dumps(values), encoding="utf-8")
    return str(path)


class TestCheckCommand:
    """Exit codes and report"""

    def test_memory_backend(self, tmp_path, capsys):
        path = write_config(tmp_path, driver="memory", clients=[
            {"id": "0011223344556677", "name": "Configured", "redirectUri": "https://example.com/cb"},
        ])

        assert main(["--config", path]) == 0

        output = capsys.readouterr().out
        assert "memory backend ready" in output
        assert "Configured clients: 1" in output
        assert "not applicable" in output

    def test_sqlite_backend(self, tmp_path, capsys):
        path = write_config(
            tmp_path, driver="sql", databaseUrl=f"sqlite+aiosqlite:///{tmp_path / 'check.sqlite'}"
        )

        assert main(["--config", path]) == 0

        output = capsys.readouterr().out
        assert "sql backend ready" in output
        assert "character_set_connection: UTF-8" in output

    def test_unavailable_backend(self, tmp_path, capsys):
        path = write_config(
            tmp_path, driver="sql", databaseUrl=f"sqlite+aiosqlite:///{tmp_path / 'no' / 'such.sqlite'}"
        )

        assert main(["--config", path]) == 2
        assert "Backend unavailable" in capsys.readouterr().out

    def test_invalid_config(self, tmp_path, capsys):
        path = write_config(tmp_path, driver="sql")

        assert main(["--config", path]) == 1
        assert "Invalid configuration" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path):
        assert main(["--config", str(tmp_path / "absent.json")]) == 1

    def test_environment_config(self, monkeypatch, capsys):
        monkeypatch.setenv("OAUTHDB_DRIVER", "memory")

        assert main([]) == 0
        assert "memory backend ready" in capsys.readouterr().out

    def test_invalid_client_descriptor(self, tmp_path, capsys):
        path = write_config(tmp_path, clients=[{"id": "zz", "name": "Bad", "redirect_uri": "https://x/cb"}])

        assert main(["--config", path]) == 1
        assert "invalid_argument" in capsys.readouterr().out
