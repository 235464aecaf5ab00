"""Unit tests — CLI commands against a file-backed store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import structlog
from typer.testing import CliRunner

from contact_store.cli.main import app
from contact_store.seed import DEFAULT_SEED

runner = CliRunner()


@pytest.fixture(autouse=True)
def logging_setup(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Silence structlog without the CLI's cached, stdlib-routed configuration.

    Logger caching would outlive the test and hide events from capture_logs.
    """

    def quiet(**_kwargs: object) -> None:
        structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL))

    mock = MagicMock(side_effect=quiet)
    monkeypatch.setattr("contact_store.cli.main.configure_logging", mock)
    return mock


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "storage:\n"
        "  backend: file\n"
        f"  file_path: {tmp_path / 'contacts.json'}\n"
        "logging:\n"
        "  level: critical\n"
    )
    return path


@pytest.fixture
def storage_file(tmp_path: Path) -> Path:
    return tmp_path / "contacts.json"


def _invoke(config_file: Path, *args: str, **kwargs):
    return runner.invoke(app, ["--config", str(config_file), *args], **kwargs)


def _stored(storage_file: Path) -> list[dict]:
    return json.loads(json.loads(storage_file.read_text())["contacts"])


def _listed(config_file: Path) -> list[dict]:
    result = _invoke(config_file, "list", "--json")
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


@pytest.mark.unit
class TestMainCLI:
    def test_help_exits_zero(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)

    def test_callback_configures_logging(self, config_file: Path, logging_setup: MagicMock) -> None:
        result = _invoke(config_file, "--log-level", "DEBUG", "config", "path")
        assert result.exit_code == 0
        logging_setup.assert_called_once_with(level="debug", format="console", log_file=None)

    def test_invalid_log_level_rejected(self, config_file: Path, logging_setup: MagicMock) -> None:
        result = _invoke(config_file, "--log-level", "verbose", "config", "path")
        assert result.exit_code == 2
        logging_setup.assert_not_called()

    def test_config_subcommand_help(self) -> None:
        result = runner.invoke(app, ["config", "--help"])
        assert result.exit_code == 0


@pytest.mark.unit
class TestListAndShow:
    def test_first_list_seeds_storage(self, config_file: Path, storage_file: Path) -> None:
        listed = _listed(config_file)
        assert listed == list(DEFAULT_SEED)
        assert _stored(storage_file) == list(DEFAULT_SEED)

    def test_table_output(self, config_file: Path) -> None:
        result = _invoke(config_file, "list")
        assert result.exit_code == 0
        assert "Lovelace" in result.stdout

    def test_favorites_only(self, config_file: Path) -> None:
        result = _invoke(config_file, "list", "--favorites", "--json")
        assert result.exit_code == 0
        assert [c["id"] for c in json.loads(result.stdout)] == ["1"]

    def test_show(self, config_file: Path) -> None:
        result = _invoke(config_file, "show", "2")
        assert result.exit_code == 0
        assert "Alan Turing" in result.stdout

    def test_show_unknown(self, config_file: Path) -> None:
        result = _invoke(config_file, "show", "missing")
        assert result.exit_code == 1


@pytest.mark.unit
class TestMutations:
    def test_add_with_fields(self, config_file: Path, storage_file: Path) -> None:
        result = _invoke(config_file, "add", "-f", "name=Katherine", "-f", "phone=555")
        assert result.exit_code == 0, result.output
        assert "Contact added" in result.stdout

        added = _stored(storage_file)[-1]
        assert added["name"] == "Katherine"
        assert added["phone"] == "555"
        assert added["favorite"] is False

    def test_add_with_json_data(self, config_file: Path, storage_file: Path) -> None:
        result = _invoke(config_file, "add", "--data", '{"name": "K", "tags": ["nasa"]}')
        assert result.exit_code == 0, result.output
        assert _stored(storage_file)[-1]["tags"] == ["nasa"]

    def test_add_bad_field_syntax(self, config_file: Path) -> None:
        result = _invoke(config_file, "add", "-f", "no-equals-sign")
        assert result.exit_code == 1

    def test_add_bad_json(self, config_file: Path) -> None:
        result = _invoke(config_file, "add", "--data", "[1, 2]")
        assert result.exit_code == 1

    def test_update(self, config_file: Path, storage_file: Path) -> None:
        result = _invoke(config_file, "update", "3", "-f", "phone=000")
        assert result.exit_code == 0, result.output
        updated = {c["id"]: c for c in _stored(storage_file)}["3"]
        assert updated["phone"] == "000"
        assert updated["name"] == "Grace Hopper"

    def test_update_without_fields(self, config_file: Path) -> None:
        result = _invoke(config_file, "update", "3")
        assert result.exit_code == 1

    def test_update_unknown(self, config_file: Path) -> None:
        result = _invoke(config_file, "update", "missing", "-f", "name=x")
        assert result.exit_code == 1

    def test_remove(self, config_file: Path, storage_file: Path) -> None:
        result = _invoke(config_file, "remove", "2")
        assert result.exit_code == 0
        assert [c["id"] for c in _stored(storage_file)] == ["1", "3"]

    def test_remove_unknown(self, config_file: Path) -> None:
        result = _invoke(config_file, "remove", "missing")
        assert result.exit_code == 1

    def test_favorite_toggles(self, config_file: Path, storage_file: Path) -> None:
        result = _invoke(config_file, "favorite", "1")
        assert result.exit_code == 0
        assert "Favorite off" in result.stdout
        assert {c["id"]: c for c in _stored(storage_file)}["1"]["favorite"] is False


@pytest.mark.unit
class TestCorruptStorage:
    @pytest.fixture
    def corrupt(self, storage_file: Path) -> None:
        storage_file.write_text(json.dumps({"contacts": "{not json"}))

    def test_list_falls_back_to_seed(self, config_file: Path, corrupt: None) -> None:
        assert _listed(config_file) == list(DEFAULT_SEED)

    def test_mutation_refused(self, config_file: Path, storage_file: Path, corrupt: None) -> None:
        result = _invoke(config_file, "add", "-f", "name=x")
        assert result.exit_code == 1
        assert json.loads(storage_file.read_text())["contacts"] == "{not json"

    def test_reset_restores_seed(self, config_file: Path, storage_file: Path, corrupt: None) -> None:
        result = _invoke(config_file, "reset", "--yes")
        assert result.exit_code == 0, result.output
        assert _stored(storage_file) == list(DEFAULT_SEED)

    def test_reset_asks_for_confirmation(
        self, config_file: Path, storage_file: Path, corrupt: None
    ) -> None:
        result = _invoke(config_file, "reset", input="n\n")
        assert result.exit_code == 1
        assert json.loads(storage_file.read_text())["contacts"] == "{not json"


@pytest.mark.unit
class TestConfigCommands:
    def test_show(self, config_file: Path) -> None:
        result = _invoke(config_file, "config", "show")
        assert result.exit_code == 0
        assert '"backend"' in result.stdout

    def test_path(self, config_file: Path, storage_file: Path) -> None:
        result = _invoke(config_file, "config", "path")
        assert result.exit_code == 0
        assert str(storage_file) in result.stdout
        assert "key: contacts" in result.stdout
