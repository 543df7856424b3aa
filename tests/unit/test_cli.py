from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from stacker import cli
from stacker.pox.errors import ConfigurationError, NodeRequestError
from stacker.runner import AccountOutcome, RunReport

CONFIG = """
[node]
url = "localhost"
port = 20443

[[stackers]]
secret_key = "{key}"
""".format(key="01" * 33)


@pytest.fixture(autouse=True)
def quiet(monkeypatch):
    monkeypatch.setattr(cli, "setup_loguru_config", lambda level=None: None)
    monkeypatch.setattr("stacker.config.settings.load_dotenv", lambda: None)
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "stacking.toml"
    path.write_text(CONFIG)
    return path


def test_missing_config_exits_1(tmp_path):
    assert cli.main([str(tmp_path / "missing.toml")]) == 1


def test_invalid_secret_key_exits_1(tmp_path):
    path = tmp_path / "stacking.toml"
    path.write_text(CONFIG.replace("01" * 33, "xyz"))
    assert cli.main([str(path)]) == 1


def test_successful_run_exits_0(config_path):
    report = RunReport(outcomes=[AccountOutcome(index=0, address="ST1")])
    with patch.object(cli, "run_once", AsyncMock(return_value=report)) as run_once:
        assert cli.main([str(config_path)]) == 0

    settings, accounts = run_once.call_args[0]
    assert settings.node.full_url == "http://localhost:20443"
    assert [a.index for a in accounts] == [0]


def test_account_failures_still_exit_0(config_path):
    report = RunReport(
        outcomes=[AccountOutcome(index=0, address="ST1", error=RuntimeError("x"))]
    )
    with patch.object(cli, "run_once", AsyncMock(return_value=report)):
        assert cli.main([str(config_path)]) == 0


def test_skipped_run_exits_0(config_path):
    report = RunReport(skipped_reason="Pox contract is not .pox-4")
    with patch.object(cli, "run_once", AsyncMock(return_value=report)):
        assert cli.main([str(config_path)]) == 0


def test_pox_info_failure_exits_1(config_path):
    error = NodeRequestError("/v2/pox", message="Timeout requesting /v2/pox")
    with patch.object(cli, "run_once", AsyncMock(side_effect=error)):
        assert cli.main([str(config_path)]) == 1


def test_missing_argument_exits_2():
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 2


def test_invalid_log_level_exits_1(config_path, monkeypatch):
    setup = MagicMock(side_effect=[ConfigurationError("Invalid log level: 'LOUD'"), None])
    monkeypatch.setattr(cli, "setup_loguru_config", setup)
    with patch.object(cli, "run_once", AsyncMock()) as run_once:
        assert cli.main([str(config_path), "--log-level", "loud"]) == 1

    assert [c.args[0] for c in setup.call_args_list] == ["loud", "INFO"]
    run_once.assert_not_called()
