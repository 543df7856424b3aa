import pytest

from stacker.config import settings as settings_module
from stacker.config.settings import NodeConfig, load_settings
from stacker.pox.errors import ConfigurationError

ENV_NAMES = [
    "LOG_LEVEL",
    "POX_REWARD_LENGTH",
    "POX_PREPARE_LENGTH",
    "STACKING_CYCLES",
    "STACKING_START_FEE",
    "POX_CONTRACT_SUFFIX",
    "NODE_REQUEST_TIMEOUT",
]

VALID_CONFIG = """
[node]
url = "http://localhost"
port = 20443

[[stackers]]
secret_key = "{key1}"

[[stackers]]
secret_key = "{key2}"
""".format(key1="01" * 33, key2="02" * 32 + "01")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings_module, "load_dotenv", lambda: None)


@pytest.fixture
def write_config(tmp_path):
    def _write(content: str):
        path = tmp_path / "stacking.toml"
        path.write_text(content)
        return path

    return _write


class TestNodeConfig:
    def test_appends_port(self):
        assert NodeConfig("http://localhost", 20443).full_url == "http://localhost:20443"

    def test_adds_scheme(self):
        assert NodeConfig("stacks-node", 20443).full_url == "http://stacks-node:20443"

    def test_keeps_explicit_port(self):
        assert NodeConfig("https://node:3999", 20443).full_url == "https://node:3999"

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("http://localhost:20443/", "http://localhost:20443"),
            ("http://localhost/", "http://localhost:20443"),
            ("stacks-node/", "http://stacks-node:20443"),
        ],
    )
    def test_trailing_slash(self, url, expected):
        assert NodeConfig(url, 20443).full_url == expected


class TestLoadSettings:
    def test_defaults(self, write_config):
        settings = load_settings(write_config(VALID_CONFIG))

        assert settings.node.full_url == "http://localhost:20443"
        assert [s.secret_key for s in settings.stackers] == [
            "01" * 33,
            "02" * 32 + "01",
        ]
        assert settings.stacking_cycles == 10
        assert settings.start_fee == 1000
        assert settings.reward_cycle_length == 20
        assert settings.prepare_phase_length == 5
        assert settings.contract_suffix == ".pox-4"

    def test_secret_keys_hidden_from_repr(self, write_config):
        settings = load_settings(write_config(VALID_CONFIG))
        assert "01" * 33 not in repr(settings)

    def test_stacking_table(self, write_config):
        settings = load_settings(
            write_config(VALID_CONFIG + "\n[stacking]\ncycles = 6\nstart_fee = 500\n")
        )
        assert settings.stacking_cycles == 6
        assert settings.start_fee == 500

    def test_env_overrides_file(self, write_config, monkeypatch):
        monkeypatch.setenv("STACKING_CYCLES", "3")
        monkeypatch.setenv("STACKING_START_FEE", "2500")
        monkeypatch.setenv("POX_REWARD_LENGTH", "1050")
        monkeypatch.setenv("NODE_REQUEST_TIMEOUT", "5.5")
        settings = load_settings(
            write_config(VALID_CONFIG + "\n[stacking]\ncycles = 6\n")
        )
        assert settings.stacking_cycles == 3
        assert settings.start_fee == 2500
        assert settings.reward_cycle_length == 1050
        assert settings.request_timeout == 5.5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_settings(tmp_path / "missing.toml")

    def test_invalid_toml(self, write_config):
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            load_settings(write_config("[node\nurl ="))

    def test_missing_node(self, write_config):
        with pytest.raises(ConfigurationError, match=r"\[node\]"):
            load_settings(write_config('[[stackers]]\nsecret_key = "aa"\n'))

    def test_invalid_port(self, write_config):
        with pytest.raises(ConfigurationError, match="node.port"):
            load_settings(
                write_config(VALID_CONFIG.replace("port = 20443", 'port = "abc"'))
            )

    def test_no_stackers(self, write_config):
        with pytest.raises(ConfigurationError, match="stackers"):
            load_settings(write_config('[node]\nurl = "http://localhost"\nport = 1\n'))

    def test_stacker_without_key(self, write_config):
        with pytest.raises(ConfigurationError, match=r"stackers\[2\]"):
            load_settings(write_config(VALID_CONFIG + "\n[[stackers]]\n"))

    def test_invalid_env_integer(self, write_config, monkeypatch):
        monkeypatch.setenv("STACKING_CYCLES", "ten")
        with pytest.raises(ConfigurationError, match="STACKING_CYCLES"):
            load_settings(write_config(VALID_CONFIG))

    @pytest.mark.parametrize(
        "name,value",
        [
            ("STACKING_CYCLES", "0"),
            ("STACKING_START_FEE", "-1"),
            ("POX_REWARD_LENGTH", "0"),
        ],
    )
    def test_out_of_range_values(self, write_config, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigurationError):
            load_settings(write_config(VALID_CONFIG))
