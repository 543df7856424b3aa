"""Centralized configuration for a stacking run.

The TOML file supplies the node endpoint and the ordered stacker keys;
environment variables (a local .env is honoured) override the tunables.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from stacker.node.client import DEFAULT_REQUEST_TIMEOUT
from stacker.pox.cycles import POX_PREPARE_LENGTH, POX_REWARD_LENGTH
from stacker.pox.decisions import DEFAULT_POX_CONTRACT_SUFFIX
from stacker.pox.errors import ConfigurationError
from stacker.pox.executor import DEFAULT_STACKING_CYCLES
from stacker.pox.fees import DEFAULT_START_FEE


@dataclass(frozen=True)
class NodeConfig:
    url: str
    port: int

    @property
    def full_url(self) -> str:
        # Ensure scheme is present
        url = self.url.rstrip("/")
        endpoint = url if "://" in url else f"http://{url}"
        # Only append port if not already present in the URL
        if ":" not in endpoint.rsplit("/", 1)[-1]:
            endpoint = f"{endpoint}:{self.port}"
        return endpoint


@dataclass(frozen=True)
class StackerConfig:
    secret_key: str = field(repr=False)


@dataclass(frozen=True)
class Settings:
    node: NodeConfig
    stackers: tuple[StackerConfig, ...]
    stacking_cycles: int = DEFAULT_STACKING_CYCLES
    start_fee: int = DEFAULT_START_FEE
    reward_cycle_length: int = POX_REWARD_LENGTH
    prepare_phase_length: int = POX_PREPARE_LENGTH
    contract_suffix: str = DEFAULT_POX_CONTRACT_SUFFIX
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


def _table_int(table: dict, key: str, default: int) -> int:
    try:
        return int(table.get(key, default))
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"stacking.{key} must be an integer, got {table.get(key)!r}"
        )


def _read_toml(path: Path) -> dict:
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read {path}: {e}")
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}")


def _parse_node(data: dict) -> NodeConfig:
    node = data.get("node")
    if not isinstance(node, dict):
        raise ConfigurationError("Missing [node] table")
    url = node.get("url")
    if not isinstance(url, str) or not url:
        raise ConfigurationError("node.url must be a non-empty string")
    try:
        port = int(node.get("port"))
    except (TypeError, ValueError):
        raise ConfigurationError(f"node.port must be an integer, got {node.get('port')!r}")
    return NodeConfig(url=url, port=port)


def _parse_stackers(data: dict) -> tuple[StackerConfig, ...]:
    stackers = data.get("stackers")
    if not isinstance(stackers, list) or not stackers:
        raise ConfigurationError("At least one [[stackers]] entry is required")
    parsed = []
    for index, stacker in enumerate(stackers):
        secret_key = stacker.get("secret_key") if isinstance(stacker, dict) else None
        if not isinstance(secret_key, str) or not secret_key:
            raise ConfigurationError(f"stackers[{index}].secret_key is missing")
        parsed.append(StackerConfig(secret_key=secret_key))
    return tuple(parsed)


def load_settings(path: str | Path) -> Settings:
    """Load and validate a stacking configuration file.

    Raises:
        ConfigurationError: the file is missing, unparsable or incomplete.
    """
    load_dotenv()
    data = _read_toml(Path(path))
    stacking = data.get("stacking") or {}
    if not isinstance(stacking, dict):
        raise ConfigurationError("[stacking] must be a table")

    settings = Settings(
        node=_parse_node(data),
        stackers=_parse_stackers(data),
        stacking_cycles=_env_int(
            "STACKING_CYCLES", _table_int(stacking, "cycles", DEFAULT_STACKING_CYCLES)
        ),
        start_fee=_env_int(
            "STACKING_START_FEE", _table_int(stacking, "start_fee", DEFAULT_START_FEE)
        ),
        reward_cycle_length=_env_int("POX_REWARD_LENGTH", POX_REWARD_LENGTH),
        prepare_phase_length=_env_int("POX_PREPARE_LENGTH", POX_PREPARE_LENGTH),
        contract_suffix=os.environ.get(
            "POX_CONTRACT_SUFFIX", DEFAULT_POX_CONTRACT_SUFFIX
        ),
        request_timeout=_env_float("NODE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
    )

    if settings.stacking_cycles < 1:
        raise ConfigurationError(
            f"Stacking cycles must be at least 1, got {settings.stacking_cycles}"
        )
    if settings.start_fee < 0:
        raise ConfigurationError(f"Start fee must not be negative, got {settings.start_fee}")
    if settings.reward_cycle_length < 1:
        raise ConfigurationError(
            f"Reward cycle length must be at least 1, got {settings.reward_cycle_length}"
        )
    return settings
