"""
Depositor Configuration System

Settings come from, highest precedence first:

    1. Environment variables (DEPOSITOR_*)
    2. Command-line flags (--rpc, --mnemonic, --account)
    3. The file given with --config, else ./depositor.yaml,
       else ~/.depositor/config.yaml (first one found)
    4. Built-in defaults

Files are YAML and are checked against ``schemas/config.schema.json``
before any value is applied, so a bad file changes nothing.

Example depositor.yaml:

    network:
      rpc_url: wss://node.example/ws
      connector: mypackage.ledger:connector
    observability:
      log_level: info
    chains:
      "3":
        bitcoin_network: testnet
        electrum:
          testnet: {server: electrum.example, port: 50002, protocol: ssl}

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

import yaml
from jsonschema import Draft202012Validator

from depositor.addresses import is_address
from depositor.collaborators import NetworkProfile

T = TypeVar("T")

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "config.schema.json"

DEFAULT_CONFIG_PATHS = (
    Path("depositor.yaml"),
    Path("~/.depositor/config.yaml"),
)

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")
LOG_FORMATS = ("json", "text")


class ConfigError(Exception):
    """Configuration error."""
    pass


class ConfigValidationError(ConfigError):
    """A value or file failed validation."""
    pass


@dataclass
class ConfigValue(Generic[T]):
    """
    One setting: a default, an optional environment binding and validator,
    and the last value assigned from a file or flag together with where it
    came from.
    """
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    secret: bool = False
    _value: Optional[T] = field(default=None, repr=False)
    _source: str = field(default="default", repr=False)

    @property
    def source(self) -> str:
        if self.env_var and self.env_var in os.environ:
            return f"env:{self.env_var}"
        return self._source

    def get(self) -> T:
        if self.env_var and self.env_var in os.environ:
            return self._from_env(os.environ[self.env_var])
        return self.default if self._value is None else self._value

    def set(self, value: T, source: str = "override") -> None:
        if self.validator is not None and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value}")
        self._value = value
        self._source = source

    def _from_env(self, raw: str) -> T:
        if isinstance(self.default, bool):
            return raw.strip().lower() in ("1", "true", "yes", "on")  # type: ignore
        if isinstance(self.default, int):
            return int(raw)  # type: ignore
        return raw  # type: ignore


@dataclass
class NetworkConfig:
    """Ledger connection settings."""
    rpc_url: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="ws://localhost:8546",
        env_var="DEPOSITOR_RPC_URL",
        description="Ledger RPC endpoint",
        validator=bool,
    ))
    mnemonic: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="DEPOSITOR_MNEMONIC",
        description="Mnemonic or private key for the operating account",
        secret=True,
    ))
    account: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="DEPOSITOR_ACCOUNT",
        description="Operating account; first account of the key when empty",
        validator=lambda x: not x or is_address(x),
    ))
    connector: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="",
        env_var="DEPOSITOR_CONNECTOR",
        description="Ledger connector as module:attribute",
    ))


@dataclass
class ObservabilityConfig:
    """Logging settings."""
    log_level: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="info",
        env_var="DEPOSITOR_LOG_LEVEL",
        description=f"Log level ({', '.join(LOG_LEVELS)})",
        validator=lambda x: x in LOG_LEVELS,
    ))
    log_format: ConfigValue[str] = field(default_factory=lambda: ConfigValue(
        default="text",
        env_var="DEPOSITOR_LOG_FORMAT",
        description=f"Log format ({', '.join(LOG_FORMATS)})",
        validator=lambda x: x in LOG_FORMATS,
    ))


# Chain id -> bitcoin network the deposit client should watch.
DEFAULT_CHAINS: Dict[str, Dict[str, Any]] = {
    "1": {"bitcoin_network": "main", "electrum": {}},
    "3": {"bitcoin_network": "testnet", "electrum": {}},
}


@dataclass
class DepositorConfig:
    """Root configuration: component sections plus the per-chain table."""
    network: NetworkConfig = field(default_factory=NetworkConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)
    chains: Dict[str, Dict[str, Any]] = field(default_factory=lambda: copy.deepcopy(DEFAULT_CHAINS))

    def values(self) -> Iterator[Tuple[str, ConfigValue]]:
        """Every setting as ``(dotted.path, ConfigValue)``."""
        for section in fields(self):
            group = getattr(self, section.name)
            if not is_dataclass(group):
                continue
            for setting in fields(group):
                yield f"{section.name}.{setting.name}", getattr(group, setting.name)

    def to_dict(self) -> Dict[str, Any]:
        """Effective values with secrets masked."""
        out: Dict[str, Any] = {}
        for path, value in self.values():
            section, name = path.split(".")
            current = value.get()
            out.setdefault(section, {})[name] = "***" if value.secret and current else current
        out["chains"] = copy.deepcopy(self.chains)
        return out

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), default_flow_style=False)


def config_validator() -> Draft202012Validator:
    schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


class ConfigManager:
    """Loads files into a ``DepositorConfig`` and resolves settings by dotted path."""

    def __init__(self, config: Optional[DepositorConfig] = None):
        self._config = config or DepositorConfig()
        self._loaded: List[Path] = []

    @property
    def config(self) -> DepositorConfig:
        return self._config

    @property
    def loaded_paths(self) -> List[Path]:
        return list(self._loaded)

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def load_from_file(self, path: Union[str, Path]) -> None:
        path = Path(path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Configuration file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        self.load_from_dict(data, source=str(path))
        self._loaded.append(path)

    def load_from_dict(self, data: Dict[str, Any], source: str = "<dict>") -> None:
        """Validate the whole document, then apply it."""
        errors = sorted(config_validator().iter_errors(data), key=lambda e: list(e.path))
        if errors:
            first = errors[0]
            where = "/".join(str(p) for p in first.path) or "<root>"
            raise ConfigValidationError(f"invalid configuration {source}: {where}: {first.message}")

        for chain_id, profile in (data.get("chains") or {}).items():
            self._config.chains[str(chain_id)] = {
                "bitcoin_network": profile["bitcoin_network"],
                "electrum": dict(profile.get("electrum") or {}),
            }

        for section, settings in data.items():
            if section == "chains":
                continue
            for name, value in settings.items():
                self._lookup(f"{section}.{name}").set(value, source=source)

    def load_defaults(self) -> Optional[Path]:
        """Load the first default configuration file that exists, if any."""
        for candidate in DEFAULT_CONFIG_PATHS:
            path = candidate.expanduser()
            if path.is_file():
                self.load_from_file(path)
                return path
        return None

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    def _lookup(self, path: str) -> ConfigValue:
        section, _, name = path.partition(".")
        group = getattr(self._config, section, None)
        value = getattr(group, name, None) if is_dataclass(group) else None
        if not isinstance(value, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        return value

    def get(self, path: str) -> Any:
        """
        Effective value of a setting.

        Example: manager.get("observability.log_level")
        """
        return self._lookup(path).get()

    def set(self, path: str, value: Any, source: str = "override") -> None:
        self._lookup(path).set(value, source=source)

    def source_of(self, path: str) -> str:
        """Where the effective value came from: default, a file path, override or env."""
        return self._lookup(path).source

    def apply_overrides(self, overrides: Dict[str, Optional[Any]]) -> None:
        """Apply command-line values, skipping flags that were not given."""
        for path, value in overrides.items():
            if value is not None:
                self.set(path, value, source="flag")

    def network_profile(self, chain_id: int) -> NetworkProfile:
        profile = self._config.chains.get(str(chain_id))
        if profile is None:
            known = ", ".join(sorted(self._config.chains, key=int))
            raise ConfigError(f"No configuration for chain id {chain_id}; configured chains: {known}")
        return NetworkProfile(
            chain_id=int(chain_id),
            bitcoin_network=profile["bitcoin_network"],
            electrum=dict(profile.get("electrum") or {}),
        )

    def validate(self) -> List[str]:
        """Check effective values, environment included. Returns error strings."""
        errors: List[str] = []
        for path, value in self._config.values():
            try:
                current = value.get()
            except ValueError as e:
                errors.append(f"{path}: {e}")
                continue
            if value.validator is not None and not value.validator(current):
                errors.append(f"{path}: validation failed for value {current}")
        return errors
