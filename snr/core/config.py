"""
Node configuration parameters for SNR.

Defines where a node keeps its store and logs, and how it logs. Registry
policy (name lengths, price, windows, lock duration) is fixed in
snr.core.registry.rules and is intentionally not configurable here.

Values come from, in increasing priority:
1. Field defaults
2. A .env file (SNR_* keys)
3. The process environment (SNR_* variables)
4. Explicit overrides passed to load_config()
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "SNR_"


class NodeConfig(BaseModel):
    """Node-wide configuration parameters"""

    # Paths
    data_dir: Path = Path("~/.snr")
    log_dir: Optional[Path] = None  # defaults to <data_dir>/logs
    db_name: str = "registry.db"

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False

    # Devnet faucet: largest single `wallet fund` amount, in base units
    faucet_limit: int = Field(default=100 * 10**18, ge=0)

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("data_dir", "log_dir")
    @classmethod
    def _expand(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value is not None else None

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def resolved_log_dir(self) -> Path:
        return self.log_dir if self.log_dir is not None else self.data_dir / "logs"

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level)

    def ensure_dirs(self) -> None:
        """Create necessary directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        if self.log_to_file:
            self.resolved_log_dir.mkdir(exist_ok=True, parents=True)


def _prefixed(values: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Strip the SNR_ prefix and lower-case matching keys."""
    out = {}
    for key, value in values.items():
        if value is None or not key.upper().startswith(ENV_PREFIX):
            continue
        out[key[len(ENV_PREFIX):].lower()] = value
    return out


def load_config(
    env_file: Optional[str] = None,
    **overrides: Any,
) -> NodeConfig:
    """
    Load configuration from a .env file and the environment.

    Args:
        env_file: Optional path to a .env file. If None, ./.env is used
            when present.
        **overrides: Explicit field values (None values are ignored)

    Returns:
        NodeConfig instance
    """
    path = Path(env_file) if env_file else Path(".env")
    values: Dict[str, Any] = {}
    if path.is_file():
        values.update(_prefixed(dotenv_values(path)))
    values.update(_prefixed(dict(os.environ)))
    values.update({k: v for k, v in overrides.items() if v is not None})

    return NodeConfig(**values)
