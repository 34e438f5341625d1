"""
Base configuration for dex_pricer.

Every section is a dataclass whose defaults are read from the environment
(and a `.env` file, if present) when the module is imported.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ENVIRONMENTS = ("local", "dev", "staging", "production")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

T = TypeVar("T")


class ConfigError(Exception):
    """Invalid or missing configuration."""
    pass


@dataclass
class BaseConfig:
    """Settings shared by every configuration section."""

    # Relative paths resolve against the working directory of the process
    DATA_DIR: Path = Path(os.getenv("DEX_PRICER_DATA_DIR", "data"))

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "local")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self):
        self._setup_logging()
        self._validate_config()

    def _setup_logging(self):
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        if not isinstance(level, int):
            raise ConfigError(f"Invalid log level: {self.LOG_LEVEL}")
        logging.basicConfig(level=level, format=LOG_FORMAT)

    def _validate_config(self):
        """Raise ConfigError for inconsistent values. Sections extend this."""
        if self.ENVIRONMENT not in ENVIRONMENTS:
            raise ConfigError(
                f"Invalid environment: {self.ENVIRONMENT} (expected one of {', '.join(ENVIRONMENTS)})"
            )

    @staticmethod
    def get_env(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
        """
        Read an environment variable.

        Raises:
            ConfigError: If `required` is set and the variable is missing
        """
        value = os.getenv(key, default)
        if value is None and required:
            raise ConfigError(f"Required environment variable '{key}' is not set")
        return value

    @staticmethod
    def _typed(key: str, default: Any, required: bool, cast: Callable[[str], T], kind: str) -> T:
        raw = BaseConfig.get_env(key, None if default is None else str(default), required)
        try:
            return cast(raw)
        except (TypeError, ValueError):
            raise ConfigError(f"Environment variable '{key}' must be {kind}, got: {raw}")

    @staticmethod
    def get_env_int(key: str, default: Optional[int] = None, required: bool = False) -> int:
        return BaseConfig._typed(key, default, required, int, "an integer")

    @staticmethod
    def get_env_float(key: str, default: Optional[float] = None, required: bool = False) -> float:
        return BaseConfig._typed(key, default, required, float, "a float")

    @staticmethod
    def get_env_list(key: str, default: Optional[List[str]] = None, separator: str = ",") -> List[str]:
        """Comma separated variable as a list, blanks dropped."""
        raw = os.getenv(key)
        if raw is None:
            return list(default or [])
        return [item.strip() for item in raw.split(separator) if item.strip()]

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__ if not name.startswith("_")}
