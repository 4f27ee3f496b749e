import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError


def load_env(env_path: Optional[Path] = None) -> None:
    """Load .env from project root if present.
    Values already set in the process environment win.
    """
    env_path = env_path or Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path, override=False)


def _number(env: Mapping[str, str], key: str, default: float, cast=float):
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime configuration read from CONTRACTBOOK_* environment variables."""

    db_path: Path = Path("data/contractbook.db")
    lock_timeout: float = 5.0
    max_retries: int = 2
    retry_delay: float = 0.05
    log_level: str = "INFO"
    log_dir: Path = Path("logs")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from the environment.

        Args:
            env: Mapping to read from (default: os.environ)

        Raises:
            ConfigError: If a numeric value is malformed or negative,
                or the log level is unknown
        """
        env = os.environ if env is None else env
        log_level = env.get("CONTRACTBOOK_LOG_LEVEL", cls.log_level).upper()
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"CONTRACTBOOK_LOG_LEVEL is not a log level: {log_level!r}")
        return cls(
            db_path=Path(env.get("CONTRACTBOOK_DB") or cls.db_path),
            lock_timeout=_number(env, "CONTRACTBOOK_LOCK_TIMEOUT", cls.lock_timeout),
            max_retries=_number(env, "CONTRACTBOOK_MAX_RETRIES", cls.max_retries, cast=int),
            retry_delay=_number(env, "CONTRACTBOOK_RETRY_DELAY", cls.retry_delay),
            log_level=log_level,
            log_dir=Path(env.get("CONTRACTBOOK_LOG_DIR") or cls.log_dir),
        )
