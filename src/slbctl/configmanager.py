from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

DEFAULT_ENV_FILE = ".env"
DEFAULT_ENDPOINT = "https://slb.aliyuncs.com"
DEFAULT_VERIFY_TLS = True
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FILE_NAME = "slbctl.log"
DEFAULT_HTTP_RETRY_COUNT = 3
DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_POLL_TIMEOUT_S = 120.0

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_CONSOLE_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
# HTTP client internals; request logging comes from SlbApi event hooks.
_QUIET_LOGGERS = ("httpx", "httpcore")


class ConfigManager:
    """Centralized configuration.

    - Loads `.env` (or `SLBCTL_ENV_FILE`) best-effort via python-dotenv.
    - Reads runtime config from environment variables.
    - Assigns project defaults consistently.
    """

    @staticmethod
    def _env_bool(value: str | None, *, default: bool) -> bool:
        if value is None:
            return default
        s = value.strip().lower()
        if not s:
            return default
        return s not in {"0", "false", "no", "off"}

    @staticmethod
    def _env_positive_float(name: str, default: float) -> float:
        raw = os.getenv(name)
        if raw is None or not str(raw).strip():
            return default
        try:
            v = float(str(raw).strip())
        except Exception as e:
            raise ValueError(f"{name} must be a number") from e
        if v <= 0:
            raise ValueError(f"{name} must be > 0")
        return v

    @staticmethod
    def load_dotenv(path: str | None = None) -> None:
        """Load env file into process env.

        Best-effort: a missing file does not break the CLI.
        """
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=path or os.getenv("SLBCTL_ENV_FILE") or DEFAULT_ENV_FILE)

    @staticmethod
    def endpoint() -> str:
        v = os.getenv("SLBCTL_ENDPOINT")
        return v.strip() if v and v.strip() else DEFAULT_ENDPOINT

    @staticmethod
    def region_id() -> str | None:
        v = os.getenv("SLBCTL_REGION_ID")
        return v.strip() if v and v.strip() else None

    @staticmethod
    def access_key_id() -> str | None:
        v = os.getenv("SLBCTL_ACCESS_KEY_ID")
        return v.strip() if v and v.strip() else None

    @staticmethod
    def access_key_secret() -> str | None:
        return os.getenv("SLBCTL_ACCESS_KEY_SECRET")

    @staticmethod
    def verify_tls() -> bool:
        return ConfigManager._env_bool(os.getenv("SLBCTL_VERIFY_TLS"), default=DEFAULT_VERIFY_TLS)

    @staticmethod
    def log_level() -> str:
        v = os.getenv("SLBCTL_LOG_LEVEL")
        return (v or DEFAULT_LOG_LEVEL).strip().upper() or DEFAULT_LOG_LEVEL

    @staticmethod
    def http_retry_count() -> int:
        """How many times to retry an HTTP request on disconnect/transport errors."""
        raw = os.getenv("SLBCTL_HTTP_RETRY_COUNT")
        if raw is None or not str(raw).strip():
            return DEFAULT_HTTP_RETRY_COUNT
        try:
            v = int(str(raw).strip())
        except Exception as e:
            raise ValueError("SLBCTL_HTTP_RETRY_COUNT must be an integer") from e
        if v < 0:
            raise ValueError("SLBCTL_HTTP_RETRY_COUNT must be >= 0")
        return v

    @staticmethod
    def poll_interval_s() -> float:
        return ConfigManager._env_positive_float("SLBCTL_POLL_INTERVAL", DEFAULT_POLL_INTERVAL_S)

    @staticmethod
    def poll_timeout_s() -> float:
        return ConfigManager._env_positive_float("SLBCTL_POLL_TIMEOUT", DEFAULT_POLL_TIMEOUT_S)

    @staticmethod
    def recreate_changed() -> bool:
        return ConfigManager._env_bool(os.getenv("SLBCTL_RECREATE_CHANGED"), default=False)

    @staticmethod
    def _parse_log_level(level: str | None) -> int:
        name = (level or DEFAULT_LOG_LEVEL).strip().upper()
        value = getattr(logging, name, None) if name in _LEVEL_NAMES else None
        if not isinstance(value, int):
            raise ValueError(f"Invalid log level {level!r}; use one of: {', '.join(_LEVEL_NAMES)}")
        return value

    @staticmethod
    def _resolve_log_file_path(value: str | os.PathLike[str] | None) -> Path | None:
        raw = "" if value is None else str(value).strip()
        if not raw:
            return None
        p = Path(raw).expanduser()
        # A directory (existing, or spelled with a trailing slash) gets the default file name.
        if p.is_dir() or raw.endswith(("/", os.sep)):
            return p / DEFAULT_LOG_FILE_NAME
        return p

    @staticmethod
    def _file_handler(path: Path, level: int) -> logging.Handler | None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, encoding="utf-8")
        except OSError as e:
            logging.getLogger().warning("Cannot log to %s (%s); continuing with console only", path, e)
            return None
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        return handler

    @staticmethod
    def configure_logging(
        console_level: str,
        *,
        log_file: str | os.PathLike[str] | None = None,
        file_level: str | None = None,
    ) -> None:
        """Install the console handler (stderr) and, with `log_file`, a file handler.

        stdout is left to command output so `--json` stays machine readable.
        """
        console = ConfigManager._parse_log_level(console_level)
        to_file = console if not (file_level and file_level.strip()) else ConfigManager._parse_log_level(file_level)
        path = ConfigManager._resolve_log_file_path(log_file)

        root = logging.getLogger()
        for h in list(root.handlers):
            root.removeHandler(h)
        root.setLevel(min(console, to_file) if path is not None else console)

        stderr_handler = logging.StreamHandler(stream=sys.stderr)
        stderr_handler.setLevel(console)
        stderr_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        root.addHandler(stderr_handler)

        if path is not None:
            file_handler = ConfigManager._file_handler(path, to_file)
            if file_handler is not None:
                root.addHandler(file_handler)

        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        return logging.getLogger(name)
