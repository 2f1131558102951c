"""
Burn Gateway settings

Every value comes from the process environment, optionally seeded from a
.env file next to the package. Sections are plain dataclasses so tests and
embedding servers can build them directly with overrides.
"""

import os
import logging
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _dotenv_path() -> Path:
    return Path(__file__).resolve().parent.parent / ".env"


def _load_dotenv() -> None:
    """Seed os.environ from .env without overriding real variables"""
    path = _dotenv_path()
    if path.is_file():
        load_dotenv(path, override=False)


_load_dotenv()


def _env(key: str, default: T, cast: Callable[[str], T] = str) -> T:
    """
    Read one environment variable

    Unparseable values are logged and replaced by the default so a typo in
    a deployment never prevents startup.
    """
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        _logger.warning(f"Ignoring {key}={raw!r}: expected {cast.__name__}, using {default!r}")
        return default


def _flag(raw: str) -> bool:
    return raw.strip().lower() in _TRUTHY


def _from_env(key: str, default: T, cast: Callable[[str], T] = str):
    """dataclass field whose default is read from the environment at construction"""
    return field(default_factory=lambda: _env(key, default, cast))


@dataclass
class RpcConfig:
    """
    Solana RPC endpoint

    SOLANA_RPC_URL wins when set; otherwise the endpoint is RPC_BASE_URL
    with HELIUS_API_KEY as the api-key query parameter.
    """
    base_url: str = _from_env("RPC_BASE_URL", "https://mainnet.helius-rpc.com")
    api_key: str = _from_env("HELIUS_API_KEY", "")
    url: str = _from_env("SOLANA_RPC_URL", "")
    timeout_seconds: float = _from_env("RPC_TIMEOUT_SECONDS", 10.0, float)
    commitment: str = _from_env("RPC_COMMITMENT", "confirmed")

    @property
    def endpoint(self) -> str:
        """Resolved endpoint URL, empty when no credential is configured"""
        if self.url:
            return self.url
        if not self.api_key:
            return ""
        return f"{self.base_url.rstrip('/')}/?api-key={self.api_key}"


@dataclass
class RetryConfig:
    """Read-path retry budget"""
    # Total attempts, including the first one
    max_attempts: int = _from_env("RETRY_MAX_ATTEMPTS", 3, int)
    # Sleep before retry n is backoff_seconds * n
    backoff_seconds: float = _from_env("RETRY_BACKOFF_SECONDS", 1.0, float)


@dataclass
class TokenConfig:
    mint: str = _from_env("TOKEN_MINT", "")


@dataclass
class TxConfig:
    """sendTransaction options and confirmation wait"""
    skip_preflight: bool = _from_env("TX_SKIP_PREFLIGHT", False, _flag)
    preflight_commitment: str = _from_env("TX_PREFLIGHT_COMMITMENT", "confirmed")
    # Rebroadcast budget handed to the provider, the gateway itself never resends
    send_max_retries: int = _from_env("TX_SEND_MAX_RETRIES", 3, int)
    confirmation_timeout: float = _from_env("TX_CONFIRMATION_TIMEOUT", 60.0, float)
    poll_interval: float = _from_env("TX_POLL_INTERVAL", 1.0, float)
    # Token program custom error meaning "insufficient funds"
    insufficient_balance_code: int = _from_env("TX_INSUFFICIENT_BALANCE_CODE", 18, int)


@dataclass
class HolidayConfig:
    """Balance override window: days start_day..end_day (inclusive) of month"""
    enabled: bool = _from_env("HOLIDAY_ENABLED", True, _flag)
    month: int = _from_env("HOLIDAY_MONTH", 12, int)
    start_day: int = _from_env("HOLIDAY_START_DAY", 23, int)
    end_day: int = _from_env("HOLIDAY_END_DAY", 25, int)
    amount: int = _from_env("HOLIDAY_BALANCE", 999_999_999, int)


@dataclass
class LoggingConfig:
    """
    Log output settings

    LOG_FILE        rotating file target, empty for console only (default)
    LOG_LEVEL       DEBUG / INFO / WARNING / ERROR (default INFO)
    LOG_FORMAT      logging format string, %(correlation_id)s is available
    LOG_CONSOLE     also log to stderr (default true)
    LOG_MAX_BYTES   rotate after this many bytes (default 10 MiB)
    LOG_BACKUP_COUNT rotated files kept (default 5)
    """
    log_file: str = _from_env("LOG_FILE", "")
    log_level: str = _from_env("LOG_LEVEL", "INFO")
    log_format: str = _from_env(
        "LOG_FORMAT",
        "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s",
    )
    console_output: bool = _from_env("LOG_CONSOLE", True, _flag)
    max_bytes: int = _from_env("LOG_MAX_BYTES", 10 * 1024 * 1024, int)
    backup_count: int = _from_env("LOG_BACKUP_COUNT", 5, int)

    @property
    def level(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO


@dataclass
class Config:
    """
    All gateway settings

    Usage:
        from burn_gateway.config import get_config

        config = get_config()
        config.rpc.endpoint
        config.token.mint
    """
    rpc: RpcConfig = field(default_factory=RpcConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    token: TokenConfig = field(default_factory=TokenConfig)
    tx: TxConfig = field(default_factory=TxConfig)
    holiday: HolidayConfig = field(default_factory=HolidayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Re-read .env and the environment"""
        _load_dotenv()
        return cls()


# Process-wide settings
config = Config()


def get_config() -> Config:
    return config


def reload_config() -> Config:
    """Replace the process-wide settings with a fresh read of the environment"""
    global config
    config = Config.reload()
    return config


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the active correlation id ("-" outside a request)"""

    def filter(self, record: logging.LogRecord) -> bool:
        from .infra.retry import get_correlation_id

        if not getattr(record, "correlation_id", None):
            record.correlation_id = get_correlation_id() or "-"
        return True


def _build_handlers(log_config: LoggingConfig) -> list:
    handlers = []
    if log_config.log_file:
        path = Path(log_config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            path,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        ))
    if log_config.console_output:
        handlers.append(logging.StreamHandler())
    return handlers


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = "burn_gateway",
) -> logging.Logger:
    """
    Attach handlers to the gateway's root logger

    Calling it again replaces the previous handlers (closing them first so
    rotated files are released). Child loggers (burn_gateway.infra.*,
    burn_gateway.modules.*) propagate to it.

    Args:
        log_config: Settings to apply (defaults to config.logging)
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    log_config = log_config or config.logging
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    for old in list(logger.handlers):
        old.close()
        logger.removeHandler(old)

    formatter = logging.Formatter(log_config.log_format)
    correlation = CorrelationIdFilter()
    for handler in _build_handlers(log_config):
        handler.setLevel(log_config.level)
        handler.setFormatter(formatter)
        handler.addFilter(correlation)
        logger.addHandler(handler)

    if log_config.log_file:
        logger.info(f"Logging to {log_config.log_file} at {log_config.log_level}")
    return logger


def _default_log_file() -> str:
    from datetime import datetime, timezone

    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return str(Path(__file__).resolve().parent / "log" / f"burn_gateway_{stamp}.log")


def enable_file_logging(
    log_file: Optional[str] = None,
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """Shortcut: log to a rotating file (default burn_gateway/log/burn_gateway_<utc>.log)"""
    return setup_logging(LoggingConfig(
        log_file=log_file or config.logging.log_file or _default_log_file(),
        log_level=level,
        console_output=console,
    ))
