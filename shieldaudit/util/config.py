"""Load audit configuration from .env and the process environment.

Precedence, lowest to highest: built-in defaults, .env file, real
environment variables, CLI flags (applied by the caller as overrides).
"""

import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from .errors import ConfigError
from .types import AuditConfig


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_file: Optional[Path] = None, **overrides: Any) -> AuditConfig:
    """Build an AuditConfig.

    env_file defaults to ./.env; a missing file is fine - everything has a
    default except the credentials, which are checked when the client is
    built. Overrides whose value is None are ignored so argparse defaults
    don't mask the environment.
    """
    env_file = Path(env_file) if env_file else Path.cwd() / ".env"
    if env_file.exists():
        # Real environment wins over .env
        load_dotenv(env_file, override=False)

    try:
        config = AuditConfig(
            edgerc_path=os.getenv("EDGERC_PATH", "~/.edgerc"),
            section=os.getenv("EDGERC_SECTION", "default"),
            account_switch_key=os.getenv("ACCOUNT_SWITCH_KEY") or None,
            staging=_env_bool("USE_STAGING", False),
            max_workers=int(os.getenv("MAX_WORKERS", "4")),
            rate_limit_delay=float(os.getenv("RATE_LIMIT_DELAY", "0")),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            universe_match=os.getenv("UNIVERSE_MATCH") or None,
            out_dir=os.getenv("OUT_DIR", "out"),
            enable_excel=_env_bool("ENABLE_EXCEL", False),
            show_progress=_env_bool("SHOW_PROGRESS", True),
        )
    except ValueError as exc:
        raise ConfigError(f"Invalid numeric setting in environment: {exc}") from exc

    for name, value in overrides.items():
        if value is None:
            continue
        if not hasattr(config, name):
            raise ConfigError(f"Unknown configuration field: {name}")
        setattr(config, name, value)

    if config.max_workers < 1:
        raise ConfigError(f"MAX_WORKERS must be at least 1 (got {config.max_workers})")
    if config.rate_limit_delay < 0:
        raise ConfigError(f"RATE_LIMIT_DELAY cannot be negative (got {config.rate_limit_delay})")

    return config
