"""Settings loader with environment, dotenv file, and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path.home() / ".gristctl"
DEFAULT_SCIM_BASE_PATH = "/api/scim/v2"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_BULK_MAX_PAYLOAD_BYTES = 1048576  # 1 MB


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    # Priority 1: Read from /run/secrets
    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("[settings] Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("[settings] Failed to read /run/secrets/%s: %s", secret_name, e)

    # Priority 2: Fallback to environment variable
    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


@dataclass
class GristConfig:
    """Grist connection and SCIM bulk configuration."""
    grist_url: str
    grist_token: str = field(repr=False)
    scim_base_path: str = DEFAULT_SCIM_BASE_PATH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    bulk_max_payload_bytes: int = DEFAULT_BULK_MAX_PAYLOAD_BYTES
    config_file: Optional[Path] = None


def _load_config_file(config_file: Path) -> None:
    """Load KEY=value pairs from the dotenv file without overriding the environment."""
    if not config_file.is_file():
        logger.warning("[settings] Configuration file %s not found", config_file)
        return
    load_dotenv(config_file, override=False)


def _get_number(var_name: str, default: float, cast=float):
    raw = os.environ.get(var_name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be a number, got {raw!r}.")
    if value <= 0:
        raise RuntimeError(f"Environment variable {var_name} must be positive, got {raw!r}.")
    return value


def load_settings(
    config_file: Path | str | None = None,
    *,
    grist_url: str | None = None,
    grist_token: str | None = None,
) -> GristConfig:
    """Load settings from environment, /run/secrets, and the ~/.gristctl file.

    The config file is only read when GRIST_URL or GRIST_TOKEN is missing from
    the environment, and never overrides variables that are already set.
    Explicit grist_url / grist_token arguments win over every other source and
    are never written back to the environment.

    Raises:
        RuntimeError: If the Grist URL or token cannot be resolved
    """
    config_path = Path(config_file) if config_file else DEFAULT_CONFIG_FILE

    url_known = grist_url or os.environ.get("GRIST_URL")
    token_known = grist_token or os.environ.get("GRIST_TOKEN")
    if not url_known or not token_known:
        _load_config_file(config_path)

    grist_url = (grist_url or os.environ.get("GRIST_URL", "")).strip().rstrip("/")
    if not grist_url:
        raise RuntimeError(
            f"GRIST_URL is required. Set it in the environment or in {config_path}."
        )

    grist_token = grist_token or _load_secret_from_file("grist_token", "GRIST_TOKEN")
    if not grist_token:
        raise RuntimeError(
            f"GRIST_TOKEN is required. Set it in the environment, in {config_path}, "
            "or mount it as /run/secrets/grist_token."
        )

    scim_base_path = os.environ.get("GRIST_SCIM_PATH", "").strip() or DEFAULT_SCIM_BASE_PATH
    request_timeout = _get_number("GRIST_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)
    bulk_max_payload_bytes = _get_number(
        "SCIM_BULK_MAX_PAYLOAD_BYTES", DEFAULT_BULK_MAX_PAYLOAD_BYTES, cast=int
    )

    logger.info("[settings] grist_url=%s; scim_base_path=%s", grist_url, scim_base_path)

    return GristConfig(
        grist_url=grist_url,
        grist_token=grist_token,
        scim_base_path=scim_base_path,
        request_timeout=request_timeout,
        bulk_max_payload_bytes=bulk_max_payload_bytes,
        config_file=config_path,
    )
