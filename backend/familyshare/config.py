"""Family share application configuration.

Loads settings from a single YAML file:
  * familyshare.settings.yaml: non-secret configuration

The path can be overridden with the ``FAMILYSHARE_SETTINGS`` environment
variable.  Upload size and MIME allow-lists are compiled into
``familyshare.files.schemas`` and are deliberately absent from here.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("familyshare.settings.yaml")
SETTINGS_ENV  = "FAMILYSHARE_SETTINGS"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:      str = "0.0.0.0"
    port:      int = 3000
    log_level: str = "info"


class S3Settings(BaseModel):
    bucket:            str           = ""
    prefix:            str           = "uploads/"
    region:            str           = "us-east-1"
    endpoint_url:      Optional[str] = None
    access_key_id:     Optional[str] = None
    secret_access_key: Optional[str] = None


class StorageSettings(BaseModel):
    """Where uploaded bytes live.  They are always served under ``/uploads``."""
    backend:          Literal["local", "s3"] = "local"
    upload_dir:       str                    = "public/uploads"
    sidecar_metadata: bool                   = True
    s3:               S3Settings             = Field(default_factory=S3Settings)


class LoggingSettings(BaseModel):
    level: str = "info"


class AppConfig(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def _resolve_upload_dir(config: AppConfig, base_dir: Path) -> None:
    upload_dir = Path(config.storage.upload_dir).expanduser()
    if not upload_dir.is_absolute():
        upload_dir = base_dir / upload_dir
    config.storage.upload_dir = str(upload_dir)


def load_config(settings_path: Optional[Path] = None) -> AppConfig:
    """Load settings into an *AppConfig* object.

    A relative ``storage.upload_dir`` is resolved against the directory of the
    settings file, or against the working directory when no file exists.
    """
    if settings_path is None:
        settings_path = Path(os.environ.get(SETTINGS_ENV, SETTINGS_FILE))
    settings_path = Path(settings_path)

    data = _load_yaml(settings_path)
    config = AppConfig(**data)

    base_dir = settings_path.resolve().parent if settings_path.exists() else Path.cwd()
    _resolve_upload_dir(config, base_dir)

    logger.info(
        "Settings loaded (server=%s:%s, storage=%s, upload_dir=%s)",
        config.server.host,
        config.server.port,
        config.storage.backend,
        config.storage.upload_dir,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
