"""
Service Configuration

All settings are gathered once at startup into an immutable
ServiceConfig and passed into the service at construction.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Optional
import os

from .render import PageTemplate
from .storage import StorageConfig


DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8035
DEFAULT_AUDIT_LOG_SIZE = 1000

ENV_PREFIX = "MDHOST_"


@dataclass(frozen=True)
class ServiceConfig:
    """Unified configuration for the whole service."""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    storage: StorageConfig = field(default_factory=StorageConfig)
    template: PageTemplate = field(default_factory=PageTemplate)
    log_level: str = "INFO"
    audit_log_size: int = DEFAULT_AUDIT_LOG_SIZE

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise ValueError(f"port out of range: {self.port}")
        if self.audit_log_size < 1:
            raise ValueError(f"audit_log_size must be positive: {self.audit_log_size}")

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> ServiceConfig:
        """
        Build configuration from MDHOST_* environment variables.

        MDHOST_HOST, MDHOST_PORT, MDHOST_BACKEND ("memory" or "file"),
        MDHOST_STORAGE_DIR, MDHOST_TEMPLATE (path), MDHOST_LOG_LEVEL,
        MDHOST_AUDIT_LOG_SIZE.
        """
        env = os.environ if environ is None else environ

        def get(key: str, default: Optional[str] = None) -> Optional[str]:
            return env.get(ENV_PREFIX + key, default)

        raw_port = get("PORT", str(DEFAULT_PORT))
        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}PORT must be an integer, got {raw_port!r}")

        raw_audit_size = get("AUDIT_LOG_SIZE", str(DEFAULT_AUDIT_LOG_SIZE))
        try:
            audit_log_size = int(raw_audit_size)
        except ValueError:
            raise ValueError(
                f"{ENV_PREFIX}AUDIT_LOG_SIZE must be an integer, got {raw_audit_size!r}"
            )

        storage_dir = get("STORAGE_DIR")
        backend_type = get("BACKEND", "file" if storage_dir else "memory")

        template_path = get("TEMPLATE")
        template = PageTemplate.from_file(template_path) if template_path else PageTemplate()

        return ServiceConfig(
            host=get("HOST", DEFAULT_HOST),
            port=port,
            storage=StorageConfig(backend_type=backend_type, storage_dir=storage_dir),
            template=template,
            log_level=get("LOG_LEVEL", "INFO"),
            audit_log_size=audit_log_size
        )
