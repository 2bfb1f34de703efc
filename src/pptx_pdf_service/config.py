"""Service configuration.

Values are read from the environment once at startup and passed into the
application factory; nothing below is consulted again at request time.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from . import __version__

MIB = 1024 * 1024


def _flag(value: str) -> bool:
    return value.lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ServiceConfig:
    host: str = "0.0.0.0"
    port: int = 3001
    reload: bool = False
    scratch_dir: Path = field(default_factory=lambda: Path("uploads").resolve())
    max_upload_bytes: int = 50 * MIB
    # None disables the deadline on the conversion engine
    conversion_timeout_sec: float | None = 300.0
    soffice_path: str = "soffice"
    version: str = __version__
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServiceConfig":
        env = os.environ if environ is None else environ
        timeout = float(env.get("CONVERSION_TIMEOUT_SEC", "300"))
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=int(env.get("PORT", "3001")),
            reload=_flag(env.get("RELOAD", "false")),
            scratch_dir=Path(env.get("SCRATCH_DIR", "./uploads")).resolve(),
            max_upload_bytes=int(env.get("MAX_UPLOAD_MB", "50")) * MIB,
            conversion_timeout_sec=timeout if timeout > 0 else None,
            soffice_path=env.get("SOFFICE_PATH", "soffice"),
            version=env.get("PPTX_SERVICE_VERSION", __version__),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
