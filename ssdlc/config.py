"""Runtime settings read from ``SSDLC_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .evidence import MAX_FILE_SIZE, MAX_FILES
from .exceptions import ValidationError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"Environment variable {name} must be a boolean, got '{value}'")


def _parse_positive_int(name: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValidationError(f"Environment variable {name} must be an integer, got '{value}'") from exc
    if parsed <= 0:
        raise ValidationError(f"Environment variable {name} must be positive, got {parsed}")
    return parsed


@dataclass(slots=True)
class Settings:
    """Locations and policies of a tracker deployment."""

    data_dir: Path = Path("data")
    uploads_dir: Path = Path("uploads")
    reports_dir: Path = Path("reports")
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    empty_phase_complete: bool = False
    max_evidence_bytes: int = MAX_FILE_SIZE
    max_evidence_files: int = MAX_FILES

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from the environment; unset variables keep their defaults."""
        env = os.environ if environ is None else environ
        settings = cls()

        if env.get("SSDLC_DATA_DIR"):
            settings.data_dir = Path(env["SSDLC_DATA_DIR"]).expanduser()
        if env.get("SSDLC_UPLOADS_DIR"):
            settings.uploads_dir = Path(env["SSDLC_UPLOADS_DIR"]).expanduser()
        if env.get("SSDLC_REPORTS_DIR"):
            settings.reports_dir = Path(env["SSDLC_REPORTS_DIR"]).expanduser()
        if env.get("SSDLC_LOG_FILE"):
            settings.log_file = Path(env["SSDLC_LOG_FILE"]).expanduser()

        if env.get("SSDLC_LOG_LEVEL"):
            level = env["SSDLC_LOG_LEVEL"].strip().upper()
            if level not in _LOG_LEVELS:
                raise ValidationError(f"Unknown log level '{env['SSDLC_LOG_LEVEL']}'")
            settings.log_level = level

        if "SSDLC_EMPTY_PHASE_COMPLETE" in env:
            settings.empty_phase_complete = _parse_bool(
                "SSDLC_EMPTY_PHASE_COMPLETE", env["SSDLC_EMPTY_PHASE_COMPLETE"]
            )
        if env.get("SSDLC_MAX_EVIDENCE_BYTES"):
            settings.max_evidence_bytes = _parse_positive_int(
                "SSDLC_MAX_EVIDENCE_BYTES", env["SSDLC_MAX_EVIDENCE_BYTES"]
            )
        if env.get("SSDLC_MAX_EVIDENCE_FILES"):
            settings.max_evidence_files = _parse_positive_int(
                "SSDLC_MAX_EVIDENCE_FILES", env["SSDLC_MAX_EVIDENCE_FILES"]
            )
        return settings

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.uploads_dir, self.reports_dir):
            directory.mkdir(parents=True, exist_ok=True)
