from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_TEMPLATE_DIRECTORY = str(Path(__file__).parent / "reporting" / "templates")

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Runtime configuration for the scoring engine."""

    log_level: str = "INFO"
    audit_by_default: bool = False
    enforce_model_match: bool = True
    template_directory: str = DEFAULT_TEMPLATE_DIRECTORY

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from PIQI_* environment variables.

        Recognised variables:
            PIQI_LOG_LEVEL: logging level name (default INFO)
            PIQI_AUDIT: produce the audit document unless a request says otherwise
            PIQI_ENFORCE_MODEL_MATCH: reject messages whose model differs from the rubric's
            PIQI_TEMPLATE_DIR: directory holding the HTML report templates
        """
        return cls(
            log_level=os.getenv("PIQI_LOG_LEVEL", "INFO").upper(),
            audit_by_default=_env_flag("PIQI_AUDIT", False),
            enforce_model_match=_env_flag("PIQI_ENFORCE_MODEL_MATCH", True),
            template_directory=os.getenv(
                "PIQI_TEMPLATE_DIR", DEFAULT_TEMPLATE_DIRECTORY
            ),
        )
