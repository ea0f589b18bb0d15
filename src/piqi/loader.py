"""JSON loaders for reference bundles and message payloads.

A bundle file is one JSON object with the fields of ``ReferenceBundle``:

    {
        "entity_model": {"mnemonic": "...", "root": {...}},
        "rubric": {"mnemonic": "...", "name": "...", "model": {...}, "criteria": [...]},
        "sams": [...],
        "code_systems": [...],
        "value_lists": [...],
        "data_types": [...]
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from piqi.errors import ConfigurationError, MessageFormatError
from piqi.model.reference import ReferenceBundle

logger = logging.getLogger(__name__)


def _read_json(file_path: str | Path, what: str) -> Any:
    file_path = Path(file_path)
    if not file_path.exists():
        msg = f"{what} file not found: {file_path}"
        raise FileNotFoundError(msg)
    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_bundle(file_path: str | Path) -> ReferenceBundle:
    """Load and validate a reference bundle.

    Args:
        file_path: Path to the bundle JSON file

    Returns:
        Validated ReferenceBundle

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file is not valid UTF-8 JSON or does not
            describe a consistent bundle
    """
    try:
        data = _read_json(file_path, "Bundle")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Bundle file {file_path} is not valid UTF-8 JSON: {e}"
        raise ConfigurationError(msg) from e

    try:
        bundle = ReferenceBundle.model_validate(data)
    except ValueError as e:
        msg = f"Invalid reference bundle {file_path}: {e}"
        raise ConfigurationError(msg) from e

    logger.info(
        f"Loaded bundle {bundle.rubric.mnemonic}: {len(bundle.rubric.criteria)} criteria, "
        f"{len(bundle.sams)} SAM definitions"
    )
    return bundle


def load_message(file_path: str | Path) -> Dict[str, Any]:
    """Load a message payload.

    Raises:
        FileNotFoundError: If the file doesn't exist
        MessageFormatError: If the file is not a JSON object
    """
    try:
        payload = _read_json(file_path, "Message")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Message file {file_path} is not valid UTF-8 JSON: {e}"
        raise MessageFormatError(msg) from e

    if not isinstance(payload, dict):
        msg = f"Message file {file_path} must contain a JSON object"
        raise MessageFormatError(msg)
    return payload
