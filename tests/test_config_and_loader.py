from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pytest

from piqi.config import DEFAULT_TEMPLATE_DIRECTORY, EngineConfig
from piqi.errors import ConfigurationError, MessageFormatError
from piqi.loader import load_bundle, load_message
from piqi.logger import ENGINE_LOGGER_NAME, get_engine_logger
from piqi.run_score import main

_ENV_VARS = ("PIQI_LOG_LEVEL", "PIQI_AUDIT", "PIQI_ENFORCE_MODEL_MATCH", "PIQI_TEMPLATE_DIR")


def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)

    config = EngineConfig.from_env()

    assert config.log_level == "INFO"
    assert config.audit_by_default is False
    assert config.enforce_model_match is True
    assert config.template_directory == DEFAULT_TEMPLATE_DIRECTORY


def test_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("PIQI_LOG_LEVEL", "debug")
    monkeypatch.setenv("PIQI_AUDIT", "yes")
    monkeypatch.setenv("PIQI_ENFORCE_MODEL_MATCH", "0")
    monkeypatch.setenv("PIQI_TEMPLATE_DIR", "/tmp/templates")

    config = EngineConfig.from_env()

    assert config.log_level == "DEBUG"
    assert config.audit_by_default is True
    assert config.enforce_model_match is False
    assert config.template_directory == "/tmp/templates"


def test_engine_logger_attaches_one_handler() -> None:
    first = get_engine_logger("DEBUG")
    second = get_engine_logger(logging.WARNING)

    assert first is second
    assert first.name == ENGINE_LOGGER_NAME
    assert len(second.handlers) == 1
    assert second.level == logging.WARNING


def test_load_bundle_round_trip(tmp_path: Path, bundle_factory, criterion_factory) -> None:
    bundle = bundle_factory([criterion_factory(1, "LAB_UNIT", "attr_is_uom")])
    path = tmp_path / "bundle.json"
    path.write_text(bundle.model_dump_json(indent=2), encoding="utf-8")

    loaded = load_bundle(path)

    assert loaded.rubric.criteria[0].sam_mnemonic == "attr_is_uom"
    assert loaded.get_sam("attr_is_uom") is not None
    assert loaded.get_entity("LAB_UNIT") is not None
    assert loaded.get_value_list("UCUM") is not None


def test_load_bundle_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_bundle(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_bundle(broken)

    incomplete = tmp_path / "incomplete.json"
    incomplete.write_text(json.dumps({"sams": []}), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_bundle(incomplete)


def test_load_message(tmp_path: Path, payload) -> None:
    path = tmp_path / "message.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    assert load_message(path)["MessageID"] == "message-1"

    array = tmp_path / "array.json"
    array.write_text("[]", encoding="utf-8")
    with pytest.raises(MessageFormatError):
        load_message(array)


def test_cli_scores_message(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    payload,
    bundle_factory,
    criterion_factory,
) -> None:
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    bundle = bundle_factory([criterion_factory(1, "LAB_UNIT", "attr_is_uom")])
    bundle_path = tmp_path / "bundle.json"
    bundle_path.write_text(bundle.model_dump_json(), encoding="utf-8")
    message_path = tmp_path / "message.json"
    message_path.write_text(json.dumps(payload), encoding="utf-8")
    output_path = tmp_path / "out" / "response.json"
    html_dir = tmp_path / "html"

    monkeypatch.setattr(
        sys,
        "argv",
        [
            "piqi-score",
            "--message",
            str(message_path),
            "--bundle",
            str(bundle_path),
            "--audit",
            "--output",
            str(output_path),
            "--html",
            str(html_dir),
        ],
    )

    assert main() == 0

    printed = capsys.readouterr().out
    assert "Score: 50 (1/2)" in printed
    response = json.loads(output_path.read_text(encoding="utf-8"))
    assert response["succeeded"] is True
    assert response["audited_message"]["Audit"]["messageScore"] == 50
    assert (html_dir / "index.html").exists()


def test_cli_reports_missing_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        sys,
        "argv",
        ["piqi-score", "--message", "nope.json", "--bundle", "nope.json"],
    )

    assert main() == 1


def test_loaders_reject_non_utf8_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    latin = tmp_path / "latin1.json"
    latin.write_bytes('{"text": "café"}'.encode("latin-1"))

    with pytest.raises(ConfigurationError, match="UTF-8"):
        load_bundle(latin)
    with pytest.raises(MessageFormatError, match="UTF-8"):
        load_message(latin)

    _clear_env(monkeypatch)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        sys,
        "argv",
        ["piqi-score", "--message", str(latin), "--bundle", str(latin)],
    )

    assert main() == 1
