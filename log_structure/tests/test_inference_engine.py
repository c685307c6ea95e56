import gzip
import json

import pytest

from log_structure import cli
from log_structure.config import FinderSettings
from log_structure.inference.errors import NoTimestampFoundError
from log_structure.inference.inference_engine import LogStructureInferenceEngine
from log_structure.inference.log_core import StructureOverrides


@pytest.fixture
def engine():
    return LogStructureInferenceEngine(FinderSettings(lines_to_sample=100, timeout_seconds=10))


@pytest.fixture
def log_file(tmp_path, bracketed_sample):
    path = tmp_path / "app.log"
    path.write_text(bracketed_sample)
    return path


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("LOG_STRUCTURE_LINES_TO_SAMPLE", "50")
    monkeypatch.setenv("LOG_STRUCTURE_TIMEOUT_SECONDS", "2.5")

    settings = FinderSettings()

    assert settings.lines_to_sample == 50
    assert settings.timeout_seconds == 2.5
    assert settings.log_level == "INFO"
    assert FinderSettings.model_config["env_prefix"] == "LOG_STRUCTURE_"


def test_settings_reject_non_positive_values():
    with pytest.raises(ValueError):
        FinderSettings(lines_to_sample=0)


def test_analyze_file(engine, log_file):
    structure = engine.analyze_file(log_file)

    assert structure.num_messages_analyzed == 2
    assert structure.grok_pattern.startswith(r"\[%{TIMESTAMP_ISO8601:timestamp}\]")


def test_analyze_compressed_file(engine, tmp_path, bracketed_sample):
    path = tmp_path / "app.log.gz"
    with gzip.open(path, "wt", encoding="utf-8") as f:
        f.write(bracketed_sample)

    assert engine.analyze_file(path).num_messages_analyzed == 2


def test_file_longer_than_sample_drops_last_message(tmp_path):
    path = tmp_path / "long.log"
    path.write_text("".join(f"2020-01-01 10:00:{i:02d} INFO tick {i}\n" for i in range(10)))
    engine = LogStructureInferenceEngine(FinderSettings(lines_to_sample=5))

    structure = engine.analyze_file(path)

    assert structure.num_messages_analyzed == 4


def test_analyze_text_with_overrides(engine, bracketed_sample):
    structure = engine.analyze_text(
        bracketed_sample, StructureOverrides(timestamp_format="iso8601_space", timestamp_field="ts")
    )

    assert structure.timestamp_field == "ts"
    assert "%{TIMESTAMP_ISO8601:ts}" in structure.grok_pattern
    assert structure.explanation[0].startswith("Timestamp format is")


def test_analyze_text_errors_carry_explanation(engine):
    with pytest.raises(NoTimestampFoundError) as excinfo:
        engine.analyze_text("nothing to see\nhere either\n")

    assert excinfo.value.explanation
    assert excinfo.value.details["lines_checked"] == 2
    assert "iso8601_tz_fraction" in excinfo.value.details["candidates"]


def test_analyze_text_drops_trailing_message_by_default(engine):
    sample = "2020-01-01T00:00:00Z A\n2020-01-01T00:00:01Z B\npartial tail\n"

    structure = engine.analyze_text(sample)

    assert structure.num_messages_analyzed == 1
    assert structure.num_lines_analyzed == 1


def test_analyze_text_keeps_trailing_message_of_short_sample(engine):
    sample = "2020-01-01T00:00:00Z A\n2020-01-01T00:00:01Z B\n"

    structure = engine.analyze_text(sample, lines_to_sample=100)

    assert structure.num_messages_analyzed == 2


def test_missing_file(engine, tmp_path):
    with pytest.raises(FileNotFoundError):
        engine.analyze_file(tmp_path / "missing.log")


def test_directory_is_rejected(engine, tmp_path):
    with pytest.raises(ValueError, match="not a file"):
        engine.analyze_file(tmp_path)


def test_cli_prints_structure(monkeypatch, capsys, log_file):
    monkeypatch.setattr(cli, "setup_logging", lambda level, log_file=None: None)

    assert cli.main([str(log_file)]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["timestamp_field"] == "timestamp"
    assert output["num_messages_analyzed"] == 2


def test_cli_reports_failures(monkeypatch, capsys, tmp_path):
    monkeypatch.setattr(cli, "setup_logging", lambda level, log_file=None: None)
    path = tmp_path / "plain.txt"
    path.write_text("no timestamps\nat all\n")

    assert cli.main([str(path)]) == 1

    err = capsys.readouterr().err
    assert "Could not find a timestamp" in err


def test_cli_missing_file(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "setup_logging", lambda level, log_file=None: None)

    assert cli.main([str(tmp_path / "missing.log")]) == 2


@pytest.mark.parametrize(
    "option",
    [["--lines", "0"], ["--timeout", "-1"], ["--log-level", "CHATTY"]],
)
def test_cli_rejects_bad_settings(capsys, log_file, option):
    assert cli.main([str(log_file), *option]) == 2

    assert capsys.readouterr().err
