from pathlib import Path

import pytest

from accessgate.rules.loader import load_rules

PROJECT_RULES = Path(__file__).resolve().parents[2] / "rules.yaml"


def test_project_rules_load():
    rules = load_rules(PROJECT_RULES)

    assert rules.otp.digits == 6
    assert rules.otp.max_attempts == 3
    assert rules.rate_limits.anonymous.max_requests == 60
    assert "/health" in rules.maintenance.exempt_path_prefixes
    assert rules.debug.expose_codes is False


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rules(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("rate_limits: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_rules(path)


def test_schema_violation(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("otp:\n  ttl_seconds: 300\n")

    with pytest.raises(ValueError, match="validation failed"):
        load_rules(path)


def test_defaults_fill_omitted_sections(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("rate_limits:\n  anonymous:\n    window_seconds: 60\n    max_requests: 5\n")

    rules = load_rules(path)

    assert rules.otp.ttl_seconds == 300
    assert rules.emergency_access.ttl_hours == 24
