import pytest

import config


@pytest.mark.parametrize("raw, expected", [("", 465), ("587", 587), (" 25 ", 25), ("smtp", None), ("46five", None)])
def test_port_parsing(monkeypatch, raw, expected):
    monkeypatch.setenv("SMTP_PORT", raw)

    assert config._port("SMTP_PORT", 465) == expected


def test_unparseable_port_is_reported(monkeypatch):
    monkeypatch.setattr(config, "SMTP_PORT", None)

    assert "SMTP_PORT must be a number" in config.validate_config()


def test_unknown_backend_and_scope_are_reported(monkeypatch):
    monkeypatch.setattr(config, "DIRECTORY_BACKEND", "sqlite")
    monkeypatch.setattr(config, "NAME_UNIQUENESS_SCOPE", "street")

    problems = config.validate_config()

    assert any("DIRECTORY_BACKEND" in p for p in problems)
    assert any("NAME_UNIQUENESS_SCOPE" in p for p in problems)
