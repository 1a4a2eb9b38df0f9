"""Tests for the process entry point."""

import pytest

import app.main as entry_point
from budgetal.config import get_settings


@pytest.fixture
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def uvicorn_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(entry_point.uvicorn, "run", lambda *args, **kwargs: calls.append((args, kwargs)))
    return calls


class TestMain:
    """Tests for check_configuration and main."""

    def test_valid_configuration(self, fresh_settings):
        assert entry_point.check_configuration() is True

    def test_invalid_section_is_reported(self, monkeypatch, fresh_settings):
        monkeypatch.setenv("BUDGETAL_BUDGET_YEARS_BACK", "-1")
        assert entry_point.check_configuration() is False

    def test_invalid_configuration_stops_before_serving(self, monkeypatch, fresh_settings, uvicorn_calls):
        monkeypatch.setenv("BUDGETAL_BUDGET_YEARS_BACK", "-1")

        with pytest.raises(SystemExit) as exc_info:
            entry_point.main()

        assert exc_info.value.code == 1
        assert uvicorn_calls == []

    def test_serves_the_app_factory(self, monkeypatch, fresh_settings, uvicorn_calls):
        monkeypatch.setenv("PORT", "8123")

        entry_point.main()

        (args, kwargs), = uvicorn_calls
        assert args == ("app.main:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["port"] == 8123
