"""The ``payroll-api`` entry point hands the app to uvicorn."""
import pytest

from payroll_api import main


@pytest.fixture
def served(monkeypatch):
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **options: calls.append((target, options)))
    return calls


def test_run_uses_configured_address(served) -> None:
    settings = main.get_settings()

    main.run([])

    ((target, options),) = served
    assert target == "payroll_api.main:app"
    assert (options["host"], options["port"]) == (settings.host, settings.port)
    assert options["reload"] is False


def test_run_accepts_overrides(served) -> None:
    main.run(["--host", "0.0.0.0", "--port", "9100", "--reload", "--log-level", "debug"])

    ((_, options),) = served
    assert options == {"host": "0.0.0.0", "port": 9100, "reload": True, "log_level": "debug"}
