import pytest
from pydantic import ValidationError

import metrics_store.__main__ as cli
from metrics_store.config import Settings, get_settings


def test_settings_defaults() -> None:
    settings = get_settings()
    assert settings.listen_port == 4000
    assert settings.debug is False
    assert settings.max_request_body_size == 1048576
    assert settings.allow_unknown_fields is False
    assert settings.shutdown_timeout == 10


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LISTEN_PORT", "8080")
    monkeypatch.setenv("ALLOW_UNKNOWN_FIELDS", "true")
    monkeypatch.setenv("MAX_REQUEST_BODY_SIZE", "512")
    settings = Settings()
    assert settings.listen_port == 8080
    assert settings.allow_unknown_fields is True
    assert settings.max_request_body_size == 512


@pytest.mark.parametrize("port", [0, 65536, -1])
def test_settings_reject_out_of_range_port(port: int) -> None:
    with pytest.raises(ValidationError):
        Settings(listen_port=port)


def test_cli_flags_override_settings_and_start_server(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = {}

    def fake_run(app, **kwargs):
        calls["app"] = app
        calls.update(kwargs)

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)
    cli.main(["--listen-port", "5001", "--allow-unknown-fields", "--max-request-body-size", "2048"])

    assert calls["port"] == 5001
    assert calls["timeout_graceful_shutdown"] == 10
    app = calls["app"]
    assert app.state.settings.max_request_body_size == 2048
    assert app.state.metrics_service.allow_unknown_fields is True


def test_cli_exits_with_status_1_on_bad_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **k: pytest.fail("server must not start"))
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--listen-port", "70000"])
    assert excinfo.value.code == 1


def test_cli_flag_overrides_bad_environment_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LISTEN_PORT", "70000")
    calls = {}
    monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: calls.update(kwargs))

    cli.main(["--listen-port", "5000"])
    assert calls["port"] == 5000


def test_cli_exits_with_status_1_on_bad_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LISTEN_PORT", "70000")
    monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **k: pytest.fail("server must not start"))
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 1


def test_cli_module_builds_no_app_on_import() -> None:
    assert not hasattr(cli, "app")


def test_asgi_entry_point_serves_metrics_route() -> None:
    from metrics_store.main import app

    assert "/metrics" in {route.path for route in app.routes}
