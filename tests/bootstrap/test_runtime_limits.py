from __future__ import annotations

from unittest.mock import patch

import pytest
from conftest import StubEngine, StubResult, build_test_config
from fastapi.testclient import TestClient

from app import create_app


def test_create_app_applies_database_runtime_tuning():
    captured = {}

    def fake_create_engine(url, **create_engine_kwargs):
        captured["url"] = url
        captured["kwargs"] = create_engine_kwargs

        def _default_handler(_statement, _params=None):
            return StubResult()

        return StubEngine(_default_handler)

    with patch("app.database.create_engine", side_effect=fake_create_engine):
        app = create_app(
            build_test_config(
                DB_POOL_SIZE=7,
                DB_MAX_OVERFLOW=13,
                DB_POOL_TIMEOUT_SECONDS=11,
                DB_POOL_RECYCLE_SECONDS=1800,
                DB_CONNECT_TIMEOUT_SECONDS=4,
                DB_STATEMENT_TIMEOUT_MS=4500,
            )
        )

    assert app is not None
    assert captured["url"].startswith("postgresql+psycopg://")
    init_kwargs = captured["kwargs"]
    assert init_kwargs["pool_size"] == 7
    assert init_kwargs["max_overflow"] == 13
    assert init_kwargs["pool_timeout"] == 11
    assert init_kwargs["pool_recycle"] == 1800
    assert init_kwargs["connect_args"]["connect_timeout"] == 4
    assert "statement_timeout=4500" in init_kwargs["connect_args"]["options"]
    assert "application_name=ifarmer_api" in init_kwargs["connect_args"]["options"]
    assert "timezone=UTC" in init_kwargs["connect_args"]["options"]


@pytest.mark.parametrize(
    ("config_overrides", "expected_message"),
    [
        ({"DB_POOL_SIZE": 0}, "DB_POOL_SIZE must be greater than 0."),
        ({"DB_MAX_OVERFLOW": -1}, "DB_MAX_OVERFLOW must be greater than or equal to 0."),
        ({"DB_POOL_TIMEOUT_SECONDS": 0}, "DB_POOL_TIMEOUT_SECONDS must be greater than 0."),
        ({"DB_POOL_RECYCLE_SECONDS": 0}, "DB_POOL_RECYCLE_SECONDS must be greater than 0."),
        ({"DB_CONNECT_TIMEOUT_SECONDS": 0}, "DB_CONNECT_TIMEOUT_SECONDS must be greater than 0."),
        ({"DB_STATEMENT_TIMEOUT_MS": 0}, "DB_STATEMENT_TIMEOUT_MS must be greater than 0."),
        ({"COMPONENT_SCAN_PACKAGES": " , "}, "COMPONENT_SCAN_PACKAGES must list at least one package."),
        ({"COMPONENT_RESOLUTION_POLICY": "loose"}, "COMPONENT_RESOLUTION_POLICY must be one of: strict, lenient."),
        ({"IDENTITY_STORE_TIMEOUT_SECONDS": 0}, "IDENTITY_STORE_TIMEOUT_SECONDS must be greater than 0."),
        ({"IDENTITY_STORE_RETRY_ATTEMPTS": 0}, "IDENTITY_STORE_RETRY_ATTEMPTS must be greater than 0."),
        (
            {"IDENTITY_STORE_RETRY_BACKOFF_SECONDS": -1},
            "IDENTITY_STORE_RETRY_BACKOFF_SECONDS must be greater than or equal to 0.",
        ),
        ({"IDENTITY_PASSWORD_MIN_LENGTH": 0}, "IDENTITY_PASSWORD_MIN_LENGTH must be greater than 0."),
    ],
)
def test_create_app_rejects_invalid_runtime_settings(config_overrides, expected_message):
    with pytest.raises(RuntimeError, match=expected_message):
        create_app(build_test_config(**config_overrides))


def test_create_app_rejects_credentialed_wildcard_cors_in_production():
    with pytest.raises(RuntimeError, match="requires explicit CORS_ALLOW_ORIGINS in production"):
        create_app(build_test_config(APP_ENV="production", CORS_ALLOW_ORIGINS="*", CORS_ALLOW_CREDENTIALS=True))


def test_create_app_echoes_request_id_header(make_engine):
    with patch("app.database.create_engine", return_value=make_engine(lambda *_: StubResult())):
        app = create_app(build_test_config())

    with TestClient(app) as tc:
        response = tc.get("/health/live", headers={"X-Request-Id": "req-123"})

    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "req-123"


def test_trusted_host_middleware_rejects_unknown_hosts(make_engine):
    with patch("app.database.create_engine", return_value=make_engine(lambda *_: StubResult())):
        app = create_app(build_test_config(ALLOWED_HOSTS="api.ifarmer.test"))

    with TestClient(app, base_url="http://evil.test") as tc:
        response = tc.get("/health/live")

    assert response.status_code == 400
