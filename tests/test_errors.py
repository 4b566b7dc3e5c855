"""
Tests for trust_engine.core.errors
"""

from __future__ import annotations

import psycopg
import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from trust_engine.core.errors import (
    ERROR_ACCESS_DENIED,
    ERROR_CONFLICT,
    ERROR_INTERNAL,
    ERROR_PERSISTENCE,
    ERROR_SCHEMA_MISSING,
    ERROR_STORAGE_PERMISSION,
    AccessDenied,
    ConstraintViolationError,
    PersistenceError,
    SchemaMissingError,
    SideEffectError,
    StoragePermissionError,
    classify_persistence_error,
    setup_error_handlers,
)


class TestClassifyPersistenceError:
    @pytest.mark.parametrize(
        "exc,expected_type,code",
        [
            (psycopg.errors.UndefinedTable("no table"), SchemaMissingError, ERROR_SCHEMA_MISSING),
            (psycopg.errors.UndefinedColumn("no column"), SchemaMissingError, ERROR_SCHEMA_MISSING),
            (psycopg.errors.ForeignKeyViolation("fk"), ConstraintViolationError, ERROR_CONFLICT),
            (psycopg.errors.CheckViolation("check"), ConstraintViolationError, ERROR_CONFLICT),
            (psycopg.errors.NotNullViolation("null"), ConstraintViolationError, ERROR_CONFLICT),
            (psycopg.errors.InsufficientPrivilege("denied"), StoragePermissionError, ERROR_STORAGE_PERMISSION),
            (psycopg.OperationalError("gone"), PersistenceError, ERROR_PERSISTENCE),
        ],
    )
    def test_maps_psycopg_errors(self, exc, expected_type, code):
        error = classify_persistence_error(exc)
        assert type(error) is expected_type
        assert error.error_code == code

    def test_persistence_errors_pass_through(self):
        original = SchemaMissingError()
        assert classify_persistence_error(original) is original


def test_side_effect_error_carries_effect_and_cause():
    cause = ValueError("bad")
    error = SideEffectError("citation", cause)
    assert error.effect == "citation"
    assert error.cause is cause
    assert "citation" in error.message


class TestErrorHandlers:
    def _client(self) -> TestClient:
        app = FastAPI()
        setup_error_handlers(app)

        @app.get("/denied")
        async def denied():
            raise AccessDenied()

        @app.get("/missing")
        async def missing():
            raise HTTPException(status_code=404, detail="nope")

        @app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        return TestClient(app, raise_server_exceptions=False)

    def test_business_error_envelope(self):
        response = self._client().get("/denied")
        assert response.status_code == 403
        body = response.json()
        assert body["error"] == ERROR_ACCESS_DENIED
        assert "laboratory access" in body["message"]

    def test_http_exception_envelope(self):
        response = self._client().get("/missing")
        assert response.status_code == 404
        assert response.json()["message"] == "nope"

    def test_unhandled_exception_is_generic(self):
        response = self._client().get("/boom")
        assert response.status_code == 500
        body = response.json()
        assert body["error"] == ERROR_INTERNAL
        assert "kaboom" not in body["message"]
