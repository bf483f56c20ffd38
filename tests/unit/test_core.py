import asyncio
import json
import logging
import time
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.config.logging import JsonFormatter
from app.core.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitState
from app.core.exceptions import DatastoreError, NotFoundError
from app.core.telemetry import setup_telemetry
from fastapi import FastAPI


async def failing():
    raise RuntimeError("datastore down")


class TestCircuitBreaker:
    def test_initial_state(self):
        cb = CircuitBreaker("test", failure_threshold=2)
        assert cb.state == CircuitState.CLOSED
        assert cb.name == "test"

    @pytest.mark.asyncio
    async def test_successful_call(self):
        cb = CircuitBreaker("test")
        mock_func = AsyncMock(return_value="success")

        result = await cb.call(mock_func)

        assert result == "success"
        assert cb.state == CircuitState.CLOSED
        mock_func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_call_opens_after_threshold(self):
        cb = CircuitBreaker("test", failure_threshold=2)

        # 1st failure
        with pytest.raises(RuntimeError):
            await cb.call(failing)
        assert cb.state == CircuitState.CLOSED

        # 2nd failure -> Open
        with pytest.raises(RuntimeError):
            await cb.call(failing)
        assert cb.failure_count == 2
        assert cb.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_open_circuit_rejects_without_calling(self):
        cb = CircuitBreaker("test", failure_threshold=1)
        with pytest.raises(RuntimeError):
            await cb.call(failing)

        mock_func = AsyncMock(return_value="should not run")
        with pytest.raises(CircuitBreakerOpenError):
            await cb.call(mock_func)
        mock_func.assert_not_called()

    @pytest.mark.asyncio
    async def test_success_resets_failure_count(self):
        cb = CircuitBreaker("test", failure_threshold=3)
        with pytest.raises(RuntimeError):
            await cb.call(failing)

        await cb.call(AsyncMock(return_value="ok"))

        assert cb.failure_count == 0

    @pytest.mark.asyncio
    async def test_recovery_half_open(self):
        cb = CircuitBreaker("test", failure_threshold=1, recovery_timeout_sec=0.1)
        with pytest.raises(RuntimeError):
            await cb.call(failing)

        await asyncio.sleep(0.15)  # Wait for timeout

        # Should attempt reset (HALF_OPEN), then close on success
        res = await cb.call(AsyncMock(return_value="recovered"))
        assert res == "recovered"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self):
        cb = CircuitBreaker("test", failure_threshold=3, recovery_timeout_sec=0.1)
        for _ in range(3):
            with pytest.raises(RuntimeError):
                await cb.call(failing)
        time.sleep(0.15)

        with pytest.raises(RuntimeError):
            await cb.call(failing)

        assert cb.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_half_open_allows_a_single_trial(self):
        cb = CircuitBreaker("test", failure_threshold=1, recovery_timeout_sec=0.1)
        with pytest.raises(RuntimeError):
            await cb.call(failing)
        await asyncio.sleep(0.15)

        release = asyncio.Event()

        async def slow_trial():
            await release.wait()
            return "recovered"

        trial = asyncio.create_task(cb.call(slow_trial))
        await asyncio.sleep(0)
        assert cb.state == CircuitState.HALF_OPEN

        concurrent = AsyncMock(return_value="second")
        with pytest.raises(CircuitBreakerOpenError):
            await cb.call(concurrent)
        concurrent.assert_not_called()

        release.set()
        assert await trial == "recovered"
        assert cb.state == CircuitState.CLOSED
        assert await cb.call(AsyncMock(return_value="ok")) == "ok"

    @pytest.mark.asyncio
    async def test_manual_reset(self):
        cb = CircuitBreaker("test", failure_threshold=1)
        with pytest.raises(RuntimeError):
            await cb.call(failing)
        assert cb.state == CircuitState.OPEN

        cb.reset()
        assert cb.state == CircuitState.CLOSED


class TestExceptions:
    def test_not_found_to_dict(self):
        exc = NotFoundError("Property", "villa-42")

        assert exc.status_code == 404
        assert exc.to_dict() == {
            "error": {
                "code": "NOT_FOUND",
                "message": "Property not found: villa-42",
                "details": {"resource": "Property", "identifier": "villa-42"},
            }
        }

    def test_datastore_error(self):
        exc = DatastoreError("find_properties", "timeout")

        assert exc.status_code == 502
        assert exc.error_code == "DATASTORE_ERROR"
        assert "timeout" in exc.message


class TestJsonFormatter:
    def test_includes_context_fields(self):
        record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "served", None, None)
        record.property_id = "p1"
        record.user_id = "u1"

        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["message"] == "served"
        assert payload["property_id"] == "p1"
        assert payload["user_id"] == "u1"
        assert "request_id" not in payload


class TestTelemetry:
    @patch("app.core.telemetry.get_settings")
    @patch("app.core.telemetry.Instrumentator")
    def test_setup_telemetry_prometheus_enabled(self, mock_instrumentator, mock_get_settings):
        # Mock settings
        mock_settings = MagicMock()
        mock_settings.ENABLE_PROMETHEUS = True
        mock_settings.ENABLE_OTEL = False
        mock_get_settings.return_value = mock_settings

        app = FastAPI()
        setup_telemetry(app)

        mock_instrumentator.assert_called_once()
        mock_instrumentator.return_value.instrument.assert_called_once_with(app)

    @patch("app.core.telemetry.get_settings")
    @patch("app.core.telemetry.BatchSpanProcessor")
    @patch("app.core.telemetry.FastAPIInstrumentor")
    def test_setup_telemetry_otel_enabled(self, mock_fastapi_instr, mock_processor, mock_get_settings):
        # Mock settings
        mock_settings = MagicMock()
        mock_settings.ENABLE_PROMETHEUS = False
        mock_settings.ENABLE_OTEL = True
        mock_settings.APP_NAME = "test"
        mock_settings.APP_VERSION = "1.0"
        mock_settings.DEBUG = False
        mock_get_settings.return_value = mock_settings

        app = FastAPI()
        setup_telemetry(app)

        mock_fastapi_instr.instrument_app.assert_called_once()
        mock_processor.assert_called_once()
