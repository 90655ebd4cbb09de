"""Test error kinds and client-facing messages."""

import pytest

from icp_builder.errors import (
    GENERIC_ERROR_MESSAGE,
    HTTP_STATUS_BY_KIND,
    AppError,
    ErrorKind,
    ICPGenerationError,
    client_error_message,
    status_code_for,
    status_for,
)


class TestStatusMapping:
    """Every error kind maps to exactly one HTTP status."""

    @pytest.mark.parametrize(
        "kind,status",
        [
            (ErrorKind.VALIDATION, 400),
            (ErrorKind.AUTHENTICATION, 401),
            (ErrorKind.AUTHORIZATION, 403),
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.CONFLICT, 409),
            (ErrorKind.RATE_LIMIT, 429),
            (ErrorKind.EXTERNAL_SERVICE, 502),
            (ErrorKind.INTERNAL, 500),
        ],
    )
    def test_status_for(self, kind, status):
        assert status_for(kind) == status

    def test_mapping_is_total(self):
        assert set(HTTP_STATUS_BY_KIND) == set(ErrorKind)

    def test_unknown_kind_raises(self):
        with pytest.raises(ValueError):
            status_for("NOT_A_KIND")

    def test_non_app_error_is_internal(self):
        assert status_code_for(RuntimeError("boom")) == 500
        assert status_code_for(AppError.not_found("ICP")) == 404


class TestAppErrorConstructors:
    """Test the AppError factory classmethods."""

    def test_default_messages(self):
        assert AppError.authentication().message == "Authentication required"
        assert AppError.authorization().message == "Insufficient permissions"
        assert AppError.rate_limit().message == "Too many requests"
        assert AppError.not_found("ICP").message == "ICP not found"

    def test_validation_carries_details(self):
        error = AppError.validation("Invalid domain format", details=[{"loc": ["domain"]}])
        assert error.kind is ErrorKind.VALIDATION
        assert error.code == "VALIDATION_ERROR"
        assert error.details == [{"loc": ["domain"]}]
        assert error.http_status == 400

    def test_external_service_wraps_cause(self):
        cause = TimeoutError("timed out")
        error = AppError.external_service("OpenAI", cause)
        assert error.message == "OpenAI service error: timed out"
        assert error.__cause__ is cause
        assert error.http_status == 502

    def test_external_service_without_cause(self):
        assert AppError.external_service("OpenAI").message == "OpenAI service error: Unknown error"

    def test_internal_is_not_operational(self):
        assert AppError.internal("bad row").is_operational is False
        assert AppError.conflict("dup").is_operational is True


class TestClientErrorMessage:
    """Test what the client is allowed to see."""

    def test_operational_message_is_shown_in_production(self):
        error = AppError.not_found("ICP")
        assert client_error_message(error, environment="production") == "ICP not found"

    def test_unexpected_error_is_hidden_in_production(self):
        error = ICPGenerationError("Failed to generate ICP")
        assert client_error_message(error, environment="production") == GENERIC_ERROR_MESSAGE

    def test_internal_error_is_hidden_in_production(self):
        error = AppError.internal("insert returned no rows")
        assert client_error_message(error, environment="production") == GENERIC_ERROR_MESSAGE

    def test_unexpected_error_is_shown_in_development(self):
        error = RuntimeError("database exploded")
        assert client_error_message(error, environment="development") == "database exploded"

    def test_empty_message_falls_back_to_generic(self):
        assert client_error_message(RuntimeError(), environment="development") == GENERIC_ERROR_MESSAGE
