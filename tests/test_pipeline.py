"""Test the request pipeline stages."""

import pytest

from icp_builder.api.pipeline import (
    RequestContext,
    RequestPipeline,
    StageResult,
    authenticate,
    bearer_token,
    execute,
    first_error_message,
    validate,
)
from icp_builder.errors import AppError, ErrorKind
from icp_builder.models.schemas import AnalyzeCompanyRequest

from conftest import TEST_TOKEN, TEST_USER


class TestBearerToken:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("abc", "abc"),
            ("Bearer ", None),
            ("", None),
        ],
    )
    def test_parsing(self, header, expected):
        assert bearer_token({"authorization": header}) == expected

    def test_missing_header(self):
        assert bearer_token({}) is None


class TestRequestPipeline:
    """Test stage ordering and short-circuiting."""

    @pytest.mark.asyncio
    async def test_stops_at_first_failure(self):
        ran = []

        async def first(context):
            ran.append("first")
            return StageResult.failure(AppError.validation("bad"))

        async def second(context):
            ran.append("second")
            return StageResult.success()

        result = await RequestPipeline(first, second).run(RequestContext(headers={}))

        assert result.ok is False
        assert result.error.kind is ErrorKind.VALIDATION
        assert ran == ["first"]

    @pytest.mark.asyncio
    async def test_full_run_yields_handler_value(self, authenticator):
        async def handler(context):
            return {"domain": context.payload.domain, "user": context.user_id}

        pipeline = RequestPipeline(
            authenticate(authenticator), validate(AnalyzeCompanyRequest), execute(handler)
        )
        context = RequestContext(
            headers={"authorization": f"Bearer {TEST_TOKEN}"},
            body={"domain": "HTTPS://Acme.com/"},
        )

        result = await pipeline.run(context)

        assert result.ok is True
        assert result.value == {"domain": "acme.com", "user": TEST_USER}
        assert context.token == TEST_TOKEN

    @pytest.mark.asyncio
    async def test_execute_turns_exceptions_into_failures(self):
        async def handler(context):
            raise AppError.not_found("ICP")

        result = await execute(handler)(RequestContext(headers={}))
        assert result.ok is False
        assert result.error.http_status == 404

    @pytest.mark.asyncio
    async def test_validation_error_keeps_details(self):
        context = RequestContext(headers={}, body={"domain": "ab"})
        result = await validate(AnalyzeCompanyRequest)(context)

        assert result.ok is False
        assert result.error.message == "Domain must be at least 3 characters"
        assert result.error.details[0]["loc"] == ("domain",)


def test_first_error_message_without_errors():
    assert first_error_message([]) == "Invalid request"
