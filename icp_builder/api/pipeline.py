"""
Request Pipeline
================
Every API request runs an ordered list of stages:

    authenticate -> validate -> execute

Each stage returns a StageResult. The first failure stops the pipeline and
becomes the error response; stages never raise.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

import structlog
from pydantic import BaseModel, ValidationError

from ..errors import AppError, client_error_message
from ..storage.auth import Authenticator

logger = structlog.get_logger(__name__)


@dataclass
class RequestContext:
    """State shared by the stages of one request"""
    headers: Dict[str, str]
    body: Any = None
    body_error: Optional[str] = None
    path: str = ""
    method: str = ""
    user_id: Optional[str] = None
    token: Optional[str] = None
    payload: Optional[BaseModel] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class StageResult:
    """Outcome of a stage: a value on success, an error on failure"""
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: Any = None) -> "StageResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "StageResult":
        return cls(ok=False, error=error)


Stage = Callable[[RequestContext], Awaitable[StageResult]]


class RequestPipeline:
    """Runs stages in order, short-circuiting on the first failure"""

    def __init__(self, *stages: Stage):
        self.stages: List[Stage] = list(stages)

    async def run(self, context: RequestContext) -> StageResult:
        result = StageResult.success()
        for stage in self.stages:
            result = await stage(context)
            if not result.ok:
                return result
        return result


# =============================================================================
# Stages
# =============================================================================

def bearer_token(headers: Dict[str, str]) -> Optional[str]:
    header = headers.get("authorization") or ""
    if header[:7].lower() == "bearer ":
        header = header[7:]
    return header.strip() or None


def authenticate(authenticator: Authenticator) -> Stage:
    """Resolve the bearer token into a user id"""

    async def stage(context: RequestContext) -> StageResult:
        token = bearer_token(context.headers)
        if not token:
            return _failed(context, "Authentication error",
                           AppError.authentication("No authorization token provided"))
        try:
            context.user_id = await authenticator.authenticate(token)
        except Exception as e:
            return _failed(context, "Authentication error", e)
        context.token = token
        return StageResult.success(context.user_id)

    return stage


def validate(schema: Type[BaseModel]) -> Stage:
    """Parse the request body into the given schema"""

    async def stage(context: RequestContext) -> StageResult:
        if context.body_error:
            return _failed(context, "Validation error", AppError.validation(context.body_error))
        if not isinstance(context.body, dict):
            return _failed(context, "Validation error",
                           AppError.validation("Request body must be a JSON object"))
        try:
            context.payload = schema.model_validate(context.body)
        except ValidationError as e:
            errors = e.errors(include_url=False, include_context=False, include_input=False)
            return _failed(context, "Validation error",
                           AppError.validation(first_error_message(errors), details=errors))
        return StageResult.success(context.payload)

    return stage


def execute(handler: Callable[[RequestContext], Awaitable[Any]]) -> Stage:
    """Run the endpoint's work; any exception becomes a failure"""

    async def stage(context: RequestContext) -> StageResult:
        try:
            return StageResult.success(await handler(context))
        except Exception as e:
            return _failed(context, "Request failed", e)

    return stage


# =============================================================================
# Helpers
# =============================================================================

def first_error_message(errors: List[Dict[str, Any]]) -> str:
    """Human readable message for the first pydantic error"""
    if not errors:
        return "Invalid request"
    error = errors[0]
    message = error.get("msg", "Invalid request")
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {message}" if location else message


def _failed(context: RequestContext, event: str, error: BaseException) -> StageResult:
    log = logger.warning if isinstance(error, AppError) and error.is_operational else logger.error
    log(
        event,
        path=context.path,
        method=context.method,
        user_id=context.user_id,
        error=client_error_message(error, environment="development"),
        error_type=type(error).__name__,
    )
    return StageResult.failure(error)
