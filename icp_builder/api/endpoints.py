"""
FastAPI Endpoints for ICP Builder
=================================
RESTful API for ICP generation and prospect qualification.

Base URL: http://localhost:8000

Endpoints:
- GET  /                          - API info
- GET  /api/health                - Health check
- GET  /api/stats                 - Engine & cache statistics
- POST /api/company/analyze       - Scrape a company and generate its ICP
- POST /api/prospects/qualify     - Qualify prospect domains against an ICP
- GET  /api/icps                  - List the caller's ICPs with their company
- GET  /api/icps/{icp_id}         - Get a stored ICP with its company and personas
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config.settings import (
    APP_CONFIG,
    AUTH_CONFIG,
    SUPABASE_CONFIG,
    check_environment,
    supabase_configured,
)
from ..engine import ICPEngine
from ..errors import (
    ErrorKind,
    client_error_message,
    is_production,
    status_code_for,
    status_for,
)
from ..models.schemas import (
    AnalyzeCompanyRequest,
    ICPListRequest,
    ICPLookupRequest,
    QualifyProspectsRequest,
)
from ..stages.scraper import build_http_client
from ..storage.auth import Authenticator, InMemoryAuthenticator, SupabaseAuthenticator
from ..storage.repository import InMemoryRepository, Repository, SupabaseRepository
from .pipeline import RequestContext, RequestPipeline, authenticate, execute, validate

logger = structlog.get_logger(__name__)

DESCRIPTION = """
## ICP Generation & Prospect Qualification

Scrapes a company website, generates an Ideal Customer Profile (ICP) with an
LLM, and scores prospect domains against it.

### Quick Start:
1. `POST /api/company/analyze` with `{"domain": "yourcompany.com"}`
2. `POST /api/prospects/qualify` with the returned `icpId` and up to 50 domains

All `/api/company` and `/api/prospects` endpoints require a bearer token.
"""


def error_response(error: BaseException) -> JSONResponse:
    """Convert any error into the {error} response shape"""
    return JSONResponse(
        status_code=status_code_for(error),
        content={"error": client_error_message(error)},
    )


def create_app(
    engine: Optional[ICPEngine] = None,
    repository: Optional[Repository] = None,
    authenticator: Optional[Authenticator] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators default to Supabase when it is configured and to in-memory
    implementations otherwise.
    """
    problems = check_environment()
    if problems and is_production():
        raise RuntimeError(
            "Invalid environment variables:\n"
            + "\n".join(f"  - {p}" for p in problems)
            + "\n\nPlease check your .env file."
        )
    for problem in problems:
        logger.warning("Configuration problem", problem=problem)

    http_client = None
    if engine is None:
        http_client = build_http_client()
        engine = ICPEngine(http_client=http_client)

    if repository is None:
        repository = (
            SupabaseRepository(SUPABASE_CONFIG["url"], SUPABASE_CONFIG["anon_key"])
            if supabase_configured()
            else InMemoryRepository()
        )
    if authenticator is None:
        authenticator = (
            SupabaseAuthenticator(SUPABASE_CONFIG["url"], SUPABASE_CONFIG["anon_key"])
            if supabase_configured()
            else InMemoryAuthenticator(AUTH_CONFIG["dev_tokens"])
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "ICP Builder starting",
            environment=APP_CONFIG["environment"],
            storage=type(repository).__name__,
            llm_configured=engine.completion_client.configured,
        )
        yield
        engine.cache.clear()
        if http_client is not None:
            await http_client.aclose()
        logger.info("ICP Builder stopped")

    app = FastAPI(
        title="ICP Builder API",
        description=DESCRIPTION,
        version=APP_CONFIG["version"],
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware - Allow all origins for frontend development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.engine = engine
    app.state.repository = repository
    app.state.authenticator = authenticator

    # =========================================================================
    # Pipelines
    # =========================================================================

    async def run_analyze(context: RequestContext) -> Any:
        return await engine.analyze_company(
            context.payload.domain,
            context.user_id,
            repository.for_token(context.token),
        )

    async def run_qualify(context: RequestContext) -> Any:
        return await engine.qualify_prospects(
            context.payload.icp_id,
            context.payload.domains,
            context.user_id,
            repository.for_token(context.token),
        )

    async def run_get_icp(context: RequestContext) -> Any:
        icp = await engine.get_icp(context.payload.icp_id, repository.for_token(context.token))
        return {"success": True, "icp": icp}

    async def run_list_icps(context: RequestContext) -> Any:
        icps = await engine.list_icps(
            context.user_id, repository.for_token(context.token), context.payload.limit
        )
        return {"success": True, "icps": icps}

    analyze_pipeline = RequestPipeline(
        authenticate(authenticator), validate(AnalyzeCompanyRequest), execute(run_analyze)
    )
    qualify_pipeline = RequestPipeline(
        authenticate(authenticator), validate(QualifyProspectsRequest), execute(run_qualify)
    )
    icp_pipeline = RequestPipeline(
        authenticate(authenticator), validate(ICPLookupRequest), execute(run_get_icp)
    )
    list_pipeline = RequestPipeline(
        authenticate(authenticator), validate(ICPListRequest), execute(run_list_icps)
    )

    async def respond(request: Request, pipeline: RequestPipeline, body: Any = None,
                      body_error: Optional[str] = None) -> JSONResponse:
        context = RequestContext(
            headers=dict(request.headers),
            body=body,
            body_error=body_error,
            path=request.url.path,
            method=request.method,
        )
        result = await pipeline.run(context)
        if not result.ok:
            return error_response(result.error)
        return JSONResponse(status_code=200, content=jsonable_encoder(result.value))

    async def read_json(request: Request):
        try:
            return await request.json(), None
        except ValueError:
            return None, "Request body must be valid JSON"

    # =========================================================================
    # Health & Info Endpoints
    # =========================================================================

    @app.get("/", tags=["Info"])
    async def root():
        """API information and available endpoints"""
        return {
            "service": APP_CONFIG["service_name"],
            "version": APP_CONFIG["version"],
            "status": "running",
            "docs": "/docs",
            "endpoints": {
                "Analyze Company": "POST /api/company/analyze",
                "Qualify Prospects": "POST /api/prospects/qualify",
                "List ICPs": "GET /api/icps",
                "Get ICP": "GET /api/icps/{icp_id}",
                "Health": "GET /api/health",
                "Stats": "GET /api/stats",
            },
        }

    @app.get("/api/health", tags=["Info"])
    async def health_check():
        """Health check endpoint for monitoring"""
        return {
            "status": "healthy",
            "service": APP_CONFIG["service_name"],
            "version": APP_CONFIG["version"],
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "llm_configured": engine.completion_client.configured,
            "storage": "supabase" if isinstance(repository, SupabaseRepository) else "memory",
        }

    @app.get("/api/stats", tags=["Info"])
    async def get_stats():
        """Get engine statistics"""
        return engine.get_stats()

    # =========================================================================
    # Main Endpoints
    # =========================================================================

    @app.post("/api/company/analyze", tags=["ICP"])
    async def analyze_company(request: Request):
        """
        Analyze a company domain and generate its ICP

        Body: `{"domain": "acme.com"}`. Returns the existing ICP with
        `isExisting: true` when the company has already been analyzed.
        """
        body, body_error = await read_json(request)
        return await respond(request, analyze_pipeline, body, body_error)

    @app.post("/api/prospects/qualify", tags=["Qualification"])
    async def qualify_prospects(request: Request):
        """
        Qualify up to 50 prospect domains against an ICP

        Each domain is processed independently; failures are reported per
        domain in `results` and counted in `summary`.
        """
        body, body_error = await read_json(request)
        return await respond(request, qualify_pipeline, body, body_error)

    @app.get("/api/icps", tags=["ICP"])
    async def list_icps(request: Request):
        """List the caller's ICPs with their company, newest first (`?limit=`, max 100)"""
        return await respond(request, list_pipeline, dict(request.query_params))

    @app.get("/api/icps/{icp_id}", tags=["ICP"])
    async def get_icp(icp_id: str, request: Request):
        """Get a stored ICP with its company and buyer personas"""
        return await respond(request, icp_pipeline, {"icpId": icp_id})

    # =========================================================================
    # Error Handlers
    # =========================================================================

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "Unhandled error",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=not is_production(),
        )
        return JSONResponse(
            status_code=status_for(ErrorKind.INTERNAL),
            content={"error": client_error_message(exc)},
        )

    return app


app = create_app()
