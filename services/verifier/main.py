"""
Verifier Service - Main Application
===================================

FastAPI application for attestation challenges and proof verification.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attestkit.challenge import ChallengeLedger, ChallengeProtocol
from attestkit.config import settings
from attestkit.errors import (
    AttestError,
    ChallengeExpiredError,
    ChallengeMismatchError,
    CircuitLoadError,
    CredentialParseError,
    ParameterValidationError,
    ProofGenerationError,
)
from attestkit.logging import get_logger, setup_logging
from attestkit.models.common import ErrorResponse, HealthResponse
from attestkit.zk import AttestationVerifier, CircuitRegistry, SnarkjsBackend
from services.verifier import __version__
from services.verifier.routes import challenges, verification


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="verifier",
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "verifier_service_starting",
        environment=settings.environment.value,
        port=settings.ports.verifier,
    )

    registry = CircuitRegistry(config=settings.zk)
    protocol = ChallengeProtocol(config=settings.challenge)

    app.state.registry = registry
    app.state.protocol = protocol
    app.state.ledger = ChallengeLedger(protocol)
    app.state.verifier = AttestationVerifier(SnarkjsBackend(settings.zk.snarkjs_command), registry)

    yield

    logger.info("verifier_service_shutting_down")
    removed = await app.state.ledger.sweep_expired()
    registry.clear()
    logger.info("verifier_service_stopped", expired_challenges=removed)


# Create FastAPI application
app = FastAPI(
    title="attestkit Verifier Service",
    description="Attestation challenges, response checking and off-chain proof verification",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """
    Service health check.

    Reports which circuit artifacts are present. Verification of a kind
    needs its verification key.
    """
    components: dict[str, dict[str, Any]] = {}

    for kind, files in request.app.state.registry.availability().items():
        components[f"circuit_{kind}"] = {
            "status": "healthy" if files["vkey"] else "unavailable",
            **files,
        }

    components["challenges"] = {"status": "healthy", "tracked": len(request.app.state.ledger)}

    return HealthResponse.from_components("verifier", __version__, components)


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "attestkit Verifier Service",
        "version": __version__,
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    challenges.router,
    prefix="/api/v1/challenges",
    tags=["Challenges"],
)

app.include_router(
    verification.router,
    prefix="/api/v1/verify",
    tags=["Verification"],
)


# ============================================================================
# Error Handlers
# ============================================================================


def status_for(exc: AttestError) -> int:
    """HTTP status for an attestkit error."""
    if isinstance(exc, ChallengeExpiredError):
        return status.HTTP_410_GONE
    if isinstance(exc, ChallengeMismatchError):
        if exc.code == "UNKNOWN_CHALLENGE":
            return status.HTTP_404_NOT_FOUND
        if exc.code == "INVALID_CHALLENGE":
            return status.HTTP_400_BAD_REQUEST
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (ParameterValidationError, CredentialParseError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, CircuitLoadError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, ProofGenerationError) and exc.timeout:
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(AttestError)
async def attest_exception_handler(request: Request, exc: AttestError) -> JSONResponse:
    """Handle attestkit errors."""
    status_code = status_for(exc)
    logger.warning(
        "attest_error",
        status_code=status_code,
        error_code=exc.code,
        path=request.url.path,
    )
    body = ErrorResponse.from_error(exc, status_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    body = ErrorResponse.from_http(exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    body = ErrorResponse.from_http(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
    return JSONResponse(status_code=body.status_code, content=body.model_dump(mode="json"))


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.verifier.main:app",
        host="0.0.0.0",
        port=settings.ports.verifier,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
