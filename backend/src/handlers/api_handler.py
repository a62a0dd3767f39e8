"""FastAPI application for the feedback stream dashboard."""

import asyncio
import logging
import os
import time
from datetime import UTC, datetime

import boto3
from botocore.exceptions import ClientError
from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, Field

from services.auth_service import AuthenticationError, AuthService
from services.feedback_service import (
    DEFAULT_SNAPSHOT_LIMIT,
    ConfigurationError,
    FeedbackService,
    UpstreamQueryError,
)
from services.feedback_stream import FeedbackStream, StreamSettings
from utils.sse import format_event

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title="Feedback Stream API",
    description="Live feed of user feedback for the operator dashboard",
    version=API_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


@app.middleware("http")
async def log_requests(request, call_next):
    """Log API requests with timing."""
    start = time.time()
    response = await call_next(request)
    # For the event stream this only covers time to first byte
    duration_ms = (time.time() - start) * 1000

    path = request.url.path
    if duration_ms > 1000:
        logger.warning(
            "[SLOW] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 500:
        logger.error(
            "[ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )
    elif response.status_code >= 400:
        logger.info(
            "[CLIENT_ERROR] %s %s %.0fms status=%d",
            request.method,
            path,
            duration_ms,
            response.status_code,
        )

    return response


# Lazily constructed once per process and handed to routes through Depends
_dynamodb = None
_feedback_service = None
_auth_service = None
_stream_settings = None

security = HTTPBearer(auto_error=False)


def reset_services():
    """Reset all lazily constructed services. Useful for testing."""
    global _dynamodb, _feedback_service, _auth_service, _stream_settings
    _dynamodb = None
    _feedback_service = None
    _auth_service = None
    _stream_settings = None
    # Reset boto3's default session so new resources pick up moto's mock context
    boto3.DEFAULT_SESSION = None


def get_dynamodb():
    """Get or create the DynamoDB resource."""
    global _dynamodb
    if _dynamodb is None:
        _dynamodb = boto3.resource(
            "dynamodb",
            region_name=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
            endpoint_url=os.environ.get("DYNAMODB_ENDPOINT_URL") or None,
        )
    return _dynamodb


def get_feedback_service() -> FeedbackService:
    """Get or create the FeedbackService.

    Raises:
        ConfigurationError: If the feedback table is not configured
    """
    global _feedback_service
    if _feedback_service is None:
        _feedback_service = FeedbackService.from_environment(get_dynamodb())
    return _feedback_service


def get_auth_service() -> AuthService:
    """Get or create the AuthService."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService(
            password_hash=os.environ.get("ADMIN_PASSWORD_HASH"),
            jwt_secret=os.environ.get("JWT_SECRET_KEY"),
        )
    return _auth_service


def get_stream_settings() -> StreamSettings:
    """Get the push loop timing from the environment."""
    global _stream_settings
    if _stream_settings is None:
        _stream_settings = StreamSettings.from_environment()
    return _stream_settings


# MARK: - Authentication Dependency


async def require_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),  # noqa: B008
    auth_service: AuthService = Depends(get_auth_service),  # noqa: B008
) -> dict:
    """Verify the dashboard session token.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return auth_service.verify_session_token(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


# MARK: - Health Check


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": API_VERSION,
    }


# MARK: - Authentication Endpoint


class PasswordRequest(BaseModel):
    """Request body for operator login."""

    password: str | None = Field(None, description="Shared dashboard password")


@app.post("/api/auth")
async def authenticate(
    request: PasswordRequest,
    auth_service: AuthService = Depends(get_auth_service),  # noqa: B008
):
    """Exchange the shared password for a session token."""
    if not request.password:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Password required"},
        )

    if not auth_service.is_configured:
        logger.error("ADMIN_PASSWORD_HASH is not set")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Server configuration error"},
        )

    try:
        is_valid = auth_service.verify_password(request.password)
    except Exception as e:
        logger.error("Auth error: %s", e, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Authentication failed"},
        )

    if not is_valid:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Invalid password"},
        )

    return {
        "success": True,
        "token": auth_service.create_session_token(),
        "message": "Authentication successful",
    }


# MARK: - Feedback Endpoints


@app.get("/api/feedback")
async def get_feedback(
    limit: int = Query(DEFAULT_SNAPSHOT_LIMIT, ge=1, le=1000),
    _session: dict = Depends(require_session),  # noqa: B008
    feedback_service: FeedbackService = Depends(get_feedback_service),  # noqa: B008
):
    """Get the most recent feedback records, newest first."""
    try:
        # boto3 is blocking; keep open push loops running during the scan
        records = await asyncio.to_thread(feedback_service.fetch_recent, limit)
    except UpstreamQueryError as e:
        logger.error("Error fetching feedback items: %s", e, exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Failed to fetch feedback items",
                "message": str(e),
            },
        )

    return {
        "success": True,
        "data": [record.to_wire() for record in records],
        "count": len(records),
    }


@app.get("/api/feedback/stream")
async def stream_feedback(
    request: Request,
    since: int | None = Query(None, description="Only send records newer than this"),
    _session: dict = Depends(require_session),  # noqa: B008
    feedback_service: FeedbackService = Depends(get_feedback_service),  # noqa: B008
    settings: StreamSettings = Depends(get_stream_settings),  # noqa: B008
):
    """Server-Sent Events stream of new feedback records."""
    stream = FeedbackStream(feedback_service, since=since, settings=settings)

    async def event_generator():
        async for event in stream.events(request.is_disconnected):
            yield format_event(event.to_wire())

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# MARK: - Error Handlers


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request, exc: ConfigurationError):
    """Handle a missing feedback store configuration."""
    logger.error("Configuration error: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Server configuration error",
            "message": str(exc),
        },
    )


@app.exception_handler(ClientError)
async def aws_client_error_handler(request, exc: ClientError):
    """Handle AWS client errors."""
    error_message = exc.response["Error"]["Message"]
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "AWS error", "message": error_message},
    )


def main():
    """Run the API with uvicorn for local development."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        app,
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
