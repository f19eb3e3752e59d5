import logging
import math
import os
import re
import sys
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, Header, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import psycopg2
from dotenv import load_dotenv
from jose import JWTError, jwt

_project_root = Path(__file__).resolve().parents[1]
if str(_project_root) not in sys.path:
    sys.path.append(str(_project_root))

from backend import app_context
from backend.app.billing import AuthenticatedUser, Unauthorized
from backend.app.errors import InvalidRequest, ServiceError
from backend.app.routes.billing import router as billing_router
from backend.app.routes.content import router as content_router


load_dotenv()

def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _parse_origins(raw_value: str) -> List[str]:
    origins = [origin.strip() for origin in raw_value.split(",")]
    return [origin for origin in origins if origin] or ["*"]


DB_CFG = dict(
    host=os.getenv("DB_HOST", "127.0.0.1"),
    port=int(os.getenv("DB_PORT", "5432")),
    dbname=os.getenv("DB_NAME", "postgres"),
    user=os.getenv("DB_USER", "postgres"),
    password=os.getenv("DB_PASSWORD", "postgres"),
    connect_timeout=_parse_connect_timeout(os.getenv("DB_CONNECT_TIMEOUT", "5")),
)

AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET", "dev-secret-change-me")
AUTH_JWT_ALGORITHM = "HS256"
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE", "authenticated")
AUTH_JWT_EXP_MINUTES = int(os.getenv("AUTH_JWT_EXP_MINUTES", "60"))
CORS_ALLOW_ORIGINS = _parse_origins(os.getenv("CORS_ALLOW_ORIGINS", "*"))

_BEARER_PATTERN = re.compile(r"^\s*bearer\s+(\S+)\s*$", re.IGNORECASE)

logger = logging.getLogger("auth")
api_logger = logging.getLogger("billing")


def get_conn():
    return psycopg2.connect(**DB_CFG)


def create_access_token(
    *,
    subject: str,
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Issue a token in the shape the hosted identity provider hands to clients."""

    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=AUTH_JWT_EXP_MINUTES))
    payload = {"sub": subject, "aud": AUTH_JWT_AUDIENCE, "exp": expire}
    if email:
        payload["email"] = email
    return jwt.encode(payload, AUTH_JWT_SECRET, algorithm=AUTH_JWT_ALGORITHM)


def resolve_user_from_bearer_token(token: str) -> Optional[AuthenticatedUser]:
    try:
        payload = jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
        )
    except JWTError:
        return None

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        logger.info("Bearer token subject is not a profile id")
        return None
    return AuthenticatedUser(id=str(user_id), email=payload.get("email"))


def _extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    match = _BEARER_PATTERN.match(authorization)
    return match.group(1) if match else None


def get_current_user(authorization: Optional[str] = Header(None)) -> AuthenticatedUser:
    token = _extract_bearer_token(authorization)
    if token is None:
        raise Unauthorized()

    user = resolve_user_from_bearer_token(token)
    if user is None:
        logger.info("Rejected bearer token")
        raise Unauthorized()
    return user


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return InvalidRequest.default_message
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg") or InvalidRequest.default_message
    return f"{location}: {message}" if location else message


app = FastAPI(title="Content Billing API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=CORS_ALLOW_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(billing_router)
app.include_router(content_router)


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    log_context = {"path": request.url.path, "error_code": exc.code}
    if exc.is_server_error:
        api_logger.error("Request failed: %s", exc.message, extra=log_context)
    else:
        api_logger.warning("Request rejected: %s", exc.message, extra=log_context)
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await handle_service_error(request, InvalidRequest(_describe_validation_error(exc)))


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    api_logger.exception("Unhandled error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "code": "internal_error"},
    )


@app.get("/api/healthz")
def healthz():
    return {"ok": True}


app_context.configure(
    get_conn=get_conn,
    get_current_user=get_current_user,
)
