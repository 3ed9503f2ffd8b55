from contextlib import asynccontextmanager
from datetime import timedelta
from typing import List, Optional
import logging
import time

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .db import init_db, make_engine, make_session_factory
from .dependencies import NotAuthenticated, get_credential_store, require_identity
from .routes import health
from .schemas import RegistrationResponse, Token, UserCreate, UserLogin, ValidationErrorResponse
from .store import CredentialStore, PasswordPolicy
from .tokens import Identity, TokenIssuer, TokenValidator
from .utils.event_logger import configure_event_log_file, log_auth_event

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup, release pooled connections on shutdown"""
    init_db(app.state.engine)
    yield
    app.state.engine.dispose()


async def not_authenticated_handler(request: Request, exc: NotAuthenticated) -> Response:
    # Same bare response for missing, malformed, forged and expired tokens
    return Response(
        status_code=status.HTTP_401_UNAUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Storage failure on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


async def log_requests(request: Request, call_next):
    start_time = time.time()
    logger.info("Request: %s %s", request.method, request.url.path)
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info("Response: %s (%.3fs)", response.status_code, process_time)
    return response


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    configure_event_log_file(settings.LOG_DIR)

    app = FastAPI(title="Token Auth Service", lifespan=lifespan)

    engine = make_engine(settings.DATABASE_URL)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.password_policy = PasswordPolicy.from_settings(settings)
    app.state.token_issuer = TokenIssuer(
        settings.JWT_SIGNING_KEY,
        lifetime=timedelta(minutes=settings.TOKEN_LIFETIME_MINUTES),
    )
    app.state.token_validator = TokenValidator(settings.JWT_SIGNING_KEY)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(NotAuthenticated, not_authenticated_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)

    app.include_router(health.router)
    app.add_api_route(
        "/register",
        register,
        methods=["POST"],
        response_model=RegistrationResponse,
        responses={400: {"model": List[ValidationErrorResponse]}},
    )
    app.add_api_route(
        "/login",
        login,
        methods=["POST"],
        response_model=Token,
        responses={401: {"description": "Invalid credentials"}},
    )
    app.add_api_route(
        "/protected",
        protected,
        methods=["GET"],
        response_model=str,
        responses={401: {"description": "Missing or invalid bearer token"}},
    )
    return app


def register(user: UserCreate, request: Request, store: CredentialStore = Depends(get_credential_store)):
    # Email is not collected; the username doubles as the email address
    result = store.create_user(user.username, user.username, user.password)
    if not result.succeeded:
        log_auth_event(
            "register_failure", user.username, request,
            {"codes": [error.code for error in result.errors]},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=[error.to_dict() for error in result.errors],
        )

    log_auth_event("register_success", user.username, request, {"user_id": result.user.id})
    return RegistrationResponse()


def login(credentials: UserLogin, request: Request, store: CredentialStore = Depends(get_credential_store)):
    user = store.find_by_username(credentials.username)
    if not store.verify_password(user, credentials.password):
        log_auth_event("login_failure", credentials.username, request)
        # Unknown user and wrong password look identical to the caller
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)

    token = request.app.state.token_issuer.issue(user.id, user.username)
    log_auth_event("login_success", user.username, request, {"user_id": user.id})
    return Token(token=token)


def protected(identity: Identity = Depends(require_identity)) -> str:
    return "This is a protected endpoint"


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "token_auth.token_auth.auth_service.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
