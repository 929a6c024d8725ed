import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from prometheus_fastapi_instrumentator import Instrumentator

from identity.config import Settings, get_settings
from identity.database import Base, SessionLocal, engine
from identity.dependencies import allow_roles, get_current_user, get_user_service
from identity.errors import PermissionDenied, apply_error_handlers
from identity.logging_middleware import add_audit_middleware, configure_logging
from identity.models import RoleEnum, User
from identity.rate_limit import REGISTRATION_RATE_LIMIT, TOKEN_RATE_LIMIT, apply_rate_limiter, limiter
from identity.schemas import (
    CreateClientCommand,
    CreateEmployeeCommand,
    ErrorResponse,
    Token,
    TokensCommand,
    UpdateUserCommand,
    UserRead,
)
from identity.seed import ensure_admin_user
from identity.service import UserService
from identity.tokens import TokenIssuer
from identity.validators import ensure_valid, validate_user_id

settings = get_settings()

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
}


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    app_settings: Settings = fastapi_app.state.settings
    if app_settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    if app_settings.seed_admin_user:
        with SessionLocal() as db:
            ensure_admin_user(db, app_settings)
    yield


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or settings
    configure_logging(app_settings.log_level)
    # Raises ConfigurationError without a signing secret: the service must not start.
    token_issuer = TokenIssuer(app_settings)

    fastapi_app = FastAPI(
        title="Users Service",
        description="Manages clients and employees and issues JWTs for the FastTech services",
        version="1.0.0",
        lifespan=lifespan,
    )
    fastapi_app.state.settings = app_settings
    fastapi_app.state.token_issuer = token_issuer
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    apply_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "users", app_settings.log_dir)
    Instrumentator().instrument(fastapi_app).expose(fastapi_app, include_in_schema=False)
    return fastapi_app


app = create_app()


def _ensure_self_or_admin(current_user: User, user_id: str) -> None:
    if current_user.role == RoleEnum.ADMIN:
        return
    ensure_valid(validate_user_id, user_id)
    if uuid.UUID(user_id.strip()) != current_user.id:
        raise PermissionDenied("Access denied")


def _ensure_role_unchanged(current_user: User, command: UpdateUserCommand) -> None:
    """Only admins may change a role, their own included."""
    if current_user.role != RoleEnum.ADMIN and command.role is not None and command.role != current_user.role:
        raise PermissionDenied("Only admins can change roles")


@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    return RedirectResponse(url="/docs")


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "users"}


@app.post("/auth/tokens", response_model=Token, tags=["auth"], responses=ERROR_RESPONSES)
@limiter.limit(TOKEN_RATE_LIMIT)
def generate_tokens(
    request: Request,
    command: TokensCommand,
    service: UserService = Depends(get_user_service),
) -> Token:
    return service.generate_tokens(command)


@app.post(
    "/users/clients",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    tags=["users"],
    responses=ERROR_RESPONSES,
)
@limiter.limit(REGISTRATION_RATE_LIMIT)
def create_client(
    request: Request,
    command: CreateClientCommand,
    service: UserService = Depends(get_user_service),
) -> User:
    return service.create_client(command)


@app.post(
    "/users/employees",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    tags=["users"],
    responses=ERROR_RESPONSES,
)
def create_employee(
    command: CreateEmployeeCommand,
    _: User = Depends(allow_roles(RoleEnum.ADMIN)),
    service: UserService = Depends(get_user_service),
) -> User:
    return service.create_employee(command)


@app.put("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["users"], responses=ERROR_RESPONSES)
def update_user(
    user_id: str,
    command: UpdateUserCommand,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> None:
    _ensure_self_or_admin(current_user, user_id)
    _ensure_role_unchanged(current_user, command)
    # Updating a missing or deleted user is accepted and does nothing.
    service.update_user(command.model_copy(update={"id": user_id}))


@app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["users"], responses=ERROR_RESPONSES)
def delete_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> None:
    _ensure_self_or_admin(current_user, user_id)
    service.delete_user(user_id)


@app.get("/users/{user_id}", response_model=UserRead, tags=["users"], responses=ERROR_RESPONSES)
def get_user_by_id(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> User:
    _ensure_self_or_admin(current_user, user_id)
    return service.get_user_by_id(user_id)
