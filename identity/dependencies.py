"""Reusable FastAPI dependencies for auth and database access."""
from typing import Callable

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .errors import InvalidTokenError, PermissionDenied
from .models import RoleEnum, User
from .service import UserService
from .store import UserCommandStore
from .tokens import TokenIssuer

bearer_scheme = HTTPBearer(auto_error=False, bearerFormat="JWT", description="Paste the JWT returned by /auth/tokens")


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_user_store(db: Session = Depends(get_db)) -> UserCommandStore:
    return UserCommandStore(db)


def get_user_service(
    store: UserCommandStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> UserService:
    return UserService(store, issuer)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
    store: UserCommandStore = Depends(get_user_store),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise InvalidTokenError("Not authenticated")
    claims = issuer.decode(credentials.credentials)
    user = store.get_by_id(claims.user_id)
    if user is None or not user.is_available:
        raise InvalidTokenError("Could not validate credentials")
    request.state.subject = str(user.id)
    return user


def allow_roles(*roles: RoleEnum) -> Callable[[User], User]:
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise PermissionDenied()
        return current_user

    return dependency
