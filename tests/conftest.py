import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("JWT_SECRET_KEY", "test-signing-secret-with-enough-entropy")
os.environ.setdefault("SEED_ADMIN_USER", "false")

from identity.config import get_settings, reset_settings_cache  # noqa: E402

reset_settings_cache()

from identity.auth import get_password_hash  # noqa: E402
from identity.database import Base, SessionLocal, engine  # noqa: E402
from identity.models import RoleEnum, User  # noqa: E402
from identity.store import UserCommandStore  # noqa: E402
from identity.tokens import TokenIssuer  # noqa: E402
from services.users.app import app as users_app  # noqa: E402


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store(db_session) -> UserCommandStore:
    return UserCommandStore(db_session)


@pytest.fixture()
def issuer() -> TokenIssuer:
    return TokenIssuer(get_settings())


@pytest.fixture()
def make_user(store):
    def factory(
        email: str = "a@b.com",
        national_id: str = "111.222.333-44",
        password: str = "secret",
        role: RoleEnum = RoleEnum.CLIENT,
        name: str = "Ana Souza",
    ) -> User:
        return store.create(
            User(
                name=name,
                email=email,
                national_id=national_id,
                role=role,
                password_hash=get_password_hash(password),
                is_available=True,
            )
        )

    return factory


@pytest.fixture()
def users_client() -> Generator[TestClient, None, None]:
    with TestClient(users_app) as client:
        yield client
