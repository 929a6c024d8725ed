"""Password hashing and the base64 password-encoding contract."""
import base64
import binascii

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def dummy_verify() -> None:
    """Spend the time of a real verification when there is no hash to check."""

    pwd_context.dummy_verify()


def is_base64_string(value: str | None) -> bool:
    """True when ``value`` is strict base64 whose payload is UTF-8 text."""

    if not value or not value.strip():
        return False
    try:
        base64.b64decode(value.strip(), validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return False
    return True


def decode_base64_password(value: str) -> str:
    """Decode a password delivered base64-encoded. Callers validate first."""

    return base64.b64decode(value.strip(), validate=True).decode("utf-8")
