import time
from typing import Optional

import jwt
from passlib.context import CryptContext

from . import config
from .errors import AuthError

# Use pbkdf2_sha256 as default to avoid bcrypt 72-byte limitation in some envs.
# bcrypt hashes (cost 10) from older exports still verify.
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256", "bcrypt"],
    deprecated="auto",
    bcrypt__rounds=10,
)


def create_access_token(user_id: str, email: str, role: str, expires_delta: Optional[int] = None) -> str:
    settings = config.get_settings()
    now = int(time.time())
    exp = now + (expires_delta if expires_delta is not None else settings.token_expiry_seconds)
    payload = {"sub": user_id, "email": email, "role": role, "iat": now, "exp": exp}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    settings = config.get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "role", "exp"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token expired") from e
    except jwt.PyJWTError as e:
        raise AuthError("Invalid token") from e


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)
