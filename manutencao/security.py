import hashlib
import secrets
from datetime import datetime, timezone
from uuid import uuid4

from jose import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(subject: str, secret: str, expire_minutes: int = 120) -> str:
    now = datetime.now(timezone.utc)
    iat = int(now.timestamp())
    exp = iat + expire_minutes * 60

    payload = {
        "sub": subject,
        "iat": iat,
        "exp": exp,
        "jti": uuid4().hex,
        "type": "access",
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_token(token: str, secret: str) -> str:
    payload = jwt.decode(token, secret, algorithms=[ALGORITHM])

    sub = payload.get("sub")
    if not sub:
        raise ValueError("Missing subject")

    if payload.get("type") not in (None, "access"):
        raise ValueError("Invalid token type")
    return sub


def new_reset_token() -> str:
    return secrets.token_urlsafe(32)


def hash_reset_token(token: str) -> str:
    # determinístico para a busca; o token já tem 256 bits aleatórios
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
