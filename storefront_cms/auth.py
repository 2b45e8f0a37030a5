"""
Authentication and role checks for the storefront CMS.

Two modes, selected by AUTH_MODE:
- native: the service issues and verifies its own HS256 tokens
- federated: tokens are RS256 JWTs signed by the identity provider and
  verified against its JWKS endpoint
"""
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional
import asyncio
import logging

from fastapi import Depends, Header, status
from passlib.context import CryptContext
from sqlalchemy.orm import Session
import jwt

from storefront_cms.config import settings
from storefront_cms.db import get_db
from storefront_cms.errors import APIError
from storefront_cms.models import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ROLE_RANK = {"USER": 0, "AGENT": 1, "ADMIN": 2}

# Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _native_secret() -> str:
    if not settings.JWT_SECRET:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "MISSING_ENV", "Missing environment variable: JWT_SECRET")
    return settings.JWT_SECRET


def create_access_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload = {"sub": user.id, "email": user.email, "role": user.role, "exp": expire}
    return jwt.encode(payload, _native_secret(), algorithm=ALGORITHM)


def decode_native_token(token: str) -> dict:
    """Raises jwt.InvalidTokenError on a bad signature, expiry or malformed token."""
    return jwt.decode(token, _native_secret(), algorithms=[ALGORITHM])


@lru_cache(maxsize=4)
def get_jwk_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url, cache_keys=True, lifespan=3600)


def decode_federated_token(token: str) -> dict:
    """
    Verify an identity-provider token against the configured JWKS.

    Raises:
        APIError: 500 MISSING_ENV if IDP_JWKS_URL is unset
        jwt.PyJWTError: If the token or its signing key cannot be verified
    """
    if not settings.IDP_JWKS_URL:
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "MISSING_ENV", "Missing environment variable: IDP_JWKS_URL")
    signing_key = get_jwk_client(settings.IDP_JWKS_URL).get_signing_key_from_jwt(token)
    return jwt.decode(token, signing_key.key, algorithms=["RS256"], options={"verify_aud": False})


def bearer_token(authorization: Optional[str]) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer" or not token.strip():
        raise APIError(status.HTTP_401_UNAUTHORIZED, "UNAUTHORIZED", "Missing Bearer token")
    return token.strip()


def verify_token(token: str) -> dict:
    """Decode a bearer token according to the active auth mode."""
    try:
        if settings.AUTH_MODE == "native":
            return decode_native_token(token)
        return decode_federated_token(token)
    except jwt.PyJWTError as e:
        logger.warning(f"Token verification failed ({settings.AUTH_MODE}): {e}")
        raise APIError(status.HTTP_401_UNAUTHORIZED, "INVALID_TOKEN", "Invalid token") from e


async def verify_bearer(authorization: Optional[str]) -> dict:
    """Verify the Authorization header off the event loop; a JWKS refresh is a blocking fetch."""
    return await asyncio.to_thread(verify_token, bearer_token(authorization))


def resolve_user(db: Session, claims: dict) -> Optional[User]:
    """Find the account a verified token refers to."""
    subject = claims.get("sub")
    email = claims.get("email")
    user = None
    if subject:
        if settings.AUTH_MODE == "native":
            user = db.query(User).filter(User.id == subject).first()
        else:
            user = db.query(User).filter(User.external_id == subject).first()
    if user is None and email:
        user = db.query(User).filter(User.email == email).first()
    return user


def upsert_federated_user(db: Session, claims: dict) -> User:
    """
    Idempotently link an identity-provider subject to a local account.

    Matches by external_id, then by email, else creates a USER. An existing
    role is never changed.
    """
    external_id = claims.get("sub")
    email = claims.get("email")
    name = claims.get("name")
    if not external_id or not email:
        raise APIError(status.HTTP_401_UNAUTHORIZED, "MISSING_CLAIMS", "Missing required claims")

    user = db.query(User).filter(User.external_id == external_id).first()
    if user is not None:
        user.email = email
        user.name = name or user.name or email
    else:
        user = db.query(User).filter(User.email == email).first()
        if user is not None:
            user.external_id = external_id
            user.name = name or user.name or email
        else:
            user = User(external_id=external_id, email=email, name=name or email, role="USER")
            db.add(user)
    db.commit()
    db.refresh(user)
    return user


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> User:
    """
    Resolve the authenticated user from the Authorization header.

    Raises:
        APIError: 401 if the token is missing, invalid or unknown
    """
    claims = await verify_bearer(authorization)
    user = resolve_user(db, claims)
    if user is None:
        raise APIError(status.HTTP_401_UNAUTHORIZED, "USER_NOT_FOUND", "User not found")
    return user


def has_role(user: User, minimum: str) -> bool:
    return ROLE_RANK.get(user.role, -1) >= ROLE_RANK[minimum]


def require_role(minimum: str):
    """Dependency factory: the current user must hold at least `minimum`."""
    async def dependency(user: User = Depends(get_current_user)) -> User:
        if not has_role(user, minimum):
            logger.warning(f"Forbidden: user_id={user.id}, role={user.role}, required={minimum}")
            raise APIError(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Insufficient role")
        return user
    return dependency


require_admin = require_role("ADMIN")
