"""
Account endpoints: native register/login, identity handshake and /me.
"""
from typing import Optional
import logging

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session

from storefront_cms.auth import (
    create_access_token,
    get_current_user,
    hash_password,
    resolve_user,
    upsert_federated_user,
    verify_bearer,
    verify_password,
)
from storefront_cms.config import settings
from storefront_cms.db import get_db
from storefront_cms.errors import APIError
from storefront_cms.models import User
from storefront_cms.schemas import (
    AdminRegister,
    HandshakeResponse,
    TokenResponse,
    UserLogin,
    UserOut,
    UserRegister,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def require_native_mode() -> None:
    """Native account endpoints are disabled while an identity provider is in charge."""
    if settings.AUTH_MODE != "native":
        raise APIError(
            status.HTTP_405_METHOD_NOT_ALLOWED,
            "METHOD_NOT_ALLOWED",
            "Use the identity provider client SDK",
        )


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(token=create_access_token(user), user=UserOut.model_validate(user))


def _register(db: Session, payload: UserRegister, role: str) -> TokenResponse:
    if db.query(User).filter(User.email == payload.email).first():
        raise APIError(status.HTTP_409_CONFLICT, "EMAIL_EXISTS", "Email already registered")

    user = User(email=payload.email, name=payload.name, password_hash=hash_password(payload.password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"auth:native:register:ok user_id={user.id} role={role}")
    return _token_response(user)


@router.post(
    "/auth/user/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_native_mode)],
)
async def register_user(payload: UserRegister, db: Session = Depends(get_db)):
    return _register(db, payload, "USER")


@router.post("/auth/user/login", response_model=TokenResponse, dependencies=[Depends(require_native_mode)])
async def login_user(credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email).first()
    if not user or not user.password_hash or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"auth:native:login_failed email={credentials.email}")
        raise APIError(status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "Invalid email or password")
    logger.info(f"auth:native:login_success user_id={user.id}")
    return _token_response(user)


@router.post(
    "/auth/admin/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_native_mode)],
)
async def register_admin(payload: AdminRegister, db: Session = Depends(get_db)):
    """Create an ADMIN account; requires the configured bootstrap secret."""
    if not settings.ADMIN_BOOTSTRAP_SECRET or payload.secret != settings.ADMIN_BOOTSTRAP_SECRET:
        logger.warning(f"auth:native:admin_register_forbidden email={payload.email}")
        raise APIError(status.HTTP_403_FORBIDDEN, "FORBIDDEN", "Invalid bootstrap secret")
    return _register(db, payload, "ADMIN")


@router.post("/auth/admin/login", response_model=TokenResponse, dependencies=[Depends(require_native_mode)])
async def login_admin(credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email).first()
    if (
        not user
        or user.role != "ADMIN"
        or not user.password_hash
        or not verify_password(credentials.password, user.password_hash)
    ):
        logger.warning(f"auth:native:admin_login_failed email={credentials.email}")
        raise APIError(status.HTTP_401_UNAUTHORIZED, "INVALID_CREDENTIALS", "Invalid admin credentials")
    logger.info(f"auth:native:admin_login_success user_id={user.id}")
    return _token_response(user)


@router.post("/auth/handshake", response_model=HandshakeResponse)
async def handshake(authorization: Optional[str] = Header(None), db: Session = Depends(get_db)):
    """
    Confirm a bearer token and return the account it belongs to.

    In federated mode the account is created or linked on first contact;
    an existing role is preserved.
    """
    claims = await verify_bearer(authorization)
    if settings.AUTH_MODE == "native":
        user = resolve_user(db, claims)
        if user is None:
            raise APIError(status.HTTP_401_UNAUTHORIZED, "USER_NOT_FOUND", "User not found")
    else:
        user = upsert_federated_user(db, claims)

    logger.info(f"auth:handshake:{settings.AUTH_MODE}:success user_id={user.id} role={user.role}")
    return HandshakeResponse(user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    return UserOut.model_validate(user)
