from fastapi import APIRouter, Depends, HTTPException, status, Request

from app.core.config import settings
from app.core.database import get_storage
from app.core.logging_config import logger, set_user_id
from app.core.rate_limiter import limiter, LOGIN_LIMIT, REGISTER_LIMIT
from app.core.security import verify_password, get_password_hash, create_user_token
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_user
from app.schemas.auth import (
    UserRegister,
    UserLogin,
    UserResponse,
    UserDetailResponse,
    LoginResponse,
    RegisterResponse,
)
from app.storage import Storage

router = APIRouter()


def user_response(user: User) -> UserResponse:
    return UserResponse(id=user.id, name=user.name, email=user.email, role=user.role.value)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
async def register(
    request: Request,
    user_data: UserRegister,
    storage: Storage = Depends(get_storage)
):
    """Register new user (rate limited: 3/min)"""
    client_ip = request.client.host if request.client else "unknown"

    existing_user = await storage.users.get_by_email(user_data.email)
    if existing_user:
        logger.log_auth_event(
            event="register",
            success=False,
            user_email=user_data.email,
            reason="Email already registered",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists"
        )

    # E-mails listed in ADMIN_EMAILS become admins on sign-up
    role = UserRole.ADMIN if user_data.email in settings.ADMIN_EMAILS else UserRole.USER

    user = await storage.users.create(
        name=user_data.name,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=role,
    )

    logger.log_auth_event(
        event="register",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value,
        storage_mode=storage.mode
    )

    return RegisterResponse(
        token=create_user_token(user.id, user.email),
        user=user_response(user)
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,
    credentials: UserLogin,
    storage: Storage = Depends(get_storage)
):
    """Login user (rate limited: 5/min)"""
    client_ip = request.client.host if request.client else "unknown"

    user = await storage.users.get_by_email(credentials.email)

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.log_auth_event(
            event="login",
            success=False,
            user_email=credentials.email,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid credentials"
        )

    set_user_id(user.id)

    logger.log_auth_event(
        event="login",
        success=True,
        user_email=user.email,
        client_ip=client_ip,
        user_role=user.role.value
    )

    return LoginResponse(
        token=create_user_token(user.id, user.email),
        user=user_response(user)
    )


@router.get("/me", response_model=UserDetailResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user info"""
    return UserDetailResponse(**current_user.public_dict())
