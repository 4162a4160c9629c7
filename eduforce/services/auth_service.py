"""Authentication service for user management."""
import uuid
from datetime import datetime, timezone, timedelta
from typing import List, Optional, Union

import bcrypt
import jwt

from eduforce.domain.errors import (
    AuthenticationError,
    EmailAlreadyRegisteredError,
    InvalidInputError,
    UserNotFoundError,
)
from eduforce.domain.models.api_models import (
    ChangePasswordRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from eduforce.domain.models.db_models import User
from eduforce.domain.repositories import IUserRepository
from eduforce.infrastructure.config import settings
from ef_utils.logger_utils import logger


class AuthenticatedUser:
    """Flask-Login compatible user wrapper."""

    def __init__(self, user: User):
        self.user = user
        self.id = user.id
        self.is_authenticated = True
        self.is_active = True
        self.is_anonymous = False

    def get_id(self):
        return self.id


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a hash."""
    if not password_hash:
        return False
    return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))


def create_access_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "role": user.role.value,
        "iat": now,
        "exp": now + timedelta(minutes=settings.JWT_EXPIRES_MINUTES),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """Return the user id carried by a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired access token")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected invalid access token: {e}")
        return None
    return payload.get("sub")


def register_user(users: IUserRepository, request: RegisterRequest) -> User:
    """Create a new user."""
    email = request.email.lower()
    if users.get_by_email(email) is not None:
        raise EmailAlreadyRegisteredError()

    now = datetime.now(timezone.utc)
    user = User(
        _id=str(uuid.uuid4()),
        full_name=request.full_name,
        email=email,
        password_hash=hash_password(request.password),
        role=request.role,
        created_at=now,
        updated_at=now,
    )
    users.create(user)
    return user


def authenticate_user(users: IUserRepository, email: str, password: str) -> User:
    """Authenticate a user by email and password."""
    user = users.get_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password.")
    logger.info(f"User authenticated: {user.id}")
    return user


def _normalize_interests(value: Union[List[str], str]) -> List[str]:
    items = value.split(",") if isinstance(value, str) else value
    return [item.strip() for item in items if item and item.strip()]


def update_profile(users: IUserRepository, user_id: str, request: UpdateProfileRequest) -> User:
    user = users.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError()

    if request.email is not None:
        new_email = request.email.lower()
        if new_email != user.email:
            existing = users.get_by_email(new_email)
            if existing is not None and existing.id != user.id:
                raise EmailAlreadyRegisteredError("This email is already in use by another account.")
            user.email = new_email

    if request.full_name is not None:
        user.full_name = request.full_name
    if request.phone_number is not None:
        user.phone_number = request.phone_number
    if request.bio is not None:
        user.bio = request.bio
    if request.interests is not None:
        user.interests = _normalize_interests(request.interests)
    if request.date_of_birth is not None:
        user.date_of_birth = _parse_date(request.date_of_birth)

    user.updated_at = datetime.now(timezone.utc)
    users.update(user)
    return user


def _parse_date(value: Union[datetime, str]) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise InvalidInputError("dateOfBirth must be an ISO date.") from e


def change_password(users: IUserRepository, user_id: str, request: ChangePasswordRequest) -> None:
    user = users.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    if not verify_password(request.current_password, user.password_hash):
        raise AuthenticationError("Incorrect current password.")

    user.password_hash = hash_password(request.new_password)
    user.updated_at = datetime.now(timezone.utc)
    users.update(user)
    logger.info(f"Password changed for user {user_id}")
