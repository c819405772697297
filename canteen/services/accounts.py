"""
Account Registration & Login

Signup enforces the role/canteen pairing: kitchen accounts must name an
active canteen, every other role must not name one. Both operations answer
with the public user record and a fresh bearer token.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from canteen.core.config import Settings
from canteen.core.exceptions import (
    AuthorizationError,
    EmailAlreadyRegistered,
    InvalidCanteen,
    InvalidCredentials,
    StoreError,
    ValidationError,
)
from canteen.core.security import create_access_token, hash_password, verify_password
from canteen.models import User, UserRole
from canteen.schemas import AuthResponse, LoginRequest, SignupRequest, UserResponse
from canteen.services.directory import CanteenDirectory

logger = logging.getLogger(__name__)


def parse_role(value: str) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        raise ValidationError("Invalid role")


def normalize_email(value: str) -> str:
    return value.strip().lower()


class AccountService:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        directory: Optional[CanteenDirectory] = None,
    ):
        self.session = session
        self.settings = settings
        self.directory = directory or CanteenDirectory(session)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def signup(self, data: SignupRequest) -> AuthResponse:
        """
        Raises:
            ValidationError: unknown role, or canteenId missing/forbidden for the role
            InvalidCanteen: kitchen canteen does not exist or is inactive
            EmailAlreadyRegistered: the email is taken
        """
        role = parse_role(data.role)

        if role == UserRole.KITCHEN:
            if data.canteen_id is None:
                raise ValidationError("canteenId is required for kitchen users")
            if await self.directory.get_active(data.canteen_id) is None:
                raise InvalidCanteen()
        elif data.canteen_id is not None:
            raise ValidationError("canteenId is only allowed for kitchen users")

        email = normalize_email(data.email)
        if await self.get_by_email(email) is not None:
            raise EmailAlreadyRegistered()

        user = User(
            name=data.name.strip(),
            email=email,
            password_hash=hash_password(self.settings, data.password),
            role=role,
            canteen_id=data.canteen_id if role == UserRole.KITCHEN else None,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent signup for the same email
            await self.session.rollback()
            raise EmailAlreadyRegistered() from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to create account for {email}: {e}")
            raise StoreError("Failed to create account") from e

        logger.info(f"Account #{user.id} registered ({role.value})")
        return self._issue(user)

    async def login(self, data: LoginRequest) -> AuthResponse:
        """
        Raises:
            InvalidCredentials: unknown email or wrong password
            AuthorizationError: the account exists but has a different role
        """
        user = await self.get_by_email(data.email)
        if user is None or not verify_password(user.password_hash, data.password):
            logger.info("Login failed: invalid credentials")
            raise InvalidCredentials()

        if user.role.value != data.role:
            logger.info(f"Login refused for user #{user.id}: role {data.role!r} requested")
            raise AuthorizationError("Invalid role for this account")

        return self._issue(user)

    def _issue(self, user: User) -> AuthResponse:
        return AuthResponse(
            user=UserResponse.model_validate(user),
            token=create_access_token(self.settings, user.id, user.role),
        )
