"""
User Service - registration and login.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payhub.core.exceptions import AuthenticationError, EmailAlreadyRegistered
from payhub.core.security import hash_password, verify_password
from payhub.models.user import User


class UserService:
    """
    Service for user accounts.

    Usage:
        users = UserService(db_session)
        user = await users.register("Ada", "ada@example.com", "s3cret!")
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_user(self, user_id: str) -> User | None:
        return await self.db.get(User, user_id)

    async def list_users(self, limit: int = 50, offset: int = 0) -> list[User]:
        query = select(User).order_by(User.created_at.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_by_email(self, email: str) -> User | None:
        query = select(User).where(User.email == email.lower())
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        phone: str | None = None,
    ) -> User:
        """
        Create a user account.

        Raises:
            EmailAlreadyRegistered: If the email is taken
        """
        if await self.get_by_email(email):
            raise EmailAlreadyRegistered(email)

        user = User(
            name=name,
            email=email.lower(),
            hashed_password=hash_password(password),
            phone=phone,
        )
        self.db.add(user)
        await self.db.flush()

        logger.info(f"Registered user {user.id}")
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check credentials and record the login.

        Raises:
            AuthenticationError: On unknown email, wrong password or inactive user
        """
        user = await self.get_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            logger.warning("Failed login attempt")
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("User is inactive")

        user.last_login_at = datetime.utcnow()
        await self.db.flush()
        return user
