"""Account service — the credential store.

Learn: Accounts are write-once apart from the password digest, which is
only replaced when a legacy plaintext row is upgraded to bcrypt.
Login failures never say whether the email exists.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from matrixstore.auth.password import hash_password, needs_upgrade, verify_password
from matrixstore.db.models import User
from matrixstore.db.transactions import storage_errors
from matrixstore.errors import EmailAlreadyRegistered, InvalidCredentials

logger = structlog.get_logger()


class AccountService:
    """Business logic for account creation and login."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> User | None:
        async with storage_errors(self.db, "account.lookup"):
            result = await self.db.execute(select(User).where(User.email == email))
            return result.scalars().first()

    async def create_account(self, email: str, password: str) -> User:
        """Hash the password and insert the account.

        Raises EmailAlreadyRegistered, HashingError or StorageError.
        """
        password_hash = hash_password(password)
        user = User(email=email, password_hash=password_hash)

        async with storage_errors(self.db, "account.create"):
            self.db.add(user)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                raise EmailAlreadyRegistered() from e
            await self.db.refresh(user)

        logger.info("account.created", user_id=user.id)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Return the user for valid credentials, else raise InvalidCredentials."""
        user = await self.get_by_email(email)
        if not user or not user.password_hash:
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()

        # Upgrade legacy plaintext rows to bcrypt on successful login
        if needs_upgrade(user.password_hash):
            user.password_hash = hash_password(password)
            async with storage_errors(self.db, "account.upgrade_hash"):
                await self.db.commit()
            logger.info("account.password_upgraded", user_id=user.id)

        return user
