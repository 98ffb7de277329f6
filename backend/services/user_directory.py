"""
User directory backed by the application database.

Maps verified Telegram identities to internal users.  Database errors are
wrapped in :class:`CollaboratorFailure` and never retried.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import CollaboratorFailure
from auth.init_data import IdentityClaim
from auth.jwt_service import ResolvedUser
from models import User

logger = logging.getLogger(__name__)

COLLABORATOR = "user_directory"


def to_resolved(user: User) -> ResolvedUser:
    return ResolvedUser(
        id=user.id,
        external_id=user.telegram_id,
        first_name=user.first_name,
        last_name=user.last_name,
    )


class UserDirectory:
    """Lookup-or-create of users by external (Telegram) identity."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_external_id(self, external_id: str) -> Optional[User]:
        try:
            result = await self.db.execute(
                select(User).where(User.telegram_id == external_id)
            )
        except SQLAlchemyError as exc:
            logger.error(f"User lookup failed for telegram_id={external_id}: {exc}")
            raise CollaboratorFailure(COLLABORATOR) from exc
        return result.scalar_one_or_none()

    async def create_user(
        self,
        external_id: str,
        first_name: str,
        last_name: str,
        username: Optional[str] = None,
    ) -> User:
        """
        Insert a new user.

        A concurrent first login for the same account trips the unique
        constraint; in that case the row the other request created is
        returned instead.
        """
        user = User(
            telegram_id=external_id,
            first_name=first_name,
            last_name=last_name,
            username=username,
            last_login_at=datetime.now(timezone.utc),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.info(f"User telegram_id={external_id} created concurrently, reusing it")
            existing = await self.find_by_external_id(external_id)
            if existing is None:
                raise CollaboratorFailure(COLLABORATOR, "User could not be created")
            return existing
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error(f"User creation failed for telegram_id={external_id}: {exc}")
            raise CollaboratorFailure(COLLABORATOR) from exc

        await self.db.refresh(user)
        logger.info(f"Created user id={user.id} for telegram_id={external_id}")
        return user

    async def touch_login(self, user: User) -> None:
        user.last_login_at = datetime.now(timezone.utc)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            raise CollaboratorFailure(COLLABORATOR) from exc

    async def resolve(self, claim: IdentityClaim) -> tuple[ResolvedUser, bool]:
        """
        Find the user for a verified claim, creating it on first login.

        Returns:
            ``(resolved_user, created)``.
        """
        user = await self.find_by_external_id(claim.external_id)
        if user is not None:
            await self.touch_login(user)
            return to_resolved(user), False

        user = await self.create_user(
            external_id=claim.external_id,
            first_name=claim.first_name,
            last_name=claim.last_name,
            username=claim.username,
        )
        return to_resolved(user), True
