"""User model for Telegram Mini App logins."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String
from database import Base


class User(Base):
    """
    Application user, created on first successful Mini App login.

    ``telegram_id`` is the external identity taken from the verified
    ``initData`` user claim; it is unique so concurrent first logins for the
    same Telegram account cannot create two rows.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    telegram_id = Column(String(32), unique=True, nullable=False, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)

    created_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )
    last_login_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<User id={self.id} telegram_id={self.telegram_id}>"
