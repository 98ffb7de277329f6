from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String
from database import Base


class JobSeeker(Base):
    """SQLAlchemy model for job-seeker registrations."""

    __tablename__ = "jobseekers"

    id = Column(Integer, primary_key=True, index=True)

    # Identity
    telegram_id = Column(String(32), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone_number = Column(String(32), nullable=True)

    # Profile
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    date_of_birth = Column(String(10), nullable=True)  # ISO date, YYYY-MM-DD

    # CV stored in the object store; public URL only
    cv_url = Column(String(1024), nullable=True)

    # Free-form questionnaire answers from the Mini App
    career_questions = Column(JSON, nullable=True)

    created_at = Column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )

    __table_args__ = (
        Index("idx_jobseeker_telegram_id", "telegram_id"),
        Index("idx_jobseeker_email", "email"),
    )

    def __repr__(self):
        return f"<JobSeeker(id={self.id}, telegram_id={self.telegram_id}, email={self.email})>"
