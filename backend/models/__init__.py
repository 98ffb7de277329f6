from .user import User
from .job_seeker import JobSeeker

__all__ = [
    "User",
    "JobSeeker",
]
