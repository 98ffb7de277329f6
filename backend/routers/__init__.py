from .auth import router as auth_router
from .jobseekers import router as jobseekers_router

__all__ = [
    "auth_router",
    "jobseekers_router",
]
