"""
Authentication package for RendoJobs.

Provides:
- Telegram Mini App initData signature verification
- Session token (JWT) issuance and validation
- FastAPI dependencies for bearer authentication
"""
