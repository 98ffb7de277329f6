"""
Structured audit logging module for the RendoJobs backend.

This module provides an AuditLogger class that logs events to a dedicated 'audit' logger
in structured JSON format. It supports context-aware request_id propagation across async
calls using contextvars.ContextVar.

Key features:
- Async-safe request_id and actor tracking via ContextVar
- Structured JSON output with ISO8601 timestamps
- Convenience methods for login, registration and CV upload events
- Never records secrets, hashes or tokens
"""

import json
import logging
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Context variable for tracking request_id across async calls
_request_id_context: ContextVar[Optional[str]] = ContextVar(
    'request_id', default=None
)

# Context variable for tracking actor (authenticated user) across async calls
_actor_context: ContextVar[Optional[str]] = ContextVar(
    'actor', default=None
)


class AuditLogger:
    """
    Structured audit logger for security-relevant backend operations.

    All events are written to a dedicated 'audit' logger in JSON format.
    """

    def __init__(self):
        self.logger = logging.getLogger('audit')

    def set_request_id(self, request_id: str) -> None:
        _request_id_context.set(request_id)

    def get_request_id(self) -> Optional[str]:
        return _request_id_context.get()

    def set_actor(self, actor: str) -> None:
        """Set the authenticated user for this request context."""
        _actor_context.set(actor)

    def get_actor(self) -> Optional[str]:
        """Get the current actor from context, or None."""
        return _actor_context.get()

    def log(
        self,
        action: str,
        actor: str,
        resource: str,
        resource_id: str,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Core method to log a structured audit event.

        Args:
            action: Type of action performed (e.g., 'LOGIN', 'REGISTER')
            actor: User performing the action; ``'user'`` means "take it from context"
            resource: Type of resource affected (e.g., 'User', 'JobSeeker')
            resource_id: Unique identifier of the affected resource
            status: Result status (e.g., 'success', 'failure')
            details: Optional dict of additional context
        """
        event = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'action': action,
            'actor': actor if actor != 'user' else (self.get_actor() or 'user'),
            'resource': resource,
            'resource_id': resource_id,
            'status': status,
            'request_id': self.get_request_id(),
            'details': details or {},
        }
        self.logger.info(json.dumps(event, default=str))

    def log_login(self, user_id: int, telegram_id: str, created: bool) -> None:
        self.log(
            action='LOGIN',
            actor=f"telegram:{telegram_id}",
            resource='User',
            resource_id=str(user_id),
            status='success',
            details={'method': 'telegram_init_data', 'new_user': created},
        )

    def log_login_failure(self, reason: str) -> None:
        """
        Log a rejected login attempt.

        Args:
            reason: Failure code (e.g. 'signature_mismatch'); never the payload
        """
        self.log(
            action='LOGIN_FAILED',
            actor='anonymous',
            resource='User',
            resource_id='unknown',
            status='failure',
            details={'reason': reason},
        )

    def log_registration(
        self,
        job_seeker_id: Optional[int],
        telegram_id: str,
        status: str,
        has_cv: bool = False,
        error_message: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {'telegram_id': telegram_id, 'has_cv': has_cv}
        if error_message:
            details['error_message'] = error_message

        self.log(
            action='REGISTER',
            actor='user',
            resource='JobSeeker',
            resource_id=str(job_seeker_id) if job_seeker_id is not None else 'none',
            status=status,
            details=details,
        )

    def log_cv_upload(
        self,
        object_key: str,
        size_bytes: int,
        backend: str,
        status: str,
    ) -> None:
        self.log(
            action='CV_UPLOAD',
            actor='user',
            resource='ObjectStore',
            resource_id=object_key,
            status=status,
            details={'size_bytes': size_bytes, 'backend': backend},
        )


# Global audit logger instance for convenient import
audit = AuditLogger()
