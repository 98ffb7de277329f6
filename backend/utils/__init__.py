# Utils package
from .audit import audit, AuditLogger
from .logging_utils import setup_logging, get_logger, LogTimer

__all__ = ['audit', 'AuditLogger', 'setup_logging', 'get_logger', 'LogTimer']
