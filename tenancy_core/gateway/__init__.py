"""
HTTP surface of the tenancy core: Flask app factory and operation audit log.
"""
from .app import create_app
from .audit_log import AuditLog

__all__ = ["create_app", "AuditLog"]
