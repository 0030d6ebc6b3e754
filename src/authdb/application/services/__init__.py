"""Application services of the identity store."""

from authdb.application.services.email_registry import EmailRegistry
from authdb.application.services.role_registry import RoleRegistry
from authdb.application.services.session_manager import SessionManager
from authdb.application.services.user_registry import UserRegistry

__all__ = ["EmailRegistry", "RoleRegistry", "SessionManager", "UserRegistry"]
