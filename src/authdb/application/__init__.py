from authdb.application.auth_db import AuthDB

__all__ = ["AuthDB"]
