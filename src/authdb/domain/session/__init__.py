"""Session domain: TTL-bound session records."""

from authdb.domain.session.records import SessionRecord

__all__ = ["SessionRecord"]
