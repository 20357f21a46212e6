from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer

from laborhub.extensions import db

# Use BIGINT in PostgreSQL, but INTEGER in SQLite so autoincrement works.
PKType = BigInteger().with_variant(Integer, "sqlite")


def utcnow():
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value else None


def money(value):
    return str(value) if value is not None else None


class TimestampMixin:
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
