"""Shared helpers for the store gateways."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import StoreError


def normalize_email(email: str | None) -> str:
    return str(email or "").strip().lower()


@contextmanager
def store_call(db: Session, operation: str) -> Iterator[None]:
    """Roll back and re-raise any SQLAlchemy failure as StoreError."""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError(operation, e) from e
