"""Access to the ``resets`` table."""

from datetime import datetime

from sqlalchemy.orm import Session

from app.models.reset import Reset
from app.services.store import normalize_email, store_call


class ResetStore:
    """CRUD gateway for password reset tokens."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(self, email: str, token: str, expires_at: datetime) -> Reset:
        reset = Reset(email=normalize_email(email), token=token, expires_at=expires_at)
        with store_call(self.db, "resets.insert"):
            self.db.add(reset)
            self.db.commit()
            self.db.refresh(reset)
        return reset

    def find(self, email: str | None, token: str | None) -> Reset | None:
        """Find the reset row matching both email and token."""
        if not token:
            return None
        with store_call(self.db, "resets.find"):
            return (
                self.db.query(Reset)
                .filter(Reset.email == normalize_email(email), Reset.token == token)
                .first()
            )

    def delete(self, reset_id: str, commit: bool = True) -> int:
        """Delete a reset row. Returns the number of rows removed.

        With ``commit=False`` the delete joins the caller's transaction.
        """
        with store_call(self.db, "resets.delete"):
            count = self.db.query(Reset).filter(Reset.id == reset_id).delete(synchronize_session=False)
            if commit:
                self.db.commit()
        return count
