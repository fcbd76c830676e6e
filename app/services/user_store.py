"""Access to the ``users`` table."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import DuplicateEmailError
from app.models.user import User
from app.services.store import normalize_email, store_call


class UserStore:
    """CRUD gateway for users. Emails are normalized on every read and write."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_email(self, email: str | None) -> User | None:
        with store_call(self.db, "users.find_by_email"):
            return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_id(self, user_id: str) -> User | None:
        with store_call(self.db, "users.find_by_id"):
            return self.db.get(User, user_id)

    def insert(self, name: str, email: str, pass_hash: str) -> User:
        """Insert an unapproved user. Raises DuplicateEmailError if the email is taken."""
        user = User(name=name, email=normalize_email(email), pass_hash=pass_hash, approved=False)
        with store_call(self.db, "users.insert"):
            try:
                self.db.add(user)
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise DuplicateEmailError("users.insert", e) from e
            self.db.refresh(user)
        return user

    def update_approved(self, email: str, approved: bool = True) -> int:
        """Set the approval flag. Returns the number of rows matched."""
        with store_call(self.db, "users.update_approved"):
            count = (
                self.db.query(User)
                .filter(User.email == normalize_email(email))
                .update({User.approved: approved}, synchronize_session=False)
            )
            self.db.commit()
        return count

    def update_pass_hash_by_email(self, email: str, pass_hash: str) -> int:
        with store_call(self.db, "users.update_pass_hash"):
            count = (
                self.db.query(User)
                .filter(User.email == normalize_email(email))
                .update({User.pass_hash: pass_hash}, synchronize_session=False)
            )
            self.db.commit()
        return count

    def update_pass_hash_by_id(self, user_id: str, pass_hash: str) -> int:
        with store_call(self.db, "users.update_pass_hash"):
            count = (
                self.db.query(User)
                .filter(User.id == user_id)
                .update({User.pass_hash: pass_hash}, synchronize_session=False)
            )
            self.db.commit()
        return count
