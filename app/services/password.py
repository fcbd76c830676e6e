"""Password hashing with bcrypt."""

import bcrypt

# bcrypt only looks at the first 72 bytes; newer releases reject longer input.
BCRYPT_MAX_BYTES = 72


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


class PasswordHasher:
    """Hashes and verifies passwords. The cost factor is embedded in each digest."""

    def __init__(self, rounds: int = 8) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """Return a bcrypt digest for ``plaintext``."""
        return bcrypt.hashpw(_encode(plaintext), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plaintext: str | None, digest: str | None) -> bool:
        """Check ``plaintext`` against ``digest``. Returns False on mismatch or a malformed digest."""
        if plaintext is None or not digest:
            return False
        try:
            return bcrypt.checkpw(_encode(plaintext), digest.encode("utf-8"))
        except ValueError:
            return False
