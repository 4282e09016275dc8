from passlib.hash import bcrypt


class PasswordHasher:
    def __init__(self, rounds: int = 12):
        self._handler = bcrypt.using(rounds=rounds)

    def hash(self, plain_password: str) -> str:
        return self._handler.hash(plain_password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        try:
            return self._handler.verify(plain_password, hashed_password)
        except (ValueError, TypeError):
            # malformed or foreign digest
            return False
