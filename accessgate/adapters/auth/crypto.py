import hashlib
import hmac
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from jose import JWTError, jwt
from passlib.context import CryptContext

from accessgate.rules.models import SystemLockRules

ALGORITHM = "HS256"
ACCESS_SCOPE = "access"
BYPASS_SCOPE = "maintenance_bypass"


def digest(*parts: str) -> str:
    """SHA-256 of the joined parts, for single-use codes and tokens at rest."""
    return hashlib.sha256(":".join(parts).encode()).hexdigest()


def digests_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


class Argon2SecretHasher:
    """Slow hash for the system lock PIN.

    Hashing runs on a dedicated pool so a burst of PIN checks cannot occupy
    every request worker at once.
    """

    def __init__(self, rules: SystemLockRules | None = None) -> None:
        rules = rules or SystemLockRules()
        self.ph = PasswordHasher(
            time_cost=rules.hash_time_cost,
            memory_cost=rules.hash_memory_cost_kib,
            parallelism=rules.hash_parallelism,
        )
        self._pool = ThreadPoolExecutor(
            max_workers=rules.hash_pool_workers, thread_name_prefix="secret-hash"
        )

    def hash_secret(self, secret: str) -> str:
        return self._pool.submit(self.ph.hash, secret).result()

    def verify_secret(self, secret: str, hash_str: str) -> bool:
        return self._pool.submit(self._verify, secret, hash_str).result()

    def _verify(self, secret: str, hash_str: str) -> bool:
        try:
            return bool(self.ph.verify(hash_str, secret))
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def shutdown(self) -> None:
        self._pool.shutdown(wait=True)


class PasswordAdapter:
    """Account password hashing via passlib."""

    def __init__(self) -> None:
        self.pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

    def hash_password(self, password: str) -> str:
        result: str = self.pwd_context.hash(password)
        return result

    def verify_password(self, plain: str, hashed: str) -> bool:
        result: bool = self.pwd_context.verify(plain, hashed)
        return result


class JWTTokenAdapter:
    """Signed access and bypass tokens."""

    def __init__(self, secret_key: str) -> None:
        self.secret_key = secret_key

    def _encode(self, claims: dict[str, Any], ttl: timedelta, now_utc: datetime | None) -> str:
        current_time = now_utc if now_utc is not None else datetime.now(UTC)
        to_encode = claims.copy()
        to_encode.update({"exp": current_time + ttl, "iat": current_time})
        encoded: str = jwt.encode(to_encode, self.secret_key, algorithm=ALGORITHM)
        return encoded

    def _decode(self, token: str) -> dict[str, Any] | None:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[ALGORITHM])
            return cast(dict[str, Any], payload)
        except JWTError:
            return None

    def create_access_token(
        self, user_id: Any, ttl_minutes: int = 24 * 60, now_utc: datetime | None = None
    ) -> str:
        return self._encode(
            {"sub": str(user_id), "scope": ACCESS_SCOPE}, timedelta(minutes=ttl_minutes), now_utc
        )

    def decode_access_token(self, token: str) -> str | None:
        """Return the user id of a valid access token."""
        payload = self._decode(token)
        if not payload or payload.get("scope") != ACCESS_SCOPE:
            return None
        sub = payload.get("sub")
        return sub if isinstance(sub, str) else None

    def create_bypass_token(
        self, identity: str, ttl_minutes: int, now_utc: datetime | None = None
    ) -> str:
        return self._encode(
            {"sub": identity, "scope": BYPASS_SCOPE}, timedelta(minutes=ttl_minutes), now_utc
        )

    def decode_bypass_token(self, token: str) -> str | None:
        """Return the identity a valid bypass cookie was issued to."""
        payload = self._decode(token)
        if not payload or payload.get("scope") != BYPASS_SCOPE:
            return None
        sub = payload.get("sub")
        return sub if isinstance(sub, str) else None
