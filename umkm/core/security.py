import base64
import hashlib
import hmac
import secrets
from dataclasses import dataclass

from umkm.core.config import settings


PASSWORD_ALGORITHM = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 390_000


@dataclass(frozen=True)
class SessionTokenParts:
    prefix: str
    plain: str
    hashed: str


def generate_session_token(prefix_len: int = 8) -> SessionTokenParts:
    # Example: adm_<prefix>_<random>
    raw = secrets.token_urlsafe(32)
    prefix = raw[:prefix_len]
    plain = f"adm_{prefix}_{raw}"
    hashed = hash_session_token(plain)
    return SessionTokenParts(prefix=prefix, plain=plain, hashed=hashed)


def hash_session_token(plain: str) -> str:
    # Pepper protects against rainbow tables if DB leaks.
    salted = (plain + settings.session_token_pepper.get_secret_value()).encode("utf-8")
    digest = hashlib.sha256(salted).digest()
    return base64.b64encode(digest).decode("utf-8")


def hash_password(password: str, *, iterations: int = PASSWORD_ITERATIONS) -> str:
    """
    Salted PBKDF2 hash, encoded as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``.
    """
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return "$".join(
        [
            PASSWORD_ALGORITHM,
            str(iterations),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(digest).decode("ascii"),
        ]
    )


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt_b64, hash_b64 = encoded.split("$")
    except ValueError:
        return False
    if algorithm != PASSWORD_ALGORITHM:
        return False

    salt = base64.b64decode(salt_b64)
    expected = base64.b64decode(hash_b64)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(iterations))
    return hmac.compare_digest(digest, expected)
