import hashlib
import hmac
import re
from dataclasses import dataclass

import bcrypt

BCRYPT_ROUNDS = 12

_BCRYPT_PREFIX = re.compile(r"^\$2[aby]\$")
_BCRYPT_HASH = re.compile(r"^\$2[aby]\$(\d{2})\$[./A-Za-z0-9]{53}$")


@dataclass(frozen=True)
class LegacyHash:
    """Unsalted uppercase-hex SHA-256 as written by older deployments."""

    digest: str


@dataclass(frozen=True)
class ModernHash:
    cost: int
    value: str


PasswordHash = LegacyHash | ModernHash


@dataclass(frozen=True)
class VerifyResult:
    ok: bool
    needs_upgrade: bool


def parse_hash(stored: str) -> PasswordHash:
    if _BCRYPT_PREFIX.match(stored):
        match = _BCRYPT_HASH.match(stored)
        if match is None:
            raise ValueError("Malformed password hash")
        return ModernHash(cost=int(match.group(1)), value=stored)
    return LegacyHash(digest=stored)


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, stored: str) -> VerifyResult:
    parsed = parse_hash(stored)
    if isinstance(parsed, ModernHash):
        ok = bcrypt.checkpw(password.encode("utf-8"), parsed.value.encode("utf-8"))
        return VerifyResult(ok=ok, needs_upgrade=ok and parsed.cost < BCRYPT_ROUNDS)

    candidate = hashlib.sha256(password.encode()).hexdigest()
    ok = hmac.compare_digest(candidate.upper(), parsed.digest.upper())
    return VerifyResult(ok=ok, needs_upgrade=ok)
