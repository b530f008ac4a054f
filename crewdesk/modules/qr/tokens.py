"""Wire format of appointment QR tokens.

A token is an HS256 JWT carrying the appointment id (``sub``), the token id
(``jti``), a per-appointment version (``ver``) and ``iat``/``exp`` in epoch
seconds. Expiry is checked by the caller against its own clock, so this
module only vouches for signature and shape.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlsplit, parse_qs, quote
from jose import jwt, JWTError
from crewdesk.core.errors import InvalidTokenError

TOKEN_TYPE = "appointment_qr"
ALGORITHM = "HS256"


@dataclass(frozen=True)
class QrClaims:
    appointment_id: uuid.UUID
    token_id: str
    version: int
    issued_at: int
    expires_at: int

    def expires_at_dt(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)

    def is_expired(self, now: datetime) -> bool:
        return now.timestamp() > self.expires_at


def encode_qr_token(claims: QrClaims, secret: str) -> str:
    return jwt.encode(
        {
            "typ": TOKEN_TYPE,
            "sub": str(claims.appointment_id),
            "jti": claims.token_id,
            "ver": claims.version,
            "iat": claims.issued_at,
            "exp": claims.expires_at,
        },
        secret,
        algorithm=ALGORITHM,
    )


def decode_qr_token(token: str, secret: str) -> QrClaims:
    try:
        data = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"verify_exp": False, "verify_aud": False})
    except JWTError:
        raise InvalidTokenError("Invalid QR code.")
    if data.get("typ") != TOKEN_TYPE:
        raise InvalidTokenError("Invalid QR code.")
    try:
        return QrClaims(
            appointment_id=uuid.UUID(str(data["sub"])),
            token_id=str(data["jti"]),
            version=int(data["ver"]),
            issued_at=int(data["iat"]),
            expires_at=int(data["exp"]),
        )
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError("Invalid QR code.")


def extract_token(token_or_url: str | None) -> str:
    """Accept the bare token or the scanned verification URL."""
    raw = (token_or_url or "").strip()
    if "?" in raw or "://" in raw:
        found = parse_qs(urlsplit(raw).query).get("token")
        raw = (found[0] if found else "").strip()
    if not raw:
        raise InvalidTokenError("Missing token.")
    return raw


def verification_url(base: str, token: str) -> str:
    return f"{base.rstrip('/')}/guard/verify?token={quote(token, safe='')}"
