import hashlib
import hmac
import re
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.realm_db import ProfileToken, utcnow
from settings import settings

_TIMESTAMP_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d{1,6}))?Z$")


def _sha256(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()

def make_token() -> str:
    return secrets.token_hex(16)

def _parse_timestamp(timestamp: str) -> datetime | None:
    m = _TIMESTAMP_RE.match(timestamp or "")
    if not m:
        return None
    try:
        parsed = datetime.strptime(m.group(1), "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return None
    micros = int((m.group(2) or "0").ljust(6, "0"))
    return parsed.replace(microsecond=micros, tzinfo=timezone.utc)


def generate_signature(timestamp: str, universe: str) -> str:
    secret = settings.universe_secret(universe)
    if not secret:
        raise ValueError(f"No secret key configured for universe: {universe}")
    return _sha256(timestamp + secret)


def validate_signature(timestamp: str, signature: str, universe: str, now: datetime | None = None) -> str | None:
    """Return an error message, or None when the signature is valid."""
    requested = _parse_timestamp(timestamp)
    if requested is None:
        return "Invalid timestamp format. Expected ISO 8601 format (YYYY-MM-DDThh:mm:ss.fffZ)"
    window = settings.signature_window_minutes
    now = now or datetime.now(timezone.utc)
    if abs(now - requested) > timedelta(minutes=window):
        return f"Timestamp is outside acceptable time window ({window} minutes)"
    secret = settings.universe_secret(universe)
    if not secret:
        return f"No secret key configured for universe: {universe}"
    expected = _sha256(timestamp + secret)
    if not hmac.compare_digest(expected, (signature or "").lower()):
        return "Invalid signature"
    return None


async def validate_profile_token(
    session: AsyncSession,
    token: str,
    sl_uuid: str,
    universe: str,
    session_id: str | None = None,
) -> str | None:
    """Web callers authenticate with a profile token bound to one user and browser session."""
    row = (
        await session.execute(select(ProfileToken).where(ProfileToken.token == token))
    ).scalar_one_or_none()
    if row is None:
        return "Token not found"
    if row.expires_at < utcnow():
        return "Token expired"
    user = row.user
    if user is None or user.sl_uuid != sl_uuid or user.universe.lower() != (universe or "").lower():
        return "Token does not match user"
    if row.session_id and row.session_id != session_id:
        return "Invalid session"
    return None


async def authenticate(session: AsyncSession, payload, player_uuid: str, universe: str) -> str | None:
    """Check the signature pair, or the token pair for web callers."""
    if payload.token:
        return await validate_profile_token(session, payload.token, player_uuid, universe, payload.session_id)
    return validate_signature(payload.timestamp, payload.signature, universe)
