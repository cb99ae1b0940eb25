import hashlib
from datetime import datetime, timedelta, timezone

import pytest

from server.src.modules.realm_db import AsyncSessionLocal, ProfileToken, utcnow
from server.src.modules.request_auth import generate_signature, make_token, validate_profile_token, validate_signature
from tests.helpers import CASTER, TARGET, create_character

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
TIMESTAMP = "2026-03-01T12:00:00.000Z"


def test_signature_is_sha256_of_timestamp_and_secret():
    expected = hashlib.sha256((TIMESTAMP + "gor-test-secret").encode("utf-8")).hexdigest()
    assert generate_signature(TIMESTAMP, "gor") == expected
    assert generate_signature(TIMESTAMP, "arkana") != expected


def test_valid_signature_passes():
    signature = generate_signature(TIMESTAMP, "gor")
    assert validate_signature(TIMESTAMP, signature, "gor", now=NOW) is None
    assert validate_signature(TIMESTAMP, signature.upper(), "gor", now=NOW) is None


def test_signature_for_other_universe_is_rejected():
    signature = generate_signature(TIMESTAMP, "arkana")
    assert validate_signature(TIMESTAMP, signature, "gor", now=NOW) == "Invalid signature"


@pytest.mark.parametrize("timestamp", ["2026-03-01 12:00:00", "yesterday", "", "2026-03-01T12:00:00.000+01:00"])
def test_malformed_timestamps(timestamp):
    assert validate_signature(timestamp, "x", "gor", now=NOW) == (
        "Invalid timestamp format. Expected ISO 8601 format (YYYY-MM-DDThh:mm:ss.fffZ)"
    )


def test_timestamp_without_fraction_is_accepted():
    signature = generate_signature("2026-03-01T12:00:00Z", "gor")
    assert validate_signature("2026-03-01T12:00:00Z", signature, "gor", now=NOW) is None


def test_timestamp_window():
    signature = generate_signature(TIMESTAMP, "gor")
    assert validate_signature(TIMESTAMP, signature, "gor", now=NOW + timedelta(minutes=4, seconds=59)) is None
    assert validate_signature(TIMESTAMP, signature, "gor", now=NOW - timedelta(minutes=6)) == (
        "Timestamp is outside acceptable time window (5 minutes)"
    )


def test_unknown_universe_has_no_secret():
    assert validate_signature(TIMESTAMP, "x", "midgard", now=NOW) == "No secret key configured for universe: midgard"
    with pytest.raises(ValueError):
        generate_signature(TIMESTAMP, "midgard")


async def _add_token(user_id, token, expires_at, session_id=None):
    async with AsyncSessionLocal() as session:
        session.add(ProfileToken(user_id=user_id, token=token, expires_at=expires_at, session_id=session_id))
        await session.commit()


@pytest.mark.asyncio
async def test_profile_tokens():
    user_id, _ = await create_character("gor", CASTER, "Tarl")
    good, stale, bound = make_token(), make_token(), make_token()
    await _add_token(user_id, good, utcnow() + timedelta(hours=1))
    await _add_token(user_id, stale, utcnow() - timedelta(minutes=1))
    await _add_token(user_id, bound, utcnow() + timedelta(hours=1), session_id="browser-1")

    async with AsyncSessionLocal() as session:
        assert await validate_profile_token(session, good, CASTER, "gor") is None
        assert await validate_profile_token(session, "missing", CASTER, "gor") == "Token not found"
        assert await validate_profile_token(session, stale, CASTER, "gor") == "Token expired"
        assert await validate_profile_token(session, good, TARGET, "gor") == "Token does not match user"
        assert await validate_profile_token(session, good, CASTER, "arkana") == "Token does not match user"
        assert await validate_profile_token(session, bound, CASTER, "gor", "browser-2") == "Invalid session"
        assert await validate_profile_token(session, bound, CASTER, "gor", "browser-1") is None
