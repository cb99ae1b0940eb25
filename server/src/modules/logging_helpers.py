import logging

from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.realm_db import Event, utcnow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    handlers=[logging.StreamHandler()]
)
logger = logging.getLogger("realms")

EVENT_ABILITY_USE = "ABILITY_USE"
EVENT_TURN_END = "TURN_END"
EVENT_SCENE_END = "SCENE_END"
EVENT_EFFECT_DEACTIVATED = "EFFECT_DEACTIVATED"


def record_event(session: AsyncSession, user_id, event_type, details, ability_id=None) -> Event:
    """Queue an audit event on the caller's transaction."""
    event = Event(
        user_id=user_id,
        type=event_type,
        ability_id=ability_id,
        details=details,
        timestamp=utcnow(),
    )
    session.add(event)
    return event
