import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.pool import NullPool

from settings import settings

_raw_url = settings.database_url
if _raw_url.startswith("postgresql://") and "+asyncpg" not in _raw_url:
    DATABASE_URL = _raw_url.replace("postgresql://", "postgresql+asyncpg://", 1)
else:
    DATABASE_URL = _raw_url

IS_SQLITE = DATABASE_URL.startswith("sqlite")
engine = create_async_engine(
    DATABASE_URL,
    future=True,
    echo=False,
    **({"poolclass": NullPool} if IS_SQLITE else {}),
)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
DOC_JSON_TYPE = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("sl_uuid", "universe", name="uq_users_sl_uuid_universe"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    sl_uuid: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    universe: Mapped[str] = mapped_column(String(32), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    # 0 = RP/IC mode; other values are setting-specific modes
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_active: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    character: Mapped[Optional["Character"]] = relationship(
        "Character", back_populates="user", uselist=False, lazy="selectin"
    )


class Character(Base):
    __tablename__ = "characters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    character_name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_stats: Mapped[dict] = mapped_column(DOC_JSON_TYPE, nullable=False, default=dict)
    health_current: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    health_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    abilities: Mapped[list] = mapped_column(DOC_JSON_TYPE, nullable=False, default=list)
    active_effects: Mapped[dict | list | None] = mapped_column(DOC_JSON_TYPE, nullable=True)
    live_stats: Mapped[dict | None] = mapped_column(DOC_JSON_TYPE, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user: Mapped[User] = relationship("User", back_populates="character")


class SocialGroupSet(Base):
    __tablename__ = "social_groups"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    groups: Mapped[dict] = mapped_column(DOC_JSON_TYPE, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    ability_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    details: Mapped[dict] = mapped_column(DOC_JSON_TYPE, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, index=True)


class ProfileToken(Base):
    __tablename__ = "profile_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    session_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)

    user: Mapped[User] = relationship("User", lazy="selectin")


async def init_models() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
