from typing import Any, Literal
from uuid import UUID

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from server.src.modules.request_auth import authenticate
from server.src.modules.universes import UniverseProfile


class SignedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    universe: str
    timestamp: str | None = None
    signature: str | None = None
    token: str | None = None
    session_id: str | None = Field(None, alias="sessionId")

    @model_validator(mode="after")
    def _auth_pair(self):
        if not self.token and not (self.timestamp and self.signature):
            raise ValueError("timestamp and signature, or token, are required")
        return self


class UseAbilityRequest(SignedRequest):
    caster_uuid: UUID
    ability_id: str | None = Field(None, max_length=255, validation_alias=AliasChoices("ability_id", "power_id"))
    ability_name: str | None = Field(None, max_length=255, validation_alias=AliasChoices("ability_name", "power_name"))
    target_uuid: UUID | None = None
    nearby_uuids: list[UUID] = Field(default_factory=list)
    mode: Literal["attack", "ability"] = "ability"

    @field_validator("target_uuid", "ability_id", "ability_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        return None if value == "" else value

    @model_validator(mode="after")
    def _ability_given(self):
        if not self.ability_id and not self.ability_name:
            raise ValueError("Either ability_id or ability_name must be provided")
        return self


class PlayerRequest(SignedRequest):
    player_uuid: UUID


class DeactivateEffectRequest(PlayerRequest):
    effect_id: str = Field(min_length=1, max_length=255)


class StatCheckRequest(PlayerRequest):
    stat_type: str = Field(min_length=1, max_length=50)
    target_number: int = Field(ge=1, le=40)


class GroupChangeRequest(PlayerRequest):
    group_name: str = Field(min_length=1, max_length=100)
    target_character_id: int = Field(
        validation_alias=AliasChoices("target_character_id", "target_gorean_id", "target_arkana_id"),
    )


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    msg = str(err.get("msg") or "Invalid request")
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    loc = ".".join(str(p) for p in err.get("loc") or ())
    return f"{loc}: {msg}" if loc else msg


async def read_payload(request: Request) -> dict[str, Any]:
    if request.method == "GET":
        return dict(request.query_params)
    body = await request.json()
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return body


async def parse_signed(
    request: Request,
    session: AsyncSession,
    profile: UniverseProfile,
    model: type[SignedRequest],
    player_field: str,
):
    """Validate and authenticate a request; returns ``(payload, None)`` or ``(None, error response)``."""
    try:
        body = await read_payload(request)
    except ValueError:
        return None, error_response("Invalid JSON body", 400)
    try:
        payload = model.model_validate(body)
    except ValidationError as exc:
        return None, error_response(validation_message(exc), 400)
    if payload.universe.strip().lower() != profile.key:
        return None, error_response(f'universe must be "{profile.key}"', 400)
    auth_error = await authenticate(session, payload, str(getattr(payload, player_field)), profile.key)
    if auth_error:
        return None, error_response(auth_error, 401)
    return payload, None
