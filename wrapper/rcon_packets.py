"""
WebRcon packet models
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

REQUEST_IDENTIFIER = -1
REQUEST_NAME = "WebRcon"


class RconRequest(BaseModel):
    """Outbound command request."""
    model_config = ConfigDict(populate_by_name=True)

    identifier: int = Field(default=REQUEST_IDENTIFIER, alias="Identifier")
    message: str = Field(alias="Message")
    name: str = Field(default=REQUEST_NAME, alias="Name")


class RconPush(BaseModel):
    """Inbound message. Only ``Message`` matters to the supervisor."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: Optional[str] = Field(default=None, alias="Message")


def build_request(command: str) -> str:
    return RconRequest(message=command).model_dump_json(by_alias=True)


def decode_push(payload: str) -> RconPush:
    """Decode an inbound payload. Raises ValidationError for anything that is
    not a JSON object of the expected shape."""
    return RconPush.model_validate_json(payload)


__all__ = ["RconRequest", "RconPush", "build_request", "decode_push", "ValidationError"]
