"""LINE webhook data models: inbound events with nested messages, and outbound replies.

Events and messages are closed sets of variants selected by their ``type``
tag. Any tag not listed here decodes to an explicit ``Unrecognized*``
variant, so payloads carrying newer event or message kinds still decode.
Field names follow the LINE wire format through aliases (``replyToken``,
``webhookEventId``, ...); attributes are snake_case.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    ValidationError,
)

UNRECOGNIZED = "unrecognized"


class WebhookDecodeError(ValueError):
    """Raised when a webhook body is not a structurally valid payload."""


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


def _discriminate_by_type(known: frozenset[str]) -> Callable[[Any], str | None]:
    """Map a raw or already-built variant to its tag, or the catch-all tag."""

    def discriminate(value: Any) -> str | None:
        if isinstance(value, dict):
            kind = value.get("type")
        elif isinstance(value, BaseModel):
            kind = getattr(value, "type", None)
        else:
            return None
        if isinstance(kind, str) and kind in known:
            return kind
        return UNRECOGNIZED

    return discriminate


# --- Messages ---


class Emoji(_WireModel):
    index: int
    length: int | None = None
    product_id: str = Field(alias="productId")
    emoji_id: str = Field(alias="emojiId")


class TextMessage(_WireModel):
    type: Literal["text"] = "text"
    id: str | None = None
    text: str
    emojis: list[Emoji] | None = None
    mention: dict[str, Any] | None = None


class ImageMessage(_WireModel):
    type: Literal["image"] = "image"
    id: str | None = None
    content_provider: dict[str, Any] | None = Field(default=None, alias="contentProvider")


class VideoMessage(_WireModel):
    type: Literal["video"] = "video"
    id: str | None = None
    duration: int | None = None
    content_provider: dict[str, Any] | None = Field(default=None, alias="contentProvider")


class AudioMessage(_WireModel):
    type: Literal["audio"] = "audio"
    id: str | None = None
    duration: int | None = None
    content_provider: dict[str, Any] | None = Field(default=None, alias="contentProvider")


class FileMessage(_WireModel):
    type: Literal["file"] = "file"
    id: str | None = None
    file_name: str | None = Field(default=None, alias="fileName")
    file_size: int | None = Field(default=None, alias="fileSize")


class LocationMessage(_WireModel):
    type: Literal["location"] = "location"
    id: str | None = None
    title: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class StickerMessage(_WireModel):
    type: Literal["sticker"] = "sticker"
    id: str | None = None
    package_id: str | None = Field(default=None, alias="packageId")
    sticker_id: str | None = Field(default=None, alias="stickerId")
    sticker_resource_type: str | None = Field(default=None, alias="stickerResourceType")


class UnrecognizedMessage(_WireModel):
    """Any message kind this relay does not know about."""

    type: str
    id: str | None = None


_MESSAGE_KINDS = frozenset({"text", "image", "video", "audio", "file", "location", "sticker"})

Message = Annotated[
    Annotated[TextMessage, Tag("text")]
    | Annotated[ImageMessage, Tag("image")]
    | Annotated[VideoMessage, Tag("video")]
    | Annotated[AudioMessage, Tag("audio")]
    | Annotated[FileMessage, Tag("file")]
    | Annotated[LocationMessage, Tag("location")]
    | Annotated[StickerMessage, Tag("sticker")]
    | Annotated[UnrecognizedMessage, Tag(UNRECOGNIZED)],
    Discriminator(_discriminate_by_type(_MESSAGE_KINDS)),
]


# --- Events ---


class Source(_WireModel):
    type: str
    user_id: str | None = Field(default=None, alias="userId")
    group_id: str | None = Field(default=None, alias="groupId")
    room_id: str | None = Field(default=None, alias="roomId")


class Postback(_WireModel):
    data: str
    params: dict[str, Any] | None = None


class _EventBase(_WireModel):
    mode: str = "active"
    timestamp: int | None = None
    source: Source | None = None
    webhook_event_id: str | None = Field(default=None, alias="webhookEventId")
    delivery_context: dict[str, Any] | None = Field(default=None, alias="deliveryContext")
    reply_token: str | None = Field(default=None, alias="replyToken")


class MessageEvent(_EventBase):
    type: Literal["message"] = "message"
    reply_token: str = Field(alias="replyToken")
    message: Message


class FollowEvent(_EventBase):
    type: Literal["follow"] = "follow"


class UnfollowEvent(_EventBase):
    type: Literal["unfollow"] = "unfollow"


class JoinEvent(_EventBase):
    type: Literal["join"] = "join"


class LeaveEvent(_EventBase):
    type: Literal["leave"] = "leave"


class PostbackEvent(_EventBase):
    type: Literal["postback"] = "postback"
    postback: Postback


class UnsendEvent(_EventBase):
    type: Literal["unsend"] = "unsend"
    unsend: dict[str, Any] | None = None


class UnrecognizedEvent(_EventBase):
    """Any event kind this relay does not act on; keeps its reply token."""

    type: str


_EVENT_KINDS = frozenset({"message", "follow", "unfollow", "join", "leave", "postback", "unsend"})

Event = Annotated[
    Annotated[MessageEvent, Tag("message")]
    | Annotated[FollowEvent, Tag("follow")]
    | Annotated[UnfollowEvent, Tag("unfollow")]
    | Annotated[JoinEvent, Tag("join")]
    | Annotated[LeaveEvent, Tag("leave")]
    | Annotated[PostbackEvent, Tag("postback")]
    | Annotated[UnsendEvent, Tag("unsend")]
    | Annotated[UnrecognizedEvent, Tag(UNRECOGNIZED)],
    Discriminator(_discriminate_by_type(_EVENT_KINDS)),
]


class WebhookPayload(_WireModel):
    """One inbound webhook request body."""

    destination: str | None = None
    events: list[Event]


def decode_payload(body: bytes) -> WebhookPayload:
    """Decode a raw webhook body.

    Raises WebhookDecodeError on malformed JSON, a missing ``events`` array,
    or a known variant lacking its required fields. Unknown event and
    message kinds are not errors.
    """
    try:
        return WebhookPayload.model_validate_json(body)
    except ValidationError as e:
        raise WebhookDecodeError(
            f"Invalid webhook payload ({e.error_count()} validation error(s))"
        ) from e


# --- Outbound messages ---


class OutboundEmoji(_WireModel):
    index: int
    product_id: str = Field(alias="productId")
    emoji_id: str = Field(alias="emojiId")


class OutboundTextMessage(_WireModel):
    type: Literal["text"] = "text"
    text: str
    emojis: list[OutboundEmoji] | None = None


class OutboundStickerMessage(_WireModel):
    type: Literal["sticker"] = "sticker"
    package_id: str = Field(alias="packageId")
    sticker_id: str = Field(alias="stickerId")


OutboundMessage = Annotated[
    OutboundTextMessage | OutboundStickerMessage,
    Field(discriminator="type"),
]


def to_wire(message: OutboundMessage) -> dict[str, Any]:
    """Serialize an outbound message with LINE field names."""
    return message.model_dump(by_alias=True, exclude_none=True)


# --- Pipeline result ---


@dataclass
class WebhookResponse:
    """Outcome of one webhook request, returned to the platform as a status code."""

    status_code: int
    error: str | None = None
    matched: int = 0
    replied: int = 0
    failed: list[str] = field(default_factory=list)
