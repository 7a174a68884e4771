"""시그널링 메시지 스키마.

클라이언트 ↔ 릴레이 간 주고받는 메시지의 봉투(envelope)와 payload 모델을
정의합니다. 모든 메시지는 ``{"type": <종류>, "data": {...}}`` 형태입니다.

offer/answer 본문은 릴레이가 해석하지 않는 불투명(opaque) 값이며
수신한 그대로 전달됩니다.
"""
from typing import Annotated, Any, Dict, Optional

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field

# client -> relay
JOIN = "join"
CALL_OFFER = "call-offer"
CALL_ANSWER = "call-answer"
RENEGO_OFFER = "renego-offer"
RENEGO_ANSWER = "renego-answer"
GET_ROOMS = "get-rooms"

# relay -> client
CONNECTED = "connected"
JOIN_ACK = "join-ack"
JOINED = "joined"
INCOMING_CALL = "incoming-call"
CALL_ACCEPTED = "call-accepted"
RENEGO_NEEDED = "renego-needed"
RENEGO_FINAL = "renego-final"
ROOMS = "rooms"
UNDELIVERABLE = "undeliverable"


def _require_text(v: str) -> str:
    if not v.strip():
        raise ValueError("빈 문자열은 허용되지 않습니다")
    return v


def _require_payload(v: Any) -> Any:
    if v is None:
        raise ValueError("payload가 필요합니다")
    return v


NonEmptyStr = Annotated[str, AfterValidator(_require_text)]
Payload = Annotated[Any, AfterValidator(_require_payload)]


class Envelope(BaseModel):
    """모든 시그널링 메시지의 공통 봉투."""

    model_config = ConfigDict(extra="ignore")

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)


class JoinData(BaseModel):
    """``join`` payload. 원래 클라이언트의 ``email`` 필드도 identity로 받습니다."""

    model_config = ConfigDict(extra="ignore")

    identity: NonEmptyStr = Field(validation_alias=AliasChoices("identity", "email"))
    room: NonEmptyStr


class OfferData(BaseModel):
    """``call-offer`` / ``renego-offer`` payload."""

    model_config = ConfigDict(extra="ignore")

    to: NonEmptyStr
    offer: Payload


class AnswerData(BaseModel):
    """``call-answer`` / ``renego-answer`` payload. ``ans`` 별칭 허용."""

    model_config = ConfigDict(extra="ignore")

    to: NonEmptyStr
    answer: Payload = Field(validation_alias=AliasChoices("answer", "ans"))


def make_message(message_type: str, data: Optional[Dict[str, Any]] = None) -> dict:
    """전송용 메시지 딕셔너리를 만듭니다.

    Examples:
        >>> make_message(JOIN_ACK, {"identity": "alice", "room": "demo"})
        {'type': 'join-ack', 'data': {'identity': 'alice', 'room': 'demo'}}
    """
    return {"type": message_type, "data": data or {}}
