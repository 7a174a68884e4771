"""WebRTC 시그널링 메시지 릴레이.

두 브라우저 피어가 직접 연결을 맺기 위해 필요한 offer/answer 메시지를
목적지 핸들로 전달합니다. 릴레이는 세션 상태를 갖지 않으며 메시지 종류만
보고 동작합니다. offer/answer 본문은 해석하지 않고 그대로 전달합니다.

Protocol:
    1. join          -> 룸 참가, 다른 멤버에게 joined, 본인에게 join-ack
    2. call-offer    -> 목적지에 incoming-call
    3. call-answer   -> 목적지에 call-accepted
    4. renego-offer  -> 목적지에 renego-needed
    5. renego-answer -> 목적지에 renego-final

Error Handling:
    - 목적지 핸들이 없으면 메시지를 폐기 (옵션: 송신자에게 undeliverable 알림)
    - 잘못된 메시지는 경고 로그 후 폐기, 연결은 유지
"""
import json
import logging
from typing import Any, Dict, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from .registry import ConnectionRegistry
from .room_manager import RoomManager
from .schemas import (
    AnswerData, Envelope, JoinData, OfferData, make_message,
    JOIN, CALL_OFFER, CALL_ANSWER, RENEGO_OFFER, RENEGO_ANSWER, GET_ROOMS,
    JOIN_ACK, JOINED, INCOMING_CALL, CALL_ACCEPTED, RENEGO_NEEDED, RENEGO_FINAL,
    ROOMS, UNDELIVERABLE,
)

logger = logging.getLogger(__name__)

# 수신 타입 -> (payload 모델, 전달 타입, payload 필드)
FORWARD_RULES: Dict[str, Tuple[Type[BaseModel], str, str]] = {
    CALL_OFFER: (OfferData, INCOMING_CALL, "offer"),
    CALL_ANSWER: (AnswerData, CALL_ACCEPTED, "answer"),
    RENEGO_OFFER: (OfferData, RENEGO_NEEDED, "offer"),
    RENEGO_ANSWER: (AnswerData, RENEGO_FINAL, "answer"),
}


class MalformedMessage(ValueError):
    """릴레이 경계에서 폐기되는 잘못된 메시지."""


class NegotiationRelay:
    """시그널링 메시지를 목적지로 포워딩하는 클래스.

    Attributes:
        registry (ConnectionRegistry): identity ↔ 핸들 레지스트리
        rooms (RoomManager): 룸 멤버십 및 전송
        notify_undelivered (bool): 전달 실패 시 송신자에게 알림 여부
        max_message_bytes (int): 수신 메시지 최대 크기
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        rooms: RoomManager,
        notify_undelivered: bool = False,
        max_message_bytes: int = 65536,
    ):
        self.registry = registry
        self.rooms = rooms
        self.notify_undelivered = notify_undelivered
        self.max_message_bytes = max_message_bytes

    async def dispatch(self, sender: str, raw: Union[str, bytes, Dict[str, Any]]) -> bool:
        """수신 메시지 하나를 처리합니다.

        클라이언트 입력으로 인한 예외는 이 함수 밖으로 전파되지 않습니다.

        Args:
            sender (str): 메시지를 보낸 연결 핸들
            raw: 텍스트/바이너리 프레임 또는 이미 파싱된 딕셔너리

        Returns:
            bool: 메시지가 유효하여 처리되었으면 True, 폐기되었으면 False
        """
        try:
            envelope = self._parse(raw)
            message_type = envelope.type

            if message_type == JOIN:
                await self._handle_join(sender, JoinData.model_validate(envelope.data))
            elif message_type in FORWARD_RULES:
                await self._forward(sender, message_type, envelope.data)
            elif message_type == GET_ROOMS:
                await self.rooms.send(
                    sender,
                    make_message(ROOMS, {"rooms": self.rooms.get_room_list(self.registry)})
                )
            else:
                raise MalformedMessage(f"알 수 없는 메시지 타입: {message_type}")
            return True

        except (MalformedMessage, ValidationError) as e:
            logger.warning(f"핸들 {sender[:8]}의 잘못된 메시지 폐기: {e}")
            return False

    def _parse(self, raw: Union[str, bytes, Dict[str, Any]]) -> Envelope:
        if isinstance(raw, (str, bytes)):
            size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
            if size > self.max_message_bytes:
                raise MalformedMessage(f"메시지 크기 초과: {size} bytes")
            try:
                raw = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
                raise MalformedMessage(f"JSON 파싱 실패: {e}") from e

        if not isinstance(raw, dict):
            raise MalformedMessage("메시지는 JSON 객체여야 합니다")
        return Envelope.model_validate(raw)

    async def _handle_join(self, sender: str, payload: JoinData) -> None:
        """룸 참가 처리.

        레지스트리 기록 → 룸 참가 → 다른 멤버에게 joined → 본인에게 join-ack
        순서로 처리합니다.
        """
        self.registry.record(payload.identity, sender)
        self.rooms.join(payload.room, sender)

        await self.rooms.broadcast(
            payload.room,
            make_message(JOINED, {"identity": payload.identity, "handle": sender}),
            exclude=sender,
        )
        await self.rooms.send(
            sender,
            make_message(JOIN_ACK, {"identity": payload.identity, "room": payload.room}),
        )
        logger.info(f"'{payload.identity}' ({sender[:8]})가 방 '{payload.room}'에 입장함")

    async def _forward(self, sender: str, message_type: str, data: Dict[str, Any]) -> None:
        model, outbound_type, field = FORWARD_RULES[message_type]
        payload = model.model_validate(data)
        target: str = payload.to

        delivered = await self.rooms.send(
            target,
            make_message(outbound_type, {"from": sender, field: getattr(payload, field)}),
        )
        if delivered:
            logger.info(f"{message_type}: {sender[:8]} -> {target[:8]} 전달 ({outbound_type})")
            return

        logger.info(f"{message_type}: 목적지 {target[:8]} 없음, 폐기")
        if self.notify_undelivered:
            await self.rooms.send(
                sender,
                make_message(UNDELIVERABLE, {"type": message_type, "to": target}),
            )