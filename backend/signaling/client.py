"""Python 클라이언트 측 협상 드라이버와 통화 세션.

릴레이는 offer/answer를 해석하지 않으므로, 실제 피어 연결을 소유하고
offer/answer를 생성/적용하며 재협상 시점을 결정하는 것은 클라이언트입니다.
이 모듈은 브라우저 클라이언트와 같은 역할을 aiortc로 구현합니다.

Classes:
    NegotiationDriver: aiortc RTCPeerConnection 래퍼
    CallSession: 릴레이 프로토콜을 구동하는 클라이언트 상태 머신
    CallState: 통화 상태

Call Flow:
    1. join -> join-ack / joined 로 상대 핸들 파악
    2. call() -> call-offer, 상대는 incoming-call 수신 후 call-answer
    3. call-accepted 수신 -> remote description 적용 후 로컬 트랙 전송
    4. 연결 후 트랙 추가 -> renego-offer / renego-needed / renego-answer / renego-final

Examples:
    >>> driver = NegotiationDriver()
    >>> session = CallSession("alice", "demo", driver, local_tracks=[AudioStreamTrack()])
    >>> await session.run("ws://localhost:8000/ws")
"""
import asyncio
import json
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

import websockets
from aiortc import (
    MediaStreamTrack, RTCConfiguration, RTCIceServer, RTCPeerConnection,
    RTCSessionDescription,
)

from .schemas import (
    make_message,
    JOIN, CALL_OFFER, CALL_ANSWER, RENEGO_OFFER, RENEGO_ANSWER,
    CONNECTED, JOIN_ACK, JOINED, INCOMING_CALL, CALL_ACCEPTED,
    RENEGO_NEEDED, RENEGO_FINAL, UNDELIVERABLE,
)

logger = logging.getLogger(__name__)


class CallState(str, Enum):
    """두 핸들 사이의 협상 상태."""

    IDLE = "idle"
    OFFER_SENT = "offer_sent"
    ANSWERED = "answered"
    CONNECTED = "connected"
    RENEGO_OFFER_SENT = "renego_offer_sent"
    RENEGO_ANSWERED = "renego_answered"


def _description_to_dict(description: RTCSessionDescription) -> Dict[str, str]:
    return {"sdp": description.sdp, "type": description.type}


class NegotiationDriver:
    """실제 피어 연결을 소유하는 협상 드라이버.

    Attributes:
        pc (RTCPeerConnection): aiortc 피어 연결
        on_negotiation_needed: 연결 수립 후 트랙이 추가되면 호출되는 콜백
        on_remote_track: 원격 미디어 트랙 수신 시 호출되는 콜백
    """

    def __init__(self, ice_servers: Optional[List[str]] = None):
        config = RTCConfiguration(
            iceServers=[RTCIceServer(urls=[url]) for url in (ice_servers or [])]
        )
        self.pc = RTCPeerConnection(configuration=config)

        self.on_negotiation_needed: Optional[Callable[[], Awaitable[None]]] = None
        self.on_remote_track: Optional[Callable[[MediaStreamTrack], Awaitable[None]]] = None

        @self.pc.on("track")
        async def on_track(track: MediaStreamTrack):
            logger.info(f"[WebRTC] 원격 트랙 수신: kind={track.kind}")
            if self.on_remote_track:
                await self.on_remote_track(track)

        @self.pc.on("connectionstatechange")
        async def on_connection_state_change():
            logger.info(f"[WebRTC] 연결 상태: {self.pc.connectionState}")

    @property
    def is_established(self) -> bool:
        """최초 offer/answer 교환이 끝났는지 여부."""
        return self.pc.remoteDescription is not None and self.pc.signalingState == "stable"

    async def create_offer(self) -> Dict[str, str]:
        """offer를 생성하고 local description으로 설정합니다."""
        offer = await self.pc.createOffer()
        await self.pc.setLocalDescription(offer)
        return _description_to_dict(self.pc.localDescription)

    async def create_answer(self, remote_description: Dict[str, str]) -> Dict[str, str]:
        """원격 offer를 적용하고 answer를 생성합니다.

        Args:
            remote_description: ``{"sdp": ..., "type": "offer"}``

        Returns:
            Dict[str, str]: ``{"sdp": ..., "type": "answer"}``
        """
        await self.set_remote_description(remote_description)
        answer = await self.pc.createAnswer()
        await self.pc.setLocalDescription(answer)
        return _description_to_dict(self.pc.localDescription)

    async def set_remote_description(self, description: Dict[str, str]) -> None:
        await self.pc.setRemoteDescription(
            RTCSessionDescription(sdp=description["sdp"], type=description["type"])
        )

    async def add_local_track(self, track: MediaStreamTrack) -> None:
        """로컬 트랙을 추가합니다.

        연결 수립 이후에 추가하면 재협상이 필요하므로 on_negotiation_needed를
        호출합니다.
        """
        self.pc.addTrack(track)
        logger.info(f"[WebRTC] 로컬 트랙 추가: kind={track.kind}")
        if self.is_established and self.on_negotiation_needed:
            await self.on_negotiation_needed()

    async def close(self) -> None:
        await self.pc.close()


class CallSession:
    """릴레이 프로토콜로 한 통화를 진행하는 클라이언트 세션.

    Attributes:
        identity (str): join 시 선언할 identity
        room (str): 참가할 룸 이름
        driver: 협상 드라이버 (NegotiationDriver 또는 같은 인터페이스 객체)
        local_tracks (List[MediaStreamTrack]): 연결 후 전송할 로컬 트랙
        auto_call (bool): 상대가 입장하면 자동으로 call() 수행
        handle (Optional[str]): 릴레이가 발급한 내 핸들
        remote_handle (Optional[str]): 상대 핸들
        state (CallState): 현재 협상 상태
        remote_tracks (List[MediaStreamTrack]): 수신한 원격 트랙
    """

    def __init__(self, identity: str, room: str, driver: Any,
                 local_tracks: Optional[list] = None, auto_call: bool = False):
        self.identity = identity
        self.room = room
        self.driver = driver
        self.local_tracks = list(local_tracks or [])
        self.auto_call = auto_call

        self.ws = None
        self.handle: Optional[str] = None
        self.joined_room: Optional[str] = None
        self.remote_handle: Optional[str] = None
        self.state = CallState.IDLE
        self.remote_tracks: List[MediaStreamTrack] = []
        self.streams_sent = False

        # 상대가 룸에 들어오면 set됨
        self.peer_joined = asyncio.Event()

        self.driver.on_negotiation_needed = self._on_negotiation_needed
        self.driver.on_remote_track = self._on_remote_track

        self._handlers: Dict[str, Callable[[dict], Awaitable[None]]] = {
            CONNECTED: self._handle_connected,
            JOIN_ACK: self._handle_join_ack,
            JOINED: self._handle_joined,
            INCOMING_CALL: self._handle_incoming_call,
            CALL_ACCEPTED: self._handle_call_accepted,
            RENEGO_NEEDED: self._handle_renego_needed,
            RENEGO_FINAL: self._handle_renego_final,
            UNDELIVERABLE: self._handle_undeliverable,
        }

    async def run(self, url: str) -> None:
        """릴레이에 접속하여 연결이 끊길 때까지 메시지를 처리합니다."""
        async with websockets.connect(url) as ws:
            logger.info(f"시그널링 서버 연결됨: {url}")
            await self.serve(ws)

    async def serve(self, ws) -> None:
        self.ws = ws
        await self.join()
        try:
            async for raw in ws:
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    logger.warning(f"JSON이 아닌 메시지 무시: {raw!r}")
                    continue
                await self.handle_message(message)
        except websockets.exceptions.ConnectionClosed:
            logger.info("시그널링 연결 종료")

    async def handle_message(self, message: dict) -> None:
        """수신 메시지를 타입별 핸들러로 전달합니다."""
        handler = self._handlers.get(message.get("type"))
        if handler is None:
            logger.warning(f"알 수 없는 메시지 타입: {message.get('type')}")
            return
        try:
            await handler(message.get("data") or {})
        except Exception as e:
            logger.error(f"'{message.get('type')}' 처리 중 오류: {e}", exc_info=True)

    async def join(self) -> None:
        await self._send(JOIN, {"identity": self.identity, "room": self.room})

    async def call(self) -> None:
        """상대에게 최초 offer를 보냅니다."""
        if not self.remote_handle:
            raise RuntimeError("통화할 상대가 룸에 없습니다")
        offer = await self.driver.create_offer()
        self._transition(CallState.OFFER_SENT)
        await self._send(CALL_OFFER, {"to": self.remote_handle, "offer": offer})

    async def send_streams(self) -> None:
        """로컬 트랙을 피어 연결에 추가합니다. 재협상이 뒤따릅니다."""
        if self.streams_sent:
            return
        self.streams_sent = True
        for track in self.local_tracks:
            await self.driver.add_local_track(track)

    async def _send(self, message_type: str, data: dict) -> None:
        await self.ws.send(json.dumps(make_message(message_type, data)))

    def _transition(self, state: CallState) -> None:
        logger.info(f"[{self.identity}] 상태 전이: {self.state.value} -> {state.value}")
        self.state = state

    async def _handle_connected(self, data: dict) -> None:
        self.handle = data.get("handle")

    async def _handle_join_ack(self, data: dict) -> None:
        self.joined_room = data.get("room")
        logger.info(f"[{self.identity}] 방 '{self.joined_room}' 입장 확인")

    async def _handle_joined(self, data: dict) -> None:
        logger.info(f"[{self.identity}] '{data.get('identity')}' 입장")
        self.remote_handle = data.get("handle")
        self.peer_joined.set()
        if self.auto_call and self.state == CallState.IDLE:
            await self.call()

    async def _handle_incoming_call(self, data: dict) -> None:
        self.remote_handle = data["from"]
        self.peer_joined.set()
        answer = await self.driver.create_answer(data["offer"])
        self._transition(CallState.ANSWERED)
        self._transition(CallState.CONNECTED)
        await self._send(CALL_ANSWER, {"to": self.remote_handle, "answer": answer})
        await self.send_streams()

    async def _handle_call_accepted(self, data: dict) -> None:
        await self.driver.set_remote_description(data["answer"])
        self._transition(CallState.ANSWERED)
        self._transition(CallState.CONNECTED)
        await self.send_streams()

    async def _on_negotiation_needed(self) -> None:
        if not self.remote_handle:
            return
        offer = await self.driver.create_offer()
        self._transition(CallState.RENEGO_OFFER_SENT)
        await self._send(RENEGO_OFFER, {"to": self.remote_handle, "offer": offer})

    async def _handle_renego_needed(self, data: dict) -> None:
        answer = await self.driver.create_answer(data["offer"])
        self._transition(CallState.RENEGO_ANSWERED)
        self._transition(CallState.CONNECTED)
        await self._send(RENEGO_ANSWER, {"to": data["from"], "answer": answer})

    async def _handle_renego_final(self, data: dict) -> None:
        if not data.get("answer"):
            logger.error("재협상 answer가 비어있음")
            return
        await self.driver.set_remote_description(data["answer"])
        self._transition(CallState.RENEGO_ANSWERED)
        self._transition(CallState.CONNECTED)

    async def _handle_undeliverable(self, data: dict) -> None:
        logger.warning(f"[{self.identity}] '{data.get('type')}' 전달 실패: 상대 {data.get('to')} 없음")

    async def _on_remote_track(self, track: MediaStreamTrack) -> None:
        self.remote_tracks.append(track)
