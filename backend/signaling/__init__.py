"""WebRTC 시그널링 릴레이 패키지.

두 브라우저 피어가 offer/answer를 교환하도록 중계하는 핵심 모듈을 포함합니다.
릴레이는 미디어를 다루지 않으며 description payload를 그대로 전달합니다.

Classes:
    ConnectionRegistry: identity ↔ 핸들 양방향 매핑
    ConnectionPool: 핸들 → WebSocket, best-effort 유니캐스트
    RoomManager: 룸 멤버십 및 브로드캐스트
    NegotiationRelay: 5가지 시그널링 메시지 포워딩
    LifecycleManager: 연결/종료 시 정리
    SignalingService: 위 컴포넌트 조립

Client (무거운 aiortc import를 피하기 위해 signaling.client에서 직접 import):
    NegotiationDriver: aiortc 기반 협상 드라이버
    CallSession: 클라이언트 측 통화 상태 머신
"""

from .config import SignalingSettings, get_settings
from .registry import ConnectionRegistry
from .connections import ConnectionPool
from .room_manager import RoomManager
from .relay import NegotiationRelay, MalformedMessage
from .lifecycle import LifecycleManager
from .service import SignalingService

__all__ = [
    # Config
    "SignalingSettings",
    "get_settings",
    # Relay core
    "ConnectionRegistry",
    "ConnectionPool",
    "RoomManager",
    "NegotiationRelay",
    "MalformedMessage",
    "LifecycleManager",
    "SignalingService",
]
