"""시그널링 서비스 조립.

레지스트리, 연결 풀, 룸 매니저, 릴레이, 생명주기 매니저를 한 번 생성하여
서로 참조를 넘겨줍니다. 앱 시작 시 하나 만들어 ``app.state``에 보관하며,
테스트에서는 독립된 인스턴스를 여러 개 만들 수 있습니다.
"""
import logging
from typing import Optional

from .config import SignalingSettings, get_settings
from .connections import ConnectionPool
from .lifecycle import LifecycleManager
from .registry import ConnectionRegistry
from .relay import NegotiationRelay
from .room_manager import RoomManager

logger = logging.getLogger(__name__)


class SignalingService:
    """시그널링 릴레이의 최상위 서비스 객체."""

    def __init__(self, settings: Optional[SignalingSettings] = None):
        self.settings = settings or get_settings()

        self.registry = ConnectionRegistry()
        self.pool = ConnectionPool()
        self.rooms = RoomManager(self.pool)
        self.relay = NegotiationRelay(
            self.registry,
            self.rooms,
            notify_undelivered=self.settings.NOTIFY_UNDELIVERED,
            max_message_bytes=self.settings.MAX_MESSAGE_BYTES,
        )
        self.lifecycle = LifecycleManager(
            self.pool,
            self.registry,
            self.rooms,
            prune_rooms=self.settings.PRUNE_ROOMS_ON_DISCONNECT,
        )

    def stats(self) -> dict:
        """연결/룸 현황."""
        return {
            "connections": len(self.pool),
            "registered": len(self.registry),
            "rooms": len(self.rooms.rooms),
        }

    async def shutdown(self) -> None:
        logger.info(f"시그널링 서비스 종료: 활성 연결 {len(self.pool)}개 정리")
        await self.lifecycle.close_all()
