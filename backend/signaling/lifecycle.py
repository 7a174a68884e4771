"""연결 생명주기 관리.

연결 수립 시 핸들을 발급하고, 연결 종료 시 레지스트리와 룸 멤버십에서
해당 핸들을 정리합니다.
"""
import logging
from typing import Optional

from fastapi import WebSocket

from .connections import ConnectionPool
from .registry import ConnectionRegistry
from .room_manager import RoomManager

logger = logging.getLogger(__name__)


class LifecycleManager:
    """connect/disconnect 이벤트에 반응하는 클래스.

    Attributes:
        pool (ConnectionPool): 핸들 → WebSocket 풀
        registry (ConnectionRegistry): identity ↔ 핸들 레지스트리
        rooms (RoomManager): 룸 멤버십
        prune_rooms (bool): 연결 종료 시 룸에서도 핸들 제거 여부
    """

    def __init__(
        self,
        pool: ConnectionPool,
        registry: ConnectionRegistry,
        rooms: RoomManager,
        prune_rooms: bool = True,
    ):
        self.pool = pool
        self.registry = registry
        self.rooms = rooms
        self.prune_rooms = prune_rooms

    def on_connect(self, websocket: WebSocket) -> str:
        """새 연결에 핸들을 발급합니다. join 전까지 레지스트리/룸은 변경하지 않습니다."""
        handle = self.pool.open(websocket)
        logger.info(f"핸들 {handle} 연결됨 (활성 연결 {len(self.pool)}개)")
        return handle

    def on_disconnect(self, handle: str) -> Optional[str]:
        """연결 종료된 핸들을 정리합니다.

        여러 번 호출되거나 join한 적 없는 핸들이어도 예외를 발생시키지 않습니다.

        Args:
            handle (str): 종료된 연결의 핸들

        Returns:
            Optional[str]: 핸들에 묶여 있던 identity
        """
        self.pool.close(handle)
        identity = self.registry.forget(handle)

        room_name = None
        if self.prune_rooms:
            room_name = self.rooms.leave(handle)

        logger.info(f"핸들 {handle} 정리 완료 (identity={identity}, room={room_name})")
        return identity

    async def close_all(self) -> None:
        """모든 연결을 닫고 정리합니다. 서버 종료 시 호출됩니다."""
        for handle in self.pool.handles():
            websocket = self.pool.get(handle)
            try:
                await websocket.close(code=1001)
            except Exception as e:
                logger.debug(f"핸들 {handle[:8]} 종료 중 오류 무시: {e}")
            self.on_disconnect(handle)
