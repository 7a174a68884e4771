"""연결 핸들 → WebSocket 풀.

서버가 발급한 핸들과 실제 WebSocket 연결 객체를 매핑하고, 핸들 단위의
best-effort 유니캐스트 전송을 제공합니다. 전송 실패는 호출자에게 예외로
전파하지 않고 False로 보고합니다.
"""
import logging
import uuid
from typing import Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionPool:
    """살아있는 연결을 핸들로 관리하는 클래스.

    Attributes:
        sockets (Dict[str, WebSocket]): 핸들 → WebSocket 연결 객체
    """

    def __init__(self):
        self.sockets: Dict[str, WebSocket] = {}

    def open(self, websocket: WebSocket) -> str:
        """새 연결에 고유 핸들을 발급하고 등록합니다.

        핸들은 uuid4 문자열이며 재사용되지 않습니다.

        Args:
            websocket (WebSocket): 수락된 WebSocket 연결

        Returns:
            str: 발급된 핸들
        """
        handle = str(uuid.uuid4())
        while handle in self.sockets:
            handle = str(uuid.uuid4())
        self.sockets[handle] = websocket
        return handle

    def close(self, handle: str) -> Optional[WebSocket]:
        """핸들을 풀에서 제거합니다. 없는 핸들이면 None을 반환합니다."""
        return self.sockets.pop(handle, None)

    def get(self, handle: str) -> Optional[WebSocket]:
        return self.sockets.get(handle)

    def is_connected(self, handle: str) -> bool:
        return handle in self.sockets

    def handles(self) -> List[str]:
        return list(self.sockets.keys())

    async def send(self, handle: str, message: dict) -> bool:
        """핸들에 메시지를 전송합니다 (best-effort).

        Args:
            handle (str): 목적지 핸들
            message (dict): 전송할 메시지 딕셔너리

        Returns:
            bool: 전송 성공 여부. 알 수 없는 핸들이거나 전송 실패 시 False

        Note:
            - 이미 닫힌 연결로의 전송은 예외 없이 실패 처리됨
            - 재시도하지 않음
        """
        websocket = self.sockets.get(handle)
        if websocket is None:
            logger.debug(f"핸들 {handle[:8]} 없음, 메시지 '{message.get('type')}' 폐기")
            return False

        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"핸들 {handle[:8]}에 '{message.get('type')}' 전송 실패: {e}")
            return False

    def __len__(self) -> int:
        return len(self.sockets)
