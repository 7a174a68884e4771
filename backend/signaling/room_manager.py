"""룸 기반 멤버십 관리 모듈.

이 모듈은 연결 핸들을 이름 붙은 룸으로 묶고, 룸 단위 브로드캐스트와
핸들 단위 유니캐스트 전송을 담당합니다.

주요 기능:
    - 룸 자동 생성 (첫 join 시) 및 비어있을 때 자동 삭제
    - 핸들 입장/퇴장 관리 (핸들은 최대 하나의 룸에 속함)
    - 룸 브로드캐스트 (송신자 제외 가능)
    - 룸 상태 조회 (참가자 수, 참가자 목록)

Architecture:
    - rooms: Dict[str, Set[str]] - 룸 이름 → 핸들 집합
    - handle_to_room: Dict[str, str] - 핸들 → 룸 이름 (퇴장 시 빠른 조회용)

Examples:
    기본 사용법:
        >>> pool = ConnectionPool()
        >>> manager = RoomManager(pool)
        >>> manager.join("demo", handle)
        >>> await manager.broadcast("demo", {"type": "joined"}, exclude=handle)

See Also:
    connections.py: 핸들 → WebSocket 풀
    relay.py: 시그널링 메시지 포워딩
"""
import logging
from typing import Dict, List, Optional, Set, TYPE_CHECKING

from .connections import ConnectionPool

if TYPE_CHECKING:
    from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class RoomManager:
    """룸과 멤버 핸들을 관리하는 클래스.

    Attributes:
        pool (ConnectionPool): 실제 전송에 사용하는 연결 풀
        rooms (Dict[str, Set[str]]): 룸 이름을 키로 하는 핸들 집합
        handle_to_room (Dict[str, str]): 핸들 → 룸 이름 역매핑

    Design Patterns:
        - 이중 맵 구조: 양방향 빠른 조회 지원
        - 자동 생성/삭제: 필요 시 룸 자동 생성, 비어있을 때 자동 삭제
    """

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

        # room_name -> {handle}
        self.rooms: Dict[str, Set[str]] = {}

        # handle -> room_name (for quick lookup)
        self.handle_to_room: Dict[str, str] = {}

    def join(self, room_name: str, handle: str) -> None:
        """핸들을 지정된 룸에 추가합니다.

        룸이 존재하지 않으면 자동으로 생성합니다. 이미 멤버이면 아무 작업도
        하지 않으며, 다른 룸에 속해 있던 핸들은 새 룸으로 이동합니다.

        Args:
            room_name (str): 참가할 룸의 이름
            handle (str): 참가하는 연결 핸들
        """
        current = self.handle_to_room.get(handle)
        if current == room_name:
            return
        if current is not None:
            self.leave(handle)

        if room_name not in self.rooms:
            self.rooms[room_name] = set()
            logger.info(f"Room '{room_name}' created")

        self.rooms[room_name].add(handle)
        self.handle_to_room[handle] = room_name

        logger.info(f"Handle {handle[:8]} joined room '{room_name}'. "
                    f"Room has {len(self.rooms[room_name])} members")

    def leave(self, handle: str) -> Optional[str]:
        """핸들을 현재 속한 룸에서 제거합니다.

        룸이 비어있게 되면 자동으로 삭제합니다.

        Args:
            handle (str): 퇴장할 핸들

        Returns:
            Optional[str]: 핸들이 속해있던 룸 이름. 어떤 룸에도 속하지 않았으면 None
        """
        room_name = self.handle_to_room.pop(handle, None)
        if room_name is None:
            return None

        members = self.rooms.get(room_name)
        if members is not None:
            members.discard(handle)
            if not members:
                del self.rooms[room_name]
                logger.info(f"Room '{room_name}' deleted (empty)")
            else:
                logger.info(f"Handle {handle[:8]} left room '{room_name}'. "
                            f"Room has {len(members)} members")
        return room_name

    async def send(self, handle: str, message: dict) -> bool:
        """단일 핸들에 메시지를 전송합니다 (best-effort, 예외 없음)."""
        return await self.pool.send(handle, message)

    async def broadcast(self, room_name: str, message: dict, exclude: Optional[str] = None) -> int:
        """룸의 모든 멤버에게 메시지를 브로드캐스트합니다.

        Args:
            room_name (str): 메시지를 전송할 룸 이름
            message (dict): 전송할 메시지 딕셔너리
            exclude (Optional[str]): 메시지를 받지 않을 핸들

        Returns:
            int: 전송에 성공한 멤버 수
        """
        delivered = 0
        for handle in self.get_members(room_name):
            if handle == exclude:
                continue
            if await self.pool.send(handle, message):
                delivered += 1
        return delivered

    def get_members(self, room_name: str) -> List[str]:
        """룸의 멤버 핸들 목록을 반환합니다. 룸이 없으면 빈 리스트."""
        return list(self.rooms.get(room_name, ()))

    def get_handle_room(self, handle: str) -> Optional[str]:
        return self.handle_to_room.get(handle)

    def get_room_count(self, room_name: str) -> int:
        """특정 룸의 현재 멤버 수를 반환합니다. 룸이 없으면 0."""
        return len(self.rooms.get(room_name, ()))

    def get_room_list(self, registry: Optional["ConnectionRegistry"] = None) -> List[dict]:
        """모든 룸의 정보를 리스트로 반환합니다.

        Args:
            registry (Optional[ConnectionRegistry]): 주어지면 멤버의 identity도 포함

        Returns:
            List[dict]: 룸 정보 딕셔너리의 리스트
                - room_name (str): 룸 이름
                - member_count (int): 현재 멤버 수
                - members (List[dict]): handle, identity
        """
        return [
            {
                "room_name": room_name,
                "member_count": len(members),
                "members": [
                    {
                        "handle": handle,
                        "identity": registry.resolve_identity(handle) if registry else None,
                    }
                    for handle in sorted(members)
                ],
            }
            for room_name, members in self.rooms.items()
        ]
