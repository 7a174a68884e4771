"""참가자 식별자 ↔ 연결 핸들 레지스트리.

참가자가 join 시 선언한 identity와 서버가 발급한 연결 핸들(handle)을
양방향으로 매핑합니다. 다른 모든 컴포넌트가 목적지 조회에 사용하는 기반입니다.

Architecture:
    - identity_to_handle: Dict[str, str] - identity → 최신 핸들 (last writer wins)
    - handle_to_identity: Dict[str, str] - 핸들 → identity (정리용 역매핑)

Invariant:
    역매핑에 존재하는 모든 핸들은 정방향 맵에 자신을 가리키는 엔트리를
    정확히 하나 가집니다.

Examples:
    >>> registry = ConnectionRegistry()
    >>> registry.record("alice", "h-1")
    >>> registry.record("alice", "h-2")  # 같은 identity로 재접속
    >>> registry.forget("h-1")
    >>> registry.resolve_handle("alice")
    'h-2'
"""
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """identity와 핸들의 양방향 매핑을 관리하는 클래스.

    Attributes:
        identity_to_handle (Dict[str, str]): identity → 핸들
        handle_to_identity (Dict[str, str]): 핸들 → identity

    Thread Safety:
        - asyncio 단일 스레드에서 동작하므로 별도의 잠금이 필요 없음
    """

    def __init__(self):
        self.identity_to_handle: Dict[str, str] = {}
        self.handle_to_identity: Dict[str, str] = {}

    def record(self, identity: str, handle: str) -> None:
        """identity와 핸들을 양방향으로 연결합니다.

        같은 identity의 기존 핸들은 덮어쓰며, 핸들이 이전에 다른 identity에
        묶여 있었다면 그 정방향 엔트리도 이 핸들을 가리킬 때에만 제거합니다.

        Args:
            identity (str): 클라이언트가 선언한 식별자
            handle (str): 서버가 발급한 연결 핸들
        """
        previous_identity = self.handle_to_identity.get(handle)
        if previous_identity is not None and previous_identity != identity:
            if self.identity_to_handle.get(previous_identity) == handle:
                del self.identity_to_handle[previous_identity]

        replaced = self.identity_to_handle.get(identity)
        if replaced is not None and replaced != handle:
            logger.info(f"identity '{identity}' 재바인딩: {replaced[:8]} -> {handle[:8]}")

        self.identity_to_handle[identity] = handle
        self.handle_to_identity[handle] = identity

    def resolve_identity(self, handle: str) -> Optional[str]:
        """핸들로 identity를 조회합니다."""
        return self.handle_to_identity.get(handle)

    def resolve_handle(self, identity: str) -> Optional[str]:
        """identity로 현재 핸들을 조회합니다."""
        return self.identity_to_handle.get(identity)

    def forget(self, handle: str) -> Optional[str]:
        """핸들을 레지스트리에서 제거합니다.

        정방향 엔트리는 여전히 이 핸들을 가리킬 때에만 제거합니다.
        같은 identity가 더 새로운 연결로 덮어써졌다면 그 매핑은 유지됩니다.

        Args:
            handle (str): 제거할 핸들

        Returns:
            Optional[str]: 핸들에 묶여 있던 identity. 등록되지 않은 핸들이면 None
        """
        identity = self.handle_to_identity.pop(handle, None)
        if identity is None:
            return None

        if self.identity_to_handle.get(identity) == handle:
            del self.identity_to_handle[identity]
        else:
            logger.debug(f"identity '{identity}'는 이미 다른 핸들로 재바인딩됨, 정방향 유지")
        return identity

    def __contains__(self, handle: str) -> bool:
        return handle in self.handle_to_identity

    def __len__(self) -> int:
        return len(self.handle_to_identity)
