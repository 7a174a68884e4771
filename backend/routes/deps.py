"""공유 의존성 모듈.

라우터들이 공통으로 사용하는 의존성을 정의합니다.
"""

from fastapi import HTTPException
from fastapi.requests import HTTPConnection

from signaling import SignalingService


def get_signaling_service(connection: HTTPConnection) -> SignalingService:
    """앱 시작 시 생성된 SignalingService를 반환합니다.

    HTTP 요청과 WebSocket 연결 모두에서 사용할 수 있습니다.

    Raises:
        HTTPException: 서비스가 아직 초기화되지 않은 경우
    """
    service = getattr(connection.app.state, "signaling", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Signaling service not ready")
    return service
