"""Health Check API 라우터.

서비스 상태 확인을 위한 엔드포인트들을 제공합니다.
"""

from fastapi import APIRouter, Depends

from signaling import SignalingService
from .deps import get_signaling_service

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health_check(service: SignalingService = Depends(get_signaling_service)):
    """시그널링 서비스 상태를 확인합니다.

    Returns:
        dict: 활성 연결 수, 등록된 identity 수, 룸 수
    """
    return {"status": "ok", "signaling": service.stats()}
