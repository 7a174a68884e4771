"""룸 조회 API 라우터."""

from fastapi import APIRouter, Depends

from signaling import SignalingService
from .deps import get_signaling_service

router = APIRouter(prefix="/api/rooms", tags=["rooms"])


@router.get("")
async def get_rooms(service: SignalingService = Depends(get_signaling_service)):
    """활성화된 모든 룸의 목록을 조회합니다.

    Returns:
        dict: 룸 목록 (room_name, member_count, members)
    """
    return {"rooms": service.rooms.get_room_list(service.registry)}
