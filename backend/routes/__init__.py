"""FastAPI 라우터 모듈.

app.py에서 분리된 API 엔드포인트들을 제공합니다.
"""

from .health import router as health_router
from .rooms import router as rooms_router
from .signaling import router as signaling_router
from .deps import get_signaling_service

__all__ = [
    "health_router",
    "rooms_router",
    "signaling_router",
    "get_signaling_service",
]
