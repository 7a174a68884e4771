"""FastAPI WebRTC Signaling Relay.

이 모듈은 두 브라우저 피어가 직접 peer-to-peer 오디오/비디오 연결을 맺을 수
있도록 offer/answer 메시지를 중계하는 시그널링 서버를 제공합니다.
릴레이는 미디어를 다루지 않으며 description payload를 해석하지 않습니다.

주요 기능:
    - 룸 기반 참가자 관리 (join / joined / join-ack)
    - WebRTC offer/answer 및 재협상 메시지 중계
    - 연결 종료 시 레지스트리/룸 정리
    - CORS 설정을 통한 크로스 오리진 요청 지원

Architecture:
    - SignalingService: 레지스트리, 연결 풀, 룸, 릴레이, 생명주기 매니저 조립
    - WebSocket: 실시간 시그널링 메시지 전송 (/ws)
"""
import glob
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routes import health_router, rooms_router, signaling_router
from signaling import SignalingService, SignalingSettings, get_settings

logger = logging.getLogger(__name__)


def cleanup_old_logs(log_dir: str, retention_days: int) -> int:
    """오래된 로그 파일을 삭제합니다.

    Args:
        log_dir: 로그 디렉토리 경로
        retention_days: 보관 기간 (일)

    Returns:
        삭제된 파일 수
    """
    if not os.path.exists(log_dir):
        return 0

    cutoff_date = datetime.now() - timedelta(days=retention_days)
    deleted_count = 0

    for log_file in glob.glob(os.path.join(log_dir, "server_*.log")):
        try:
            date_str = os.path.basename(log_file).replace("server_", "").replace(".log", "")
            file_date = datetime.strptime(date_str, "%Y%m%d")

            if file_date < cutoff_date:
                os.remove(log_file)
                deleted_count += 1
        except (ValueError, OSError):
            continue

    return deleted_count


def setup_logging(settings: SignalingSettings) -> None:
    """콘솔 + 일별 파일 로그를 설정합니다."""
    handlers = [logging.StreamHandler()]  # 콘솔 출력
    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        log_filename = os.path.join(
            settings.LOG_DIR, f"server_{datetime.now().strftime('%Y%m%d')}.log"
        )
        handlers.append(logging.FileHandler(log_filename, encoding="utf-8"))  # 파일 저장

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
    logger.info(f"로깅 초기화 완료: level={settings.LOG_LEVEL}, env={settings.ENV}")


def create_app(settings: Optional[SignalingSettings] = None) -> FastAPI:
    """FastAPI 앱을 생성합니다.

    앱마다 독립된 SignalingService를 가지므로 테스트에서 여러 앱을 만들 수 있습니다.

    Args:
        settings: 설정 객체. 생략 시 환경변수 기반 설정 사용

    Returns:
        FastAPI: 시그널링 앱
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """FastAPI 앱의 생명주기를 관리하는 컨텍스트 매니저.

        Note:
            - 시작: 오래된 로그 정리, SignalingService 생성
            - 종료: 열린 WebSocket 연결 정리
        """
        logger.info("WebRTC 시그널링 서버 시작 중...")

        if settings.LOG_TO_FILE:
            deleted_logs = cleanup_old_logs(settings.LOG_DIR, settings.LOG_RETENTION_DAYS)
            if deleted_logs > 0:
                logger.info(f"오래된 로그 파일 {deleted_logs}개 정리 완료 "
                            f"({settings.LOG_RETENTION_DAYS}일 이상)")

        app.state.signaling = SignalingService(settings)

        yield

        logger.info("서버 종료 중...")
        await app.state.signaling.shutdown()

    app = FastAPI(title="WebRTC Signaling Relay", lifespan=lifespan)

    # CORS - 시그널링 엔드포인트는 모든 오리진 허용 (기본값)
    origins = settings.cors_origin_list
    # "*" 와일드카드와 credentials는 함께 쓸 수 없음
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(rooms_router)
    app.include_router(signaling_router)

    @app.get("/")
    async def root():
        """서버 상태 확인 엔드포인트 (Health check).

        Returns:
            dict: 서버 상태 정보
                - status (str): 서버 상태
                - service (str): 서비스 이름
        """
        return {"status": "ok", "service": "WebRTC Signaling Relay"}

    return app


_settings = get_settings()
setup_logging(_settings)
app = create_app(_settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=_settings.HOST, port=_settings.PORT, log_level="info")
