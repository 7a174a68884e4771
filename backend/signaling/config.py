"""시그널링 릴레이 설정.

서버 포트, 로그, CORS, 룸 정리 정책 등 환경변수 기반 설정을 관리합니다.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# .env 파일 로드
_env_path = Path(__file__).parent.parent / "config" / ".env"
load_dotenv(_env_path)


class SignalingSettings(BaseSettings):
    """시그널링 릴레이 설정 클래스.

    환경 변수를 Python 객체로 매핑하고 유효성을 검증합니다.
    """

    # 서버 설정
    HOST: str = Field(default="0.0.0.0", description="리스닝 호스트")
    PORT: int = Field(default=8000, description="리스닝 포트")
    ENV: str = Field(default="development", description="실행 환경")

    # 로깅 설정
    LOG_LEVEL: str = Field(default="INFO", description="로그 레벨")
    LOG_DIR: str = Field(default="logs", description="로그 파일 디렉토리")
    LOG_TO_FILE: bool = Field(default=True, description="파일 로그 저장 여부")
    LOG_RETENTION_DAYS: int = Field(default=60, description="로그 보관 기간 (일)")

    # CORS 설정 (콤마 구분, "*"는 모든 오리진 허용)
    CORS_ORIGINS: str = Field(default="*", description="허용 오리진 목록")

    # 릴레이 정책
    PRUNE_ROOMS_ON_DISCONNECT: bool = Field(
        default=True,
        description="연결 종료 시 룸 멤버십에서 핸들 제거"
    )
    NOTIFY_UNDELIVERED: bool = Field(
        default=False,
        description="목적지 핸들이 없을 때 송신자에게 undeliverable 알림 전송"
    )
    MAX_MESSAGE_BYTES: int = Field(
        default=65536,
        description="수신 메시지 최대 크기 (바이트)"
    )

    # Python 클라이언트 드라이버용 STUN 서버 (릴레이 자체는 사용하지 않음)
    STUN_SERVER_URL: Optional[str] = Field(default=None, description="STUN 서버 URL")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """로그 레벨 유효성 검증"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL은 {allowed} 중 하나여야 합니다.")
        return v.upper()

    @field_validator("MAX_MESSAGE_BYTES")
    @classmethod
    def validate_max_message_bytes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("MAX_MESSAGE_BYTES는 양수여야 합니다.")
        return v

    @property
    def cors_origin_list(self) -> List[str]:
        """CORS_ORIGINS를 리스트로 변환."""
        origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        return origins or ["*"]

    class Config:
        """Pydantic 설정"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


@lru_cache()
def get_settings() -> SignalingSettings:
    """설정 싱글톤 인스턴스를 반환합니다."""
    settings = SignalingSettings()
    logger.info(
        f"[Signaling Config] .env 경로: {_env_path} (존재: {_env_path.exists()}), "
        f"port={settings.PORT}, prune_rooms={settings.PRUNE_ROOMS_ON_DISCONNECT}"
    )
    return settings
