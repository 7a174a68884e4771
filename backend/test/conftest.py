"""공용 테스트 픽스처."""

import os
import sys
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# 테스트 중에는 파일 로그를 남기지 않음
os.environ.setdefault("LOG_TO_FILE", "false")

from signaling import SignalingService, SignalingSettings  # noqa: E402


class FakeSocket:
    """send_json/close만 가진 WebSocket 대역."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail
        self.closed = False
        self.close_code = None

    async def send_json(self, message: dict):
        if self.fail or self.closed:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    async def close(self, code: int = 1000):
        self.closed = True
        self.close_code = code

    def of_type(self, message_type: str) -> list:
        return [m for m in self.sent if m["type"] == message_type]


def make_settings(**overrides) -> SignalingSettings:
    values = {"LOG_TO_FILE": False}
    values.update(overrides)
    return SignalingSettings(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def service(settings):
    return SignalingService(settings)


@pytest.fixture
def connect(service):
    """서비스에 FakeSocket 연결을 만들고 (handle, socket)을 반환하는 팩토리."""

    def _connect(fail: bool = False):
        socket = FakeSocket(fail=fail)
        handle = service.lifecycle.on_connect(socket)
        return handle, socket

    return _connect
