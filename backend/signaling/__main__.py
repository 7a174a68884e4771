"""Python 피어로 릴레이에 접속해 통화를 진행하는 CLI.

사용법:
    cd backend
    python -m signaling --url ws://localhost:8000/ws --identity alice --room demo --auto-call
"""

import argparse
import asyncio
import logging

from aiortc.mediastreams import AudioStreamTrack

from .client import CallSession, NegotiationDriver
from .config import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def run_call(url: str, identity: str, room: str, auto_call: bool, send_audio: bool) -> None:
    settings = get_settings()
    ice_servers = [settings.STUN_SERVER_URL] if settings.STUN_SERVER_URL else []

    driver = NegotiationDriver(ice_servers=ice_servers)
    tracks = [AudioStreamTrack()] if send_audio else []
    session = CallSession(identity, room, driver, local_tracks=tracks, auto_call=auto_call)

    try:
        await session.run(url)
    finally:
        await driver.close()
        logger.info(f"통화 종료: state={session.state.value}, 수신 트랙 {len(session.remote_tracks)}개")


def main():
    parser = argparse.ArgumentParser(description="Join a signaling room as a Python WebRTC peer")
    parser.add_argument("--url", default="ws://localhost:8000/ws", help="Signaling WebSocket URL")
    parser.add_argument("--identity", required=True, help="Identity announced on join")
    parser.add_argument("--room", required=True, help="Room to join")
    parser.add_argument(
        "--auto-call",
        action="store_true",
        help="Send a call offer as soon as another peer joins"
    )
    parser.add_argument(
        "--send-audio",
        action="store_true",
        help="Send a silent audio track once the call is connected (caller or callee)"
    )
    args = parser.parse_args()

    try:
        asyncio.run(run_call(args.url, args.identity, args.room, args.auto_call, args.send_audio))
    except KeyboardInterrupt:
        logger.info("사용자에 의해 중단됨")


if __name__ == "__main__":
    main()
