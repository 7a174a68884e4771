"""WebRTC 시그널링 WebSocket 라우터.

룸 참가와 offer/answer 및 재협상 메시지 중계를 위한 WebSocket 엔드포인트를
제공합니다. 메시지 처리 자체는 NegotiationRelay가 담당합니다.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from signaling.schemas import CONNECTED, make_message

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebRTC 시그널링을 위한 WebSocket 엔드포인트.

    처리하는 메시지 타입:
        - join: 룸 참가 (identity, room 필요)
        - call-offer / call-answer: 최초 offer/answer 전달
        - renego-offer / renego-answer: 재협상 offer/answer 전달
        - get-rooms: 활성 룸 목록 요청

    텍스트/바이너리 프레임 모두 JSON으로 처리합니다. 잘못된 메시지는
    폐기되며 연결은 유지됩니다.

    Args:
        websocket: FastAPI WebSocket 연결 객체
    """
    service = getattr(websocket.app.state, "signaling", None)
    if service is None:
        logger.error("시그널링 서비스가 초기화되지 않음")
        await websocket.close(code=1011, reason="Server not ready")
        return

    await websocket.accept()
    handle = service.lifecycle.on_connect(websocket)

    try:
        # 클라이언트에 핸들 전송
        await websocket.send_json(make_message(CONNECTED, {"handle": handle}))

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"핸들 {handle} 연결 끊김 (code={message.get('code')})")
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue

            await service.relay.dispatch(handle, raw)

    except WebSocketDisconnect:
        logger.info(f"핸들 {handle} 연결 끊김")
    except Exception as e:
        logger.error(f"핸들 {handle}의 WebSocket 연결 중 오류: {e}", exc_info=True)
    finally:
        service.lifecycle.on_disconnect(handle)
