"""CallSession / NegotiationDriver 테스트.

CallSession은 실제 SignalingService를 메모리 안에서 거쳐 서로 통화합니다.
"""

import json

import pytest
from aiortc.mediastreams import AudioStreamTrack, VideoStreamTrack

from signaling.client import CallSession, CallState, NegotiationDriver
from signaling.schemas import CONNECTED, make_message


class FakeDriver:
    """NegotiationDriver와 같은 인터페이스의 대역."""

    def __init__(self, name: str):
        self.name = name
        self.offers = 0
        self.remote_descriptions = []
        self.tracks = []
        self.established = False
        self.on_negotiation_needed = None
        self.on_remote_track = None

    async def create_offer(self):
        self.offers += 1
        return {"type": "offer", "sdp": f"{self.name}-offer-{self.offers}"}

    async def create_answer(self, remote_description):
        self.remote_descriptions.append(remote_description)
        self.established = True
        return {"type": "answer", "sdp": f"{self.name}-answer-{len(self.remote_descriptions)}"}

    async def set_remote_description(self, description):
        self.remote_descriptions.append(description)
        self.established = True

    async def add_local_track(self, track):
        self.tracks.append(track)
        if self.established and self.on_negotiation_needed:
            await self.on_negotiation_needed()


class LoopbackSocket:
    """릴레이 → 클라이언트 방향: send_json을 세션의 handle_message로 전달."""

    def __init__(self, session):
        self.session = session

    async def send_json(self, message):
        await self.session.handle_message(message)

    async def close(self, code=1000):
        pass


class RelayLink:
    """클라이언트 → 릴레이 방향: 텍스트 프레임을 relay.dispatch로 전달."""

    def __init__(self, service, handle):
        self.service = service
        self.handle = handle
        self.sent = []

    async def send(self, text):
        self.sent.append(json.loads(text))
        await self.service.relay.dispatch(self.handle, text)


async def _attach(service, session):
    handle = service.lifecycle.on_connect(LoopbackSocket(session))
    session.ws = RelayLink(service, handle)
    await session.handle_message(make_message(CONNECTED, {"handle": handle}))
    await session.join()
    return handle


async def test_full_call_with_renegotiation_through_relay(service):
    alice = CallSession("alice", "demo", FakeDriver("alice"), local_tracks=["mic"])
    bob = CallSession("bob", "demo", FakeDriver("bob"))

    ha = await _attach(service, alice)
    hb = await _attach(service, bob)

    assert alice.handle == ha and bob.handle == hb
    assert alice.joined_room == "demo" and bob.joined_room == "demo"
    assert alice.remote_handle == hb
    assert alice.peer_joined.is_set()

    await alice.call()

    # 최초 offer/answer 후 트랙 전송 -> 재협상까지 완료
    assert alice.state == CallState.CONNECTED
    assert bob.state == CallState.CONNECTED
    assert bob.remote_handle == ha
    assert alice.driver.tracks == ["mic"]

    sent_by_alice = [m["type"] for m in alice.ws.sent]
    sent_by_bob = [m["type"] for m in bob.ws.sent]
    assert sent_by_alice == ["join", "call-offer", "renego-offer"]
    assert sent_by_bob == ["join", "call-answer", "renego-answer"]

    # payload는 릴레이를 거쳐도 그대로
    assert bob.driver.remote_descriptions == [
        {"type": "offer", "sdp": "alice-offer-1"},
        {"type": "offer", "sdp": "alice-offer-2"},
    ]
    assert alice.driver.remote_descriptions == [
        {"type": "answer", "sdp": "bob-answer-1"},
        {"type": "answer", "sdp": "bob-answer-2"},
    ]


async def test_callee_sends_its_tracks_after_answering(service):
    alice = CallSession("alice", "demo", FakeDriver("alice"))
    bob = CallSession("bob", "demo", FakeDriver("bob"), local_tracks=["cam"])

    await _attach(service, alice)
    await _attach(service, bob)

    await alice.call()

    assert bob.driver.tracks == ["cam"]
    assert [m["type"] for m in bob.ws.sent] == ["join", "call-answer", "renego-offer"]
    assert [m["type"] for m in alice.ws.sent] == ["join", "call-offer", "renego-answer"]
    assert alice.state == CallState.CONNECTED
    assert bob.state == CallState.CONNECTED


async def test_auto_call_starts_when_peer_joins(service):
    alice = CallSession("alice", "demo", FakeDriver("alice"), auto_call=True)
    bob = CallSession("bob", "demo", FakeDriver("bob"))

    await _attach(service, alice)
    await _attach(service, bob)

    assert alice.state == CallState.CONNECTED
    assert bob.state == CallState.CONNECTED


async def test_call_without_peer_raises(service):
    alice = CallSession("alice", "demo", FakeDriver("alice"))
    await _attach(service, alice)

    with pytest.raises(RuntimeError):
        await alice.call()
    assert alice.state == CallState.IDLE


async def test_bad_incoming_message_is_logged_not_raised(service):
    alice = CallSession("alice", "demo", FakeDriver("alice"))
    await _attach(service, alice)

    await alice.handle_message({"type": "incoming-call", "data": {}})
    await alice.handle_message({"type": "mystery"})
    await alice.handle_message({"type": "renego-final", "data": {"answer": None}})

    assert alice.state == CallState.IDLE


async def test_negotiation_driver_offer_answer_and_renegotiation():
    caller, callee = NegotiationDriver(), NegotiationDriver()
    renegotiations = []

    async def on_negotiation_needed():
        renegotiations.append(True)

    caller.on_negotiation_needed = on_negotiation_needed
    try:
        # 연결 전 트랙 추가는 재협상을 유발하지 않음
        await caller.add_local_track(AudioStreamTrack())
        assert renegotiations == []

        offer = await caller.create_offer()
        assert offer["type"] == "offer"
        assert "m=audio" in offer["sdp"]

        answer = await callee.create_answer(offer)
        assert answer["type"] == "answer"

        await caller.set_remote_description(answer)
        assert caller.is_established and callee.is_established

        await caller.add_local_track(VideoStreamTrack())
        assert renegotiations == [True]
    finally:
        await caller.close()
        await callee.close()
