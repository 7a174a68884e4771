"""ConnectionRegistry 테스트."""

import random

from signaling import ConnectionRegistry


def test_record_and_resolve_both_directions():
    registry = ConnectionRegistry()
    registry.record("alice", "h1")

    assert registry.resolve_identity("h1") == "alice"
    assert registry.resolve_handle("alice") == "h1"
    assert "h1" in registry
    assert len(registry) == 1


def test_record_is_idempotent():
    registry = ConnectionRegistry()
    registry.record("alice", "h1")
    registry.record("alice", "h1")

    assert registry.identity_to_handle == {"alice": "h1"}
    assert registry.handle_to_identity == {"h1": "alice"}


def test_same_identity_rejoin_overwrites_forward_entry():
    registry = ConnectionRegistry()
    registry.record("alice", "h1")
    registry.record("alice", "h2")

    assert registry.resolve_handle("alice") == "h2"
    assert registry.resolve_identity("h1") == "alice"
    assert registry.resolve_identity("h2") == "alice"


def test_forget_is_scoped_to_exact_handle():
    registry = ConnectionRegistry()
    registry.record("alice", "h1")
    registry.record("alice", "h2")

    # 오래된 연결이 먼저 끊겨도 새 매핑은 유지
    assert registry.forget("h1") == "alice"
    assert registry.resolve_handle("alice") == "h2"
    assert registry.resolve_identity("h1") is None

    assert registry.forget("h2") == "alice"
    assert registry.resolve_handle("alice") is None
    assert len(registry) == 0


def test_forget_newer_handle_leaves_older_reverse_entry():
    registry = ConnectionRegistry()
    registry.record("alice", "h1")
    registry.record("alice", "h2")

    registry.forget("h2")

    assert registry.resolve_identity("h1") == "alice"
    assert registry.forget("h1") == "alice"


def test_forget_unknown_handle_returns_none():
    registry = ConnectionRegistry()
    assert registry.forget("missing") is None


def test_handle_rebound_to_new_identity_drops_old_forward_entry():
    registry = ConnectionRegistry()
    registry.record("alice", "h1")
    registry.record("bob", "h1")

    assert registry.resolve_handle("alice") is None
    assert registry.resolve_handle("bob") == "h1"
    assert registry.resolve_identity("h1") == "bob"


def test_reverse_map_invariant_over_random_sequences():
    rng = random.Random(1234)
    registry = ConnectionRegistry()
    connected = set()
    identities = ["alice", "bob", "carol"]

    for step in range(500):
        action = rng.choice(["connect", "join", "disconnect"])
        if action == "connect":
            connected.add(f"h{step}")
        elif action == "join" and connected:
            registry.record(rng.choice(identities), rng.choice(sorted(connected)))
        elif action == "disconnect" and connected:
            handle = rng.choice(sorted(connected))
            connected.discard(handle)
            registry.forget(handle)

        assert set(registry.handle_to_identity) <= connected
        for identity, handle in registry.identity_to_handle.items():
            assert registry.handle_to_identity.get(handle) == identity
