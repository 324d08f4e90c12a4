"""Unit tests for the per-channel floor state machine."""

import threading

import pytest

import floor
from backend import Channel
from floor import FloorState


@pytest.fixture
def channel() -> Channel:
    return Channel("ABC", members={"a": "Alice", "b": "Bob"})


def test_initial_state_is_free(channel: Channel) -> None:
    assert floor.floor_state(channel) == FloorState.FREE


def test_request_on_free_floor_is_granted(channel: Channel) -> None:
    assert floor.request_floor(channel, "a") is True
    assert channel.floor_holder == "a"
    assert floor.floor_state(channel) == FloorState.HELD


def test_request_while_held_by_other_is_rejected(channel: Channel) -> None:
    floor.request_floor(channel, "a")

    assert floor.request_floor(channel, "b") is False
    assert channel.floor_holder == "a"


def test_repeated_request_by_holder_is_a_silent_noop(channel: Channel) -> None:
    floor.request_floor(channel, "a")

    assert floor.request_floor(channel, "a") is False
    assert channel.floor_holder == "a"


def test_request_from_non_member_is_ignored(channel: Channel) -> None:
    assert floor.request_floor(channel, "stranger") is False
    assert channel.floor_holder is None


def test_release_by_holder_frees_floor(channel: Channel) -> None:
    floor.request_floor(channel, "a")

    assert floor.release_floor(channel, "a") is True
    assert floor.floor_state(channel) == FloorState.FREE


@pytest.mark.parametrize("holder", [None, "a"])
def test_release_by_non_holder_changes_nothing(channel: Channel, holder) -> None:
    channel.floor_holder = holder

    assert floor.release_floor(channel, "b") is False
    assert channel.floor_holder == holder


def test_force_release_only_affects_holder(channel: Channel) -> None:
    floor.request_floor(channel, "a")

    assert floor.force_release(channel, "b") is False
    assert channel.floor_holder == "a"
    assert floor.force_release(channel, "a") is True
    assert channel.floor_holder is None


def test_free_floor_can_be_taken_by_next_requester(channel: Channel) -> None:
    floor.request_floor(channel, "a")
    floor.release_floor(channel, "a")

    assert floor.request_floor(channel, "b") is True
    assert channel.floor_holder == "b"


def test_concurrent_requests_grant_exactly_one() -> None:
    members = {f"c{i}": f"user{i}" for i in range(16)}
    channel = Channel("RACE", members=dict(members))
    barrier = threading.Barrier(len(members))
    granted = []

    def contend(conn_id: str) -> None:
        barrier.wait()
        if floor.request_floor(channel, conn_id):
            granted.append(conn_id)

    threads = [threading.Thread(target=contend, args=(conn_id,)) for conn_id in members]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(granted) == 1
    assert channel.floor_holder == granted[0]
