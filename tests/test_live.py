import time

import pytest

from skillswap import live, socketio
from skillswap.models import SkillCategory


@pytest.fixture
def sio(app):
    client = socketio.test_client(app)
    yield client
    if client.is_connected():
        client.disconnect()


def wait_for_results(client, timeout=3.0):
    """Collect search_results events until one arrives or the timeout passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        received = [m for m in client.get_received() if m["name"] == "search_results"]
        if received:
            return [m["args"][0] for m in received]
        time.sleep(0.02)
    return []


def test_blank_input_clears_results_immediately(sio):
    sio.emit("search", {"q": "   "})

    [update] = [m["args"][0] for m in sio.get_received() if m["name"] == "search_results"]

    assert update["results"] == []
    assert update["generation"] == 1


def test_search_results_arrive_after_debounce(sio, make_skill, make_profile):
    make_skill("Python")
    make_profile("pyfan", full_name="Penny Python")

    sio.emit("search", {"q": "py"})
    updates = wait_for_results(sio)

    assert len(updates) == 1
    assert updates[0]["query"] == "py"
    assert [r["type"] for r in updates[0]["results"]] == ["skill", "user"]


def test_only_latest_input_is_answered(app, sio, make_skill):
    app.config["SEARCH_DEBOUNCE_SECONDS"] = 0.5
    make_skill("Guitar", SkillCategory.music)

    sio.emit("search", {"q": "gu"})
    sio.emit("search", {"q": "gui"})
    updates = wait_for_results(sio)

    assert [u["query"] for u in updates] == ["gui"]
    assert updates[0]["generation"] == 2


def test_disconnect_closes_live_search(sio):
    sio.emit("search", {"q": "py"})
    assert len(live._searches) == 1

    sio.disconnect()

    assert live._searches == {}


def blank_generations(client, count):
    for _ in range(count):
        client.emit("search", {"q": ""})
    return [m["args"][0]["generation"] for m in client.get_received() if m["name"] == "search_results"]


def test_reconnect_starts_a_fresh_counter_and_page_resets(app, client, sio):
    assert blank_generations(sio, 3) == [1, 2, 3]
    sio.disconnect()

    reconnected = socketio.test_client(app)
    try:
        assert blank_generations(reconnected, 1) == [1]
    finally:
        reconnected.disconnect()

    # the page drops updates older than the last one seen, so its counter
    # has to start over on every connect
    page = client.get("/").get_data(as_text=True)
    assert 'socket.on("connect"' in page
    assert page.count("latest = 0;") == 2
