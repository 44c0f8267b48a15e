import threading

import pytest

from treeworker.host import WorkerHost

from conftest import make_tree_dataset


@pytest.fixture
def host():
    host = WorkerHost()
    try:
        yield host
    finally:
        host.stop()


def test_submit_resolves_with_the_matching_response(host):
    host.load_dataset(make_tree_dataset())
    response = host.submit({"type": "details", "node_id": 4}).result(timeout=5)
    assert response["type"] == "details"
    assert response["data"]["name"] == "C"
    assert "request_id" in response


def test_caller_request_id_is_kept(host):
    host.load_dataset(make_tree_dataset())
    response = host.submit({"type": "config", "request_id": "mine"}).result(timeout=5)
    assert response["request_id"] == "mine"


def test_overlapping_requests_of_one_type(host):
    futures = [host.submit({"type": "details", "node_id": node_id}) for node_id in range(5)]
    host.load_dataset(make_tree_dataset())
    names = [future.result(timeout=5)["data"]["name"] for future in futures]
    assert names == ["", "", "A", "B", "C"]


def test_status_messages_reach_subscribers(host):
    received = []
    done = threading.Event()

    def on_status(message):
        received.append(message)
        done.set()

    host.subscribe(on_status)
    host.post({"type": "upload", "data": {"filename": "notes.txt", "data": "x"}})
    assert done.wait(timeout=5)
    assert received[0]["type"] == "status"
    assert "error" in received[0]["data"]


def test_unsubscribe(host):
    received = []
    unsubscribe = host.subscribe(received.append)
    unsubscribe()
    host.post({"type": "upload", "data": None}).result(timeout=5)
    assert received == []


def test_failing_subscriber_does_not_stop_others(host):
    received = []

    def broken(message):
        raise RuntimeError("subscriber bug")

    host.subscribe(broken)
    host.subscribe(received.append)
    host.post({"type": "upload", "data": None}).result(timeout=5)
    assert len(received) == 1


def test_stop():
    host = WorkerHost()
    assert host.is_running
    host.stop()
    assert not host.is_running
    host.stop()


@pytest.mark.parametrize("request_id", [7, 0])
def test_non_string_request_ids_resolve(host, request_id):
    host.load_dataset(make_tree_dataset())
    response = host.submit({"type": "config", "request_id": request_id}).result(timeout=5)
    assert response["request_id"] == str(request_id)
    assert response["data"]["num_nodes"] == 5
