import asyncio

import pytest

from treeworker.gate import ReadinessGate


@pytest.mark.asyncio
async def test_wait_returns_immediately_when_open():
    gate = ReadinessGate()
    gate.open("dataset")
    assert gate.is_open
    assert await gate.wait() == "dataset"


@pytest.mark.asyncio
async def test_waiters_resume_after_open():
    gate = ReadinessGate()
    waiters = [asyncio.create_task(gate.wait()) for _ in range(3)]
    await asyncio.sleep(0.01)
    assert not any(w.done() for w in waiters)

    gate.open("dataset")
    assert await asyncio.gather(*waiters) == ["dataset"] * 3


@pytest.mark.asyncio
async def test_wait_has_no_timeout_of_its_own():
    gate = ReadinessGate()
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(gate.wait(), timeout=0.05)
    assert not gate.is_open


@pytest.mark.asyncio
async def test_reopen_replaces_value():
    gate = ReadinessGate()
    gate.open("first")
    gate.open("second")
    assert await gate.wait() == "second"


def test_gate_can_be_opened_outside_a_loop():
    gate = ReadinessGate()
    gate.open(1)
    assert gate.value == 1


@pytest.mark.asyncio
async def test_value_is_returned_after_waiting():
    gate = ReadinessGate()
    waiter = asyncio.create_task(gate.wait())
    await asyncio.sleep(0)
    gate.open({"num_nodes": 5})
    assert await asyncio.wait_for(waiter, timeout=1) == {"num_nodes": 5}
