import asyncio

import pytest

from statestream import Notification, StateMachine


async def ticks(items, closed=None):
    try:
        for x in items:
            await asyncio.sleep(0.001)
            yield x
    finally:
        if closed is not None:
            closed.append(True)


def running_sum():
    def transition(total, x, emitter):
        total += x
        emitter.emit(total)
        return total

    def completion(total, emitter):
        emitter.emit(("total", total))
        return True

    return StateMachine(lambda: 0, transition, completion)


@pytest.mark.asyncio
async def test_async_transform():
    res = []
    async for x in running_sum().atransform(ticks([1, 2, 3])):
        res.append(x)

    assert res == [1, 3, 6, ("total", 6)]


@pytest.mark.asyncio
async def test_async_count_empty():
    sm = StateMachine(lambda: 0, lambda c, x, e: c + 1, lambda c, e: e.emit(c) or True)
    res = [x async for x in sm.atransform(ticks([]))]
    assert res == [0]


@pytest.mark.asyncio
async def test_async_notifications_complete_once():
    sm = StateMachine(
        lambda: None,
        lambda s, x, e: e.emit(x) or s,
        lambda s, e: False,
    )
    ns = [n async for n in sm.anotifications(ticks([1, 2]))]
    assert ns == [
        Notification.on_next(1),
        Notification.on_next(2),
        Notification.on_completed(),
    ]


@pytest.mark.asyncio
async def test_async_early_termination():
    seen = []
    closed = []

    def transition(state, x, emitter):
        seen.append(x)
        if x == "STOP":
            emitter.complete()
        else:
            emitter.emit(x)
        return state

    sm = StateMachine(lambda: None, transition, lambda s, e: True)
    res = [x async for x in sm.atransform(ticks(["a", "STOP", "b"], closed))]

    assert res == ["a"]
    assert seen == ["a", "STOP"]
    assert closed == [True]


@pytest.mark.asyncio
async def test_async_upstream_error():
    async def failing():
        yield 1
        await asyncio.sleep(0.001)
        raise ValueError("async boom")

    res = []
    with pytest.raises(ValueError, match="async boom"):
        async for x in running_sum().atransform(failing()):
            res.append(x)

    assert res == [1]


@pytest.mark.asyncio
async def test_async_records():
    records = [r async for r in running_sum().arecords(ticks([5, 5]))]

    assert [r.state for r in records] == [5, 10, None]
    assert records[-1].terminated
    assert records[-1].notifications[-1] == Notification.on_completed()


@pytest.mark.asyncio
async def test_async_resubscription():
    sm = running_sum()
    first = [x async for x in sm.atransform(ticks([1, 2]))]
    second = [x async for x in sm.atransform(ticks([1, 2]))]
    assert first == second == [1, 3, ("total", 3)]
