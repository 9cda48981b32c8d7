# test_future.py

import pytest
from weft import *
from weft.sched import WakerSlot, WakerSet


def counting_waker():
    calls = []
    return Waker(lambda: calls.append(1)), calls


def test_ready_future():
    f = ready(42)
    assert f.poll(noop_waker()) == Ready(42)
    assert f.completed
    with pytest.raises(FutureAlreadyCompleted):
        f.poll(noop_waker())


def test_pending_future():
    f = pending()
    assert f.poll(noop_waker()) is PENDING
    assert f.poll(noop_waker()) is PENDING
    assert not f.completed


def test_coroutine_suspends_and_resumes():
    async def main():
        await yield_now()
        return 'done'

    f = as_future(main)
    waker, calls = counting_waker()
    assert f.poll(waker) is PENDING
    assert calls == [1]
    assert f.poll(waker) == Ready('done')
    with pytest.raises(FutureAlreadyCompleted):
        f.poll(waker)


def test_coroutine_exception():
    async def boom():
        raise ValueError('boom')

    f = as_future(boom)
    with pytest.raises(ValueError):
        f.poll(noop_waker())
    with pytest.raises(FutureAlreadyCompleted):
        f.poll(noop_waker())


def test_foreign_awaitable_rejected():
    class Foreign:
        def __await__(self):
            yield 'something'

    async def main():
        await Foreign()

    f = as_future(main)
    with pytest.raises(TypeError):
        f.poll(noop_waker())


def test_as_future_arguments():
    async def add(x, y):
        return x + y

    assert as_future(add, 2, 3).poll(noop_waker()) == Ready(5)
    assert as_future(add(4, 5)).poll(noop_waker()) == Ready(9)

    f = ready(1)
    assert as_future(f) is f


def test_as_future_bad_arguments():
    async def add(x, y):
        return x + y

    with pytest.raises(TypeError):
        as_future(42)
    with pytest.raises(TypeError):
        as_future(ready(1), 2)
    with pytest.raises(TypeError):
        as_future(lambda: 5)

    coro = add(1, 2)
    with pytest.raises(TypeError):
        as_future(coro, 3)
    coro.close()


def test_await_outside_poll():
    with pytest.raises(RuntimeError):
        ready(1).__await__().send(None)


def test_poll_fn():
    polls = 0

    def poll(waker):
        nonlocal polls
        polls += 1
        if polls < 3:
            waker.wake()
            return PENDING
        return Ready(polls)

    f = poll_fn(poll)
    waker, calls = counting_waker()
    assert f.poll(waker) is PENDING
    assert f.poll(waker) is PENDING
    assert f.poll(waker) == Ready(3)
    assert len(calls) == 2


def test_poll_fn_bad_result():
    f = poll_fn(lambda waker: 'nope')
    with pytest.raises(TypeError):
        f.poll(noop_waker())


def test_close_runs_cleanup():
    cleaned = []

    async def main():
        try:
            await pending()
        finally:
            cleaned.append(True)

    f = as_future(main)
    assert f.poll(noop_waker()) is PENDING
    f.close()
    assert cleaned == [True]
    assert f.completed


def test_waker_identity():
    waker, calls = counting_waker()
    copy = waker.clone()
    assert copy == waker
    assert copy.will_wake(waker)
    assert not waker.will_wake(noop_waker())
    copy()
    copy.wake()
    assert calls == [1, 1]
    assert noop_waker() is noop_waker()


def test_waker_slot():
    slot = WakerSlot()
    first, first_calls = counting_waker()
    second, second_calls = counting_waker()
    slot.register('a', first)
    slot.register('b', second)
    assert len(slot) == 1
    assert slot.wake() == 1
    assert first_calls == []
    assert second_calls == [1]
    assert slot.wake() == 0


def test_waker_set():
    wakers = WakerSet()
    order = []
    wakers.register('a', Waker(lambda: order.append('a')))
    wakers.register('b', Waker(lambda: order.append('b')))
    wakers.register('c', Waker(lambda: order.append('c')))
    wakers.discard('b')
    wakers.discard('missing')
    assert len(wakers) == 2
    assert wakers.wake() == 2
    assert order == ['a', 'c']
    assert len(wakers) == 0
