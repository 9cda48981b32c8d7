# test_timer.py

import time
import pytest
from weft import *


def test_timer_queue_expired():
    q = TimerQueue()
    assert q.next_deadline() is None

    q.push(50, 'a')
    q.push(25, 'b')
    q.push(100, 'c')
    assert len(q) == 3
    assert q.next_deadline() == 25

    assert [e.waker for e in q.expired(25)] == ['b']
    assert [e.waker for e in q.expired(101)] == ['a', 'c']
    assert len(q) == 0
    assert q.next_deadline() is None


def test_timer_queue_cancel():
    q = TimerQueue()
    q.push(10, 'x')
    entry = q.push(5, 'y')
    q.cancel(entry)
    assert len(q) == 1
    assert q.next_deadline() == 10

    # Cancelling twice is harmless
    q.cancel(entry)
    assert len(q) == 1
    assert [e.waker for e in q.expired(20)] == ['x']


def test_timer_queue_ties_fire_in_order():
    q = TimerQueue()
    for name in ('first', 'second', 'third'):
        q.push(5, name)
    assert [e.waker for e in q.expired(5)] == ['first', 'second', 'third']


def test_sleep_virtual_time(kernel):
    async def main():
        start = clock()
        await sleep(5)
        return clock() - start

    assert kernel.block_on(main) == 5


def test_sleep_never_early(kernel):
    finished = []

    async def sleeper(delay):
        start = clock()
        await sleep(delay)
        finished.append((delay, clock() - start))

    async def main():
        await join_all([sleeper(d) for d in (0.3, 0.1, 0.2)])

    kernel.block_on(main)
    assert [d for d, _ in finished] == [0.1, 0.2, 0.3]
    assert all(elapsed >= delay for delay, elapsed in finished)


def test_sleep_zero(kernel):
    async def main():
        await sleep(0)
        await sleep(-1)
        return len(kernel.timers)

    assert kernel.block_on(main) == 0


def test_sleep_until(kernel):
    async def main():
        await sleep_until(7)
        return clock()

    assert kernel.block_on(main) == 7


def test_sleep_real_clock():
    async def main():
        start = time.monotonic()
        await sleep(0.05)
        return time.monotonic() - start

    assert block_on(main) >= 0.05


def test_sleep_needs_kernel():
    with pytest.raises(RuntimeError):
        sleep(1).poll(noop_waker())


def test_manual_clock_advance(manual_clock):
    manual_clock.advance(2.5)
    assert manual_clock.monotonic() == 2.5
    with pytest.raises(ValueError):
        manual_clock.advance(-1)


def test_timeout_elapsed(kernel):
    async def main():
        with pytest.raises(Elapsed):
            await timeout(1, sleep(10))
        return clock(), len(kernel.timers)

    assert kernel.block_on(main) == (1, 0)


def test_timeout_success(kernel):
    async def compute():
        await sleep(1)
        return 'x'

    async def main():
        result = await timeout(5, compute())
        return result, clock(), len(kernel.timers)

    assert kernel.block_on(main) == ('x', 1, 0)


def test_timeout_closes_future(kernel):
    cleaned = []

    async def slow():
        try:
            await sleep(100)
        finally:
            cleaned.append(clock())

    async def main():
        with pytest.raises(Elapsed):
            await timeout(2, slow())

    kernel.block_on(main)
    assert cleaned == [2]
