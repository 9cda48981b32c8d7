# test_join.py

import pytest
from itertools import permutations
from weft import *


class Countdown(Future):
    '''
    Completes on its n-th poll, recording every poll in log.
    '''
    def __init__(self, name, n, log):
        self.name = name
        self.n = n
        self.log = log

    def _poll(self, waker):
        self.log.append(self.name)
        self.n -= 1
        if self.n <= 0:
            return Ready(self.name)
        waker.wake()
        return PENDING


def drive(future):
    waker = noop_waker()
    while True:
        result = future.poll(waker)
        if result is not PENDING:
            return result.value


def test_join_polls_round_robin():
    log = []
    result = drive(join3(Countdown('a', 3, log), Countdown('b', 1, log), Countdown('c', 2, log)))
    assert result == ('a', 'b', 'c')
    assert log == ['a', 'b', 'c', 'a', 'c', 'a']


def test_join_is_deterministic():
    def trace():
        log = []
        drive(join_all([Countdown(n, len(n), log) for n in ('xx', 'y', 'zzz', 'ww')]))
        return log

    assert trace() == trace()


def test_join_pending_until_all_ready():
    log = []
    f = join(Countdown('a', 1, log), Countdown('b', 2, log))
    assert f.poll(noop_waker()) is PENDING
    assert f.poll(noop_waker()) == Ready(('a', 'b'))


def test_ready_order_follows_work(kernel):
    finished = []

    async def worker(name, n):
        for _ in range(n):
            await yield_now()
        finished.append(name)

    async def main():
        return await join3(worker('a', 3), worker('b', 1), worker('c', 2))

    kernel.block_on(main)
    assert finished == ['b', 'c', 'a']


@pytest.mark.parametrize('delays', list(permutations([1, 2])))
def test_join_waits_for_both(kernel, delays):
    async def sleeper(delay):
        await sleep(delay)
        return delay

    async def main():
        result = await join(sleeper(delays[0]), sleeper(delays[1]))
        return result, clock()

    assert kernel.block_on(main) == (delays, 2)


def test_join_all(kernel):
    async def sleeper(delay):
        await sleep(delay)
        return delay * 10

    async def main():
        return await join_all([sleeper(d) for d in (3, 1, 2)])

    assert kernel.block_on(main) == [30, 10, 20]
    assert kernel.block_on(join_all([])) == []


def test_join_failure(kernel):
    closed = []

    async def ok():
        return 1

    async def bad():
        await yield_now()
        raise ValueError('bad')

    async def waiting():
        try:
            await sleep(10)
        finally:
            closed.append(True)

    async def main():
        with pytest.raises(JoinError) as exc_info:
            await join3(ok(), bad(), waiting())
        return exc_info.value

    err = kernel.block_on(main)
    assert err.index == 1
    assert err.results == [1, PENDING, PENDING]
    assert isinstance(err.__cause__, ValueError)
    assert closed == [True]
    assert len(kernel.timers) == 0


def test_join_handles(kernel):
    async def child(x):
        await sleep(x)
        return x

    async def main():
        return await join(spawn(child, 2), spawn(child, 1))

    assert kernel.block_on(main) == (2, 1)


def test_race_faster_wins(kernel):
    closed = []

    async def sleep_then(value, delay):
        try:
            await sleep(delay)
            return value
        finally:
            closed.append(value)

    async def main():
        result = await race(sleep_then('a', 2), sleep_then('b', 1))
        return result, clock()

    assert kernel.block_on(main) == (Right('b'), 1)
    assert closed == ['b', 'a']


def test_race_left_bias():
    assert drive(race(ready(1), ready(2))) == Left(1)
    assert Left(1) != Right(1)


def test_race_failure():
    async def bad():
        raise ValueError()

    with pytest.raises(ValueError):
        drive(race(pending(), bad()))


def test_join_closes_children_on_base_exception():
    closed = []

    class Abort(BaseException):
        pass

    async def abort():
        raise Abort()

    async def waiting():
        try:
            await pending()
        finally:
            closed.append(True)

    with pytest.raises(Abort):
        drive(join(waiting(), abort()))
    assert closed == [True]
