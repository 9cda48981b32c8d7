# test_stream.py

import pytest
from weft import *


def test_iter_stream_filter(kernel):
    values = [n * 2 for n in range(1, 101)]

    async def main():
        stream = stream_from_iter(values).filter(lambda v: v % 3 == 0 or v % 5 == 0)
        return [v async for v in stream]

    assert kernel.block_on(main) == [v for v in values if v % 3 == 0 or v % 5 == 0]


def test_map_take(kernel):
    async def main():
        stream = stream_from_iter(range(1, 10)).map(lambda x: x * x).take(3)
        return [v async for v in stream]

    assert kernel.block_on(main) == [1, 4, 9]


def test_next(kernel):
    async def main():
        stream = stream_from_iter('ab')
        return [await stream.next() for _ in range(4)]

    assert kernel.block_on(main) == ['a', 'b', None, None]


def test_none_item_rejected(kernel):
    async def main():
        return [v async for v in stream_from_iter([1, None])]

    with pytest.raises(TypeError):
        kernel.block_on(main)


def test_receiver_stream(kernel):
    async def produce(tx):
        with tx:
            for msg in 'abc':
                await sleep(1)
                tx.send(msg)

    async def main():
        tx, rx = channel()
        spawn(produce, tx)
        del tx
        return [(msg, clock()) async for msg in ReceiverStream(rx)]

    assert kernel.block_on(main) == [('a', 1), ('b', 2), ('c', 3)]


def test_take_closes_receiver(kernel):
    async def main():
        tx, rx = channel()
        for n in range(1, 6):
            tx.send(n)
        taken = [v async for v in ReceiverStream(rx).take(2)]
        with pytest.raises(SendError):
            tx.send(6)
        return taken

    assert kernel.block_on(main) == [1, 2]


def test_merge_alternates():
    stream = stream_from_iter('aaa').merge(stream_from_iter('bbb'))
    items = []
    while True:
        item = stream.next().poll(noop_waker()).value
        if item is None:
            break
        items.append(item)
    assert ''.join(items) == 'ababab'


def test_merge_channels(kernel):
    async def ticker(tx, name, interval, count):
        with tx:
            for n in range(count):
                await sleep(interval)
                tx.send((name, n))

    async def main():
        tx1, rx1 = channel()
        tx2, rx2 = channel()
        spawn(ticker, tx1, 'a', 1, 3)
        spawn(ticker, tx2, 'b', 1.5, 2)
        del tx1, tx2
        merged = ReceiverStream(rx1).merge(ReceiverStream(rx2))
        return [(msg, clock()) async for msg in merged]

    received = kernel.block_on(main)
    assert len(received) == 5
    for name in ('a', 'b'):
        assert [n for (who, n), _ in received if who == name] == list(range(3 if name == 'a' else 2))
    times = [t for _, t in received]
    assert times == sorted(times)


def test_throttle(kernel):
    async def main():
        stream = stream_from_iter(range(1, 4)).throttle(1)
        return [(v, clock()) async for v in stream]

    assert kernel.block_on(main) == [(1, 0), (2, 1), (3, 2)]


def test_timeout_per_item(kernel):
    async def produce(tx):
        with tx:
            for msg, delay in (('a', 1), ('b', 3), ('c', 1)):
                await sleep(delay)
                tx.send(msg)

    async def main():
        tx, rx = channel()
        spawn(produce, tx)
        del tx
        received = []
        async for msg in ReceiverStream(rx).timeout(2):
            received.append(('timeout' if isinstance(msg, Elapsed) else msg, clock()))
        return received, len(kernel.timers)

    received, timers = kernel.block_on(main)
    assert received == [('a', 1), ('timeout', 3), ('b', 4), ('c', 5)]
    assert timers == 0
