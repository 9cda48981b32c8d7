# weft/stream.py
#
# Asynchronous streams.
#
# A stream is to an iterator what a future is to a function call.
# It has one entry point, poll_next(waker), returning Ready(item) for
# the next item, Ready(None) once exhausted, or PENDING.  Streams can
# be consumed with "async for" or by awaiting next() repeatedly.  As
# with channels, None is reserved for the end of the stream.

__all__ = ['Stream', 'stream_from_iter', 'ReceiverStream']

# -- Weft

from .errors import Elapsed
from .future import Future, Ready, PENDING
from .timer import sleep_until, clock


class Stream(object):
    '''
    Base class for streams.  Subclasses implement poll_next(waker).
    '''

    def poll_next(self, waker):
        raise NotImplementedError

    def next(self):
        '''
        Return a future for the next item (None at the end).
        '''
        return Next(self)

    def close(self):
        pass

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self.next()
        if item is None:
            raise StopAsyncIteration
        return item

    # -- Combinators

    def map(self, func):
        return Map(self, func)

    def filter(self, predicate):
        return Filter(self, predicate)

    def take(self, n):
        return Take(self, n)

    def merge(self, other):
        '''
        Interleave the items of two streams.  Ends when both have ended.
        '''
        return Merge(self, other)

    def throttle(self, seconds):
        '''
        Pass items on no faster than one per seconds.
        '''
        return Throttle(self, seconds)

    def timeout(self, seconds):
        '''
        Produce an Elapsed instance in place of an item whenever no item
        arrives within seconds.  The stream keeps going; the deadline
        starts over with the next item.
        '''
        return ItemTimeout(self, seconds)


class Next(Future):

    def __init__(self, stream):
        self._stream = stream

    def __repr__(self):
        return f'<next {self._stream!r}>'

    def _poll(self, waker):
        return self._stream.poll_next(waker)


class IterStream(Stream):

    def __init__(self, iterable):
        self._iter = iter(iterable)

    def poll_next(self, waker):
        try:
            item = next(self._iter)
        except StopIteration:
            return Ready(None)
        if item is None:
            raise TypeError('None cannot be an item of a stream')
        return Ready(item)

def stream_from_iter(iterable):
    '''
    Return a stream producing the items of iterable.  The stream is
    always ready.
    '''
    return IterStream(iterable)


class ReceiverStream(Stream):
    '''
    Stream over the messages of a channel receiver.
    '''

    def __init__(self, receiver):
        self._receiver = receiver

    def poll_next(self, waker):
        return self._receiver.poll_recv(waker)

    def close(self):
        if not self._receiver.closed:
            self._receiver.close()


class Map(Stream):

    def __init__(self, stream, func):
        self._stream = stream
        self._func = func

    def poll_next(self, waker):
        result = self._stream.poll_next(waker)
        if result is PENDING or result.value is None:
            return result
        return Ready(self._func(result.value))

    def close(self):
        self._stream.close()


class Filter(Stream):

    def __init__(self, stream, predicate):
        self._stream = stream
        self._predicate = predicate

    def poll_next(self, waker):
        while True:
            result = self._stream.poll_next(waker)
            if result is PENDING or result.value is None:
                return result
            if self._predicate(result.value):
                return result

    def close(self):
        self._stream.close()


class Take(Stream):

    def __init__(self, stream, n):
        self._stream = stream
        self._remaining = n

    def poll_next(self, waker):
        if self._remaining <= 0:
            return Ready(None)
        result = self._stream.poll_next(waker)
        if result is PENDING:
            return result
        if result.value is None:
            self._remaining = 0
        else:
            self._remaining -= 1
            if self._remaining == 0:
                self._stream.close()
        return result

    def close(self):
        self._stream.close()


class Merge(Stream):

    def __init__(self, first, second):
        self._streams = [first, second]
        self._done = [False, False]
        self._start = 0

    def poll_next(self, waker):
        # Alternate which stream gets the first chance so that a
        # stream that is always ready can't starve the other one.
        order = (self._start, 1 - self._start)
        self._start = 1 - self._start
        for index in order:
            if self._done[index]:
                continue
            result = self._streams[index].poll_next(waker)
            if result is PENDING:
                continue
            if result.value is None:
                self._done[index] = True
                continue
            return result

        if all(self._done):
            return Ready(None)
        return PENDING

    def close(self):
        for stream in self._streams:
            stream.close()


class Throttle(Stream):

    def __init__(self, stream, seconds):
        self._stream = stream
        self._seconds = seconds
        self._delay = None

    def poll_next(self, waker):
        if self._delay is not None:
            if self._delay.poll(waker) is PENDING:
                return PENDING
            self._delay = None

        result = self._stream.poll_next(waker)
        if result is not PENDING and result.value is not None:
            self._delay = sleep_until(clock() + self._seconds)
        return result

    def close(self):
        if self._delay is not None:
            self._delay.close()
        self._stream.close()


class ItemTimeout(Stream):

    def __init__(self, stream, seconds):
        self._stream = stream
        self._seconds = seconds
        self._deadline = None
        self._armed = True

    def poll_next(self, waker):
        result = self._stream.poll_next(waker)
        if result is not PENDING:
            self._disarm()
            if result.value is not None:
                self._deadline = sleep_until(clock() + self._seconds)
                self._armed = True
            return result

        # Only one Elapsed per gap between items
        if not self._armed:
            return PENDING
        if self._deadline is None:
            self._deadline = sleep_until(clock() + self._seconds)
        if self._deadline.poll(waker) is PENDING:
            return PENDING
        self._deadline = None
        self._armed = False
        return Ready(Elapsed(f'No item within {self._seconds} seconds'))

    def _disarm(self):
        if self._deadline is not None:
            self._deadline.close()
            self._deadline = None
        self._armed = False

    def close(self):
        self._disarm()
        self._stream.close()
