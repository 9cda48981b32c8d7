# weft/channels.py
#
# Multi-producer, single-consumer channel.
#
# A channel is a queue shared between any number of Senders and one
# Receiver.  Sending never blocks--the queue is unbounded--so only the
# receiving side is asynchronous.  The lifetime of the channel follows
# ownership of the senders.  Each Sender counts as one live producer.
# Once the last one is released the channel closes and the receiver,
# after draining whatever is still queued, sees None.  A consumer
# written as
#
#     async for msg in receiver:
#         ...
#
# therefore ends exactly when every sender is gone.  Conversely, if a
# Sender is kept alive somewhere (say, a variable in a task that has
# finished sending but not returned), the consumer waits forever.
# Release senders as soon as the sending work is done.  The easiest
# way is to use them as context managers:
#
#     with sender:
#         sender.send(value)
#
# None is reserved for signalling the end of the channel and can't be
# sent.

__all__ = ['channel', 'Sender', 'Receiver']

# -- Standard Library

import threading
from collections import deque

# -- Weft

from .errors import SendError, ChannelAlreadyClosed
from .future import Future, Ready, PENDING
from .sched import WakerSlot


class _ChannelState(object):
    __slots__ = ('queue', 'senders', 'closed', 'receiver_closed', 'recv_waiting', 'lock')

    def __init__(self):
        self.queue = deque()
        self.senders = 1
        self.closed = False
        self.receiver_closed = False
        self.recv_waiting = WakerSlot()

        # The only state touched by several owners at once.  The lock
        # is never held while a waker is invoked and no objects are
        # created under it.  Sender.__del__ takes the lock and may run
        # from a garbage collection triggered on this same thread.
        self.lock = threading.Lock()


def channel():
    '''
    Create a new channel.  Returns a tuple (sender, receiver).
    '''
    state = _ChannelState()
    return Sender(state), Receiver(state)


class Sender(object):
    '''
    Sending end of a channel.  Use clone() to get additional senders.
    '''
    _released = True

    def __init__(self, state):
        self._state = state
        self._released = False

    def __repr__(self):
        return '<Sender released=%s, closed=%s>' % (self._released, self._state.closed)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self._release()

    def __del__(self):
        self._release()

    @property
    def closed(self):
        '''
        True if the channel no longer accepts messages.
        '''
        return self._released or self._state.closed

    def send(self, value):
        '''
        Put value on the channel and wake up the receiver if it's
        waiting.  Never blocks.  Raises SendError if the channel is
        closed; the rejected value is available as its .value.
        '''
        if value is None:
            raise TypeError('None marks the end of a channel and cannot be sent')
        if self._released:
            raise ChannelAlreadyClosed('send() on a released Sender')

        state = self._state
        waker = None
        with state.lock:
            closed = state.closed
            if not closed:
                state.queue.append(value)
                waker = state.recv_waiting.take()
        if closed:
            raise SendError(value)
        if waker:
            waker.wake()

    def clone(self):
        '''
        Return a new Sender for the same channel.  The channel stays
        open until all senders have been released.
        '''
        if self._released:
            raise ChannelAlreadyClosed('clone() on a released Sender')
        state = self._state
        with state.lock:
            state.senders += 1
        return Sender(state)

    def close(self):
        '''
        Release this sender.  Closing the same sender twice is an error.
        '''
        if self._released:
            raise ChannelAlreadyClosed('Sender closed twice')
        self._release()

    def _release(self):
        if self._released:
            return
        self._released = True

        state = self._state
        waker = None
        with state.lock:
            state.senders -= 1
            if state.senders == 0 and not state.closed:
                state.closed = True
                waker = state.recv_waiting.take()
        if waker:
            waker.wake()


class Receiver(object):
    '''
    Receiving end of a channel.  Either await recv() repeatedly until
    it returns None or iterate with "async for".
    '''
    _released = True

    def __init__(self, state):
        self._state = state
        self._closed = False
        self._released = False

    def __repr__(self):
        return '<Receiver queued=%d, closed=%s>' % (len(self._state.queue), self._state.closed)

    def __len__(self):
        return len(self._state.queue)

    def __del__(self):
        # Nobody can receive anymore.  Senders get SendError from now on.
        if not self._released:
            self._released = True
            state = self._state
            empty = deque()
            with state.lock:
                state.closed = True
                state.receiver_closed = True
                queue, state.queue = state.queue, empty
            # Undelivered messages are dropped outside the lock
            queue.clear()

    @property
    def closed(self):
        return self._state.closed

    def recv(self):
        '''
        Return a future that completes with the next message, or with
        None once the channel is closed and drained.
        '''
        return Recv(self)

    def poll_recv(self, waker):
        state = self._state
        waker = waker.clone()
        with state.lock:
            if state.queue:
                value = state.queue.popleft()
            elif state.closed:
                value = None
            else:
                state.recv_waiting.register(self, waker)
                return PENDING
        return Ready(value)

    def close(self):
        '''
        Close the channel from the receiving side.  Further sends fail
        with SendError.  Messages already queued are still delivered
        before recv() returns None.  A task waiting in recv() is woken.
        '''
        if self._closed:
            raise ChannelAlreadyClosed('Receiver closed twice')
        self._closed = True
        state = self._state
        with state.lock:
            state.closed = True
            state.receiver_closed = True
            waker = state.recv_waiting.take()
        if waker:
            waker.wake()

    def __aiter__(self):
        return self

    async def __anext__(self):
        value = await self.recv()
        if value is None:
            raise StopAsyncIteration
        return value


class Recv(Future):

    def __init__(self, receiver):
        self._receiver = receiver

    def __repr__(self):
        return f'<recv {self._receiver!r}>'

    def _poll(self, waker):
        return self._receiver.poll_recv(waker)

