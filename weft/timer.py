# weft/timer.py
#
# Timer service.
#
# A sleeping future doesn't do anything clever.  When first polled it
# works out its deadline and, if that's still in the future, drops a
# TimerEntry holding its waker onto the kernel's TimerQueue.  Each
# time around its loop the kernel pops every entry whose deadline has
# passed and invokes the waker.  The sleeping future is then polled
# again, looks at the clock for itself and completes.
#
# The queue is a plain heap.  Cancelling an entry merely marks it
# dead; dead entries are thrown away once they surface at the top of
# the heap.  Timeouts that never fire (the common case) therefore
# cost one heappush and nothing else.

__all__ = [
    'TimerEntry', 'TimerQueue', 'sleep', 'sleep_until', 'timeout', 'clock',
]

# -- Standard Library

import heapq
from itertools import count

# -- Weft

from .errors import Elapsed
from .future import Future, Ready, PENDING, as_future
from . import meta


class TimerEntry(object):
    '''
    A pending wakeup.  active is cleared once the entry fires or is
    cancelled.
    '''
    __slots__ = ('deadline', 'waker', 'active')

    def __init__(self, deadline, waker):
        self.deadline = deadline
        self.waker = waker
        self.active = True

    def __repr__(self):
        return f'TimerEntry(deadline={self.deadline!r}, active={self.active})'


class TimerQueue(object):

    def __init__(self):
        self._heap = []
        self._sequence = count()
        self._active = 0

    def __len__(self):
        return self._active

    def push(self, deadline, waker):
        '''
        Arrange for waker to be invoked once the clock reaches deadline.
        Entries with equal deadlines fire in the order pushed.
        '''
        entry = TimerEntry(deadline, waker)
        heapq.heappush(self._heap, (deadline, next(self._sequence), entry))
        self._active += 1
        return entry

    def cancel(self, entry):
        '''
        Cancel a prior push().  Cancelling an entry that already fired
        is allowed and does nothing.
        '''
        if entry.active:
            entry.active = False
            self._active -= 1

    def _discard_dead(self):
        heap = self._heap
        while heap and not heap[0][2].active:
            heapq.heappop(heap)

    def next_deadline(self):
        '''
        Return the earliest pending deadline or None if nothing is pending.
        '''
        self._discard_dead()
        return self._heap[0][0] if self._heap else None

    def expired(self, now):
        '''
        An iterator that returns all entries that have expired at
        clock value now, earliest first.
        '''
        heap = self._heap
        while heap and heap[0][0] <= now:
            _, _, entry = heapq.heappop(heap)
            if entry.active:
                entry.active = False
                self._active -= 1
                yield entry


class Sleep(Future):
    '''
    Future that completes once the kernel clock reaches a deadline.
    '''

    def __init__(self, seconds=None, deadline=None):
        self._seconds = seconds
        self._deadline = deadline
        self._entry = None
        self._timers = None

    def __repr__(self):
        if self._deadline is None:
            return f'<sleep {self._seconds}s>'
        return f'<sleep until {self._deadline}>'

    def _poll(self, waker):
        kernel = meta.current_kernel()
        now = kernel.clock.monotonic()
        if self._deadline is None:
            self._deadline = now + max(self._seconds, 0)

        if now >= self._deadline:
            self._cancel_entry()
            return Ready(None)

        # Polled with a different waker (e.g., moved to another task)
        # means the old registration is of no use anymore.
        entry = self._entry
        if entry is None or not entry.active or not entry.waker.will_wake(waker):
            self._cancel_entry()
            self._timers = kernel.timers
            self._entry = self._timers.push(self._deadline, waker.clone())
        return PENDING

    def _cancel_entry(self):
        if self._entry is not None:
            self._timers.cancel(self._entry)
            self._entry = None

    def close(self):
        self._cancel_entry()
        super().close()


def sleep(seconds):
    '''
    Return a future that completes after seconds have elapsed on the
    kernel clock.  A duration of zero (or less) completes on the first
    poll; use yield_now() to give other tasks a chance to run.
    '''
    return Sleep(seconds=seconds)

def sleep_until(deadline):
    '''
    Return a future that completes once the kernel clock reaches deadline.
    '''
    return Sleep(deadline=deadline)


class Timeout(Future):

    def __init__(self, seconds, future):
        self._seconds = seconds
        self._future = as_future(future)
        self._sleep = Sleep(seconds=seconds)

    def __repr__(self):
        return f'<timeout {self._seconds}s {self._future!r}>'

    def _poll(self, waker):
        try:
            result = self._future.poll(waker)
        except BaseException:
            self._sleep.close()
            raise

        if result is not PENDING:
            self._sleep.close()
            return result

        if self._sleep.poll(waker) is not PENDING:
            self._future.close()
            raise Elapsed(f'Timed out after {self._seconds} seconds')
        return PENDING

    def close(self):
        self._future.close()
        self._sleep.close()
        super().close()

def timeout(seconds, future):
    '''
    Run future, but give up once seconds have elapsed.  Returns the
    result of future or raises Elapsed.  On timeout, future is closed.
    '''
    return Timeout(seconds, future)

def clock():
    '''
    Return the current value of the running kernel's clock.
    '''
    return meta.current_kernel().clock.monotonic()
