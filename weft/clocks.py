# weft/clocks.py
#
# Scheduling clocks.  The kernel reads the time from a clock object
# and, when it has nothing to run, asks the clock to block until the
# next timer deadline or until an external wakeup arrives.  Swapping
# in a ManualClock makes all timing in a program virtual, which is
# what the test-suite uses to get reproducible schedules.

__all__ = ['MonotonicClock', 'ManualClock']

# -- Standard Library

import time


class MonotonicClock(object):
    '''
    Clock based on time.monotonic().  Idle waits really block.
    '''

    def __repr__(self):
        return '<MonotonicClock>'

    def monotonic(self):
        return time.monotonic()

    def wait_until(self, event, deadline):
        '''
        Block until event (a threading.Event) is set or the clock
        reaches deadline.  A deadline of None waits for the event only.
        '''
        if deadline is None:
            event.wait()
        else:
            delay = deadline - time.monotonic()
            if delay > 0:
                event.wait(delay)


class ManualClock(object):
    '''
    Virtual clock.  Time only moves forward when advance() is called
    or when the kernel goes idle waiting for a timer.  In that case
    the clock jumps straight to the deadline, so sleeping costs no
    real time at all.
    '''

    def __init__(self, start=0.0):
        self._now = float(start)

    def __repr__(self):
        return f'<ManualClock now={self._now}>'

    def monotonic(self):
        return self._now

    def advance(self, seconds):
        if seconds < 0:
            raise ValueError('The clock can only move forward')
        self._now += seconds

    def wait_until(self, event, deadline):
        if event.is_set():
            return
        if deadline is None:
            # Only another thread can make progress now
            event.wait()
        elif deadline > self._now:
            self._now = deadline
