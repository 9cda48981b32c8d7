# weft/waker.py
#
# A Waker is the capability a suspended future holds on to in order to
# get its task polled again.  It owns nothing.  It is merely a
# back-reference to a wake function supplied by whoever drives the
# future (normally the kernel, on behalf of one task).

__all__ = ['Waker', 'noop_waker']


class Waker(object):
    '''
    Handle that marks one task slot runnable when invoked.  Wakers
    are cheap to copy and may be invoked any number of times and
    from any thread.  Invoking the waker of a task that is already
    runnable or finished has no effect.
    '''
    __slots__ = ('_wake_func',)

    def __init__(self, wake_func):
        self._wake_func = wake_func

    def __repr__(self):
        return '<Waker for %r>' % (getattr(self._wake_func, '__self__', self._wake_func),)

    def __eq__(self, other):
        if not isinstance(other, Waker):
            return NotImplemented
        return self._wake_func == other._wake_func

    def __hash__(self):
        return hash(self._wake_func)

    def __call__(self):
        self._wake_func()

    def wake(self):
        '''
        Ask for the associated task to be polled again.
        '''
        self._wake_func()

    def clone(self):
        return Waker(self._wake_func)

    def will_wake(self, other):
        '''
        Return True if waking other would wake the same task slot.
        '''
        return self == other


def _noop():
    pass

_NOOP_WAKER = Waker(_noop)

def noop_waker():
    '''
    Return a waker that does nothing.  Useful for polling futures by hand.
    '''
    return _NOOP_WAKER
