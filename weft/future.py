# weft/future.py
#
# The poll contract.
#
# Everything that can suspend in Weft is a Future: an object with a
# single entry point, poll(waker), which either finishes the
# computation and returns Ready(value) or returns PENDING.  A future
# that returns PENDING must have arranged for waker to be invoked once
# it can make progress.  If it doesn't, nobody will ever poll it again.
# There are no retries and no busy loops--the kernel polls a task only
# after its waker has fired.
#
# Futures are also awaitable.  Inside an async function, "await fut"
# polls fut with the waker of the task being driven and, while fut is
# pending, yields the PENDING marker all the way up to whoever is
# polling the coroutine (a CoroutineFuture).  Thus async functions are
# merely a convenient way of writing state machines; the kernel itself
# only ever deals with futures.

__all__ = [
    'Ready', 'PENDING', 'Future', 'CoroutineFuture', 'as_future',
    'ready', 'pending', 'poll_fn', 'yield_now',
]

# -- Standard Library

import inspect

# -- Weft

from .errors import FutureAlreadyCompleted
from . import meta


class Ready(object):
    '''
    Poll result of a completed future.
    '''
    __slots__ = ('value',)

    def __init__(self, value=None):
        self.value = value

    def __repr__(self):
        return f'Ready({self.value!r})'

    def __eq__(self, other):
        if not isinstance(other, Ready):
            return NotImplemented
        return self.value == other.value

    __hash__ = None


class _Pending(object):
    __slots__ = ()

    def __repr__(self):
        return 'PENDING'

    def __reduce__(self):
        return 'PENDING'

# Poll result of a future that can't make progress yet
PENDING = _Pending()


class Future(object):
    '''
    Base class for suspendable computations.  Subclasses implement
    _poll(waker).  The public poll() method guards the contract that
    a future is never polled again once it has completed, either by
    returning a result or by raising an exception.
    '''
    _completed = False

    def poll(self, waker):
        '''
        Try to make progress. Returns Ready(value) or PENDING.
        '''
        if self._completed:
            raise FutureAlreadyCompleted(f'{self!r} polled after completion')
        try:
            result = self._poll(waker)
        except BaseException:
            self._completed = True
            raise
        if result is not PENDING:
            if not isinstance(result, Ready):
                raise TypeError(f'{self!r} returned {result!r} from poll()')
            self._completed = True
        return result

    def _poll(self, waker):
        raise NotImplementedError

    @property
    def completed(self):
        return self._completed

    def close(self):
        '''
        Release a future that won't be polled anymore.  Subclasses
        release their resources (timers, child futures, coroutines).
        '''
        self._completed = True

    def __await__(self):
        try:
            while True:
                result = self.poll(meta.current_waker())
                if result is not PENDING:
                    return result.value
                yield PENDING
        except GeneratorExit:
            self.close()
            raise


class CoroutineFuture(Future):
    '''
    Future that drives a coroutine (or generator based coroutine).
    The coroutine suspends by yielding PENDING, which is what awaiting
    any Weft future does.
    '''

    def __init__(self, coro):
        self._coro = coro
        self.name = getattr(coro, '__qualname__', str(coro))

    def __repr__(self):
        return f'<CoroutineFuture {self.name}>'

    def _poll(self, waker):
        with meta.using_waker(waker):
            try:
                request = self._coro.send(None)
            except StopIteration as e:
                return Ready(e.value)

        if request is not PENDING:
            self._coro.close()
            raise TypeError(f'{self.name} awaited {request!r}, which is not a Weft future')
        return PENDING

    def close(self):
        # Raises GeneratorExit at the point of suspension so that
        # finally blocks and context managers run.
        self._coro.close()
        super().close()


def as_future(obj, *args, **kwargs):
    '''
    Turn obj into a Future.  obj may be a Future, a coroutine, a
    generator, an awaitable object or a callable that produces one of
    those when called with the given arguments.  In the last case the
    arguments are handed over to the newly created coroutine.
    '''
    if isinstance(obj, Future):
        if args or kwargs:
            raise TypeError('Arguments given for an existing future')
        return obj

    if inspect.iscoroutine(obj) or inspect.isgenerator(obj):
        if args or kwargs:
            raise TypeError('Arguments given for an already created coroutine')
        return CoroutineFuture(obj)

    if inspect.isawaitable(obj):
        return CoroutineFuture(obj.__await__())

    if callable(obj):
        result = obj(*args, **kwargs)
        if result is obj or not (isinstance(result, Future) or inspect.isawaitable(result)
                                 or inspect.isgenerator(result)):
            raise TypeError(f'Could not create a future from {obj!r}')
        return as_future(result)

    raise TypeError(f'Could not create a future from {obj!r}')

# ----------------------------------------------------------------------
# Small building blocks
# ----------------------------------------------------------------------

class _ReadyFuture(Future):

    def __init__(self, value):
        self._value = value

    def __repr__(self):
        return f'<ready {self._value!r}>'

    def _poll(self, waker):
        return Ready(self._value)

def ready(value=None):
    '''
    Return a future that completes immediately with value.
    '''
    return _ReadyFuture(value)


class _PendingFuture(Future):

    def __repr__(self):
        return '<pending>'

    def _poll(self, waker):
        return PENDING

def pending():
    '''
    Return a future that never completes.
    '''
    return _PendingFuture()


class PollFn(Future):

    def __init__(self, func):
        self._func = func

    def __repr__(self):
        return f'<poll_fn {self._func!r}>'

    def _poll(self, waker):
        return self._func(waker)

def poll_fn(func):
    '''
    Return a future whose poll() calls func(waker).  func must
    return Ready(value) or PENDING and follows the same contract
    as Future._poll().
    '''
    return PollFn(func)


class YieldNow(Future):

    def __init__(self):
        self._yielded = False

    def _poll(self, waker):
        if self._yielded:
            return Ready(None)
        self._yielded = True
        waker.wake()
        return PENDING

def yield_now():
    '''
    Give other runnable tasks a chance to run.  The calling task is
    woken immediately and runs again on the next scheduling pass.
    '''
    return YieldNow()
