# weft/combinators.py
#
# Combinators that wait on several futures at once.
#
# join() and friends poll their children in a fixed round-robin
# order.  Every poll of the combined future polls each child that
# hasn't finished yet exactly once, in the order the children were
# given, whether or not an earlier child finished during the same
# pass.  A child that finishes quickly therefore can't starve its
# siblings, and a set of deterministic children is always interleaved
# the same way.
#
# Failure policy is fail-fast.  The first child to raise an exception
# ends the pass.  Children that haven't finished are closed and a
# JoinError, chained from the child's exception, is raised.  The
# values of children that had already finished are kept in
# JoinError.results.

__all__ = [
    'join', 'join3', 'join_all', 'race', 'Either', 'Left', 'Right',
]

# -- Weft

from .errors import JoinError
from .future import Future, Ready, PENDING, as_future


class JoinAll(Future):

    def __init__(self, futures, collect=tuple):
        self._children = [as_future(f) for f in futures]
        self._results = [PENDING] * len(self._children)
        self._remaining = len(self._children)
        self._collect = collect

    def __repr__(self):
        return f'<join {len(self._children) - self._remaining}/{len(self._children)} ready>'

    def _poll(self, waker):
        results = self._results
        for index, child in enumerate(self._children):
            if results[index] is not PENDING:
                continue
            try:
                result = child.poll(waker)
            except Exception as e:
                self._abandon()
                partial = [PENDING if r is PENDING else r.value for r in results]
                raise JoinError(index, partial) from e
            except BaseException:
                # KeyboardInterrupt and friends pass through unwrapped
                self._abandon()
                raise
            if result is not PENDING:
                results[index] = result
                self._remaining -= 1

        if self._remaining:
            return PENDING
        return Ready(self._collect(r.value for r in results))

    def _abandon(self):
        for child, result in zip(self._children, self._results):
            if result is PENDING and not child.completed:
                child.close()

    def close(self):
        self._abandon()
        super().close()


def join(future1, future2):
    '''
    Return a future that runs both futures concurrently and completes
    with a tuple of both results once both have completed.
    '''
    return JoinAll((future1, future2))

def join3(future1, future2, future3):
    '''
    Like join(), for three futures.
    '''
    return JoinAll((future1, future2, future3))

def join_all(futures):
    '''
    Return a future that runs all futures concurrently and completes
    with a list of their results, in the given order.
    '''
    return JoinAll(futures, collect=list)

# ----------------------------------------------------------------------
# Racing
# ----------------------------------------------------------------------

class Either(object):
    '''
    Result of race().  Left or Right, depending on which future won.
    '''
    __slots__ = ('value',)

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f'{type(self).__name__}({self.value!r})'

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self.value == other.value

    __hash__ = None

class Left(Either):
    pass

class Right(Either):
    pass


class Race(Future):

    def __init__(self, left, right):
        self._left = as_future(left)
        self._right = as_future(right)

    def __repr__(self):
        return f'<race {self._left!r} {self._right!r}>'

    def _poll(self, waker):
        # The left future is always polled first.
        for side, future, other in ((Left, self._left, self._right),
                                    (Right, self._right, self._left)):
            try:
                result = future.poll(waker)
            except BaseException:
                other.close()
                raise
            if result is not PENDING:
                other.close()
                return Ready(side(result.value))
        return PENDING

    def close(self):
        for future in (self._left, self._right):
            if not future.completed:
                future.close()
        super().close()


def race(left, right):
    '''
    Return a future that runs two futures concurrently and completes
    with Left(value) or Right(value) as soon as either completes.  The
    other future is closed.  If both are ready on the same poll, the
    left one wins.
    '''
    return Race(left, right)
