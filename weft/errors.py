# weft/errors.py
#
# Weft specific exceptions

__all__ = [
    'WeftError', 'TaskPanicked', 'TaskCancelled', 'SendError',
    'JoinError', 'Elapsed', 'DeadlockError', 'UsageError',
    'FutureAlreadyCompleted', 'ChannelAlreadyClosed',
]


class WeftError(Exception):
    '''
    Base class for all Weft-related exceptions
    '''


class TaskPanicked(WeftError):
    '''
    Raised when the result of a spawned task is collected, but the task
    terminated due to an exception.  This is a chained exception.  The
    __cause__ attribute contains the actual exception that occurred in
    the task.
    '''
    def __init__(self, task):
        super().__init__(task)
        self.task = task

    def __str__(self):
        return 'Task %r panicked' % (self.task,)


class TaskCancelled(WeftError):
    '''
    Raised when the result of a task is collected, but the task was
    removed by the kernel before it could complete (kernel shutdown).
    '''
    def __init__(self, task):
        super().__init__(task)
        self.task = task

    def __str__(self):
        return 'Task %r was cancelled' % (self.task,)


class SendError(WeftError):
    '''
    Raised if a value is sent on a closed channel.  The rejected value
    is handed back to the caller in the .value attribute.
    '''
    def __init__(self, value):
        super().__init__(value)
        self.value = value

    def __str__(self):
        return 'sending on a closed channel'


class JoinError(WeftError):
    '''
    Raised by join() and friends if one of the joined futures failed.
    This is a chained exception.  The .index attribute is the position
    of the failing future and .results holds the values of the futures
    that had already completed (PENDING for the others).
    '''
    def __init__(self, index, results):
        super().__init__(index, results)
        self.index = index
        self.results = results

    def __str__(self):
        return 'Joined future %d failed' % self.index


class Elapsed(WeftError):
    '''
    Raised by timeout() if the deadline passes before the wrapped
    future completes.
    '''


class DeadlockError(WeftError):
    '''
    Raised by the kernel if the root future is suspended, nothing is
    runnable and no timer is pending.  Nothing could ever wake it.
    '''


class UsageError(WeftError):
    '''
    Base class for violations of the runtime's usage contract.  These
    are programming errors and are reported immediately.
    '''


class FutureAlreadyCompleted(UsageError):
    '''
    Raised if a future is polled again after it completed.
    '''


class ChannelAlreadyClosed(UsageError):
    '''
    Raised if a channel endpoint is closed twice or used after release.
    '''
