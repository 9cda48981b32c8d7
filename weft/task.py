# weft/task.py
#
# Task class and task related functions.

# -- Standard library

from itertools import count

# -- Weft

from .errors import TaskPanicked, TaskCancelled
from .future import Future, Ready, PENDING
from .sched import WakerSet
from .waker import Waker
from . import meta

__all__ = [
    'Task', 'JoinHandle', 'TaskResult', 'spawn', 'current_task',
]

_task_ids = count(1)

class Task(object):
    '''
    The Task class wraps a future and records its execution state and
    final outcome.  Tasks are owned by the kernel and are not normally
    instantiated directly. Instead, use spawn(), which returns a
    JoinHandle for the new task.

    Task states are RUNNABLE (on the ready queue), RUNNING (being
    polled), SUSPENDED (waiting for its waker), COMPLETED and
    CANCELLED.
    '''
    def __init__(self, future, kernel, name=None):
        # Informational attributes about the task itself
        self.id = next(_task_ids)
        self.parentid = None          # Parent task id (if any)
        self.future = future          # Future being driven (None once terminated)
        self.name = name or getattr(future, 'name', None) or repr(future)

        # Attributes updated during execution (safe to inspect)
        self.cycles = 0               # Number of times polled
        self.state = 'INITIAL'        # Execution state
        self.terminated = False       # Has the task actually terminated?
        self.joining = WakerSet()     # Wakers of parties waiting for the result

        # Final result of execution (use properties to access)
        self._final_result = None
        self._final_exc = None

        # Set if the waker fires while the task is being polled
        self._notified = False

        self._kernel = kernel
        self.waker = Waker(self._wake)

    def __repr__(self):
        return f'Task(id={self.id}, name={self.name!r}, state={self.state!r})'

    def _wake(self):
        self._kernel._wake_task(self)

    @property
    def cancelled(self):
        return self.state == 'CANCELLED'

    @property
    def result(self):
        '''
        Return the result of a task. The task must be terminated already.
        '''
        if not self.terminated:
            raise RuntimeError('Task not terminated')
        if self._final_exc is not None:
            raise self._final_exc
        return self._final_result

    @property
    def exception(self):
        '''
        Return the exception a task terminated with, or None.
        '''
        if not self.terminated:
            raise RuntimeError('Task not terminated')
        return self._final_exc

    def outcome(self):
        '''
        Return a TaskResult describing how the task terminated.
        '''
        if not self.terminated:
            raise RuntimeError('Task not terminated')
        if self.cancelled:
            return TaskResult(error=TaskCancelled(self))
        if self._final_exc is not None:
            error = TaskPanicked(self)
            error.__cause__ = self._final_exc
            return TaskResult(error=error)
        return TaskResult(value=self._final_result)

    def _poll_outcome(self, key, waker):
        # Used by join handles. Parks waker until the task terminates.
        if self.terminated:
            self.joining.discard(key)
            return self.outcome()
        self.joining.register(key, waker.clone())
        return PENDING


class TaskResult(object):
    '''
    Outcome of a task.  Either value is set, or error holds a
    TaskPanicked or TaskCancelled exception.
    '''
    __slots__ = ('value', 'error')

    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error

    def __repr__(self):
        if self.error is not None:
            return f'TaskResult(error={self.error!r})'
        return f'TaskResult(value={self.value!r})'

    @property
    def ok(self):
        return self.error is None

    def unwrap(self):
        '''
        Return the value or raise the error.
        '''
        if self.error is not None:
            raise self.error
        return self.value


class JoinHandle(Future):
    '''
    Future that completes with the result of a task.  If the task
    crashed, TaskPanicked is raised.  The handle doesn't own the task:
    closing or discarding it does not cancel the task, which keeps
    running until it completes or the kernel is shut down.
    '''

    def __init__(self, task):
        self._task = task

    def __repr__(self):
        return f'<JoinHandle for {self._task!r}>'

    @property
    def task_id(self):
        return self._task.id

    @property
    def done(self):
        return self._task.terminated

    def _poll(self, waker):
        outcome = self._task._poll_outcome(self, waker)
        if outcome is PENDING:
            return PENDING
        return Ready(outcome.unwrap())

    def await_result(self):
        '''
        Return a future that completes with a TaskResult instead of
        raising if the task failed.
        '''
        return _AwaitResult(self._task)

    def close(self):
        self._task.joining.discard(self)
        super().close()


class _AwaitResult(Future):

    def __init__(self, task):
        self._task = task

    def __repr__(self):
        return f'<result of {self._task!r}>'

    def _poll(self, waker):
        outcome = self._task._poll_outcome(self, waker)
        if outcome is PENDING:
            return PENDING
        return Ready(outcome)

    def close(self):
        self._task.joining.discard(self)
        super().close()

# ----------------------------------------------------------------------
# Public-facing task-related functions.
# -----------------------------------------------------------------------

def spawn(corofunc, *args, name=None):
    '''
    Create a new task, running corofunc(*args), on the running kernel
    and return a JoinHandle for it.  The arguments are handed over to
    the new task; the task is detached and keeps running even if the
    caller goes away.
    '''
    return meta.current_kernel().spawn(corofunc, *args, name=name)

def current_task():
    '''
    Returns a reference to the current task
    '''
    task = meta.current_task()
    if task is None:
        raise RuntimeError('No task is currently running')
    return task
