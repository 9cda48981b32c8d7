# weft/kernel.py
#
# Main execution kernel.
#
# The kernel owns every task and drives them by polling their
# futures.  It knows nothing about what a task is doing.  A task that
# can't make progress hands its waker to whatever it's waiting on
# (a timer, a channel, another task) and the kernel forgets about it
# until that waker fires and puts the task back on the ready queue.
#
# Scheduling happens in passes.  A pass polls exactly the tasks that
# were on the ready queue when it started, in FIFO order.  Tasks woken
# during the pass--including a task that wakes itself while it is
# being polled--go to the back of the queue and run in the next pass.
# Thus, no task can starve the others by constantly becoming ready,
# and a program whose tasks behave deterministically is scheduled
# deterministically.
#
# When nothing is ready, the kernel sleeps until the earliest timer
# deadline or until a waker is invoked from some other thread.  It
# never spins.

__all__ = ['Kernel', 'block_on', 'run']

# -- Standard Library

import os
import logging
import threading
import traceback
from collections import deque

# Logger where task lifecycle events are logged
log = logging.getLogger(__name__)

# -- Weft

from .errors import DeadlockError
from .future import PENDING, as_future
from .task import Task, JoinHandle
from .timer import TimerQueue
from .clocks import MonotonicClock
from .debug import _create_debuggers
from . import meta


class Kernel(object):
    '''
    Weft run-time kernel.  Keyword arguments:

        clock           Clock object (default MonotonicClock()). Use a
                        ManualClock to run with virtual time.
        debug           Debugger activations to apply.  True selects a
                        default set.  For example:

                            from weft.debug import schedtrace, logcrash
                            k = Kernel(debug=[schedtrace, logcrash])

        activations     List of additional Activation objects.
        deadlock_check  If True (the default), raise DeadlockError when
                        the root future is suspended with nothing
                        runnable and no timer pending.  Set to False if
                        wakers are invoked from other threads; the
                        kernel then waits for them.

    Use the kernel block_on() method to submit work.  Tasks left
    behind by block_on() stay alive until shutdown().
    '''

    def __init__(self, *, clock=None, debug=None, activations=None, deadlock_check=True):
        self._clock = clock if clock else MonotonicClock()
        self._deadlock_check = deadlock_check

        # Ready queue and task table
        self._ready = deque()
        self._tasks = {}

        # Pending timers
        self._timers = TimerQueue()

        # Wakers may fire from other threads. State changes of tasks
        # and the ready queue happen under this lock and the event
        # interrupts an idle wait.
        self._lock = threading.Lock()
        self._wakeup = threading.Event()

        self._running = False
        self._crashed = False
        self._shutdown = False

        # Activations
        self._activations = list(activations) if activations else []
        if debug:
            self._activations.extend(_create_debuggers(debug))
        self._activated = False

    def __repr__(self):
        return f'<Kernel tasks={len(self._tasks)} ready={len(self._ready)} timers={len(self._timers)}>'

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.shutdown()

    @property
    def clock(self):
        return self._clock

    @property
    def timers(self):
        return self._timers

    @property
    def tasks(self):
        '''
        List of live tasks.
        '''
        return list(self._tasks.values())

    # ----------
    # Submit a new task to the kernel

    def spawn(self, corofunc, *args, name=None):
        '''
        Create a new task running corofunc(*args) (or any future) and
        return a JoinHandle.  The task is scheduled, but nothing runs
        until the kernel is driven by block_on().
        '''
        if self._shutdown:
            raise RuntimeError("Can't spawn tasks on a kernel that has been shut down")
        if self._crashed:
            raise RuntimeError("Can't submit further tasks to a crashed kernel.")

        task = Task(as_future(corofunc, *args), self, name=name)
        parent = meta.current_task()
        if parent is not None:
            task.parentid = parent.id
        self._tasks[task.id] = task
        for a in self._activations:
            a.created(task)
        log.debug('Spawned %r', task)
        self._schedule(task)
        return JoinHandle(task)

    def block_on(self, corofunc, *args):
        '''
        Run corofunc(*args) (or any future) as the root task and drive
        the kernel until it completes.  Returns its result or raises
        the exception it terminated with.
        '''
        if self._running:
            raise RuntimeError('Weft kernel already running')
        if meta.kernel_running():
            raise RuntimeError('Only one Weft kernel per thread is allowed')

        self._activate()
        root = self.spawn(corofunc, *args)._task
        with meta.running(self):
            self._running = True
            try:
                self._run_until(root)
            except BaseException as e:
                # KeyboardInterrupt and friends abandon tasks mid-poll
                if not isinstance(e, Exception):
                    self._crashed = True
                raise
            finally:
                self._running = False

        if root._final_exc is not None:
            raise root._final_exc
        return root._final_result

    def shutdown(self):
        '''
        Cancel every remaining task and release the kernel.  Cancelled
        futures are closed, which raises GeneratorExit inside pending
        coroutines so that their cleanup code runs.  Anybody holding a
        JoinHandle of a cancelled task gets TaskCancelled.
        '''
        if self._shutdown:
            return
        if self._running:
            raise RuntimeError("Can't shut down a running kernel")

        self._shutdown = True
        for task in sorted(self._tasks.values(), key=lambda t: t.id):
            self._cancel_task(task)
        self._ready.clear()
        log.debug('Kernel %r shutting down', self)

    # ------------------------------------------------------------
    # Task management functions.
    #

    def _schedule(self, task):
        with self._lock:
            task.state = 'RUNNABLE'
            self._ready.append(task)
        self._wakeup.set()

    # Invoked through a task's waker, possibly from another thread.
    # Waking is idempotent: only a suspended task is put back on the
    # ready queue.  A task woken while it is being polled is requeued
    # once its poll returns.
    def _wake_task(self, task):
        with self._lock:
            if task.state == 'SUSPENDED':
                task.state = 'RUNNABLE'
                self._ready.append(task)
            elif task.state == 'RUNNING':
                task._notified = True
                return
            else:
                return
        self._wakeup.set()

    # Finalize task.  Called after the task has run to completion
    def _finalize_task(self, task, value=None, exc=None):
        task._final_result = value
        task._final_exc = exc
        task.state = 'COMPLETED'
        task.terminated = True

        # Release the future and everything it holds on to.  A crashed
        # task's frames stay reachable through the traceback, so their
        # locals (senders, for one) are dropped here as well.
        task.future = None
        if exc is not None:
            traceback.clear_frames(exc.__traceback__)
        del self._tasks[task.id]

        if exc is not None:
            log.debug('Task %r terminated with %r', task, exc)
        else:
            log.debug('Task %r completed', task)

        for a in self._activations:
            a.terminated(task)
        task.joining.wake()

    def _cancel_task(self, task):
        future, task.future = task.future, None
        task.state = 'CANCELLED'
        task.terminated = True
        del self._tasks[task.id]
        try:
            future.close()
        except Exception:
            log.error('Exception closing cancelled task %r', task, exc_info=True)

        log.debug('Task %r cancelled', task)
        for a in self._activations:
            a.terminated(task)
        task.joining.wake()

    def _activate(self):
        if not self._activated:
            self._activated = True
            for a in self._activations:
                a.activate(self)

    # ------------------------------------------------------------
    # Main Kernel Loop
    # ------------------------------------------------------------

    def _run_until(self, root):
        while not root.terminated:
            # Cleared before looking at the ready queue so that a
            # wakeup from another thread can't be missed.
            self._wakeup.clear()
            self._fire_timers()
            if self._ready:
                self._run_pass()
            else:
                self._idle(root)

    def _fire_timers(self):
        if self._timers:
            now = self._clock.monotonic()
            for entry in self._timers.expired(now):
                entry.waker.wake()

    def _idle(self, root):
        deadline = self._timers.next_deadline()
        if deadline is None and self._deadlock_check:
            raise DeadlockError(f'{root!r} can never complete: no task is runnable '
                                'and no timer is pending')
        self._clock.wait_until(self._wakeup, deadline)

    def _run_pass(self):
        for _ in range(len(self._ready)):
            with self._lock:
                task = self._ready.popleft()
            self._poll_task(task)

    def _poll_task(self, task):
        task.state = 'RUNNING'
        task.cycles += 1
        task._notified = False
        for a in self._activations:
            a.running(task)

        exc = None
        try:
            with meta.polling(task, task.waker):
                result = task.future.poll(task.waker)
        except Exception as e:
            # The task crashed.  This only concerns whoever joins it.
            exc = e
            self._finalize_task(task, exc=e)
        else:
            if result is PENDING:
                with self._lock:
                    if task._notified:
                        task.state = 'RUNNABLE'
                        self._ready.append(task)
                    else:
                        task.state = 'SUSPENDED'
            else:
                self._finalize_task(task, value=result.value)
        finally:
            for a in self._activations:
                a.suspended(task, exc)


def block_on(corofunc, *args, clock=None, debug=None, activations=None, deadlock_check=True):
    '''
    Run the weft kernel with an initial task and execute until it
    completes.  Returns the task's final result (if any) or raises the
    exception it failed with.  This is the boundary between ordinary
    sequential code and async code.  It creates an entirely new
    kernel, runs the given task to completion, and concludes by
    shutting down the kernel, cancelling any tasks that are still
    running.

    Setting the WEFT_DEBUG environment variable turns on the default
    debuggers if no debug argument is given.
    '''
    if debug is None and os.environ.get('WEFT_DEBUG'):
        debug = True

    kernel = Kernel(clock=clock, debug=debug, activations=activations,
                    deadlock_check=deadlock_check)
    with kernel:
        return kernel.block_on(corofunc, *args)

run = block_on
