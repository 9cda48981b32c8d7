# weft/debug.py
#
# Task debugging tools

__all__ = [ 'longblock', 'schedtrace', 'logcrash' ]

import time
import logging
log = logging.getLogger(__name__)

# -- Weft

from .activation import Activation

class DebugBase(Activation):
    '''
    Base class of the debuggers.  filter, if given, is a collection of
    task names to restrict reporting to.
    '''
    def __init__(self, level=logging.INFO, filter=None, **kwargs):
        self.level = level
        self.filter = set(filter) if filter else None

    def check_filter(self, task):
        return self.filter is None or task.name in self.filter

class longblock(DebugBase):
    '''
    Report warnings for tasks whose poll blocks the kernel for a long duration.
    '''
    def __init__(self, *, max_time=0.05, level=logging.WARNING, **kwargs):
        super().__init__(level=level, **kwargs)
        self.max_time = max_time
        self.start = None

    def running(self, task):
        if self.check_filter(task):
            self.start = time.monotonic()

    def suspended(self, task, exc):
        if self.start is None:
            return
        duration, self.start = time.monotonic() - self.start, None
        if duration > self.max_time:
            log.log(self.level, 'Poll %d of task %d (%s) held the kernel for %.3f seconds',
                    task.cycles, task.id, task.name, duration)

class logcrash(DebugBase):
    '''
    Report tasks that crash with an uncaught exception
    '''
    def __init__(self, level=logging.ERROR, **kwargs):
        super().__init__(level=level, **kwargs)

    def terminated(self, task):
        if not task.cancelled and task.exception and self.check_filter(task):
            log.log(self.level, 'Task %r crashed', task.id, exc_info=task.exception)

class schedtrace(DebugBase):
    '''
    Report when tasks run
    '''
    def __init__(self, **kwargs):
        super().__init__(**kwargs)

    def running(self, task):
        if self.check_filter(task):
            log.log(self.level, 'SCHEDULE:%f:%d:%s', time.time(), task.id, task)

    def terminated(self, task):
        if self.check_filter(task):
            log.log(self.level, 'TERMINATE:%f:%d:%s', time.time(), task.id, task)


def _create_debuggers(debug):
    '''
    Create debugger objects.  Called by the kernel to instantiate the objects.
    '''
    if debug is None:
        return []

    if debug is True:
        # Set a default set of debuggers
        debug = [ schedtrace, logcrash ]

    elif not isinstance(debug, (list, tuple)):
        debug = [ debug ]

    # Create instances
    debug = [ (d() if (isinstance(d, type) and issubclass(d, DebugBase)) else d)
              for d in debug ]
    return debug
