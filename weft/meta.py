# weft/meta.py
#
# Per-thread runtime context.  The kernel that is running in the
# current thread, the task it is polling and the waker that belongs
# to that poll are recorded here.  Futures that need a service of the
# kernel (timers, spawning) look it up from here rather than holding
# a reference of their own.

__all__ = [
    'kernel_running', 'current_kernel', 'current_waker',
]

# -- Standard Library

import threading
from contextlib import contextmanager

_locals = threading.local()

# Context manager that is used when the kernel is executing.

@contextmanager
def running(kernel):
    if getattr(_locals, 'kernel', None) is not None:
        raise RuntimeError('Only one Weft kernel per thread is allowed')
    _locals.kernel = kernel
    try:
        yield
    finally:
        _locals.kernel = None
        _locals.task = None
        _locals.waker = None

def kernel_running():
    '''
    Return a flag that indicates whether or not a kernel is running in the current thread.
    '''
    return getattr(_locals, 'kernel', None) is not None

def current_kernel():
    '''
    Return the kernel running in the current thread.
    '''
    kernel = getattr(_locals, 'kernel', None)
    if kernel is None:
        raise RuntimeError('No Weft kernel is running in this thread')
    return kernel

# Context manager used while a task, or a future on behalf of a task,
# is being polled.  Nesting is allowed; the previous values are restored.

@contextmanager
def polling(task, waker):
    prev_task = getattr(_locals, 'task', None)
    prev_waker = getattr(_locals, 'waker', None)
    _locals.task = task
    _locals.waker = waker
    try:
        yield
    finally:
        _locals.task = prev_task
        _locals.waker = prev_waker

@contextmanager
def using_waker(waker):
    prev_waker = getattr(_locals, 'waker', None)
    _locals.waker = waker
    try:
        yield
    finally:
        _locals.waker = prev_waker

def current_task():
    return getattr(_locals, 'task', None)

def current_waker():
    '''
    Return the waker of the poll in progress.  Only valid while a
    future is being polled.
    '''
    waker = getattr(_locals, 'waker', None)
    if waker is None:
        raise RuntimeError('Futures may only be awaited while being polled')
    return waker

