# weft/activation.py
#
# Scheduler activations can be used to monitor what happens during
# task execution in the kernel. They can be used to implement tracers,
# debuggers, and other things.  This file merely defines the base class.

__all__ = ['Activation']

class Activation:

    def activate(self, kernel):
        '''
        Called once, when the kernel first starts running.  kernel is
        the kernel that's executing.
        '''
        pass

    def created(self, task):
        '''
        Called immediately after a task has been created.
        '''
        pass

    def running(self, task):
        '''
        Called right before a task is polled.
        '''
        pass

    def suspended(self, task, exc):
        '''
        Called after a poll of the task returned.  exc is the
        exception the poll raised (if any).
        '''
        pass

    def terminated(self, task):
        '''
        Called after a task has completed or was cancelled, but prior
        to waking any parties waiting to join it.
        '''
        pass
