# weft/sched.py
#
# Structures for parking wakers.  A future that can't make progress
# leaves its waker in one of these and returns PENDING.  Whoever
# makes progress possible later pulls the wakers back out and invokes
# them.  Higher level objects (channels, join handles) are built on
# top of these.

# -- Standard Library

from abc import ABC, abstractmethod

class WaitBase(ABC):     # pragma: no cover

    @abstractmethod
    def __len__(self):
        pass

    @abstractmethod
    def register(self, key, waker):
        # Parks a waker on behalf of key.  Registering again with the
        # same key replaces the previously parked waker.
        pass

    @abstractmethod
    def wake(self):
        # Invoke and remove parked wakers. Returns the number woken.
        pass


# Single waker slot.  Used where there is only ever one party waiting
# (e.g., the receiving end of a channel).  A new registration replaces
# the old one regardless of key.

class WakerSlot(WaitBase):

    def __init__(self):
        self._waker = None

    def __len__(self):
        return 0 if self._waker is None else 1

    def register(self, key, waker):
        self._waker = waker

    def take(self):
        waker, self._waker = self._waker, None
        return waker

    def wake(self):
        waker = self.take()
        if waker is None:
            return 0
        waker.wake()
        return 1


# Set of wakers keyed by their waiting party.  Used to implement
# joining a task.  Waking invokes every parked waker in registration
# order.

class WakerSet(WaitBase):

    def __init__(self):
        self._wakers = {}

    def __len__(self):
        return len(self._wakers)

    def register(self, key, waker):
        self._wakers[key] = waker

    def discard(self, key):
        self._wakers.pop(key, None)

    def wake(self):
        wakers = list(self._wakers.values())
        self._wakers.clear()
        for waker in wakers:
            waker.wake()
        return len(wakers)
