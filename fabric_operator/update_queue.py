import dataclasses
import threading

from .update import Update


class UpdateQueue:
    """
    Pending updates for managed resources, indexed by resource name.

    Event handlers push updates as they detect changes and the reconciler pops
    them one at a time. Every operation holds the lock for its whole read-modify-write
    sequence, and no I/O happens while the lock is held.
    """
    def __init__(self):
        self._updates = {}
        self._lock = threading.Lock()

    def push(self, name, update):
        """
        Appends the update to the queue for the named resource unless an equal
        update is already pending. Returns true if the update was appended.
        """
        # Store a copy so that later changes by the caller are not observed
        update = dataclasses.replace(update)
        with self._lock:
            pending = self._updates.setdefault(name, [])
            if update in pending:
                return False
            pending.append(update)
            return True

    def pop(self, name):
        """
        Removes and returns the oldest pending update for the named resource.

        If there are no pending updates, an empty update is returned.
        """
        with self._lock:
            pending = self._updates.get(name)
            if not pending:
                self._updates.pop(name, None)
                return Update()
            update = pending.pop(0)
            if not pending:
                del self._updates[name]
            return update

    def peek(self, name, index = 0):
        """
        Returns a copy of the pending update at the given index without removing it,
        or an empty update if there is no such update.
        """
        with self._lock:
            pending = self._updates.get(name, [])
            if 0 <= index < len(pending):
                return dataclasses.replace(pending[index])
            return Update()

    def pending(self, name):
        """
        Returns the number of pending updates for the named resource.
        """
        with self._lock:
            return len(self._updates.get(name, []))

    def describe(self, name):
        """
        Returns a summary of the pending updates for the named resource for logging.
        """
        with self._lock:
            pending = list(self._updates.get(name, []))
        items = " , ".join("{" + update.describe() + "}" for update in pending)
        return f"{name}: [ {items} ]"
