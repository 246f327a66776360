import asyncio


class KeyedLocks:
    """
    Holds an asyncio lock for each key that is in use.
    """
    def __init__(self):
        self._locks = {}

    def __len__(self):
        return len(self._locks)

    def __contains__(self, key):
        return key in self._locks

    def get(self, key):
        return self._locks.setdefault(key, asyncio.Lock())

    def discard(self, key):
        """
        Forgets the lock for the key, unless it is currently held.
        """
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]
