import unittest

from fabric_operator.locks import KeyedLocks


class TestKeyedLocks(unittest.IsolatedAsyncioTestCase):
    async def test_same_lock_for_key(self):
        locks = KeyedLocks()
        self.assertIs(locks.get(("fabric", "peer1")), locks.get(("fabric", "peer1")))
        self.assertIsNot(locks.get(("fabric", "peer1")), locks.get(("fabric", "peer2")))
        self.assertEqual(len(locks), 2)

    async def test_discard(self):
        locks = KeyedLocks()
        locks.get(("fabric", "peer1"))
        locks.discard(("fabric", "peer1"))
        self.assertNotIn(("fabric", "peer1"), locks)
        self.assertEqual(len(locks), 0)

    async def test_discard_unknown_key(self):
        locks = KeyedLocks()
        locks.discard(("fabric", "peer1"))
        self.assertEqual(len(locks), 0)

    async def test_held_lock_is_kept(self):
        locks = KeyedLocks()
        async with locks.get(("fabric", "peer1")):
            locks.discard(("fabric", "peer1"))
            self.assertIn(("fabric", "peer1"), locks)
        locks.discard(("fabric", "peer1"))
        self.assertNotIn(("fabric", "peer1"), locks)
