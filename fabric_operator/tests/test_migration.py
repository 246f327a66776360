import unittest

from fabric_operator.migration import (
    MigrationFlags,
    decide_migration,
    orderer_tls_cert_refresh_needed,
    orderer_tls_reenroll_needed,
)
from fabric_operator.update import Update


class TestDecideMigration(unittest.TestCase):
    def test_empty_to_v25_sets_every_stage(self):
        flags = decide_migration("", "2.5.1-0")
        self.assertEqual(flags, MigrationFlags(True, True, True))

    def test_v1_to_v24(self):
        flags = decide_migration("1.4.9-0", "2.4.1-0")
        self.assertTrue(flags.migrate_to_v2)
        self.assertTrue(flags.migrate_to_v24)
        self.assertFalse(flags.migrate_to_v25)

    def test_v1_to_v22(self):
        flags = decide_migration("1.4.9", "2.2.5")
        self.assertEqual(flags, MigrationFlags(True, False, False))

    def test_v22_to_v24(self):
        flags = decide_migration("2.2.0-0", "2.4.5-0")
        self.assertFalse(flags.migrate_to_v2)
        self.assertTrue(flags.migrate_to_v24)
        self.assertFalse(flags.migrate_to_v25)

    def test_v22_to_v25_cascades(self):
        flags = decide_migration("2.2.0", "2.5.1")
        self.assertEqual(flags, MigrationFlags(False, True, True))

    def test_v24_to_v25(self):
        flags = decide_migration("2.4.3", "2.5.2")
        self.assertEqual(flags, MigrationFlags(False, False, True))

    def test_v25_patch_release(self):
        flags = decide_migration("2.5.1", "2.5.3")
        self.assertEqual(flags, MigrationFlags())

    def test_uppercase_prefix_is_already_v2(self):
        flags = decide_migration("V2.2.5", "2.2.5")
        self.assertFalse(flags.migrate_to_v2)
        self.assertFalse(flags.migrate_to_v25)

    def test_v1_to_v1(self):
        flags = decide_migration("1.4.6", "1.4.9")
        self.assertEqual(flags, MigrationFlags())

    def test_apply_never_clears_flags(self):
        update = Update(migrate_to_v2 = True)
        MigrationFlags(False, True, False).apply(update)
        self.assertTrue(update.migrate_to_v2)
        self.assertTrue(update.migrate_to_v24)
        self.assertFalse(update.migrate_to_v25)


class TestOrdererVersionRules(unittest.TestCase):
    def test_tls_cert_refresh(self):
        self.assertTrue(orderer_tls_cert_refresh_needed("1.4.6", "1.4.9"))
        self.assertTrue(orderer_tls_cert_refresh_needed("1.4.6", "2.2.1"))
        self.assertTrue(orderer_tls_cert_refresh_needed("unsupported", "2.2.5"))
        self.assertTrue(orderer_tls_cert_refresh_needed("2.2.0", "2.4.1"))
        self.assertFalse(orderer_tls_cert_refresh_needed("1.4.6", "1.4.8"))
        self.assertFalse(orderer_tls_cert_refresh_needed("1.4.9", "2.2.5"))
        self.assertFalse(orderer_tls_cert_refresh_needed("2.2.1", "2.5.1"))
        self.assertFalse(orderer_tls_cert_refresh_needed("2.2.0", "2.2.0"))

    def test_tls_reenroll(self):
        self.assertTrue(orderer_tls_reenroll_needed("", "2.4.1"))
        self.assertTrue(orderer_tls_reenroll_needed("1.4.9", "2.5.1"))
        self.assertTrue(orderer_tls_reenroll_needed("2.2.5", "2.4.1"))
        self.assertFalse(orderer_tls_reenroll_needed("1.4.9", "2.2.5"))
        self.assertFalse(orderer_tls_reenroll_needed("2.4.1", "2.5.1"))
        self.assertFalse(orderer_tls_reenroll_needed("2.2.5", "2.2.6"))
