import unittest

from fabric_operator import utils

from .fixtures import make_object, make_peer


class TestSecretNames(unittest.TestCase):
    def test_tls_cert(self):
        self.assertTrue(utils.is_secret_tls_cert("tls-peer1-signcert"))
        self.assertTrue(utils.is_secret_tls_cert("peer1-ca-crypto"))
        self.assertFalse(utils.is_secret_tls_cert("ecert-peer1-signcert"))
        self.assertFalse(utils.is_secret_tls_cert("tls-peer1-keystore"))

    def test_ecert(self):
        self.assertTrue(utils.is_secret_ecert("ecert-peer1-signcert"))
        self.assertFalse(utils.is_secret_ecert("tls-peer1-signcert"))
        self.assertFalse(utils.is_secret_ecert("ecert-peer1-cacerts"))


class TestZoneOrRegionUpdated(unittest.TestCase):
    def test_changed(self):
        self.assertTrue(utils.zone_or_region_updated("zone1", "zone2"))

    def test_unchanged(self):
        self.assertFalse(utils.zone_or_region_updated("zone1", "zone1"))

    def test_unset_values_are_ignored(self):
        self.assertFalse(utils.zone_or_region_updated("", "zone1"))
        self.assertFalse(utils.zone_or_region_updated("zone1", ""))

    def test_placeholder_is_ignored(self):
        self.assertFalse(utils.zone_or_region_updated("select", "zone1"))
        self.assertFalse(utils.zone_or_region_updated("zone1", "Select"))


class TestOwnerNameFromSecretName(unittest.TestCase):
    def test_prefixed_name(self):
        self.assertEqual(utils.owner_name_from_secret_name("tls-peer1-signcert"), "peer1")
        self.assertEqual(
            utils.owner_name_from_secret_name("ecert-org1-peer1-signcert"),
            "org1-peer1"
        )

    def test_init_rootcert(self):
        self.assertEqual(
            utils.owner_name_from_secret_name("org1-peer1-init-rootcert"),
            "org1-peer1"
        )

    def test_too_few_parts(self):
        self.assertIsNone(utils.owner_name_from_secret_name("peer1-signcert"))
        self.assertIsNone(utils.owner_name_from_secret_name("secret"))


class TestOwnerReferences(unittest.TestCase):
    def test_owner_reference(self):
        reference = utils.owner_reference(make_peer())
        self.assertEqual(reference["kind"], "IBPPeer")
        self.assertEqual(reference["name"], "peer1")
        self.assertEqual(reference["uid"], "peer1-uid")
        self.assertTrue(reference["controller"])

    def test_controller_name(self):
        obj = make_object("peer1", owner_kind = "IBPPeer", owner_name = "peer1")
        self.assertEqual(utils.controller_name(obj, "IBPPeer"), "peer1")
        self.assertIsNone(utils.controller_name(obj, "IBPOrderer"))
        self.assertIsNone(utils.controller_name(make_object("peer1"), "IBPPeer"))


class TestIsTrackedSecret(unittest.TestCase):
    kinds = { "IBPPeer", "IBPOrderer", "IBPCA" }

    def test_owned_certificate(self):
        secret = make_object("tls-peer1-signcert", owner_kind = "IBPPeer", owner_name = "peer1")
        self.assertTrue(utils.is_tracked_secret(secret, self.kinds))

    def test_ca_crypto(self):
        secret = make_object("ca1-ca-crypto", owner_kind = "IBPCA", owner_name = "ca1")
        self.assertTrue(utils.is_tracked_secret(secret, self.kinds))

    def test_certificate_owned_by_other_kind(self):
        secret = make_object("tls-app-signcert", owner_kind = "Deployment", owner_name = "app")
        self.assertFalse(utils.is_tracked_secret(secret, self.kinds))

    def test_unowned_certificate(self):
        self.assertTrue(utils.is_tracked_secret(make_object("ecert-peer1-signcert"), self.kinds))

    def test_unrelated_secret(self):
        secret = make_object("db-password", owner_kind = "IBPPeer", owner_name = "peer1")
        self.assertFalse(utils.is_tracked_secret(secret, self.kinds))
        self.assertFalse(utils.is_tracked_secret(make_object("registry-creds"), self.kinds))
