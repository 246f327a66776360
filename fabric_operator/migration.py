import typing as t

from . import version


class MigrationFlags(t.NamedTuple):
    """
    The staged migrations that must run for a change of Fabric version.
    """

    migrate_to_v2: bool = False
    migrate_to_v24: bool = False
    migrate_to_v25: bool = False

    def apply(self, update):
        """
        Sets the migration flags on the given update.

        Flags that are already set on the update are never cleared.
        """
        update.migrate_to_v2 = update.migrate_to_v2 or self.migrate_to_v2
        update.migrate_to_v24 = update.migrate_to_v24 or self.migrate_to_v24
        update.migrate_to_v25 = update.migrate_to_v25 or self.migrate_to_v25
        return update


def decide_migration(old_version, new_version):
    """
    Returns the migration flags for a change from the old to the new Fabric version.

    The rules are cumulative, so a large jump, e.g. 1.4.x to 2.5.1, triggers every
    intermediate stage while a small jump only triggers the stages it crosses.
    """
    migrate_to_v2 = migrate_to_v24 = migrate_to_v25 = False
    old_major = version.get_major_release_version(old_version)
    new_major = version.get_major_release_version(new_version)

    if (not old_version or old_major == version.V1) and new_major == version.V2:
        migrate_to_v2 = True
        if version.at_least(new_version, version.V2_5_1):
            migrate_to_v24 = True
            migrate_to_v25 = True
        elif version.at_least(new_version, version.V2_4_1):
            migrate_to_v24 = True

    if old_major == version.V2 and version.less_than(old_version, version.V2_4_1):
        migrate_to_v24 = True
        if version.at_least(new_version, version.V2_5_1):
            migrate_to_v25 = True

    if old_major == version.V2 and version.less_than(old_version, version.V2_5_1):
        if version.at_least(new_version, version.V2_5_1):
            migrate_to_v25 = True

    return MigrationFlags(migrate_to_v2, migrate_to_v24, migrate_to_v25)


#: The first 1.4.x and 2.x releases whose orderer TLS certificates need regenerating
V1_4_9 = "1.4.9"
V2_2_1 = "2.2.1"


def orderer_tls_cert_refresh_needed(old_version, new_version):
    """
    Returns true if an orderer moves to a Fabric release that needs its TLS
    certificate created again, i.e. 1.4.9 or later on 1.x and 2.2.1 or later on 2.x.
    """
    if old_version == new_version:
        return False
    old_major = version.get_major_release_version(old_version)
    new_major = version.get_major_release_version(new_version)
    if old_version == version.UNSUPPORTED or (
        old_major == version.V1 and version.less_than(old_version, V1_4_9)
    ):
        if new_major == version.V1:
            return version.at_least(new_version, V1_4_9)
        return version.at_least(new_version, V2_2_1)
    if old_major == version.V2 and version.less_than(old_version, V2_2_1):
        return version.at_least(new_version, V2_2_1)
    return False


def orderer_tls_reenroll_needed(old_version, new_version):
    """
    Returns true if an orderer migration reaches 2.4.1 or later from a release
    before it, which needs the admin host name added to the TLS certificate.
    """
    old_major = version.get_major_release_version(old_version)
    new_major = version.get_major_release_version(new_version)
    if (not old_version or old_major == version.V1) and new_major == version.V2:
        return version.at_least(new_version, version.V2_4_1)
    if old_major == version.V2 and version.less_than(old_version, version.V2_4_1):
        return version.at_least(new_version, version.V2_4_1)
    return False
