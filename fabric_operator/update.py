import dataclasses
import enum


class SecretType(str, enum.Enum):
    """
    The types of certificate secret that are tracked for a resource.
    """

    ECERT = "ecert"
    TLS = "tls"


def _camel(name):
    first, *rest = name.split("_")
    return first + "".join(part.capitalize() for part in rest)


#: Flags that describe something that happened rather than something to act on
INFORMATIONAL_FLAGS = {"tlscert_enroll", "tls_cert_created", "ecert_created"}


@dataclasses.dataclass
class Update:
    """
    Describes a single detected change to a managed resource.

    Each flag is set individually by the event predicates and consumed by the
    offering during a reconciliation pass. An update with no flags set means that
    there is nothing in particular to do.
    """

    spec_updated: bool = False
    overrides_updated: bool = False
    dind_args_updated: bool = False
    tls_cert_updated: bool = False
    ecert_updated: bool = False
    peer_tag_updated: bool = False
    restart_needed: bool = False
    ecert_reenroll_needed: bool = False
    tls_reenroll_needed: bool = False
    ecert_new_key_reenroll: bool = False
    tlscert_new_key_reenroll: bool = False
    migrate_to_v2: bool = False
    migrate_to_v24: bool = False
    migrate_to_v25: bool = False
    msp_updated: bool = False
    ecert_enroll: bool = False
    tlscert_enroll: bool = False
    upgrade_dbs: bool = False
    tls_cert_created: bool = False
    ecert_created: bool = False
    node_ou_updated: bool = False
    images_updated: bool = False
    fabric_version_updated: bool = False

    @classmethod
    def flag_names(cls):
        return [field.name for field in dataclasses.fields(cls)]

    def true_flags(self):
        """
        Returns the names of the flags that are set, in declaration order.
        """
        return [name for name in self.flag_names() if getattr(self, name)]

    @property
    def empty(self):
        return not self.true_flags()

    @property
    def certificate_updated(self):
        return self.tls_cert_updated or self.ecert_updated

    @property
    def certificate_created(self):
        return self.tls_cert_created or self.ecert_created

    @property
    def updated_cert_type(self):
        if self.tls_cert_updated:
            return SecretType.TLS
        if self.ecert_updated:
            return SecretType.ECERT
        return None

    @property
    def created_cert_type(self):
        if self.tls_cert_created:
            return SecretType.TLS
        if self.ecert_created:
            return SecretType.ECERT
        return None

    @property
    def crypto_backup_needed(self):
        """
        Indicates if the crypto material for the resource is about to change and
        should be backed up first.
        """
        return (
            self.ecert_enroll or
            self.tlscert_enroll or
            self.ecert_reenroll_needed or
            self.tls_reenroll_needed or
            self.ecert_new_key_reenroll or
            self.tlscert_new_key_reenroll or
            self.msp_updated
        )

    def needed(self):
        """
        Returns true if any flag that requires action is set.
        """
        return any(
            name not in INFORMATIONAL_FLAGS
            for name in self.true_flags()
        )

    def describe(self):
        """
        Returns a summary of the update for logging.
        """
        flags = self.true_flags()
        if not flags:
            return "emptystack"
        return " ".join(_camel(name) for name in flags)

    def __str__(self):
        return self.describe()
