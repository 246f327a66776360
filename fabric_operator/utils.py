#: Placeholder value used by the console for an unselected zone or region
UNSELECTED = "select"


def is_secret_tls_cert(name):
    """
    Returns true if the named secret holds a TLS signing certificate.
    """
    if name.endswith("-signcert"):
        return name.startswith("tls")
    return name.endswith("-ca-crypto")


def is_secret_ecert(name):
    """
    Returns true if the named secret holds an enrollment signing certificate.
    """
    return name.endswith("-signcert") and name.startswith("ecert")


def zone_or_region_updated(old, new):
    """
    Returns true if a zone or region has changed from one selected value to another.
    """
    if not old or not new:
        return False
    if old.lower() == UNSELECTED or new.lower() == UNSELECTED:
        return False
    return old != new


def owner_name_from_secret_name(secret_name):
    """
    Returns the name of the resource that probably owns the named secret, based on
    the naming conventions used when bootstrapping crypto material, or None if the
    name does not follow those conventions.

    Secrets are named either <type>-<owner>-<suffix> or <owner>-init-rootcert.
    """
    parts = secret_name.split("-")
    if len(parts) < 3:
        return None
    # NOTE: an owner whose own name contains -init-rootcert is misparsed
    if "-init-rootcert" in secret_name:
        return "-".join(parts[:-2])
    return "-".join(parts[1:-1])


def owner_reference(instance):
    """
    Returns an owner reference that makes the given instance the controller of
    another object.
    """
    return {
        "apiVersion": instance.api_version,
        "kind": instance.kind,
        "name": instance.metadata.name,
        "uid": instance.metadata.uid,
        "blockOwnerDeletion": True,
        "controller": True,
    }


def controller_name(obj, kind):
    """
    Returns the name of the first owner of the object if it has the given kind,
    otherwise None.
    """
    owners = obj.get("metadata", {}).get("ownerReferences") or []
    if owners and owners[0].get("kind") == kind:
        return owners[0].get("name")
    return None


def is_tracked_secret(secret, kinds):
    """
    Returns true if the secret holds a certificate for a resource of one of the given
    kinds, either by owner reference or, for secrets that are not owned yet, by the
    naming conventions used for bootstrapped crypto material.
    """
    name = secret["metadata"]["name"]
    if not (is_secret_tls_cert(name) or is_secret_ecert(name)):
        return False
    owners = secret["metadata"].get("ownerReferences") or []
    if owners:
        return owners[0].get("kind") in kinds
    return owner_name_from_secret_name(name) is not None
