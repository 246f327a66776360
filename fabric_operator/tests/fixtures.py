from fabric_operator.models import v1beta1 as api


def make_instance(model, name, namespace = "fabric", spec = None, status = None):
    """
    Returns an instance of the model with the given spec and status.
    """
    return model.model_validate(
        {
            "apiVersion": "ibp.com/v1beta1",
            "kind": model._meta.kind,
            "metadata": {
                "name": name,
                "namespace": namespace,
                "uid": f"{name}-uid",
                "resourceVersion": "1",
                "labels": { "app": name },
            },
            "spec": spec or {},
            "status": status or {},
        }
    )


def make_peer(name = "peer1", namespace = "fabric", spec = None, status = None):
    return make_instance(api.IBPPeer, name, namespace, spec, status)


def make_orderer(name = "orderer1", namespace = "fabric", spec = None, status = None):
    return make_instance(api.IBPOrderer, name, namespace, spec, status)


def make_ca(name = "ca1", namespace = "fabric", spec = None, status = None):
    return make_instance(api.IBPCA, name, namespace, spec, status)


def make_object(name, namespace = "fabric", owner_kind = None, owner_name = None, **extra):
    """
    Returns a raw Kubernetes object, optionally owned by another object.
    """
    metadata = { "name": name, "namespace": namespace }
    if owner_kind:
        metadata["ownerReferences"] = [
            {
                "apiVersion": "ibp.com/v1beta1",
                "kind": owner_kind,
                "name": owner_name,
                "uid": f"{owner_name}-uid",
            }
        ]
    return { "metadata": metadata, **extra }
