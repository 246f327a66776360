from .models import v1beta1 as api


#: The kinds that share a single namespace of resource names
MANAGED_MODELS = (api.IBPCA, api.IBPOrderer, api.IBPPeer, api.IBPConsole)


class NameConflictError(Exception):
    """
    Raised when the name of a new resource collides with an existing resource.
    """


async def validate_cr_name(list_instances, name, namespace, kind):
    """
    Checks that no other managed resource in the namespace uses the given name.

    The name must not be in use by a resource of another kind, and at most one
    resource of the same kind may have it, i.e. the resource being validated.
    ``list_instances`` is an async callable returning the objects of a model in
    a namespace.
    """
    count = 0
    for model in MANAGED_MODELS:
        for item in await list_instances(model, namespace):
            if item["metadata"]["name"] != name:
                continue
            if model._meta.kind != kind:
                raise NameConflictError(
                    f"custom resource with name {name} already exists "
                    f"with kind {model._meta.kind}"
                )
            count += 1
    if count > 1:
        raise NameConflictError(
            f"custom resource with name {name} already exists"
        )
