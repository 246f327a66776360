import logging

from easykube import ApiError

logger = logging.getLogger(__name__)


class ClusterClient:
    """
    Wraps an easykube client with the operations that the reconciler and the event
    predicates need from the cluster.
    """
    def __init__(self, ekclient, api_group):
        self.ekclient = ekclient
        self.api_group = api_group

    async def resource_for_model(self, model, subresource = None):
        """
        Returns an easykube resource for the given model.
        """
        api = self.ekclient.api(f"{self.api_group}/{model._meta.version}")
        resource = model._meta.plural_name
        if subresource:
            resource = f"{resource}/{subresource}"
        return await api.resource(resource)

    async def fetch_instance(self, model, name, namespace = None):
        """
        Fetches and parses the specified model instance, or None if the instance does
        not exist.
        """
        ekresource = await self.resource_for_model(model)
        try:
            data = await ekresource.fetch(name, namespace = namespace)
        except ApiError as exc:
            if exc.status_code == 404:
                return None
            else:
                raise
        else:
            return model.model_validate(data)

    async def list_instances(self, model, namespace):
        """
        Returns the raw objects for all the instances of the model in the namespace.
        """
        ekresource = await self.resource_for_model(model)
        return [obj async for obj in ekresource.list(namespace = namespace)]

    async def list_pods(self, labels, namespace):
        ekpods = await self.ekclient.api("v1").resource("pods")
        return [pod async for pod in ekpods.list(labels = labels, namespace = namespace)]

    async def patch_status(self, instance, retries):
        """
        Saves the status of the instance, using the resource version for optimistic
        concurrency.

        On a conflict, the latest resource version is fetched and the status is
        written again, up to the given number of retries.
        """
        ekresource = await self.resource_for_model(type(instance), "status")
        status = instance.status.model_dump(by_alias = True, exclude_defaults = True)
        resource_version = instance.metadata.resource_version
        attempt = 0
        while True:
            try:
                data = await ekresource.replace(
                    instance.metadata.name,
                    {
                        "metadata": { "resourceVersion": resource_version },
                        "status": status,
                    },
                    namespace = instance.metadata.namespace
                )
            except ApiError as exc:
                if exc.status_code != 409 or attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    "conflict saving status for %s/%s - retrying (%d/%d)",
                    instance.metadata.namespace,
                    instance.metadata.name,
                    attempt,
                    retries
                )
                latest = await ekresource.fetch(
                    instance.metadata.name,
                    namespace = instance.metadata.namespace
                )
                resource_version = latest["metadata"]["resourceVersion"]
            else:
                # Store the new resource version
                instance.metadata.resource_version = data["metadata"]["resourceVersion"]
                return instance

    async def apply_config_map(self, config_map):
        return await self.ekclient.apply_object(config_map, force = True)

    async def fetch_config_map(self, name, namespace):
        ekconfigmaps = await self.ekclient.api("v1").resource("configmaps")
        return await ekconfigmaps.fetch(name, namespace = namespace)

    async def delete_config_map(self, name, namespace):
        """
        Deletes the named config map, returning false if it did not exist.
        """
        ekconfigmaps = await self.ekclient.api("v1").resource("configmaps")
        try:
            await ekconfigmaps.delete(name, namespace = namespace)
        except ApiError as exc:
            if exc.status_code == 404:
                return False
            else:
                raise
        else:
            return True

    async def adopt_secret(self, secret, owner_reference):
        """
        Ensures that the secret has the given owner reference.
        """
        eksecrets = await self.ekclient.api("v1").resource("secrets")
        metadata = secret["metadata"]
        patch_data = []
        if "ownerReferences" not in metadata:
            patch_data.append(
                {
                    "op": "add",
                    "path": "/metadata/ownerReferences",
                    "value": [],
                }
            )
        if not any(
            ref["uid"] == owner_reference["uid"]
            for ref in metadata.get("ownerReferences", [])
        ):
            patch_data.append(
                {
                    "op": "add",
                    "path": "/metadata/ownerReferences/-",
                    "value": owner_reference,
                }
            )
        if patch_data:
            await eksecrets.json_patch(
                metadata["name"],
                patch_data,
                namespace = metadata["namespace"]
            )
