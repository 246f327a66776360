import base64

import yaml

from . import utils

#: The key in the config map that holds the serialised spec
SPEC_KEY = "spec"


class SpecStateStore:
    """
    Persists a snapshot of the last reconciled spec for each resource in a config map.

    The snapshot is used to detect changes that happened while the operator was
    not running.
    """
    def __init__(self, client):
        self.client = client

    def config_map_name(self, instance):
        return f"{instance.metadata.name}-spec"

    def serialise(self, instance):
        """
        Returns the serialised spec for the instance.
        """
        spec = instance.spec.model_dump(by_alias = True, mode = "json")
        return yaml.safe_dump(spec).encode()

    async def save(self, instance):
        """
        Saves the spec of the instance as the latest snapshot.
        """
        await self.client.apply_config_map(
            {
                "apiVersion": "v1",
                "kind": "ConfigMap",
                "metadata": {
                    "name": self.config_map_name(instance),
                    "namespace": instance.metadata.namespace,
                    "labels": dict(instance.metadata.labels or {}),
                    "ownerReferences": [utils.owner_reference(instance)],
                },
                "binaryData": {
                    SPEC_KEY: base64.b64encode(self.serialise(instance)).decode(),
                },
            }
        )

    async def load(self, instance):
        """
        Returns the spec from the latest snapshot for the instance.

        Errors fetching or parsing the snapshot are propagated to the caller.
        """
        config_map = await self.client.fetch_config_map(
            self.config_map_name(instance),
            instance.metadata.namespace
        )
        data = base64.b64decode(config_map["binaryData"][SPEC_KEY])
        spec_model = type(instance.spec)
        return spec_model.model_validate(yaml.safe_load(data) or {})
