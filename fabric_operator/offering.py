import abc
import dataclasses
import importlib.metadata
import logging
import typing as t

from .models.v1beta1 import CRStatus

logger = logging.getLogger(__name__)


#: The entry point group that offerings and restart services are registered in
ENTRY_POINT_GROUP = "fabric_operator.offerings"


@dataclasses.dataclass
class Result:
    """
    The outcome of a reconciliation pass.
    """

    #: Indicates if the resource should be reconciled again
    requeue: bool = False
    #: The number of seconds to wait before reconciling again, if requeuing
    requeue_after: float = 0
    #: A status that should replace the status derived from the pods, if given
    status: t.Optional[CRStatus] = None


class Offering(abc.ABC):
    """
    Platform-specific logic that renders and applies the workloads for a resource.
    """
    @abc.abstractmethod
    async def reconcile(self, instance, update) -> Result:
        """
        Reconciles the workloads for the instance given the detected update.

        Failures should be raised, preferably as operator errors so that breaking
        failures can be distinguished.
        """


class RestartService(abc.ABC):
    """
    Processes the restart requests that are queued in the restart config map for a
    component.
    """
    @abc.abstractmethod
    async def reconcile(self, component, namespace) -> bool:
        """
        Restarts the deployments that have pending restart requests.

        Returns true if there are still requests waiting to be processed.
        """


class OfferingNotFound(Exception):
    """
    Raised when no implementation is registered for a platform.
    """


def _load(name, factory_kwargs):
    entry_points = importlib.metadata.entry_points(group = ENTRY_POINT_GROUP, name = name)
    entry_point = next(iter(entry_points), None)
    if entry_point is None:
        raise OfferingNotFound(f"no entry point named '{name}' in {ENTRY_POINT_GROUP}")
    logger.info("loading %s from %s", name, entry_point.value)
    factory = entry_point.load()
    return factory(**factory_kwargs)


def load_offering(platform, kind, **kwargs) -> Offering:
    """
    Loads the offering for the given platform and resource kind.
    """
    return _load(f"{platform.value}.{kind.lower()}", kwargs)


def load_restart_service(platform, **kwargs) -> RestartService:
    """
    Loads the restart service for the given platform.
    """
    return _load(f"{platform.value}.restart", kwargs)
