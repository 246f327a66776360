import datetime as dt
import logging

from . import errors
from .models.v1beta1 import ConditionStatus, CRStatus, StatusType
from .offering import Result

logger = logging.getLogger(__name__)


#: The reason recorded when a reconciliation fails
REASON_ERROR = "errorOccurredDuringReconcile"
#: The reason recorded when all the pods for a resource are running
REASON_PODS_RUNNING = "allPodsRunning"
#: The reason recorded while waiting for the pods for a resource
REASON_PODS_WAITING = "waitingForPods"


def _now():
    return dt.datetime.now(dt.timezone.utc).isoformat()


def requeue_delay(result, attempt, base_delay, max_delay):
    """
    Returns the number of seconds to wait before the next pass for a result that
    requests a requeue.

    An explicit delay from the result is used as is. Otherwise the base delay
    doubles for each consecutive requeue, up to the maximum.
    """
    if result.requeue_after:
        return result.requeue_after
    return min(base_delay * 2 ** attempt, max_delay)


def pod_ready(pod):
    """
    Returns true if the pod is running and not reporting that it is unready.
    """
    status = pod.get("status") or {}
    if status.get("phase") != "Running":
        return False
    return not any(
        condition.get("type") == "Ready" and condition.get("status") == "False"
        for condition in status.get("conditions") or []
    )


class Reconciler:
    """
    Drives a managed resource towards its desired state, one pending update at a time.

    Each pass pops a single update from the queue, hands it to the offering and
    records the outcome in the status of the resource. If more updates are pending
    once the pass is complete, another pass is requested.
    """
    def __init__(
        self,
        model,
        component,
        client,
        queue,
        offering,
        state_store,
        restart_service = None,
        restart_config_map_name = None,
        status_patch_retries = 2,
        operator_version = ""
    ):
        self.model = model
        self.component = component
        self.client = client
        self.queue = queue
        self.offering = offering
        self.state_store = state_store
        self.restart_service = restart_service
        self.restart_config_map_name = restart_config_map_name
        self.status_patch_retries = status_patch_retries
        self.operator_version = operator_version

    @property
    def kind(self):
        return self.model._meta.kind

    async def reconcile(self, name, namespace):
        """
        Runs a single reconciliation pass for the named resource.

        Returns a result indicating whether another pass is required. Errors that
        are not breaking are raised after the error status has been recorded.
        """
        if name == self.restart_config_map_name:
            return await self.reconcile_restarts(namespace)

        instance = await self.client.fetch_instance(self.model, name, namespace)
        if instance is None:
            logger.info("%s '%s' no longer exists - nothing to do", self.kind, name)
            return Result()

        logger.info(
            "reconciling %s '%s' with update values of [ %s ]",
            self.kind,
            name,
            self.queue.peek(name)
        )
        logger.debug("pending updates: %s", self.queue.describe(name))
        update = self.queue.pop(name)

        reconcile_error = None
        try:
            result = await self.offering.reconcile(instance, update)
        except Exception as exc:
            reconcile_error = exc
            result = Result()

        try:
            await self.set_status(instance, result.status, reconcile_error)
        except Exception as exc:
            message = f"{self.kind} instance '{name}' failed to set status"
            error = errors.route_error(exc, message)
            if error is not None:
                raise error
            return Result()

        if reconcile_error is not None:
            message = f"{self.kind} instance '{name}' encountered error"
            error = errors.route_error(reconcile_error, message)
            if error is not None:
                raise error
            return Result()

        if result.requeue:
            logger.info("requeuing update for %s '%s'", self.kind, name)
            self.queue.push(name, update)

        if self.queue.pending(name):
            logger.info(
                "%s '%s' has pending updates - requesting another pass",
                self.kind,
                name
            )
            return Result(requeue = True, requeue_after = result.requeue_after)
        return result

    async def reconcile_restarts(self, namespace):
        """
        Processes the restart requests for the component in the namespace.
        """
        if self.restart_service is None:
            logger.warning("no restart service configured for %s", self.component)
            return Result()
        pending = await self.restart_service.reconcile(self.component, namespace)
        return Result(requeue = bool(pending))

    async def set_status(self, instance, status_override, reconcile_error):
        """
        Records the outcome of a reconciliation in the status of the instance.
        """
        name = instance.metadata.name
        namespace = instance.metadata.namespace

        if reconcile_error is None:
            await self.state_store.save(instance)

        # Use the latest version of the instance for the status update
        latest = await self.client.fetch_instance(self.model, name, namespace)
        if latest is None:
            return
        instance = latest

        if reconcile_error is not None:
            logger.info("setting Error status for %s '%s'", self.kind, name)
            instance.status = CRStatus(
                type = StatusType.ERROR,
                status = ConditionStatus.TRUE,
                reason = REASON_ERROR,
                message = str(reconcile_error),
                last_heartbeat_time = _now(),
                version = self.operator_version,
                error_code = errors.get_error_code(reconcile_error),
                versions = instance.status.versions,
            )
            await self.client.patch_status(instance, self.status_patch_retries)
            return

        instance.status.versions.reconciled = instance.spec.fabric_version

        if status_override is not None and status_override.type:
            current = instance.status
            if (
                current.type != status_override.type or
                current.reason != status_override.reason or
                current.message != status_override.message
            ):
                logger.info(
                    "setting %s status for %s '%s'",
                    status_override.type.value,
                    self.kind,
                    name
                )
                instance.status = CRStatus(
                    type = status_override.type,
                    status = ConditionStatus.TRUE,
                    reason = status_override.reason,
                    message = status_override.message,
                    last_heartbeat_time = _now(),
                    version = self.operator_version,
                    versions = current.versions,
                )
                await self.client.patch_status(instance, self.status_patch_retries)
                return

        running = await self.pods_running(instance)
        if running:
            if instance.status.type in {StatusType.DEPLOYED, StatusType.WARNING}:
                return
            status_type, reason = StatusType.DEPLOYED, REASON_PODS_RUNNING
        else:
            if instance.status.type == StatusType.DEPLOYING:
                return
            status_type, reason = StatusType.DEPLOYING, REASON_PODS_WAITING

        logger.info("setting %s status for %s '%s'", status_type.value, self.kind, name)
        instance.status = CRStatus(
            type = status_type,
            status = ConditionStatus.TRUE,
            reason = reason,
            last_heartbeat_time = _now(),
            version = self.operator_version,
            versions = instance.status.versions,
        )
        await self.client.patch_status(instance, self.status_patch_retries)

    async def pods_running(self, instance):
        """
        Returns true if the instance has pods and all of them are ready.
        """
        pods = await self.client.list_pods(
            { "app": instance.metadata.name },
            instance.metadata.namespace
        )
        if not pods:
            return False
        return all(pod_ready(pod) for pod in pods)
