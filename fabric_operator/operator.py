import asyncio
import copy
import functools
import logging
import sys
import typing as t

import kopf

from easykube import Configuration, ApiError
from kube_custom_resource import CustomResourceRegistry

from . import errors, models, utils
from .config import settings
from .kube import ClusterClient
from .locks import KeyedLocks
from .models import v1beta1 as api
from .offering import load_offering, load_restart_service, OfferingNotFound
from .predicates import (
    CreateEvent,
    DeleteEvent,
    ObjectKind,
    Predicates,
    UpdateEvent,
)
from .reconciler import Reconciler, requeue_delay
from .statestore import SpecStateStore
from .update_queue import UpdateQueue

logger = logging.getLogger(__name__)


#: The reconciled kinds and the component name used in their labels and config maps
COMPONENTS = {
    api.IBPPeer: "peer",
    api.IBPOrderer: "orderer",
    api.IBPCA: "ca",
}

#: The kinds that must have an offering for the operator to start
REQUIRED_KINDS = {api.IBPPeer._meta.kind}

#: The kinds whose secrets are observed
MANAGED_KINDS = {model._meta.kind for model in COMPONENTS}


# Create an easykube client from the environment
from pydantic.json import pydantic_encoder
ekclient = (
    Configuration
        .from_environment(json_encoder = pydantic_encoder)
        .async_client(default_field_manager = settings.easykube_field_manager)
)


# Create a registry of custom resources and populate it from the models module
registry = CustomResourceRegistry(settings.api_group, settings.crd_categories)
registry.discover_models(models)


cluster_client = ClusterClient(ekclient, settings.api_group)
state_store = SpecStateStore(cluster_client)


class Controller(t.NamedTuple):
    """
    The predicates and reconciler for a single kind.
    """

    kind: str
    predicates: Predicates
    reconciler: Reconciler


# Populated at startup with a controller for each kind that has an offering
controllers = {}

# Reconciliation passes for the same resource must not overlap
reconcile_locks = KeyedLocks()

# The last observed data for each certificate secret, used as the old state for updates
secret_data = {}


async def report_policy_violation(instance, message):
    """
    Posts a warning event for the instance when an update is rejected.
    """
    kopf.warn(
        {
            "apiVersion": instance.api_version,
            "kind": instance.kind,
            "metadata": {
                "name": instance.metadata.name,
                "namespace": instance.metadata.namespace,
                "uid": instance.metadata.uid,
            },
        },
        reason = "InvalidSpecUpdate",
        message = message
    )


def build_controller(model, component, offering, restart_service):
    """
    Returns the controller for the model using the given offering.
    """
    queue = UpdateQueue()
    restart_config_map_name = f"{component}-{settings.restart_config_map_suffix}"
    reconciler = Reconciler(
        model,
        component,
        cluster_client,
        queue,
        offering,
        state_store,
        restart_service = restart_service,
        restart_config_map_name = restart_config_map_name,
        status_patch_retries = settings.status_patch_retries,
        operator_version = settings.operator_version
    )
    predicates = Predicates(
        model,
        cluster_client,
        queue,
        state_store,
        reconciler.set_status,
        restart_config_map_name,
        on_policy_violation = report_policy_violation
    )
    return Controller(model._meta.kind, predicates, reconciler)


@kopf.on.startup()
async def apply_settings(**kwargs):
    """
    Apply kopf settings, register the CRDs and load the offerings.
    """
    kopf_settings = kwargs["settings"]
    kopf_settings.persistence.finalizer = f"{settings.annotation_prefix}/finalizer"
    kopf_settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix = settings.annotation_prefix
    )
    kopf_settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(
        prefix = settings.annotation_prefix,
        key = "last-handled-configuration",
    )
    kopf_settings.watching.client_timeout = settings.watch_timeout
    # Apply the CRDs
    for crd in registry:
        try:
            await ekclient.apply_object(crd.kubernetes_resource(), force = True)
        except Exception:
            logger.exception("error applying CRD %s.%s - exiting", crd.plural_name, crd.api_group)
            sys.exit(1)
    # Give Kubernetes a chance to create the APIs for the CRDs
    await asyncio.sleep(0.5)
    # Check to see if the APIs for the CRDs are up
    # If they are not, the kopf watches will not start properly so we exit and get restarted
    for crd in registry:
        preferred_version = next(k for k, v in crd.versions.items() if v.storage)
        api_version = f"{crd.api_group}/{preferred_version}"
        try:
            _ = await ekclient.get(f"/apis/{api_version}/{crd.plural_name}")
        except Exception:
            logger.exception(
                "api for %s.%s not available - exiting",
                crd.plural_name,
                crd.api_group
            )
            sys.exit(1)
    # Load the platform-specific implementations
    try:
        restart_service = load_restart_service(settings.platform)
    except OfferingNotFound:
        logger.warning("no %s restart service - restarts are disabled", settings.platform.value)
        restart_service = None
    for model, component in COMPONENTS.items():
        kind = model._meta.kind
        try:
            offering = load_offering(settings.platform, kind)
        except OfferingNotFound:
            if kind in REQUIRED_KINDS:
                logger.exception("no %s offering for %s - exiting", settings.platform.value, kind)
                sys.exit(1)
            logger.warning(
                "no %s offering for %s - resources of this kind are not reconciled",
                settings.platform.value,
                kind
            )
            continue
        controllers[kind] = build_controller(model, component, offering, restart_service)


@kopf.on.cleanup()
async def on_cleanup(**kwargs):
    """
    Runs on operator shutdown.
    """
    await ekclient.aclose()


async def run_reconcile(controller, name, namespace):
    """
    Runs reconciliation passes for the named resource until no more are requested.
    """
    async with reconcile_locks.get((controller.kind, namespace, name)):
        attempt = 0
        while True:
            try:
                result = await controller.reconciler.reconcile(name, namespace)
            except ApiError as exc:
                if exc.status_code == 409:
                    # When a handler fails with a 409, we want to retry quickly
                    raise kopf.TemporaryError(str(exc), delay = 5)
                else:
                    raise
            except errors.OperatorError as exc:
                raise kopf.TemporaryError(str(exc))
            if not result.requeue:
                break
            await asyncio.sleep(
                requeue_delay(
                    result,
                    attempt,
                    settings.requeue_delay,
                    settings.requeue_max_delay
                )
            )
            attempt += 1


def model_handler(model, register_fn, /, include_instance = True, **kwargs):
    """
    Decorator that registers a handler with kopf for the specified model.
    """
    api_version = f"{settings.api_group}/{model._meta.version}"
    def decorator(func):
        @functools.wraps(func)
        async def handler(**handler_kwargs):
            if include_instance and "instance" not in handler_kwargs:
                handler_kwargs["instance"] = model.model_validate(handler_kwargs["body"])
            return await func(**handler_kwargs)
        return register_fn(api_version, model._meta.plural_name, **kwargs)(handler)
    return decorator


def controller_for(instance):
    controller = controllers.get(instance.kind)
    if controller is None:
        logger.info(
            "ignoring %s '%s' - no offering is loaded for the kind",
            instance.kind,
            instance.metadata.name
        )
    return controller


async def handle_create(instance):
    controller = controller_for(instance)
    if controller is None:
        return
    decision = await controller.predicates.create(CreateEvent(ObjectKind.PRIMARY, instance))
    if decision.reconcile:
        await run_reconcile(
            controller,
            instance.metadata.name,
            instance.metadata.namespace
        )


async def handle_update(instance, body, old):
    controller = controller_for(instance)
    if controller is None:
        return
    previous = type(instance).model_validate({ **body, "spec": old or {} })
    decision = await controller.predicates.update(
        UpdateEvent(ObjectKind.PRIMARY, previous, instance)
    )
    if decision.reconcile:
        await run_reconcile(
            controller,
            instance.metadata.name,
            instance.metadata.namespace
        )


async def handle_delete(instance):
    controller = controller_for(instance)
    if controller is None:
        return
    name = instance.metadata.name
    namespace = instance.metadata.namespace
    if await controller.predicates.delete(DeleteEvent(ObjectKind.PRIMARY, instance)):
        await run_reconcile(controller, name, namespace)
    reconcile_locks.discard((controller.kind, namespace, name))


@model_handler(api.IBPPeer, kopf.on.create)
@model_handler(api.IBPPeer, kopf.on.resume)
async def on_peer_create(instance, **kwargs):
    """
    Executes when a peer is created or the operator is resumed.
    """
    await handle_create(instance)


@model_handler(api.IBPPeer, kopf.on.update, field = "spec")
async def on_peer_update(instance, body, old, **kwargs):
    """
    Executes when the spec of a peer is changed.
    """
    await handle_update(instance, body, old)


@model_handler(api.IBPPeer, kopf.on.delete, optional = True)
async def on_peer_delete(instance, **kwargs):
    """
    Executes when a peer is deleted.
    """
    await handle_delete(instance)


@model_handler(api.IBPOrderer, kopf.on.create)
@model_handler(api.IBPOrderer, kopf.on.resume)
async def on_orderer_create(instance, **kwargs):
    """
    Executes when an orderer is created or the operator is resumed.
    """
    await handle_create(instance)


@model_handler(api.IBPOrderer, kopf.on.update, field = "spec")
async def on_orderer_update(instance, body, old, **kwargs):
    """
    Executes when the spec of an orderer is changed.
    """
    await handle_update(instance, body, old)


@model_handler(api.IBPOrderer, kopf.on.delete, optional = True)
async def on_orderer_delete(instance, **kwargs):
    """
    Executes when an orderer is deleted.
    """
    await handle_delete(instance)


@model_handler(api.IBPCA, kopf.on.create)
@model_handler(api.IBPCA, kopf.on.resume)
async def on_ca_create(instance, **kwargs):
    """
    Executes when a CA is created or the operator is resumed.
    """
    await handle_create(instance)


@model_handler(api.IBPCA, kopf.on.update, field = "spec")
async def on_ca_update(instance, body, old, **kwargs):
    """
    Executes when the spec of a CA is changed.
    """
    await handle_update(instance, body, old)


@model_handler(api.IBPCA, kopf.on.delete, optional = True)
async def on_ca_delete(instance, **kwargs):
    """
    Executes when a CA is deleted.
    """
    await handle_delete(instance)


def secret_key(obj):
    return (obj["metadata"]["namespace"], obj["metadata"]["name"])


async def dispatch_event(kind, type, obj):
    """
    Runs the predicates of each controller for an event on an owned object and
    reconciles the affected resources.
    """
    for controller in list(controllers.values()):
        predicates = controller.predicates
        if type in {None, "ADDED"}:
            decision = await predicates.create(CreateEvent(kind, obj))
            reconcile, name = decision.reconcile, decision.name
        elif type == "MODIFIED":
            old = obj
            if kind == ObjectKind.SECRET:
                old = { **obj, "data": secret_data.get(secret_key(obj)) }
            decision = await predicates.update(UpdateEvent(kind, old, obj))
            reconcile, name = decision.reconcile, decision.name
        elif type == "DELETED":
            reconcile = await predicates.delete(DeleteEvent(kind, obj))
            if kind == ObjectKind.CONFIG_MAP:
                name = obj["metadata"]["name"]
                if name != predicates.restart_config_map_name:
                    name = None
            else:
                name = utils.controller_name(obj, controller.kind)
        else:
            return
        if reconcile and name:
            await run_reconcile(controller, name, obj["metadata"]["namespace"])


@kopf.on.event(
    "v1",
    "secrets",
    # Only secrets holding certificates for the managed kinds are of interest
    when = lambda body, **_: utils.is_tracked_secret(body, MANAGED_KINDS)
)
async def on_secret_event(type, body, **kwargs):
    """
    Executes when a certificate secret changes.
    """
    obj = copy.deepcopy(dict(body))
    try:
        await dispatch_event(ObjectKind.SECRET, type, obj)
    finally:
        if type == "DELETED":
            secret_data.pop(secret_key(obj), None)
        else:
            secret_data[secret_key(obj)] = obj.get("data")


@kopf.on.event("v1", "configmaps")
async def on_config_map_event(type, body, **kwargs):
    """
    Executes when a config map changes.
    """
    await dispatch_event(ObjectKind.CONFIG_MAP, type, copy.deepcopy(dict(body)))


@kopf.on.event(
    "apps/v1",
    "deployments",
    # Only deployments that are owned by a managed resource are of interest
    when = lambda body, **_: any(
        utils.controller_name(body, kind) is not None
        for kind in MANAGED_KINDS
    )
)
async def on_deployment_event(type, body, **kwargs):
    """
    Executes when a deployment owned by a managed resource changes.
    """
    await dispatch_event(ObjectKind.DEPLOYMENT, type, copy.deepcopy(dict(body)))
