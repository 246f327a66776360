import dataclasses
import enum
import logging
import typing as t

from . import errors, migration, utils
from .migration import decide_migration
from .update import Update
from .validation import validate_cr_name

logger = logging.getLogger(__name__)


class ObjectKind(str, enum.Enum):
    """
    The kinds of object whose events are observed for a managed resource.
    """

    PRIMARY = "Primary"
    SECRET = "Secret"
    CONFIG_MAP = "ConfigMap"
    DEPLOYMENT = "Deployment"


@dataclasses.dataclass(frozen = True)
class CreateEvent:
    kind: ObjectKind
    obj: t.Any


@dataclasses.dataclass(frozen = True)
class UpdateEvent:
    kind: ObjectKind
    old: t.Any
    new: t.Any


@dataclasses.dataclass(frozen = True)
class DeleteEvent:
    kind: ObjectKind
    obj: t.Any


class Decision(t.NamedTuple):
    """
    The outcome of running a predicate for an event.
    """

    #: The update that was detected, which may be empty
    update: Update
    #: Indicates if a reconciliation should be triggered
    reconcile: bool
    #: The name of the resource to reconcile
    name: t.Optional[str] = None


class ImmutableFieldChanged(Exception):
    """
    Raised when an update changes a field that cannot be changed after creation.
    """
    def __init__(self, field, old, new):
        super().__init__(field, old, new)
        self.field = field
        self.old = old
        self.new = new

    def __str__(self):
        return f"{self.field} update is not allowed ({self.old} -> {self.new})"


def images_updated(old_spec, new_spec):
    """
    Returns true if the images for the resource have changed.

    Removing the images is not a change, since the defaults are used instead.
    """
    if new_spec.images is None:
        return False
    if old_spec.images is None:
        return True
    return old_spec.images != new_spec.images


def fabric_version_updated(old_spec, new_spec):
    return old_spec.fabric_version != new_spec.fabric_version


def _without_admin_certs(msp):
    return msp.model_copy(update = { "admin_certs": [] })


def msp_info_updated(old_secret, new_secret):
    """
    Returns true if the MSP crypto in the secret spec has changed.

    Changes to admin certs alone are not reported, since they are applied
    separately and must not cause the rest of the crypto to be regenerated.
    """
    if new_secret is None or new_secret.msp is None:
        return False
    new_msp = new_secret.msp
    if old_secret is None or old_secret.msp is None:
        return bool(new_msp.component or new_msp.tls or new_msp.client_auth)
    old_msp = old_secret.msp
    for field in ("component", "tls", "client_auth"):
        old_value = getattr(old_msp, field)
        new_value = getattr(new_msp, field)
        if old_value is None or new_value is None:
            if old_value != new_value:
                return True
        elif _without_admin_certs(old_value) != _without_admin_certs(new_value):
            return True
    return False


def check_immutable_fields(old_spec, new_spec):
    """
    Raises ImmutableFieldChanged if the zone or region has been changed.
    """
    if utils.zone_or_region_updated(old_spec.zone, new_spec.zone):
        raise ImmutableFieldChanged("zone", old_spec.zone, new_spec.zone)
    if utils.zone_or_region_updated(old_spec.region, new_spec.region):
        raise ImmutableFieldChanged("region", old_spec.region, new_spec.region)


def _apply_actions(update, old_action, new_action):
    """
    Sets the flags for the one-shot actions requested in the new spec.
    """
    update.restart_needed = new_action.restart
    # Reenrollment is requested by a flag changing to true
    if old_action.reenroll.ecert != new_action.reenroll.ecert:
        update.ecert_reenroll_needed = new_action.reenroll.ecert
    if old_action.reenroll.tlscert != new_action.reenroll.tlscert:
        update.tls_reenroll_needed = new_action.reenroll.tlscert
    if old_action.reenroll.ecert_new_key != new_action.reenroll.ecert_new_key:
        update.ecert_new_key_reenroll = new_action.reenroll.ecert_new_key
    if old_action.reenroll.tlscert_new_key != new_action.reenroll.tlscert_new_key:
        update.tlscert_new_key_reenroll = new_action.reenroll.tlscert_new_key
    update.ecert_enroll = new_action.enroll.ecert
    update.tlscert_enroll = new_action.enroll.tlscert


def _apply_certificate_settings(update, old_spec, new_spec):
    update.msp_updated = msp_info_updated(old_spec.secret, new_spec.secret)
    update.node_ou_updated = (
        bool(old_spec.disable_node_ou) != bool(new_spec.disable_node_ou)
    )
    # The expiry checks need to run again with the new warning period
    if old_spec.num_seconds_warning_period != new_spec.num_seconds_warning_period:
        update.ecert_updated = True
        update.tls_cert_updated = True


def detect_peer_update(old_spec, new_spec):
    """
    Returns the update for a change from the old peer spec to the new peer spec and
    whether a reconciliation is needed.

    Raises ImmutableFieldChanged if the change is not permitted.
    """
    check_immutable_fields(old_spec, new_spec)
    if old_spec == new_spec:
        return Update(), False

    update = Update(spec_updated = True)
    if old_spec.images is not None and new_spec.images is not None:
        update.peer_tag_updated = old_spec.images.peer_tag != new_spec.images.peer_tag
    update.overrides_updated = old_spec.config_override != new_spec.config_override
    update.dind_args_updated = old_spec.dind_args != new_spec.dind_args
    _apply_actions(update, old_spec.action, new_spec.action)
    decide_migration(old_spec.fabric_version, new_spec.fabric_version).apply(update)
    update.upgrade_dbs = new_spec.action.upgrade_dbs
    _apply_certificate_settings(update, old_spec, new_spec)
    update.images_updated = images_updated(old_spec, new_spec)
    update.fabric_version_updated = fabric_version_updated(old_spec, new_spec)
    return update, True


def detect_orderer_update(old_spec, new_spec):
    """
    Returns the update for a change from the old orderer spec to the new orderer
    spec and whether a reconciliation is needed.

    Raises ImmutableFieldChanged if the change is not permitted.
    """
    check_immutable_fields(old_spec, new_spec)
    if old_spec == new_spec:
        return Update(), False

    update = Update(spec_updated = True)
    if old_spec.images is not None and new_spec.images is not None:
        if old_spec.images.orderer_tag != new_spec.images.orderer_tag:
            logger.info(
                "orderer tag updated from '%s' to '%s'",
                old_spec.images.orderer_tag,
                new_spec.images.orderer_tag
            )
    update.overrides_updated = old_spec.config_override != new_spec.config_override
    update.tls_cert_created = migration.orderer_tls_cert_refresh_needed(
        old_spec.fabric_version,
        new_spec.fabric_version
    )
    _apply_actions(update, old_spec.action, new_spec.action)
    decide_migration(old_spec.fabric_version, new_spec.fabric_version).apply(update)
    if migration.orderer_tls_reenroll_needed(
        old_spec.fabric_version,
        new_spec.fabric_version
    ):
        update.tls_reenroll_needed = True
    _apply_certificate_settings(update, old_spec, new_spec)
    update.images_updated = images_updated(old_spec, new_spec)
    update.fabric_version_updated = fabric_version_updated(old_spec, new_spec)
    return update, True


def detect_ca_update(old_spec, new_spec):
    """
    Returns the update for a change from the old CA spec to the new CA spec and
    whether a reconciliation is needed.

    Raises ImmutableFieldChanged if the change is not permitted.
    """
    check_immutable_fields(old_spec, new_spec)
    if old_spec == new_spec:
        return Update(), False

    update = Update(spec_updated = True)
    if old_spec.images is not None and new_spec.images is not None:
        if old_spec.images.ca_tag != new_spec.images.ca_tag:
            logger.info(
                "CA tag updated from '%s' to '%s'",
                old_spec.images.ca_tag,
                new_spec.images.ca_tag
            )
    # Overrides hold separate sections for the CA and the TLS CA
    old_overrides = old_spec.config_override
    new_overrides = new_spec.config_override
    if old_overrides is None:
        update.overrides_updated = new_overrides is not None
    else:
        new_overrides = new_overrides or {}
        update.overrides_updated = any(
            old_overrides.get(section) != new_overrides.get(section)
            for section in ("ca", "tlsca")
        )
    update.restart_needed = new_spec.action.restart
    update.tls_reenroll_needed = new_spec.action.renew.tlscert
    update.images_updated = images_updated(old_spec, new_spec)
    update.fabric_version_updated = fabric_version_updated(old_spec, new_spec)
    return update, True


#: The spec change detection for each managed kind
UPDATE_DETECTORS = {
    "IBPPeer": detect_peer_update,
    "IBPOrderer": detect_orderer_update,
    "IBPCA": detect_ca_update,
}


def detect_missed_update(saved_spec, spec):
    """
    Returns the update for changes made to the spec since the saved snapshot was
    taken and whether a reconciliation is needed.
    """
    if saved_spec == spec:
        return Update(), False
    update = Update(
        spec_updated = True,
        overrides_updated = saved_spec.config_override != spec.config_override,
        images_updated = images_updated(saved_spec, spec),
        fabric_version_updated = fabric_version_updated(saved_spec, spec),
    )
    return update, True


class Predicates:
    """
    Converts the events for a managed resource and the objects that it owns into
    updates, and decides whether each event should trigger a reconciliation.

    Create and update handlers return a decision and push the detected update for
    the owning resource when there is something to record. Delete handlers only
    return whether a reconciliation should be triggered.
    """
    def __init__(
        self,
        model,
        client,
        queue,
        state_store,
        set_status,
        restart_config_map_name,
        on_policy_violation = None,
        detect_update = None
    ):
        self.model = model
        self.client = client
        self.queue = queue
        self.state_store = state_store
        self.set_status = set_status
        self.restart_config_map_name = restart_config_map_name
        self.on_policy_violation = on_policy_violation
        self.detect_update = detect_update or UPDATE_DETECTORS[model._meta.kind]

    @property
    def kind(self):
        return self.model._meta.kind

    async def create(self, event: CreateEvent) -> Decision:
        handler = {
            ObjectKind.PRIMARY: self._create_primary,
            ObjectKind.SECRET: self._create_secret,
            ObjectKind.CONFIG_MAP: self._config_map,
            ObjectKind.DEPLOYMENT: self._create_deployment,
        }[event.kind]
        return await handler(event.obj)

    async def update(self, event: UpdateEvent) -> Decision:
        handler = {
            ObjectKind.PRIMARY: self._update_primary,
            ObjectKind.SECRET: self._update_secret,
            ObjectKind.CONFIG_MAP: self._update_config_map,
            ObjectKind.DEPLOYMENT: self._update_deployment,
        }[event.kind]
        return await handler(event.old, event.new)

    async def delete(self, event: DeleteEvent) -> bool:
        if event.kind == ObjectKind.PRIMARY:
            await self._delete_primary(event.obj)
        else:
            logger.info(
                "%s '%s' deleted",
                event.kind.value,
                event.obj["metadata"]["name"]
            )
        return True

    async def _create_primary(self, instance):
        name = instance.metadata.name
        if instance.status.type:
            # The resource was processed before the operator restarted, so check
            # for changes that were made while the operator was not running
            try:
                saved_spec = await self.state_store.load(instance)
            except Exception:
                logger.exception(
                    "failed to load saved spec for %s '%s' - forcing reconcile",
                    self.kind,
                    name
                )
                return Decision(Update(), True, name)
            update, reconcile = detect_missed_update(saved_spec, instance.spec)
            if reconcile:
                logger.info(
                    "%s '%s' changed while the operator was down: %s",
                    self.kind,
                    name,
                    update
                )
                self.queue.push(name, update)
            return Decision(update, reconcile, name)

        logger.info("create event detected for %s '%s'", self.kind, name)
        try:
            await validate_cr_name(
                self.client.list_instances,
                name,
                instance.metadata.namespace,
                self.kind
            )
        except Exception as exc:
            logger.error("failed to validate %s name '%s': %s", self.kind, name, exc)
            error = errors.OperatorError.wrap(
                exc,
                errors.ErrorCode.INVALID_CUSTOM_RESOURCE_CREATE_REQUEST,
                "failed to validate custom resource name"
            )
            await self.set_status(instance, None, error)
            return Decision(Update(), False, name)
        return Decision(Update(), True, name)

    async def _update_primary(self, old, new):
        name = new.metadata.name
        logger.info("update event detected for %s '%s'", self.kind, name)
        try:
            update, reconcile = self.detect_update(old.spec, new.spec)
        except ImmutableFieldChanged as exc:
            logger.error("invalid spec update for %s '%s': %s", self.kind, name, exc)
            if self.on_policy_violation:
                await self.on_policy_violation(new, str(exc))
            return Decision(Update(), False, name)
        if reconcile:
            logger.info("%s '%s' updated: %s", self.kind, name, update)
            self.queue.push(name, update)
        return Decision(update, reconcile, name)

    async def _delete_primary(self, instance):
        name = instance.metadata.name
        config_map_name = f"{name}-init-config"
        try:
            deleted = await self.client.delete_config_map(
                config_map_name,
                instance.metadata.namespace
            )
        except Exception:
            logger.exception(
                "failed to delete config map '%s' for %s '%s'",
                config_map_name,
                self.kind,
                name
            )
        else:
            if deleted:
                logger.info("deleted config map '%s'", config_map_name)
        logger.info("%s '%s' deleted", self.kind, name)

    async def owner_name(self, secret):
        """
        Returns the name of the managed resource that owns the secret, or None.

        Secrets without an owner reference are matched to a resource using their
        name and adopted by that resource.
        """
        metadata = secret["metadata"]
        if metadata.get("ownerReferences"):
            return utils.controller_name(secret, self.kind)
        owner_name = utils.owner_name_from_secret_name(metadata["name"])
        if not owner_name:
            return None
        try:
            candidates = await self.client.list_instances(
                self.model,
                metadata["namespace"]
            )
        except Exception:
            logger.exception("failed to list %s resources", self.kind)
            return None
        for candidate in candidates:
            if candidate["metadata"]["name"] != owner_name:
                continue
            owner = self.model.model_validate(candidate)
            try:
                await self.client.adopt_secret(secret, utils.owner_reference(owner))
            except Exception:
                logger.exception(
                    "failed to add owner reference to secret '%s'",
                    metadata["name"]
                )
                return None
            logger.info(
                "added owner reference for %s '%s' to secret '%s'",
                self.kind,
                owner_name,
                metadata["name"]
            )
            return owner_name
        return None

    def _certificate_update(self, secret_name, tls_flag, ecert_flag):
        if utils.is_secret_tls_cert(secret_name):
            return Update(**{ tls_flag: True })
        if utils.is_secret_ecert(secret_name):
            return Update(**{ ecert_flag: True })
        return None

    async def _create_secret(self, secret):
        owner_name = await self.owner_name(secret)
        if not owner_name:
            return Decision(Update(), False)
        secret_name = secret["metadata"]["name"]
        update = self._certificate_update(secret_name, "tls_cert_created", "ecert_created")
        if update is None:
            return Decision(Update(), False, owner_name)
        logger.info("secret '%s' created for %s '%s'", secret_name, self.kind, owner_name)
        self.queue.push(owner_name, update)
        return Decision(update, True, owner_name)

    async def _update_secret(self, old, new):
        owner_name = await self.owner_name(new)
        if not owner_name:
            return Decision(Update(), False)
        if old.get("data") == new.get("data"):
            return Decision(Update(), False, owner_name)
        secret_name = new["metadata"]["name"]
        update = self._certificate_update(secret_name, "tls_cert_updated", "ecert_updated")
        if update is None:
            return Decision(Update(), False, owner_name)
        logger.info("secret '%s' updated for %s '%s'", secret_name, self.kind, owner_name)
        self.queue.push(owner_name, update)
        return Decision(update, True, owner_name)

    async def _config_map(self, config_map):
        name = config_map["metadata"]["name"]
        return Decision(Update(), name == self.restart_config_map_name, name)

    async def _update_config_map(self, old, new):
        return await self._config_map(new)

    async def _create_deployment(self, deployment):
        logger.info("deployment '%s' created", deployment["metadata"]["name"])
        return Decision(Update(), True, utils.controller_name(deployment, self.kind))

    async def _update_deployment(self, old, new):
        logger.info("deployment '%s' updated", new["metadata"]["name"])
        return Decision(Update(), True, utils.controller_name(new, self.kind))
