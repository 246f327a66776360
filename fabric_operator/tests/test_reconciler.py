import unittest
from unittest import mock

from fabric_operator import errors
from fabric_operator.models import v1beta1 as api
from fabric_operator.offering import Result
from fabric_operator.reconciler import Reconciler, pod_ready, requeue_delay
from fabric_operator.update import Update
from fabric_operator.update_queue import UpdateQueue

from .fixtures import make_peer


def make_pod(phase = "Running", ready = "True"):
    return {
        "metadata": { "name": "peer1-abcde" },
        "status": {
            "phase": phase,
            "conditions": [{ "type": "Ready", "status": ready }],
        },
    }


class FakeClient:
    """
    In-memory stand-in for the cluster client that stores a single peer.
    """
    def __init__(self, peer):
        self.peer = peer
        self.pods = []
        self.status_patches = []

    async def fetch_instance(self, model, name, namespace = None):
        if self.peer is None or self.peer.metadata.name != name:
            return None
        return self.peer.model_copy(deep = True)

    async def list_pods(self, labels, namespace):
        return list(self.pods)

    async def patch_status(self, instance, retries):
        self.status_patches.append((instance.status.model_copy(deep = True), retries))
        self.peer = instance.model_copy(deep = True)
        return instance


class TestPodReady(unittest.TestCase):
    def test_running_and_ready(self):
        self.assertTrue(pod_ready(make_pod()))

    def test_running_without_conditions(self):
        self.assertTrue(pod_ready({ "status": { "phase": "Running" } }))

    def test_running_but_not_ready(self):
        self.assertFalse(pod_ready(make_pod(ready = "False")))

    def test_pending(self):
        self.assertFalse(pod_ready(make_pod(phase = "Pending")))


class TestRequeueDelay(unittest.TestCase):
    def test_explicit_delay(self):
        self.assertEqual(requeue_delay(Result(requeue = True, requeue_after = 30), 4, 1, 60), 30)

    def test_backoff(self):
        delays = [requeue_delay(Result(requeue = True), attempt, 1, 60) for attempt in range(4)]
        self.assertEqual(delays, [1, 2, 4, 8])

    def test_backoff_is_capped(self):
        self.assertEqual(requeue_delay(Result(requeue = True), 10, 1, 60), 60)


class TestReconciler(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = FakeClient(make_peer(spec = { "version": "2.5.1" }))
        self.queue = UpdateQueue()
        self.offering = mock.AsyncMock()
        self.offering.reconcile.return_value = Result()
        self.state_store = mock.AsyncMock()
        self.restart_service = mock.AsyncMock()
        self.reconciler = Reconciler(
            api.IBPPeer,
            "peer",
            self.client,
            self.queue,
            self.offering,
            self.state_store,
            restart_service = self.restart_service,
            restart_config_map_name = "peer-restart-config",
            status_patch_retries = 2,
            operator_version = "1.0.0"
        )

    @property
    def status(self):
        return self.client.peer.status

    async def test_missing_instance(self):
        result = await self.reconciler.reconcile("unknown", "fabric")
        self.assertEqual(result, Result())
        self.offering.reconcile.assert_not_awaited()

    async def test_pops_one_update_per_pass(self):
        self.queue.push("peer1", Update(spec_updated = True))
        self.queue.push("peer1", Update(msp_updated = True))

        result = await self.reconciler.reconcile("peer1", "fabric")

        self.assertTrue(result.requeue)
        _, update = self.offering.reconcile.await_args.args
        self.assertEqual(update, Update(spec_updated = True))
        self.assertEqual(self.queue.pending("peer1"), 1)

        result = await self.reconciler.reconcile("peer1", "fabric")

        self.assertFalse(result.requeue)
        _, update = self.offering.reconcile.await_args.args
        self.assertEqual(update, Update(msp_updated = True))
        self.assertEqual(self.queue.pending("peer1"), 0)

    async def test_empty_queue_passes_empty_update(self):
        await self.reconciler.reconcile("peer1", "fabric")
        _, update = self.offering.reconcile.await_args.args
        self.assertEqual(update, Update())

    async def test_offering_requeue_pushes_update_back(self):
        self.queue.push("peer1", Update(restart_needed = True))
        self.offering.reconcile.return_value = Result(requeue = True)
        result = await self.reconciler.reconcile("peer1", "fabric")
        self.assertTrue(result.requeue)
        self.assertEqual(self.queue.peek("peer1"), Update(restart_needed = True))

    async def test_requeue_keeps_offering_delay(self):
        self.queue.push("peer1", Update(restart_needed = True))
        self.offering.reconcile.return_value = Result(requeue = True, requeue_after = 30)
        result = await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(result, Result(requeue = True, requeue_after = 30))

    async def test_pending_updates_keep_offering_delay(self):
        self.queue.push("peer1", Update(spec_updated = True))
        self.queue.push("peer1", Update(msp_updated = True))
        self.offering.reconcile.return_value = Result(requeue_after = 10)
        result = await self.reconciler.reconcile("peer1", "fabric")
        self.assertTrue(result.requeue)
        self.assertEqual(result.requeue_after, 10)

    async def test_deploying_then_deployed(self):
        self.queue.push("peer1", Update(spec_updated = True))

        await self.reconciler.reconcile("peer1", "fabric")

        self.assertEqual(self.status.type, api.StatusType.DEPLOYING)
        self.assertEqual(self.status.reason, "waitingForPods")
        self.assertEqual(self.status.versions.reconciled, "2.5.1")
        self.assertEqual(self.status.version, "1.0.0")
        self.assertEqual(len(self.client.status_patches), 1)
        self.assertEqual(self.client.status_patches[0][1], 2)

        self.client.pods = [make_pod(), make_pod()]
        await self.reconciler.reconcile("peer1", "fabric")

        self.assertEqual(self.status.type, api.StatusType.DEPLOYED)
        self.assertEqual(self.status.reason, "allPodsRunning")
        self.assertEqual(len(self.client.status_patches), 2)

        # A further pass with nothing changed does not write the status again
        await self.reconciler.reconcile("peer1", "fabric")

        self.assertEqual(self.status.type, api.StatusType.DEPLOYED)
        self.assertEqual(len(self.client.status_patches), 2)

    async def test_deploying_is_not_rewritten(self):
        await self.reconciler.reconcile("peer1", "fabric")
        await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(self.status.type, api.StatusType.DEPLOYING)
        self.assertEqual(len(self.client.status_patches), 1)

    async def test_unready_pod_is_deploying(self):
        self.client.pods = [make_pod(), make_pod(ready = "False")]
        await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(self.status.type, api.StatusType.DEPLOYING)

    async def test_warning_is_kept_while_pods_run(self):
        self.client.peer.status = api.CRStatus(type = api.StatusType.WARNING)
        self.client.pods = [make_pod()]
        await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(self.status.type, api.StatusType.WARNING)
        self.assertEqual(self.client.status_patches, [])

    async def test_saves_spec_after_success(self):
        await self.reconciler.reconcile("peer1", "fabric")
        self.state_store.save.assert_awaited_once()

    async def test_status_override(self):
        self.client.pods = [make_pod()]
        self.offering.reconcile.return_value = Result(
            status = api.CRStatus(
                type = api.StatusType.WARNING,
                reason = "certRenewalRequired",
                message = "certificate expires soon",
                status = api.ConditionStatus.FALSE,
                error_code = 9,
            )
        )
        await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(self.status.type, api.StatusType.WARNING)
        self.assertEqual(self.status.reason, "certRenewalRequired")
        self.assertEqual(self.status.message, "certificate expires soon")
        self.assertEqual(self.status.status, api.ConditionStatus.TRUE)
        self.assertEqual(self.status.error_code, 0)
        self.assertEqual(self.status.version, "1.0.0")
        self.assertEqual(len(self.client.status_patches), 1)

    async def test_breaking_error(self):
        self.offering.reconcile.side_effect = errors.OperatorError(
            errors.ErrorCode.INVALID_PEER_INIT_SPEC,
            "license not accepted"
        )
        result = await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(result, Result())
        self.assertEqual(self.status.type, api.StatusType.ERROR)
        self.assertEqual(self.status.status, api.ConditionStatus.TRUE)
        self.assertEqual(self.status.reason, "errorOccurredDuringReconcile")
        self.assertEqual(self.status.message, "Code: 15 - license not accepted")
        self.assertEqual(self.status.error_code, 15)
        self.assertTrue(self.status.last_heartbeat_time)
        self.state_store.save.assert_not_awaited()

    async def test_non_breaking_error_is_raised_after_status(self):
        self.offering.reconcile.side_effect = errors.OperatorError(
            errors.ErrorCode.MIGRATION_FAILED,
            "migration failed"
        )
        with self.assertRaises(errors.OperatorError):
            await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(self.status.type, api.StatusType.ERROR)
        self.assertEqual(self.status.error_code, 23)

    async def test_unexpected_error_is_raised_after_status(self):
        self.offering.reconcile.side_effect = RuntimeError("connection refused")
        with self.assertRaises(RuntimeError):
            await self.reconciler.reconcile("peer1", "fabric")
        self.assertEqual(self.status.type, api.StatusType.ERROR)
        self.assertEqual(self.status.error_code, 0)
        self.assertEqual(self.status.message, "connection refused")

    async def test_status_patch_error_is_raised(self):
        self.client.patch_status = mock.AsyncMock(side_effect = RuntimeError("conflict"))
        with self.assertRaises(RuntimeError):
            await self.reconciler.reconcile("peer1", "fabric")

    async def test_restart_config_map(self):
        self.restart_service.reconcile.return_value = True
        result = await self.reconciler.reconcile("peer-restart-config", "fabric")
        self.assertTrue(result.requeue)
        self.restart_service.reconcile.assert_awaited_once_with("peer", "fabric")
        self.offering.reconcile.assert_not_awaited()
