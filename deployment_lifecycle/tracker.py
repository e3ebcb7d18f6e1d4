import asyncio
from contextlib import asynccontextmanager

from .models import Deployment, TrackerConfig
from .errors import ValidationError, StateError, UnknownDeploymentError, DeploymentBusyError
from .failure import FailureReporter
from .logger import get_logger


class DeploymentTracker:
    def __init__(self, failure_reporter=None, config=None, id_generator=None, clock=None):
        self.failure_reporter = failure_reporter if failure_reporter else FailureReporter()
        self.config = config if config else TrackerConfig()
        self.id_generator = id_generator
        self.clock = clock
        self.deployments = {}
        self.history = []
        self._by_token = {}
        self._locks = {}
        self.logger = get_logger("tracker")

    def create(self, task_definition, token):
        """Create a deployment, or return the one already created for this token"""
        if token and token in self._by_token:
            existing = self.deployments[self._by_token[token]]
            self.logger.info(f"Token already used, returning deployment {existing.id}")
            return existing

        deployment = Deployment.create(task_definition, token, id_generator=self.id_generator, clock=self.clock)
        if deployment.id in self.deployments:
            self.logger.error(f"Generated deployment id {deployment.id} is already registered")
            raise ValidationError(f"deployment id {deployment.id} already exists")

        self.deployments[deployment.id] = deployment
        self._locks[deployment.id] = asyncio.Lock()
        if token:
            self._by_token[token] = deployment.id
        self._record("created", deployment)
        return deployment

    def get(self, deployment_id):
        try:
            return self.deployments[deployment_id]
        except KeyError:
            raise UnknownDeploymentError(f"unknown deployment {deployment_id}") from None

    def discard(self, deployment_id):
        """Forget a deployment, its token and its history entries"""
        deployment = self.get(deployment_id)
        if self._locks[deployment_id].locked():
            self.logger.error(f"Cannot discard deployment {deployment_id} while an operation holds it")
            raise DeploymentBusyError(f"deployment {deployment_id} is busy")

        del self.deployments[deployment_id]
        del self._locks[deployment_id]
        if deployment.token and self._by_token.get(deployment.token) == deployment_id:
            del self._by_token[deployment.token]
        self.history = [h for h in self.history if h["deployment"] != deployment_id]
        self.logger.info(f"Discarded deployment {deployment_id}")
        return deployment

    async def mark_in_progress(self, deployment_id, desired_task_count):
        """Move a deployment to in progress using the latest reported failures"""
        deployment = self.get(deployment_id)
        async with self._locked(deployment_id):
            failures = await self._poll(deployment)
            try:
                deployment.update_to_in_progress(desired_task_count, failures)
            except StateError:
                self._record("rejected", deployment, transition="in_progress")
                raise
            self._record("in_progress", deployment, desired_task_count=desired_task_count)
        return deployment

    async def mark_completed(self, deployment_id):
        """Complete a deployment using the latest reported failures"""
        deployment = self.get(deployment_id)
        async with self._locked(deployment_id):
            failures = await self._poll(deployment)
            try:
                deployment.update_to_completed(failures)
            except StateError:
                self._record("rejected", deployment, transition="completed")
                raise
            self._record("completed", deployment)
        return deployment

    async def _poll(self, deployment):
        # The reporter is shared; a transition the entity will reject must not use up a poll
        if deployment.is_completed:
            return []
        return await self.failure_reporter.report()

    @asynccontextmanager
    async def _locked(self, deployment_id):
        """Serialize operations on one deployment"""
        lock = self._locks[deployment_id]
        timeout = self.config.lock_timeout_s

        if timeout and timeout > 0:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError:
                self.logger.error(f"Timed out after {timeout}s waiting for deployment {deployment_id}")
                raise DeploymentBusyError(f"deployment {deployment_id} is busy") from None
        else:
            await lock.acquire()

        try:
            yield
        finally:
            lock.release()

    def _record(self, event, deployment, **extra):
        entry = {
            "event": event,
            "deployment": deployment.id,
            "status": deployment.status.value,
            "health": deployment.health.value,
            "failed_count": len(deployment.failed_instances),
        }
        entry.update(extra)
        self.history.append(entry)
