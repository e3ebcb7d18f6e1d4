import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from .errors import ValidationError, StateError
from .logger import get_logger

logger = get_logger("models")


class DeploymentStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DeploymentHealth(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class Failure:
    """A task instance reported as failed by the orchestration API"""
    arn: str  # Task or container instance ARN
    reason: Optional[str] = None


@dataclass
class TrackerConfig:
    """Configuration for tracker behavior"""
    lock_timeout_s: float = None  # Max wait for another operation on the same deployment


def default_id_generator(token):
    """Use the idempotency token as the ID, or a random UUID when there is none"""
    return token if token else str(uuid.uuid4())


def utc_now():
    return datetime.now(timezone.utc)


def health_for(failures):
    """Health is derived only from the failure list given to a transition"""
    return DeploymentHealth.UNHEALTHY if failures else DeploymentHealth.HEALTHY


@dataclass
class Deployment:
    """One rollout of a task definition.

    Status only moves forward: pending -> in_progress -> completed, or
    straight from pending to completed. Health and failed_instances are
    overwritten on every transition, never merged with earlier values.

    Instances are not safe for concurrent mutation; callers serialize
    operations per deployment (see DeploymentTracker).
    """
    id: str
    task_definition: str
    start_time: datetime
    token: str = None
    desired_task_count: int = 0
    status: DeploymentStatus = DeploymentStatus.PENDING
    health: DeploymentHealth = DeploymentHealth.HEALTHY
    end_time: Optional[datetime] = None
    failed_instances: list = field(default_factory=list)
    clock: Callable[[], datetime] = field(default=utc_now, repr=False, compare=False)

    @classmethod
    def create(cls, task_definition, token, id_generator=None, clock=None):
        """Create a pending, healthy deployment for a task definition"""
        if not task_definition:
            raise ValidationError("task definition should not be empty")

        id_generator = id_generator or default_id_generator
        clock = clock or utc_now

        deployment_id = id_generator(token)
        if not deployment_id:
            raise ValidationError("id generator returned an empty deployment id")

        deployment = cls(
            id=deployment_id,
            task_definition=task_definition,
            start_time=clock(),
            token=token,
            clock=clock,
        )
        logger.info(f"Created deployment {deployment.id} for {task_definition}")
        return deployment

    @property
    def is_completed(self):
        return self.status == DeploymentStatus.COMPLETED

    def update_to_in_progress(self, desired_task_count, failures):
        """Mark the rollout as started, replacing the failure list"""
        if self.is_completed:
            logger.warning(f"Rejected in-progress update for completed deployment {self.id}")
            raise StateError(f"deployment {self.id} is already completed")

        failed = list(failures or [])
        self.status = DeploymentStatus.IN_PROGRESS
        self.desired_task_count = desired_task_count
        self.failed_instances = failed
        self.health = health_for(failed)
        logger.info(f"Deployment {self.id} in progress: desired={desired_task_count}, "
                    f"failed={len(failed)}, health={self.health.value}")

    def update_to_completed(self, failures=None):
        """Record the end of the rollout, replacing the failure list"""
        # end_time is written exactly once
        if self.is_completed:
            logger.warning(f"Rejected repeated completion of deployment {self.id}")
            raise StateError(f"deployment {self.id} is already completed")

        failed = list(failures or [])
        self.status = DeploymentStatus.COMPLETED
        self.end_time = self.clock()
        self.failed_instances = failed
        self.health = health_for(failed)
        logger.info(f"Deployment {self.id} completed: failed={len(failed)}, health={self.health.value}")

    def to_dict(self):
        """JSON-ready view of the deployment for reporting"""
        return {
            "id": self.id,
            "task_definition": self.task_definition,
            "token": self.token,
            "desired_task_count": self.desired_task_count,
            "status": self.status.value,
            "health": self.health.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "failed_instances": [
                {"arn": getattr(f, "arn", str(f)), "reason": getattr(f, "reason", None)}
                for f in self.failed_instances
            ],
        }
