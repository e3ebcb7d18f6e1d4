from .models import (
    DeploymentStatus, DeploymentHealth, Failure, Deployment, TrackerConfig, health_for
)
from .errors import (
    DeploymentError, ValidationError, StateError, UnknownDeploymentError, DeploymentBusyError
)
from .tracker import DeploymentTracker
from .failure import FailureReporter

__all__ = [
    "DeploymentStatus", "DeploymentHealth", "Failure", "Deployment",
    "TrackerConfig", "health_for",
    "DeploymentError", "ValidationError", "StateError",
    "UnknownDeploymentError", "DeploymentBusyError",
    "DeploymentTracker", "FailureReporter"
]
