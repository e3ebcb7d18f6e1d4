class DeploymentError(Exception):
    """Base class for deployment lifecycle errors"""


class ValidationError(DeploymentError, ValueError):
    """A deployment could not be created from the given input"""


class StateError(DeploymentError, RuntimeError):
    """A transition is not allowed from the deployment's current status"""


class UnknownDeploymentError(DeploymentError, LookupError):
    pass


class DeploymentBusyError(DeploymentError, TimeoutError):
    pass
