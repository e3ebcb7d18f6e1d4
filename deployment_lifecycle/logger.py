import logging

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def setup_logging(level="INFO"):
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def get_logger(name=None):
    """Loggers are namespaced under the package so they can be tuned together"""
    return logging.getLogger(f"deployment_lifecycle.{name}" if name else "deployment_lifecycle")
