import asyncio
from .models import Failure
from .logger import get_logger


class FailureReporter:
    """Stand-in for the orchestration API that reports failed task instances.

    Each instance in fail_polls is reported as failed for that many polls,
    then treated as recovered.
    """

    def __init__(self, fail_polls=None, reasons=None, delay=0):
        self.fail_map = fail_polls or {}
        self.reasons = reasons or {}
        self.delay = delay
        self.polls = 0
        self.logger = get_logger("failure")

    def delay_seconds(self):
        return self.delay

    async def report(self):
        delay = self.delay_seconds()
        if delay > 0:
            await asyncio.sleep(delay)

        self.polls += 1
        failures = [
            Failure(arn=arn, reason=self.reasons.get(arn))
            for arn, polls in self.fail_map.items()
            if self.polls <= polls
        ]
        self.logger.debug(f"Poll {self.polls} reported {len(failures)} failed instances")
        return failures
