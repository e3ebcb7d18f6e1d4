import argparse
import json
import asyncio
import sys
from .models import TrackerConfig
from .tracker import DeploymentTracker
from .failure import FailureReporter
from .errors import DeploymentError
from .logger import setup_logging, get_logger, LOG_LEVELS


def load_failures(path):
    """Build a FailureReporter from a JSON list of {"arn", "polls", "reason"} records"""
    logger = get_logger("cli")
    try:
        with open(path) as f:
            data = json.load(f)
        fail_polls = {}
        reasons = {}
        for record in data:
            arn = record["arn"]
            fail_polls[arn] = int(record.get("polls", 1))
            if record.get("reason"):
                reasons[arn] = record["reason"]
        return FailureReporter(fail_polls=fail_polls, reasons=reasons)
    except Exception as e:
        logger.error(f"Error loading failures: {e}")
        raise


async def run_deployment(tracker, task_definition, token, desired_count):
    """Drive one deployment through both transitions"""
    deployment = tracker.create(task_definition, token)
    await tracker.mark_in_progress(deployment.id, desired_count)
    await tracker.mark_completed(deployment.id)
    return deployment


def main():
    parser = argparse.ArgumentParser(description="Deployment lifecycle tracker")
    parser.add_argument("--log-level", default="INFO", choices=LOG_LEVELS, type=str.upper)
    sub = parser.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run")
    run.add_argument("--task-definition", required=True)
    run.add_argument("--desired-count", type=int, required=True)
    run.add_argument("--token", default="")
    run.add_argument("--failures")
    run.add_argument("--lock-timeout", type=float)

    args = parser.parse_args()
    setup_logging(args.log_level)

    if args.cmd == "run":
        try:
            reporter = load_failures(args.failures) if args.failures else FailureReporter()
            tracker = DeploymentTracker(reporter, TrackerConfig(lock_timeout_s=args.lock_timeout))
            deployment = asyncio.run(run_deployment(tracker, args.task_definition, args.token, args.desired_count))
        except (OSError, ValueError, KeyError, TypeError, DeploymentError) as e:
            print(f"Error: {e}")
            sys.exit(1)

        print(json.dumps({"deployment": deployment.to_dict(), "history": tracker.history}, indent=2))


if __name__ == "__main__":
    main()
