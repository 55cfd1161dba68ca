"""
Run one background job once (manual runs, external cron, diagnostics).

Usage:
    python run_job.py recurring_expenses
    python run_job.py recurring_recovery
    python run_job.py daily_reminders | weekly_reminders | income_reminders
"""
import logging
import sys

from app.application.scheduler import JOBS, run_job

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("run_job")


def main(argv: list[str]) -> int:
    if len(argv) != 2 or argv[1] not in JOBS:
        print(f"usage: {argv[0]} <{'|'.join(JOBS)}>", file=sys.stderr)
        return 2
    result = run_job(argv[1])
    logger.info("%s finished: %s", argv[1], result)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
