"""Run (or resume) erasure of one subject and wait for the outcome.

Usage:
    python -m scripts.run_erasure <subject_id> <role>
role is one of: scout, parent, animator, wecamp_admin.
Exit code 0 when the job is COMPLETE, 1 on usage/config errors, 2 when the
job is PARTIAL or FAILED (re-run to resume a PARTIAL job).
Requires FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH.
"""

import asyncio
import sys

from lifecycle.core.config import get_settings
from lifecycle.core.lifespan import open_engine
from lifecycle.domain.exceptions import LifecycleException
from lifecycle.shared.telemetry.logging import setup_logging


async def main() -> int:
    """Submit the erasure, wait for the job and print its step results."""
    if len(sys.argv) != 3:
        print(__doc__, file=sys.stderr)
        return 1
    subject_id, role = sys.argv[1], sys.argv[2]
    settings = get_settings()
    setup_logging(settings)

    async with open_engine(settings) as service:
        if service is None:
            print("Firebase credentials not configured", file=sys.stderr)
            return 1
        try:
            job_id = await service.request_erasure(subject_id, role)
        except LifecycleException as e:
            print(f"{e.error_code}: {e.message}", file=sys.stderr)
            return 1
        job = await service.worker.wait(job_id) or await service.get_job_status(job_id)

    for step in job.steps:
        line = f"  {step.entity_type:<26} {step.outcome.value:<8} records={step.records_affected}"
        if step.blobs_deleted:
            line += f" blobs={step.blobs_deleted}"
        if step.error_kind:
            line += f" error={step.error_kind}"
        print(line)
    print(f"Job {job.job_id}: {job.status.value} (attempt {job.attempts})")
    try:
        job.raise_for_status()
    except LifecycleException as e:
        print(f"{e.error_code}: {e.message}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
