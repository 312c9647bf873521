"""Export everything stored about one subject as JSON.

Usage:
    python -m scripts.export_subject <subject_id> <role> [output.json]
Writes to stdout when no output path is given.
Requires FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH.
"""

import asyncio
import sys
from pathlib import Path

from lifecycle.core.config import get_settings
from lifecycle.core.lifespan import open_engine
from lifecycle.domain.exceptions import LifecycleException
from lifecycle.schemas.erasure import ExportResponse
from lifecycle.shared.telemetry.logging import setup_logging


async def main() -> int:
    """Assemble the export bundle and write it as JSON."""
    if len(sys.argv) not in (3, 4):
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
            bundle = await service.request_export(subject_id, role)
        except LifecycleException as e:
            print(f"{e.error_code}: {e.message}", file=sys.stderr)
            return 1

    payload = ExportResponse.from_bundle(bundle).model_dump_json(indent=2)
    if len(sys.argv) == 4:
        Path(sys.argv[3]).write_text(payload, encoding="utf-8")
        print(f"Exported {bundle.total_records} record(s) to {sys.argv[3]}")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
