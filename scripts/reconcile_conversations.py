"""Merge duplicate WhatsApp conversations for one organization.

Stop webhook traffic for the organization (or run in a quiet window)
before running; the job must not overlap with live ingestion.

Usage:
    python scripts/reconcile_conversations.py --organization-id 7
"""

import argparse
import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from taller_inbox.domain.services.reconciliation import DuplicateReconciliationJob
from taller_inbox.logging_config import setup_logging
from taller_inbox.persistence.database import AsyncSessionLocal, engine


async def reconcile(organization_id: int) -> int:
    """Run the job and print its summary.

    Returns:
        Process exit code (1 when any duplicate failed to merge)
    """
    print("=" * 70)
    print(f"RECONCILE CONVERSATIONS - Organization {organization_id}")
    print("=" * 70)

    async with AsyncSessionLocal() as db:
        summary = await DuplicateReconciliationJob(db).run(organization_id)
    await engine.dispose()

    print()
    print(f"  Phones normalized:      {summary.phones_normalized}")
    print(f"  Conversations merged:   {summary.conversations_merged}")
    print(f"  Duplicate groups:       {summary.groups_processed}")
    print(f"  Errors:                 {summary.errors}")
    print()
    if summary.errors:
        print("Some duplicates were skipped; check the logs and run again.")
        return 1
    print("Done.")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Merge duplicate WhatsApp conversations")
    parser.add_argument("--organization-id", type=int, required=True, help="Organization to repair")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(reconcile(args.organization_id)))


if __name__ == "__main__":
    main()
