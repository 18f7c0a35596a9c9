"""
Check the delivery ledger - every delivered, disputed and replaced flag on a
lead must be backed by its Delivery row.

Exits with status 1 when inconsistencies are found so it can run from cron.
"""

import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.client import get_supabase
from services.distribution_service import find_ledger_inconsistencies


def check_ledger_consistency() -> int:
    """Print leads whose flags lack Delivery rows; return how many there are."""

    corrupted = find_ledger_inconsistencies(get_supabase())

    print("=" * 50)
    print("DELIVERY LEDGER CHECK")
    print("=" * 50)

    if not corrupted:
        print("OK: every lead flag is backed by a Delivery row")
        print("=" * 50)
        return 0

    print(f"Found {len(corrupted)} lead(s) with a missing Delivery row:")
    print("-" * 50)
    for lead in corrupted:
        print(f"{lead.lead_id}  state={lead.state.value}  client={lead.client_id}  created={lead.created_at.isoformat()}")
    print("-" * 50)
    return len(corrupted)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    sys.exit(1 if check_ledger_consistency() else 0)
