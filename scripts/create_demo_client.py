"""
Create demo buyer for testing and demos.

This script creates the demo buyer the admin dashboard uses by default:
- Name: Demo Client
- Firm: Demo Injury Law
- Email: demo@example.com

Pass a Google Sheet id as the first argument to enable sheets delivery.
"""

import sys
from pathlib import Path

# Add parent directory to path so we can import from repositories
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.client import get_supabase
from repositories.client_repository import create_client, get_client_by_email


DEMO_EMAIL = "demo@example.com"


def create_demo_client(sheets_id=None):
    """Create the demo buyer unless one with the demo email exists."""

    db = get_supabase()

    existing = get_client_by_email(db, DEMO_EMAIL)
    if existing is not None:
        print(f"Demo client already exists: {existing.client_id}")
        print(f"  Delivered: {existing.leads_delivered}  Replaced: {existing.leads_replaced}")
        print(f"  Sheet: {existing.sheets_id or 'not configured'}")
        return

    client = create_client(
        db,
        name="Demo Client",
        firm="Demo Injury Law",
        email=DEMO_EMAIL,
        sheets_id=sheets_id,
    )

    print("[SUCCESS] Demo client created successfully!")
    print(f"  Client ID: {client.client_id}")
    print(f"  Firm: {client.firm}")
    print(f"  Email: {client.email}")
    print(f"  Sheet: {client.sheets_id or 'not configured'}")


if __name__ == "__main__":
    create_demo_client(sys.argv[1] if len(sys.argv) > 1 else None)
