"""
Mint an admin Bearer token for the distribution and stats endpoints.

Uses JWT_SECRET and ADMIN_TOKEN_TTL_HOURS from the environment / .env.
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.session_tokens import issue_admin_token
from services.settings import load_settings


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Create an admin token for the Lead Verification Core API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Token for an operator
  python create_admin_token.py ops@example.com

  # Print only the token (for scripting)
  python create_admin_token.py ops@example.com --quiet
        """
    )

    parser.add_argument(
        "subject",
        help="Who the token is issued to (stored as the sub claim)"
    )

    parser.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Print the token only"
    )

    args = parser.parse_args()

    settings = load_settings()
    token = issue_admin_token(settings, args.subject)

    if not args.quiet:
        print(f"Admin token for {args.subject} (valid {settings.admin_token_ttl_hours}h):")
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
