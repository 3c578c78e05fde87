"""Clear LinkedIn profile URLs that hold opaque member ids instead of vanity names."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Blank out unusable profile URLs on LinkedIn-provisioned accounts.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing.",
    )
    return parser.parse_args()


def clear_invalid(dry_run: bool) -> dict[str, int]:
    """Scan LinkedIn users and return a summary of the pass."""
    from app.services.common import SupabaseService
    from app.utils.profile_url import looks_like_opaque_member_id
    from app.utils.supabase_client import get_service_client

    db = SupabaseService(get_service_client())
    users = db.select_many(
        "users",
        filters={"provider": "linkedin"},
        columns="id,name,profile_url",
    )

    summary = {"total": len(users), "cleared": 0, "valid": 0, "missing": 0}
    for user in users:
        url = user.get("profile_url") or ""
        if not url:
            summary["missing"] += 1
        elif looks_like_opaque_member_id(url):
            print(f"Invalid URL for {user['name']}: {url}")
            if not dry_run:
                db.update("users", {"id": user["id"]}, {"profile_url": ""})
            summary["cleared"] += 1
        else:
            summary["valid"] += 1
    return summary


def main() -> None:
    """CLI entry point."""
    args = parse_args()
    summary = clear_invalid(args.dry_run)
    verb = "Would clear" if args.dry_run else "Cleared"
    print(f"LinkedIn users: {summary['total']}")
    print(f"{verb}: {summary['cleared']}")
    print(f"Already valid: {summary['valid']}")
    print(f"No URL set: {summary['missing']}")


if __name__ == "__main__":
    main()
