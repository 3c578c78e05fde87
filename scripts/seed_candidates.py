"""Replace the candidate table with a fresh slate."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.services.common import SupabaseService  # noqa: E402
from app.utils.errors import AppError, InvalidInputError  # noqa: E402
from app.utils.supabase_client import get_service_client  # noqa: E402

DEFAULT_CANDIDATES: list[dict[str, Any]] = [
    {
        "name": "Candidate A",
        "profile_url": "https://www.linkedin.com/in/candidate-a",
        "party": "Progressive Party",
        "team": "White Matrix Team",
        "image_url": "https://api.dicebear.com/7.x/avataaars/svg?seed=CandidateA",
    },
    {
        "name": "Candidate B",
        "profile_url": "https://www.linkedin.com/in/candidate-b",
        "party": "Innovation Party",
        "team": "White Matrix Team",
        "image_url": "https://api.dicebear.com/7.x/avataaars/svg?seed=CandidateB",
    },
]


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Delete every candidate and insert a new slate.",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="JSON file with a list of candidates (default: built-in two candidates).",
    )
    return parser.parse_args()


def load_candidates(path: Path | None) -> list[dict[str, Any]]:
    """Return candidate payloads from ``path`` or the defaults."""
    if path is None:
        return [dict(candidate) for candidate in DEFAULT_CANDIDATES]

    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list) or not rows:
        raise ValueError("candidate file must contain a non-empty JSON list")
    candidates = []
    for row in rows:
        if not row.get("name") or not row.get("profile_url"):
            raise ValueError("every candidate needs a name and profile_url")
        candidates.append(
            {
                "name": row["name"],
                "profile_url": row["profile_url"],
                "party": row.get("party", "Independent"),
                "team": row.get("team", ""),
                "image_url": row.get("image_url", ""),
            }
        )
    return candidates


def seed(db: SupabaseService, candidates: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Replace existing candidates with ``candidates`` and return inserted rows.

    Ballots reference candidates, so the slate can only be replaced before
    anyone has voted.
    """
    ballots = db.count("users", {"has_voted": True})
    if ballots:
        raise InvalidInputError(
            f"{ballots} ballot(s) already reference the current candidates; "
            "refusing to replace them"
        )
    db.execute(db.client.table("candidates").delete().neq("name", ""), default=[])
    return db.insert_many("candidates", [{**c, "vote_count": 0} for c in candidates])


def main() -> None:
    """CLI entry point."""
    args = parse_args()
    try:
        candidates = load_candidates(args.file)
        inserted = seed(SupabaseService(get_service_client()), candidates)
    except (AppError, ValueError) as exc:
        print(f"Seeding failed: {getattr(exc, 'message', exc)}", file=sys.stderr)
        sys.exit(1)
    print(f"Database seeded with {len(inserted)} candidate(s):")
    for row in inserted:
        print(f"{row['id']}  {row['name']}")


if __name__ == "__main__":
    main()
