"""Ballot casting, results tallies and the public voter roll."""

from __future__ import annotations

import logging
from typing import Any

from app.services.common import VOTER_COLUMNS, SupabaseService
from app.utils.errors import (
    AlreadyVotedError,
    AppError,
    InvalidInputError,
    NotFoundError,
    ProfileUrlRequiredError,
)
from app.utils.profile_url import is_valid_profile_url
from app.utils.time import now_utc, to_iso
from supabase import Client

logger = logging.getLogger(__name__)


class VotingService:
    """One-vote-per-user ballot with tallies recomputed from user records."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def tallies(self, candidate_ids: list[str] | None = None) -> dict[str, int]:
        """Return candidate id -> number of users whose ballot names it.

        Each total is an exact server-side count, so it is not bounded by the
        number of rows a single response may carry.
        """
        if candidate_ids is None:
            rows = self.db.select_many("candidates", columns="id")
            candidate_ids = [str(row["id"]) for row in rows]
        return {
            candidate_id: self.db.count("users", {"has_voted": True, "voted_for": candidate_id})
            for candidate_id in candidate_ids
        }

    def list_candidates(self) -> list[dict[str, Any]]:
        """Return every candidate with ``votes`` counted from user ballots.

        The stored ``vote_count`` is only a hint and is never surfaced.
        """
        candidates = self.db.select_many("candidates", order_by="name")
        counts = self.tallies([str(candidate["id"]) for candidate in candidates])
        results: list[dict[str, Any]] = []
        for candidate in candidates:
            payload = {key: value for key, value in candidate.items() if key != "vote_count"}
            payload["id"] = str(candidate["id"])
            payload["votes"] = counts.get(str(candidate["id"]), 0)
            results.append(payload)
        return results

    def list_voters(self) -> list[dict[str, Any]]:
        """Return the public voter roll, most recent vote first."""
        rows = self.db.select_many(
            "users",
            filters={"has_voted": True},
            columns=VOTER_COLUMNS,
            order_by="voted_at",
            descending=True,
        )
        return [
            {
                "id": str(row["id"]),
                "name": row["name"],
                "avatar_url": row.get("avatar_url") or "",
                "voted_at": row.get("voted_at"),
                "profile_url": row.get("profile_url") or "",
            }
            for row in rows
        ]

    def update_profile_url(self, user_id: str, url: str) -> str:
        """Validate and store the caller's LinkedIn profile URL."""
        value = (url or "").strip()
        if not value:
            raise InvalidInputError("LinkedIn URL is required")
        if not is_valid_profile_url(value):
            raise InvalidInputError("Please enter a valid LinkedIn URL")

        self.db.get_user(user_id, columns="id")
        self.db.update("users", {"id": user_id}, {"profile_url": value})
        logger.info("Profile URL updated for user %s", user_id)
        return value

    def profile_url_for(self, user_id: str) -> str:
        """Return the stored profile URL of ``user_id`` or raise NotFoundError."""
        user = self.db.get_user(user_id, columns="id,profile_url")
        profile_url = user.get("profile_url") or ""
        if not profile_url:
            raise NotFoundError("LinkedIn profile")
        return profile_url

    def cast_vote(self, user_id: str, candidate_id: str) -> dict[str, Any]:
        """Record the caller's single vote for ``candidate_id``.

        Returns fresh candidates and voters on success. The ballot write is a
        conditional update on ``has_voted = false``, so of any number of
        concurrent calls for one user exactly one can succeed.
        """
        user = self.db.get_user(user_id, columns="id,name,profile_url,has_voted")
        if not (user.get("profile_url") or "").strip():
            raise ProfileUrlRequiredError()
        if user.get("has_voted"):
            raise AlreadyVotedError()

        candidate = self.db.select_one(
            "candidates",
            {"id": candidate_id},
            columns="id,name,vote_count",
            not_found_label="Candidate",
        )

        updated = self.db.update(
            "users",
            {"id": user_id, "has_voted": False},
            {
                "has_voted": True,
                "voted_at": to_iso(now_utc()),
                "voted_for": str(candidate["id"]),
            },
        )
        if not updated:
            logger.info("Rejected concurrent second vote from user %s", user_id)
            raise AlreadyVotedError()

        self._bump_counter(candidate)
        logger.info("Vote recorded: user %s -> candidate %s", user_id, candidate["id"])
        return {
            "success": True,
            "candidates": self.list_candidates(),
            "voters": self.list_voters(),
        }

    def _bump_counter(self, candidate: dict[str, Any]) -> None:
        # Read-modify-write; lost increments are tolerated because every read
        # path recounts from user ballots.
        try:
            self.db.update(
                "candidates",
                {"id": candidate["id"]},
                {"vote_count": int(candidate.get("vote_count") or 0) + 1},
            )
        except AppError as exc:
            logger.warning(
                "Could not update vote_count hint for candidate %s: %s",
                candidate["id"],
                exc.message,
            )
