"""Dashboard state and text rendering for the voting client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from app.client.api import ApiError, BallotClient
from app.utils.profile_url import is_valid_profile_url

logger = logging.getLogger(__name__)

BAR_WIDTH = 30


@dataclass
class VoteOutcome:
    """What the UI should do after a vote attempt."""

    accepted: bool
    message: str
    needs_profile_url: bool = False
    needs_login: bool = False


@dataclass
class Dashboard:
    """UI state for the signed-in dashboard.

    Holds only what the API returned; the server remains the authority on
    ballots and tallies.
    """

    client: BallotClient
    user: dict[str, Any] | None = None
    candidates: list[dict[str, Any]] = field(default_factory=list)
    voters: list[dict[str, Any]] = field(default_factory=list)
    voted_candidate: str | None = None

    @property
    def has_voted(self) -> bool:
        return bool(self.user and self.user.get("has_voted"))

    def refresh(self) -> None:
        """Reload candidates and voters."""
        self.candidates = self.client.candidates()
        self.voters = self.client.voters()

    def set_profile_url(self, url: str) -> VoteOutcome:
        """Validate locally, then store the caller's profile URL."""
        if not is_valid_profile_url(url):
            return VoteOutcome(
                False,
                "Please enter a valid LinkedIn URL (e.g., https://linkedin.com/in/yourprofile)",
            )
        try:
            result = self.client.update_profile_url(url.strip())
        except ApiError as exc:
            return VoteOutcome(False, exc.message, needs_login=exc.status_code == 401)
        if self.user is not None:
            self.user = {**self.user, "profile_url": result["profile_url"]}
        return VoteOutcome(True, "LinkedIn Profile Updated Successfully!")

    def cast_vote(self, candidate_id: str) -> VoteOutcome:
        """Vote once, retrying a single time if the session needs refreshing."""
        if self.user is None:
            return VoteOutcome(False, "Please login to continue", needs_login=True)
        if not (self.user.get("profile_url") or "").strip():
            return VoteOutcome(
                False,
                "Please add your LinkedIn profile URL before voting.",
                needs_profile_url=True,
            )
        if self.has_voted:
            return VoteOutcome(False, "You have already cast your vote!")

        for attempt in range(2):
            try:
                result = self.client.vote(candidate_id)
            except ApiError as exc:
                if exc.status_code == 401 and attempt == 0:
                    try:
                        self.user = self.client.session_user()
                    except ApiError:
                        return VoteOutcome(
                            False, "Session expired. Please login again.", needs_login=True
                        )
                    continue
                return self._failed_vote(exc)
            break

        self.candidates = result["candidates"]
        self.voters = result["voters"]
        self.user = {**self.user, "has_voted": True, "voted_for": candidate_id}
        self.voted_candidate = next(
            (c["name"] for c in self.candidates if str(c["id"]) == str(candidate_id)),
            None,
        )
        return VoteOutcome(True, f"Vote cast for {self.voted_candidate or candidate_id}")

    def _failed_vote(self, exc: ApiError) -> VoteOutcome:
        if exc.status_code == 401:
            return VoteOutcome(False, "Session expired. Please login again.", needs_login=True)
        if exc.requires_profile_url:
            return VoteOutcome(
                False,
                "Please add your LinkedIn profile URL before voting.",
                needs_profile_url=True,
            )
        if exc.code == "ALREADY_VOTED" and self.user is not None:
            self.user = {**self.user, "has_voted": True}
        return VoteOutcome(False, exc.message or "Voting failed. Please try again.")


def results_breakdown(candidates: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return candidates with their share of the total vote, highest first."""
    total = sum(int(c.get("votes") or 0) for c in candidates)
    rows = []
    for candidate in candidates:
        votes = int(candidate.get("votes") or 0)
        percent = round(votes * 100 / total, 1) if total else 0.0
        rows.append(
            {
                "id": candidate["id"],
                "name": candidate["name"],
                "votes": votes,
                "percent": percent,
            }
        )
    rows.sort(key=lambda row: (-row["votes"], row["name"]))
    return rows


def render_results(candidates: list[dict[str, Any]]) -> str:
    lines = []
    for row in results_breakdown(candidates):
        filled = int(round(row["percent"] / 100 * BAR_WIDTH))
        bar = "#" * filled + "." * (BAR_WIDTH - filled)
        lines.append(f"{row['name']:<24} {bar} {row['votes']:>4} ({row['percent']:.1f}%)")
    return "\n".join(lines)


def render_dashboard(board: Dashboard) -> str:
    """Render the candidate grid, results and voter roll as plain text."""
    sections = []
    if board.user:
        status = "voted" if board.has_voted else "not voted"
        sections.append(f"Signed in as {board.user['name']} <{board.user['email']}> ({status})")
        if not board.user.get("profile_url"):
            sections.append("Add your LinkedIn profile URL to vote: set-profile <url>")

    sections.append("Candidates")
    for candidate in board.candidates:
        label = f"  [{candidate['id']}] {candidate['name']}"
        party = candidate.get("party")
        if party:
            label += f" - {party}"
        sections.append(label)

    sections.append("Results")
    sections.append(render_results(board.candidates) or "  No candidates")

    sections.append(f"Voters ({len(board.voters)})")
    for voter in board.voters:
        line = f"  {voter['name']}"
        if voter.get("voted_at"):
            line += f"  {voter['voted_at']}"
        if voter.get("profile_url"):
            line += f"  {voter['profile_url']}"
        sections.append(line)

    return "\n".join(sections)
