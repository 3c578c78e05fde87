"""Terminal client for the E-Ballot API."""

from app.client.api import ApiError, BallotClient, RetryPolicy, probe_session
from app.client.dashboard import Dashboard, VoteOutcome, results_breakdown

__all__ = [
    "ApiError",
    "BallotClient",
    "Dashboard",
    "RetryPolicy",
    "VoteOutcome",
    "probe_session",
    "results_breakdown",
]
