"""Candidate, voter and ballot schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class CandidateResponse(BaseModel):
    """Candidate with a tally recomputed from user ballots."""

    id: str
    name: str
    profile_url: str
    party: str = "Independent"
    team: str = ""
    image_url: str = ""
    votes: int = 0


class VoterResponse(BaseModel):
    """Public view of a user who has voted."""

    id: str
    name: str
    avatar_url: str = ""
    voted_at: datetime | None = None
    profile_url: str = ""


class VoteResponse(BaseModel):
    """Result of a successful vote, with fresh results for rendering."""

    success: bool = True
    candidates: list[CandidateResponse] = Field(default_factory=list)
    voters: list[VoterResponse] = Field(default_factory=list)


class UpdateProfileUrlRequest(BaseModel):
    """Request body for setting the caller's LinkedIn profile URL."""

    url: str = ""


class UpdateProfileUrlResponse(BaseModel):
    """Result of a profile URL update."""

    success: bool = True
    message: str
    profile_url: str
