"""Candidate, voter and ballot endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from app.dependencies import get_current_identity, get_db_client
from app.schemas.user import SessionIdentity
from app.schemas.voting import (
    CandidateResponse,
    UpdateProfileUrlRequest,
    UpdateProfileUrlResponse,
    VoteResponse,
    VoterResponse,
)
from app.services.voting_service import VotingService
from app.utils.profile_url import absolute_profile_url
from supabase import Client

router = APIRouter()


@router.get("/candidates", response_model=list[CandidateResponse])
def list_candidates(client: Client = Depends(get_db_client)) -> list[dict]:
    """List candidates with tallies counted from user ballots."""
    return VotingService(client).list_candidates()


@router.get("/voters", response_model=list[VoterResponse])
def list_voters(client: Client = Depends(get_db_client)) -> list[dict]:
    """List users who have voted, most recent first."""
    return VotingService(client).list_voters()


@router.get("/linkedin/{user_id}")
def redirect_to_profile(
    user_id: UUID,
    client: Client = Depends(get_db_client),
) -> RedirectResponse:
    """Send the browser to a user's stored LinkedIn profile."""
    profile_url = VotingService(client).profile_url_for(str(user_id))
    response = RedirectResponse(absolute_profile_url(profile_url), status_code=302)
    response.headers["Referrer-Policy"] = "no-referrer"
    return response


@router.post("/update-linkedin", response_model=UpdateProfileUrlResponse)
def update_linkedin(
    payload: UpdateProfileUrlRequest,
    identity: SessionIdentity = Depends(get_current_identity),
    client: Client = Depends(get_db_client),
) -> dict:
    """Store the caller's LinkedIn profile URL."""
    profile_url = VotingService(client).update_profile_url(identity.id, payload.url)
    return {
        "success": True,
        "message": "LinkedIn profile updated successfully",
        "profile_url": profile_url,
    }


@router.post("/vote/{candidate_id}", response_model=VoteResponse)
def cast_vote(
    candidate_id: UUID,
    identity: SessionIdentity = Depends(get_current_identity),
    client: Client = Depends(get_db_client),
) -> dict:
    """Cast the caller's one vote."""
    return VotingService(client).cast_vote(identity.id, str(candidate_id))
