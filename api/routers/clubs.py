"""
Club endpoints. Only the club's owner may edit or delete it.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from api.auth import CurrentUser, get_current_user
from api.dependencies import get_repositories
from api.models import ClubCreate, ClubEnvelope, ClubResponse, ClubUpdate, MessageResponse
from storage.repositories import Repositories

router = APIRouter(prefix="/clubs", tags=["Clubs"])


@router.get("", response_model=List[ClubResponse])
async def get_clubs(repositories: Repositories = Depends(get_repositories)):
    """Get all clubs."""
    return await repositories.clubs.list()


@router.get("/{club_id}", response_model=ClubResponse)
async def get_club(club_id: str, repositories: Repositories = Depends(get_repositories)):
    return await repositories.clubs.get(club_id)


@router.post("", response_model=ClubEnvelope, status_code=status.HTTP_201_CREATED)
async def create_club(
    payload: ClubCreate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Create a club owned by the caller."""
    club = await repositories.clubs.create_owned(payload.model_dump(), current_user.id)
    return ClubEnvelope(message="Bookclub created successfully!", club=club)


@router.put("/{club_id}", response_model=ClubEnvelope)
async def update_club(
    club_id: str,
    payload: ClubUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    club = await repositories.clubs.update_owned(club_id, current_user.id, payload.model_dump(exclude_unset=True))
    return ClubEnvelope(message="Club updated successfully", club=club)


@router.delete("/{club_id}", response_model=MessageResponse)
async def delete_club(
    club_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """
    Delete a club.

    Meetings, posts and reading progress that reference the club are kept.
    """
    await repositories.clubs.delete_owned(club_id, current_user.id)
    return MessageResponse(message="Club deleted successfully")
