"""
Reading progress endpoints.

POST /progress is an upsert keyed by (caller, book, club): 201 when a record
was created, 200 when an existing one was updated.
"""

from typing import List, Union

from fastapi import APIRouter, Depends, Response, status

from api.auth import CurrentUser, get_current_user
from api.dependencies import get_repositories
from api.models import MessageResponse, ProgressLookupResponse, ProgressRequest, ProgressResponse
from storage.repositories import Repositories

router = APIRouter(prefix="/progress", tags=["Reading Progress"])


@router.get("/club/{club_id}", response_model=List[ProgressResponse])
async def get_progress_by_club(club_id: str, repositories: Repositories = Depends(get_repositories)):
    """Get every progress entry of a club, sorted by percentage (highest first)."""
    return await repositories.progress.list_by_club(club_id)


@router.get(
    "/user/{user_id}/book/{book_id}/club/{club_id}",
    response_model=Union[ProgressResponse, ProgressLookupResponse],
)
async def get_progress_by_keys(
    user_id: str,
    book_id: str,
    club_id: str,
    repositories: Repositories = Depends(get_repositories),
):
    """Get one user's progress for a book in a club."""
    progress = await repositories.progress.find_by_key(user_id, book_id, club_id)
    if progress is None:
        return ProgressLookupResponse(message="No progress found for this combination.", progress=None)
    return ProgressResponse(**progress)


@router.get("/{progress_id}", response_model=ProgressResponse)
async def get_progress(
    progress_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Get one of the caller's own progress entries."""
    return await repositories.progress.get_owned(progress_id, current_user.id)


@router.post(
    "",
    response_model=ProgressResponse,
    status_code=status.HTTP_200_OK,
    responses={status.HTTP_201_CREATED: {"model": ProgressResponse, "description": "Progress entry created"}},
)
async def record_progress(
    payload: ProgressRequest,
    response: Response,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """
    Create or update the caller's reading progress.

    - **bookId**: Book being read
    - **clubId**: Club the reading belongs to (optional)
    - **percentage**: 0 to 100
    - **currentPage**: Last page read
    - **notes**: Free-form notes
    """
    progress, created = await repositories.progress.record_progress(
        user_id=current_user.id,
        book_id=payload.book,
        club_id=payload.club,
        percentage=payload.percentage,
        current_page=payload.current_page,
        notes=payload.notes,
    )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return progress


@router.delete("/{progress_id}", response_model=MessageResponse)
async def delete_progress(
    progress_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    await repositories.progress.delete_owned(progress_id, current_user.id)
    return MessageResponse(message="Reading progress deleted successfully")
