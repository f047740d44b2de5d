"""
Meeting endpoints: scheduling, organizer-only edits and attendance.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from api.auth import CurrentUser, get_current_user
from api.dependencies import get_repositories
from api.models import MeetingCreate, MeetingEnvelope, MeetingResponse, MeetingUpdate, MessageResponse
from storage.models import to_object_id
from storage.repositories import Repositories

router = APIRouter(prefix="/meetings", tags=["Meetings"])


@router.get("/club/{club_id}", response_model=List[MeetingResponse])
async def get_meetings_by_club(club_id: str, repositories: Repositories = Depends(get_repositories)):
    """Get all meetings of a club, earliest first, with their organizers."""
    return await repositories.meetings.list_by_club(club_id)


@router.get("/{meeting_id}", response_model=MeetingResponse)
async def get_meeting(meeting_id: str, repositories: Repositories = Depends(get_repositories)):
    """Get a meeting with its organizer and attendees."""
    return await repositories.meetings.get_detail(meeting_id)


@router.post("", response_model=MeetingEnvelope, status_code=status.HTTP_201_CREATED)
async def create_meeting(
    payload: MeetingCreate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """
    Schedule a new meeting organized by the caller.

    - **clubId**: Club the meeting belongs to
    - **agenda**: Meeting topic
    - **dateTime**: ISO 8601 date and time
    - **location**: Where the meeting takes place
    """
    data = payload.model_dump()
    data["club"] = to_object_id(data["club"], "Club ID")
    meeting = await repositories.meetings.create_owned(data, current_user.id)
    return MeetingEnvelope(message="Meeting scheduled successfully!", meeting=meeting)


@router.put("/{meeting_id}", response_model=MeetingEnvelope)
async def update_meeting(
    meeting_id: str,
    payload: MeetingUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Update a meeting. Only its organizer may do this."""
    meeting = await repositories.meetings.update_owned(
        meeting_id, current_user.id, payload.model_dump(exclude_unset=True)
    )
    return MeetingEnvelope(message="Meeting updated successfully", meeting=meeting)


@router.delete("/{meeting_id}", response_model=MessageResponse)
async def delete_meeting(
    meeting_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Cancel a meeting by deleting it. Only its organizer may do this."""
    await repositories.meetings.delete_owned(meeting_id, current_user.id)
    return MessageResponse(message="Meeting deleted successfully")


@router.post("/{meeting_id}/attend", response_model=MeetingEnvelope)
async def add_attendee(
    meeting_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Add the caller to the attendees. Attending twice changes nothing."""
    meeting = await repositories.meetings.add_attendee(meeting_id, current_user.id)
    return MeetingEnvelope(message="Successfully added to meeting attendees.", meeting=meeting)


@router.delete("/{meeting_id}/attend", response_model=MeetingEnvelope)
async def remove_attendee(
    meeting_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Remove the caller from the attendees, if present."""
    meeting = await repositories.meetings.remove_attendee(meeting_id, current_user.id)
    return MeetingEnvelope(message="Successfully removed from meeting attendees.", meeting=meeting)
