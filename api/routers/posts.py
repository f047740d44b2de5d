"""
Discussion post endpoints: threads, replies, author-only edits and likes.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from api.auth import CurrentUser, get_current_user
from api.dependencies import get_repositories
from api.models import MessageResponse, PostCreate, PostEnvelope, PostResponse, PostUpdate
from storage.models import optional_object_id, to_object_id
from storage.repositories import Repositories

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.get("/club/{club_id}", response_model=List[PostResponse])
async def get_posts_by_club(club_id: str, repositories: Repositories = Depends(get_repositories)):
    """Get all posts of a club, oldest first, with their authors."""
    return await repositories.posts.list_by_club(club_id)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, repositories: Repositories = Depends(get_repositories)):
    return await repositories.posts.get_detail(post_id)


@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """
    Create a post, or a reply when **parentPost** is given.
    The caller becomes the author.
    """
    data = payload.model_dump()
    data["club"] = to_object_id(data["club"], "Club ID")
    data["parent_post"] = optional_object_id(data.get("parent_post"), "Parent post ID")
    post = await repositories.posts.create_owned(data, current_user.id)
    return PostEnvelope(message="Post created successfully!", post=post)


@router.put("/{post_id}", response_model=PostEnvelope)
async def update_post(
    post_id: str,
    payload: PostUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Edit the title or content of one of the caller's posts."""
    post = await repositories.posts.update_owned(post_id, current_user.id, payload.model_dump(exclude_unset=True))
    return PostEnvelope(message="Post updated successfully", post=post)


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    await repositories.posts.delete_owned(post_id, current_user.id)
    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=PostEnvelope)
async def like_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    post = await repositories.posts.add_like(post_id, current_user.id)
    return PostEnvelope(message="Post liked.", post=post)


@router.delete("/{post_id}/like", response_model=PostEnvelope)
async def unlike_post(
    post_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    post = await repositories.posts.remove_like(post_id, current_user.id)
    return PostEnvelope(message="Like removed.", post=post)
