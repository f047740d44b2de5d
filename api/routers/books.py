"""
Book catalog endpoints. Books have no owner; writes only need a login.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from api.auth import CurrentUser, get_current_user
from api.dependencies import get_repositories
from api.models import BookCreate, BookEnvelope, BookResponse, BookUpdate, MessageResponse
from storage.repositories import Repositories

router = APIRouter(prefix="/books", tags=["Books"])


@router.get("", response_model=List[BookResponse])
async def get_books(repositories: Repositories = Depends(get_repositories)):
    """Get all books."""
    return await repositories.books.list()


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(book_id: str, repositories: Repositories = Depends(get_repositories)):
    """
    Get a single book by ID.

    - **book_id**: Book identifier (24 hex characters)
    """
    return await repositories.books.get(book_id)


@router.post("", response_model=BookEnvelope, status_code=status.HTTP_201_CREATED)
async def create_book(
    payload: BookCreate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Add a book to the catalog."""
    book = await repositories.books.create(payload.model_dump(exclude_none=True))
    return BookEnvelope(message="Book created successfully!", book=book)


@router.put("/{book_id}", response_model=BookEnvelope)
async def update_book(
    book_id: str,
    payload: BookUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    """Update the supplied fields of a book."""
    book = await repositories.books.update(book_id, payload.model_dump(exclude_unset=True))
    return BookEnvelope(message="Book updated successfully", book=book)


@router.delete("/{book_id}", response_model=MessageResponse)
async def delete_book(
    book_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    repositories: Repositories = Depends(get_repositories),
):
    await repositories.books.delete(book_id)
    return MessageResponse(message="Book deleted successfully")
