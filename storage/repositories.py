"""
Repositories for the book club collections.

Each repository wraps one MongoDB collection. Ownership rules live in
OwnerGatedRepository, which every resource with an owner field reuses; the
reading-progress upsert lives in ProgressRepository.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from storage.models import (
    MeetingStatus,
    optional_object_id,
    serialize_document,
    to_object_id,
    utcnow,
)
from utilities.errors import Conflict, Forbidden, NotFound, ValidationFailed

logger = structlog.get_logger(__name__)

SortSpec = Sequence[Tuple[str, int]]

USER_SUMMARY = ("users", ("username",))
BOOK_SUMMARY = ("books", ("title", "author"))
CLUB_SUMMARY = ("clubs", ("name",))


class Repository:
    """Plain CRUD over a single collection."""

    collection_name: str = ""
    resource: str = "Document"
    defaults: Dict[str, Any] = {}
    # reference field -> (collection, fields copied into the summary)
    references: Dict[str, Tuple[str, Tuple[str, ...]]] = {}

    def __init__(self, database: AsyncIOMotorDatabase):
        self.database = database
        self.collection = database[self.collection_name]

    def not_found(self) -> NotFound:
        return NotFound(f"{self.resource} not found.")

    async def list(
        self,
        query: Optional[Dict] = None,
        sort: Optional[SortSpec] = None,
        populate: Sequence[str] = (),
    ) -> List[Dict]:
        """Return every matching document, optionally sorted and populated."""
        cursor = self.collection.find(query or {})
        if sort:
            cursor = cursor.sort(list(sort))
        documents = await cursor.to_list(length=None)
        return await self.populate([serialize_document(document) for document in documents], populate)

    async def get(self, document_id: Any, populate: Sequence[str] = ()) -> Dict:
        """
        Get a single document by id, resolving the `populate` references.

        Raises:
            ValidationFailed: If the id is malformed
            NotFound: If no document has this id
        """
        object_id = to_object_id(document_id, f"{self.resource} ID")
        document = await self.collection.find_one({"_id": object_id})
        if document is None:
            raise self.not_found()
        populated = await self.populate([serialize_document(document)], populate)
        return populated[0]

    async def populate(self, documents: List[Dict], fields: Sequence[str]) -> List[Dict]:
        """
        Replace reference ids in serialized documents with summaries.

        One `$in` query per field, whatever the number of documents. Ids whose
        target no longer exists are left as plain id strings.

        Args:
            documents: Serialized documents, modified in place
            fields: Reference fields to resolve, keys of `references`

        Returns:
            The same documents
        """
        for field in fields:
            collection_name, projected = self.references[field]
            ids = set()
            for document in documents:
                value = document.get(field)
                for reference in (value if isinstance(value, list) else [value]):
                    if isinstance(reference, str) and ObjectId.is_valid(reference):
                        ids.add(ObjectId(reference))
            if not ids:
                continue

            cursor = self.database[collection_name].find(
                {"_id": {"$in": list(ids)}},
                {name: 1 for name in projected},
            )
            summaries = {summary["id"]: summary
                         for summary in map(serialize_document, await cursor.to_list(length=None))}

            for document in documents:
                value = document.get(field)
                if isinstance(value, list):
                    document[field] = [summaries.get(reference, reference) for reference in value]
                elif value is not None:
                    document[field] = summaries.get(value, value)
        return documents

    async def create(self, data: Dict[str, Any]) -> Dict:
        """Insert a document, applying class defaults and timestamps."""
        now = utcnow()
        document = {key: (list(value) if isinstance(value, list) else value)
                    for key, value in self.defaults.items()}
        document.update(data)
        document["created_at"] = now
        document["updated_at"] = now

        result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        logger.info(f"{self.resource} created", collection=self.collection_name, id=str(result.inserted_id))
        return serialize_document(document)

    async def update(self, document_id: Any, changes: Dict[str, Any]) -> Dict:
        """Apply `changes` to the document with this id."""
        object_id = to_object_id(document_id, f"{self.resource} ID")
        document = await self.collection.find_one_and_update(
            {"_id": object_id},
            {"$set": dict(changes, updated_at=utcnow())},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise self.not_found()
        logger.info(f"{self.resource} updated", collection=self.collection_name, id=str(object_id))
        return serialize_document(document)

    async def delete(self, document_id: Any) -> None:
        object_id = to_object_id(document_id, f"{self.resource} ID")
        result = await self.collection.delete_one({"_id": object_id})
        if result.deleted_count == 0:
            raise self.not_found()
        logger.info(f"{self.resource} deleted", collection=self.collection_name, id=str(object_id))

    async def add_to_set(self, document_id: Any, field: str, member: ObjectId) -> Dict:
        """Idempotently add `member` to the array `field`."""
        return await self._set_operation(document_id, {"$addToSet": {field: member}})

    async def pull_from_set(self, document_id: Any, field: str, member: ObjectId) -> Dict:
        """Idempotently remove `member` from the array `field`."""
        return await self._set_operation(document_id, {"$pull": {field: member}})

    async def _set_operation(self, document_id: Any, update: Dict) -> Dict:
        object_id = to_object_id(document_id, f"{self.resource} ID")
        document = await self.collection.find_one_and_update(
            {"_id": object_id},
            update,
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise self.not_found()
        return serialize_document(document)


class OwnerGatedRepository(Repository):
    """
    Repository for resources that exactly one user may mutate.

    Mutations filter on both the id and the owner field in a single storage
    call. When that call matches nothing, a second lookup by id tells
    "no such document" (NotFound) apart from "not yours" (Forbidden).
    """

    owner_field: str = "owner"
    ownership_phrase: str = "your own documents"

    async def create_owned(self, data: Dict[str, Any], owner_id: Any) -> Dict:
        """Create a document owned by `owner_id`, ignoring any owner in `data`."""
        data = dict(data)
        data[self.owner_field] = to_object_id(owner_id, "user ID")
        return await self.create(data)

    async def update_owned(self, document_id: Any, owner_id: Any, changes: Dict[str, Any]) -> Dict:
        object_id = to_object_id(document_id, f"{self.resource} ID")
        changes = {key: value for key, value in changes.items() if key != self.owner_field}

        document = await self.collection.find_one_and_update(
            {"_id": object_id, self.owner_field: to_object_id(owner_id, "user ID")},
            {"$set": dict(changes, updated_at=utcnow())},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            await self._raise_ownership_failure(object_id, "edit")

        logger.info(f"{self.resource} updated", collection=self.collection_name, id=str(object_id))
        return serialize_document(document)

    async def delete_owned(self, document_id: Any, owner_id: Any) -> None:
        object_id = to_object_id(document_id, f"{self.resource} ID")

        document = await self.collection.find_one_and_delete(
            {"_id": object_id, self.owner_field: to_object_id(owner_id, "user ID")}
        )
        if document is None:
            await self._raise_ownership_failure(object_id, "delete")

        logger.info(f"{self.resource} deleted", collection=self.collection_name, id=str(object_id))

    async def _raise_ownership_failure(self, object_id: ObjectId, action: str) -> None:
        existing = await self.collection.find_one({"_id": object_id}, {"_id": 1})
        if existing is None:
            raise self.not_found()
        logger.warning(
            "Ownership check failed",
            collection=self.collection_name,
            id=str(object_id),
            action=action,
        )
        raise Forbidden(f"You can only {action} {self.ownership_phrase}.")


class UserRepository(Repository):
    """Credential store. Users are never updated or deleted through the API."""

    collection_name = "users"
    resource = "User"

    async def create_user(self, email: str, username: str, password_hash: str) -> Dict:
        """
        Persist a new local user.

        Raises:
            Conflict: If the email or username is already taken (status 400)
        """
        try:
            user = await self.create({
                "email": email,
                "username": username,
                "password_hash": password_hash,
            })
        except DuplicateKeyError:
            logger.warning("Registration rejected, duplicate identity", username=username)
            raise Conflict("Username or email already exists.", status_code=400)
        return user

    async def find_by_username(self, username: str) -> Optional[Dict]:
        return serialize_document(await self.collection.find_one({"username": username}))

    async def find_by_email(self, email: str) -> Optional[Dict]:
        return serialize_document(await self.collection.find_one({"email": email}))

    async def upsert_github_user(self, github_id: str, username: str, email: str) -> Dict:
        """
        Find the user linked to a GitHub account, creating it on first login.

        The unique index on github_id keeps one user per account even when two
        first logins race; the loser reads the winner's document.
        """
        now = utcnow()
        try:
            document = await self.collection.find_one_and_update(
                {"github_id": github_id},
                {"$setOnInsert": {
                    "username": username,
                    "email": email,
                    "password_hash": None,
                    "created_at": now,
                    "updated_at": now,
                }},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # A concurrent first login for the same account inserted it first
            existing = await self.collection.find_one({"github_id": github_id})
            if existing is not None:
                return serialize_document(existing)
            logger.warning("GitHub login collides with a local user", github_id=github_id, username=username)
            raise Conflict("A user with this username or email already exists.", status_code=400)
        return serialize_document(document)


class BookRepository(Repository):
    """Catalog entries. Books have no owner."""

    collection_name = "books"
    resource = "Book"


class ClubRepository(OwnerGatedRepository):
    """
    Clubs, mutable only by the user who created them.

    Deleting a club does not delete its meetings, posts or reading progress;
    those records keep their club reference.
    """

    collection_name = "clubs"
    resource = "Club"
    owner_field = "owner"
    ownership_phrase = "clubs you own"
    defaults = {"is_active": True}


class MeetingRepository(OwnerGatedRepository):
    collection_name = "meetings"
    resource = "Meeting"
    owner_field = "organizer"
    ownership_phrase = "meetings you organized"
    defaults = {"attendees": [], "status": MeetingStatus.SCHEDULED.value}
    references = {"organizer": USER_SUMMARY, "attendees": USER_SUMMARY}

    async def list_by_club(self, club_id: Any) -> List[Dict]:
        """Meetings of a club, earliest first."""
        club = to_object_id(club_id, "Club ID")
        return await self.list({"club": club}, sort=[("date_time", ASCENDING)], populate=("organizer",))

    async def get_detail(self, meeting_id: Any) -> Dict:
        """A meeting with its organizer and attendees resolved."""
        return await self.get(meeting_id, populate=("organizer", "attendees"))

    async def add_attendee(self, meeting_id: Any, user_id: Any) -> Dict:
        return await self.add_to_set(meeting_id, "attendees", to_object_id(user_id, "user ID"))

    async def remove_attendee(self, meeting_id: Any, user_id: Any) -> Dict:
        return await self.pull_from_set(meeting_id, "attendees", to_object_id(user_id, "user ID"))


class PostRepository(OwnerGatedRepository):
    collection_name = "posts"
    resource = "Post"
    owner_field = "author"
    ownership_phrase = "your own posts"
    defaults = {"likes": [], "parent_post": None}
    references = {"author": USER_SUMMARY}

    async def list_by_club(self, club_id: Any) -> List[Dict]:
        """Posts of a club in the order they were written."""
        club = to_object_id(club_id, "Club ID")
        return await self.list(
            {"club": club},
            sort=[("created_at", ASCENDING), ("_id", ASCENDING)],
            populate=("author",),
        )

    async def get_detail(self, post_id: Any) -> Dict:
        return await self.get(post_id, populate=("author",))

    async def add_like(self, post_id: Any, user_id: Any) -> Dict:
        return await self.add_to_set(post_id, "likes", to_object_id(user_id, "user ID"))

    async def remove_like(self, post_id: Any, user_id: Any) -> Dict:
        return await self.pull_from_set(post_id, "likes", to_object_id(user_id, "user ID"))


class ProgressRepository(Repository):
    """
    Reading progress, one record per (user, book, club).

    The unique compound index on that key is what guarantees a single record;
    record_progress relies on it instead of a read-then-write check.
    """

    collection_name = "reading_progress"
    resource = "Reading progress entry"
    numeric_defaults = {"percentage": 0, "current_page": 0}
    references = {"user": USER_SUMMARY, "book": BOOK_SUMMARY, "club": CLUB_SUMMARY}

    async def record_progress(
        self,
        user_id: Any,
        book_id: Any,
        club_id: Any = None,
        percentage: Optional[float] = None,
        current_page: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> Tuple[Dict, bool]:
        """
        Create or update the caller's progress for a book in a club.

        Args:
            user_id: Reader
            book_id: Book being read
            club_id: Club the reading belongs to (None for personal reading)
            percentage: Progress in [0, 100]
            current_page: Last page read, >= 0
            notes: Free-form notes

        Returns:
            Tuple of (progress document, True if it was created)

        Raises:
            ValidationFailed: If percentage or current_page is out of range
            Conflict: If a concurrent request inserted the same key first
        """
        if percentage is not None and not 0 <= percentage <= 100:
            raise ValidationFailed("Percentage must be a number between 0 and 100.")
        if current_page is not None and current_page < 0:
            raise ValidationFailed("Current Page must be a non-negative integer.")

        key = {
            "user": to_object_id(user_id, "user ID"),
            "book": to_object_id(book_id, "Book ID"),
            "club": optional_object_id(club_id, "Club ID"),
        }
        supplied = {
            field: value
            for field, value in (("percentage", percentage), ("current_page", current_page), ("notes", notes))
            if value is not None
        }

        now = utcnow()
        set_on_insert = {"created_at": now}
        for field, default in self.numeric_defaults.items():
            if field not in supplied:
                set_on_insert[field] = default

        try:
            result = await self.collection.update_one(
                key,
                {"$set": dict(supplied, updated_at=now), "$setOnInsert": set_on_insert},
                upsert=True,
            )
        except DuplicateKeyError:
            logger.warning("Concurrent progress insert lost the race", **{k: str(v) for k, v in key.items()})
            raise Conflict("Reading progress was recorded concurrently for this book and club. Retry the request.")

        created = result.upserted_id is not None
        lookup = {"_id": result.upserted_id} if created else key
        document = await self.collection.find_one(lookup)
        if document is None:
            raise self.not_found()

        logger.info(
            "Reading progress recorded",
            id=str(document["_id"]),
            created=created,
            percentage=document.get("percentage"),
        )
        return serialize_document(document), created

    async def find_by_key(self, user_id: Any, book_id: Any, club_id: Any) -> Optional[Dict]:
        document = await self.collection.find_one({
            "user": to_object_id(user_id, "User ID"),
            "book": to_object_id(book_id, "Book ID"),
            "club": optional_object_id(club_id, "Club ID"),
        })
        if document is None:
            return None
        populated = await self.populate([serialize_document(document)], ("user", "book", "club"))
        return populated[0]

    async def get_owned(self, progress_id: Any, user_id: Any) -> Dict:
        """Get a progress entry, only if it belongs to `user_id`."""
        progress = await self.get(progress_id)
        if progress["user"] != str(user_id):
            raise Forbidden("Access denied. You can only view your own progress.")
        populated = await self.populate([progress], ("user", "book"))
        return populated[0]

    async def delete_owned(self, progress_id: Any, user_id: Any) -> None:
        """Load the entry, check that it belongs to `user_id`, then delete it."""
        progress = await self.get(progress_id)
        if progress["user"] != str(user_id):
            raise Forbidden("You can only delete your own progress records.")
        await self.delete(progress["id"])

    async def list_by_club(self, club_id: Any) -> List[Dict]:
        """All progress entries of a club, furthest along first."""
        club = to_object_id(club_id, "Club ID")
        return await self.list(
            {"club": club},
            sort=[("percentage", DESCENDING), ("_id", ASCENDING)],
            populate=("user", "book", "club"),
        )


class Repositories:
    """All repositories bound to one database handle."""

    def __init__(self, database: AsyncIOMotorDatabase):
        self.users = UserRepository(database)
        self.books = BookRepository(database)
        self.clubs = ClubRepository(database)
        self.meetings = MeetingRepository(database)
        self.posts = PostRepository(database)
        self.progress = ProgressRepository(database)
