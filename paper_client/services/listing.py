"""
Listing Controllers
Fetch-and-delete state for the syllabus and question-paper lists.
"""
import logging
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from paper_client.config import DEFAULT_PAGE_LIMIT
from paper_client.errors import DeleteError, FetchError
from paper_client.schemas import Page, QuestionPaper, Syllabus

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", QuestionPaper, Syllabus)


class Listing(Generic[ItemT]):
    """
    One list view: the fetched items plus a dismissible error message.

    Deletes are confirmed by the backend before the item leaves `items`;
    a failed delete leaves the list exactly as it was.
    """

    def __init__(
        self,
        fetch_page: Callable[..., Awaitable[Page[ItemT]]],
        delete_item: Callable[[str], Awaitable[dict]],
        limit: int = DEFAULT_PAGE_LIMIT,
    ):
        self._fetch_page = fetch_page
        self._delete_item = delete_item
        self.limit = limit
        self.items: List[ItemT] = []
        self.error: Optional[str] = None
        self.loading = False

    async def refresh(self) -> List[ItemT]:
        self.loading = True
        self.error = None
        try:
            page = await self._fetch_page(skip=0, limit=self.limit)
            self.items = list(page.items)
        except FetchError as e:
            self.error = e.message
        finally:
            self.loading = False
        return self.items

    async def delete(self, item_id: str) -> bool:
        """Delete an item; returns False and records the error when the backend refuses."""
        try:
            await self._delete_item(item_id)
        except DeleteError as e:
            logger.error("Delete of %s failed: %s", item_id, e.message)
            self.error = e.message
            return False

        self.items = [item for item in self.items if item.id != item_id]
        return True

    def dismiss_error(self) -> None:
        self.error = None


def paper_listing(client, syllabus_id: Optional[str] = None, limit: int = DEFAULT_PAGE_LIMIT) -> Listing[QuestionPaper]:
    async def fetch_page(skip: int, limit: int) -> Page[QuestionPaper]:
        return await client.list_papers(syllabus_id=syllabus_id, skip=skip, limit=limit)

    return Listing(fetch_page, client.delete_paper, limit=limit)


def syllabus_listing(client, limit: int = DEFAULT_PAGE_LIMIT) -> Listing[Syllabus]:
    return Listing(client.list_syllabi, client.delete_syllabus, limit=limit)
