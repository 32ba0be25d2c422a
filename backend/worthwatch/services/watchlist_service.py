import logging
from typing import List, Optional

from worthwatch.core.enums import ContentType
from worthwatch.core.exceptions import ForbiddenException, NotFoundException
from worthwatch.models.like import Like
from worthwatch.models.watchlist import Watchlist, WatchlistItem
from worthwatch.repositories.base_repository import Page
from worthwatch.repositories.watchlist_repository import WatchlistRepository
from worthwatch.schemas.watchlist import (
    WatchlistCreate, WatchlistItemCreate, WatchlistItemUpdate, WatchlistReorder, WatchlistUpdate
)

logger = logging.getLogger(__name__)


class WatchlistService:
    """Watchlists, their items and likes, with ownership and visibility rules.

    Private watchlists behave as if owned-only: anyone else gets a 403 on
    read, and every mutation other than liking requires the curator.
    """

    def __init__(self, table, **kwargs):
        self.watchlist_repository = WatchlistRepository(table, **kwargs)
        self.item_repository = self.watchlist_repository.items
        self.like_repository = self.watchlist_repository.likes

    def _get_existing(self, watchlist_id: str) -> Watchlist:
        watchlist = self.watchlist_repository.get_by_id(watchlist_id)
        if not watchlist:
            raise NotFoundException("Watchlist not found")
        return watchlist

    def get_watchlist(self, watchlist_id: str, viewer_id: Optional[str]) -> Watchlist:
        """Public watchlists are visible to everyone, private ones to their curator"""
        watchlist = self._get_existing(watchlist_id)
        if not watchlist.is_public and watchlist.curator_id != viewer_id:
            raise ForbiddenException("This watchlist is private")
        return watchlist

    def _get_owned(self, watchlist_id: str, user_id: str) -> Watchlist:
        watchlist = self._get_existing(watchlist_id)
        if watchlist.curator_id != user_id:
            raise ForbiddenException("Only the curator can modify this watchlist")
        return watchlist

    def create_watchlist(self, curator_id: str, data: WatchlistCreate) -> Watchlist:
        watchlist = self.watchlist_repository.create_watchlist(curator_id=curator_id, **data.to_fields())
        logger.info(f"User {curator_id} created watchlist {watchlist.watchlist_id}")
        return watchlist

    def list_public(self, limit: int = 20, cursor: Optional[str] = None, tag: Optional[str] = None) -> Page[Watchlist]:
        if tag:
            return Page(items=self.watchlist_repository.list_by_tag(tag, public_only=True, limit=limit))
        return self.watchlist_repository.list_public(limit=limit, cursor=cursor)

    def list_by_curator(self, curator_id: str, viewer_id: Optional[str], limit: int = 20,
                        cursor: Optional[str] = None) -> Page[Watchlist]:
        return self.watchlist_repository.list_by_curator(
            curator_id, limit=limit, cursor=cursor, public_only=viewer_id != curator_id
        )

    def update_watchlist(self, watchlist_id: str, user_id: str, data: WatchlistUpdate) -> Watchlist:
        self._get_owned(watchlist_id, user_id)
        return self.watchlist_repository.update_watchlist(watchlist_id, data.to_fields())

    def delete_watchlist(self, watchlist_id: str, user_id: str) -> None:
        self._get_owned(watchlist_id, user_id)
        self.watchlist_repository.delete_watchlist(watchlist_id)

    # Items

    def list_items(self, watchlist_id: str, viewer_id: Optional[str]) -> List[WatchlistItem]:
        self.get_watchlist(watchlist_id, viewer_id)
        return self.item_repository.list_by_watchlist(watchlist_id)

    def add_item(self, watchlist_id: str, user_id: str, data: WatchlistItemCreate) -> WatchlistItem:
        self._get_owned(watchlist_id, user_id)
        return self.item_repository.add_item(
            watchlist_id,
            data.content_type,
            data.content_id,
            position=data.position,
            curator_note=data.curator_note,
        )

    def update_item(self, watchlist_id: str, user_id: str, content_type: ContentType, content_id: str,
                    data: WatchlistItemUpdate) -> WatchlistItem:
        self._get_owned(watchlist_id, user_id)
        changes = data.to_fields()
        if "curator_note" not in changes:
            item = self.item_repository.get_item(watchlist_id, content_type, content_id)
            if not item:
                raise NotFoundException("Item not found")
            return item
        try:
            return self.item_repository.update_item_note(
                watchlist_id, content_type, content_id, changes["curator_note"]
            )
        except NotFoundException:
            raise NotFoundException("Item not found")

    def remove_item(self, watchlist_id: str, user_id: str, content_type: ContentType, content_id: str) -> None:
        self._get_owned(watchlist_id, user_id)
        if not self.item_repository.remove_item(watchlist_id, content_type, content_id):
            raise NotFoundException("Item not found")

    def reorder_items(self, watchlist_id: str, user_id: str, data: WatchlistReorder) -> List[WatchlistItem]:
        self._get_owned(watchlist_id, user_id)
        order = [(ref.content_type, ref.content_id) for ref in data.items]
        return self.item_repository.reorder(watchlist_id, order)

    # Likes

    def like(self, watchlist_id: str, user_id: str) -> Watchlist:
        """Idempotent; the like count only moves for a new like"""
        self.get_watchlist(watchlist_id, user_id)
        if self.like_repository.like(user_id, watchlist_id):
            try:
                self.watchlist_repository.increment_like_count(watchlist_id, 1)
            except NotFoundException:
                # Watchlist deleted between the check and the increment
                self.like_repository.unlike(user_id, watchlist_id)
                raise NotFoundException("Watchlist not found")
        return self._get_existing(watchlist_id)

    def unlike(self, watchlist_id: str, user_id: str) -> Watchlist:
        watchlist = self.watchlist_repository.get_by_id(watchlist_id)
        if watchlist is None:
            # A like left behind by a concurrent delete can still be withdrawn
            self.like_repository.unlike(user_id, watchlist_id)
            raise NotFoundException("Watchlist not found")
        if self.like_repository.unlike(user_id, watchlist_id):
            self.watchlist_repository.increment_like_count(watchlist_id, -1)
            return self._get_existing(watchlist_id)
        return watchlist

    def has_liked(self, watchlist_id: str, user_id: str) -> bool:
        return self.like_repository.has_liked(user_id, watchlist_id)

    def list_likes_by_user(self, user_id: str, limit: Optional[int] = None) -> List[Like]:
        return self.like_repository.list_by_user(user_id, limit=limit)

    def list_likes_by_watchlist(self, watchlist_id: str, viewer_id: Optional[str],
                                limit: Optional[int] = None) -> List[Like]:
        self.get_watchlist(watchlist_id, viewer_id)
        return self.like_repository.list_by_watchlist(watchlist_id, limit=limit)
