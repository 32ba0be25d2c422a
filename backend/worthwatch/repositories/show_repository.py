from typing import Any, Dict, List, Optional
from uuid import uuid4

from worthwatch.core import keys
from worthwatch.core.enums import EntityKind, ShowStatus
from worthwatch.models.show import Show
from worthwatch.repositories.base_repository import BaseRepository, Page


class ShowRepository(BaseRepository[Show]):
    """Repository for catalog shows"""

    def __init__(self, table, **kwargs):
        super().__init__(Show, table, **kwargs)

    def _pk(self, show_id: str) -> str:
        return keys.encode(EntityKind.SHOW, show_id)

    def create_show(self, fields: Dict[str, Any], show_id: Optional[str] = None) -> Show:
        now = self.clock()
        show = Show(
            **fields,
            show_id=keys.validate_id(show_id or str(uuid4())),
            created_at=now,
            updated_at=now,
        )
        return self.create(show)

    def get_by_id(self, show_id: str) -> Optional[Show]:
        return self.get(self._pk(show_id), keys.METADATA_SK)

    def update_show(self, show_id: str, fields: Dict[str, Any]) -> Show:
        """Patch only the given fields; ``end_year=None`` marks the show ongoing"""
        return self.update(self._pk(show_id), keys.METADATA_SK, self.stored_attributes(fields))

    def delete_show(self, show_id: str) -> bool:
        return self.delete(self._pk(show_id), keys.METADATA_SK)

    def list_all(self, limit: int = 20, cursor: Optional[str] = None) -> Page[Show]:
        return self.list_by_type(limit=limit, cursor=cursor)

    def get_by_tmdb_id(self, tmdb_id: str) -> Optional[Show]:
        matches = self.filter_by_type(lambda show: show.tmdb_id == tmdb_id, limit=1)
        return matches[0] if matches else None

    def search_by_title(self, query: str, limit: Optional[int] = None) -> List[Show]:
        needle = query.lower()
        return self.filter_by_type(lambda show: needle in show.title.lower(), limit=limit)

    def list_by_genre(self, genre: str, limit: Optional[int] = None) -> List[Show]:
        wanted = genre.lower()
        return self.filter_by_type(
            lambda show: any(g.lower() == wanted for g in show.genres), limit=limit
        )

    def list_by_status(self, status: ShowStatus, limit: Optional[int] = None) -> List[Show]:
        wanted = ShowStatus(status).value
        return self.filter_by_type(lambda show: show.status == wanted, limit=limit)
