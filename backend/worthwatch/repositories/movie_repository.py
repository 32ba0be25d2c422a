from typing import Any, Dict, List, Optional
from uuid import uuid4

from worthwatch.core import keys
from worthwatch.core.enums import EntityKind
from worthwatch.models.movie import Movie
from worthwatch.repositories.base_repository import BaseRepository, Page


class MovieRepository(BaseRepository[Movie]):
    """Repository for catalog movies"""

    def __init__(self, table, **kwargs):
        super().__init__(Movie, table, **kwargs)

    def _pk(self, movie_id: str) -> str:
        return keys.encode(EntityKind.MOVIE, movie_id)

    def create_movie(self, fields: Dict[str, Any], movie_id: Optional[str] = None) -> Movie:
        """Create a movie from validated model fields"""
        now = self.clock()
        movie = Movie(
            **fields,
            movie_id=keys.validate_id(movie_id or str(uuid4())),
            created_at=now,
            updated_at=now,
        )
        return self.create(movie)

    def get_by_id(self, movie_id: str) -> Optional[Movie]:
        return self.get(self._pk(movie_id), keys.METADATA_SK)

    def update_movie(self, movie_id: str, fields: Dict[str, Any]) -> Movie:
        """Patch only the given fields"""
        return self.update(self._pk(movie_id), keys.METADATA_SK, self.stored_attributes(fields))

    def delete_movie(self, movie_id: str) -> bool:
        return self.delete(self._pk(movie_id), keys.METADATA_SK)

    def list_all(self, limit: int = 20, cursor: Optional[str] = None) -> Page[Movie]:
        """Newest movies first"""
        return self.list_by_type(limit=limit, cursor=cursor)

    def get_by_tmdb_id(self, tmdb_id: str) -> Optional[Movie]:
        matches = self.filter_by_type(lambda movie: movie.tmdb_id == tmdb_id, limit=1)
        return matches[0] if matches else None

    def search_by_title(self, query: str, limit: Optional[int] = None) -> List[Movie]:
        """Case-insensitive substring match on the title"""
        needle = query.lower()
        return self.filter_by_type(lambda movie: needle in movie.title.lower(), limit=limit)

    def list_by_genre(self, genre: str, limit: Optional[int] = None) -> List[Movie]:
        wanted = genre.lower()
        return self.filter_by_type(
            lambda movie: any(g.lower() == wanted for g in movie.genres), limit=limit
        )
