import logging
from typing import Optional

from worthwatch.core.enums import ShowStatus
from worthwatch.core.exceptions import NotFoundException
from worthwatch.models.movie import Movie
from worthwatch.models.show import Show
from worthwatch.repositories.base_repository import Page
from worthwatch.repositories.movie_repository import MovieRepository
from worthwatch.repositories.show_repository import ShowRepository
from worthwatch.schemas.movie import MovieCreate, MovieUpdate
from worthwatch.schemas.show import ShowCreate, ShowUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """Movie and show catalog operations"""

    def __init__(self, table, **kwargs):
        self.movie_repository = MovieRepository(table, **kwargs)
        self.show_repository = ShowRepository(table, **kwargs)

    # Movies

    def create_movie(self, data: MovieCreate) -> Movie:
        movie = self.movie_repository.create_movie(data.to_fields())
        logger.info(f"Created movie {movie.movie_id}: {movie.title}")
        return movie

    def get_movie(self, movie_id: str) -> Movie:
        movie = self.movie_repository.get_by_id(movie_id)
        if not movie:
            raise NotFoundException("Movie not found")
        return movie

    def update_movie(self, movie_id: str, data: MovieUpdate) -> Movie:
        return self.movie_repository.update_movie(movie_id, data.to_fields())

    def delete_movie(self, movie_id: str) -> None:
        if not self.movie_repository.delete_movie(movie_id):
            raise NotFoundException("Movie not found")

    def list_movies(self, limit: int = 20, cursor: Optional[str] = None, genre: Optional[str] = None,
                    title: Optional[str] = None, tmdb_id: Optional[str] = None) -> Page[Movie]:
        """One filter at a time, checked in order tmdb id, title, genre"""
        if tmdb_id:
            movie = self.movie_repository.get_by_tmdb_id(tmdb_id)
            return Page(items=[movie] if movie else [])
        if title:
            return Page(items=self.movie_repository.search_by_title(title, limit=limit))
        if genre:
            return Page(items=self.movie_repository.list_by_genre(genre, limit=limit))
        return self.movie_repository.list_all(limit=limit, cursor=cursor)

    # Shows

    def create_show(self, data: ShowCreate) -> Show:
        show = self.show_repository.create_show(data.to_fields())
        logger.info(f"Created show {show.show_id}: {show.title}")
        return show

    def get_show(self, show_id: str) -> Show:
        show = self.show_repository.get_by_id(show_id)
        if not show:
            raise NotFoundException("Show not found")
        return show

    def update_show(self, show_id: str, data: ShowUpdate) -> Show:
        return self.show_repository.update_show(show_id, data.to_fields())

    def delete_show(self, show_id: str) -> None:
        if not self.show_repository.delete_show(show_id):
            raise NotFoundException("Show not found")

    def list_shows(self, limit: int = 20, cursor: Optional[str] = None, genre: Optional[str] = None,
                   title: Optional[str] = None, status: Optional[ShowStatus] = None,
                   tmdb_id: Optional[str] = None) -> Page[Show]:
        if tmdb_id:
            show = self.show_repository.get_by_tmdb_id(tmdb_id)
            return Page(items=[show] if show else [])
        if title:
            return Page(items=self.show_repository.search_by_title(title, limit=limit))
        if genre:
            return Page(items=self.show_repository.list_by_genre(genre, limit=limit))
        if status:
            return Page(items=self.show_repository.list_by_status(status, limit=limit))
        return self.show_repository.list_all(limit=limit, cursor=cursor)
