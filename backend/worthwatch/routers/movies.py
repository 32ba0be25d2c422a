from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from worthwatch.core.auth import AuthenticatedUser, get_current_user
from worthwatch.db import get_table
from worthwatch.schemas.movie import MovieCreate, MovieUpdate
from worthwatch.services.catalog_service import CatalogService

router = APIRouter(prefix="/movies", tags=["movies"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_movie(
    data: MovieCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return CatalogService(table).create_movie(data).to_public()


@router.get("")
def list_movies(
    limit: int = Query(20, ge=1, le=100, description="Page size"),
    cursor: Optional[str] = Query(None),
    genre: Optional[str] = Query(None),
    title: Optional[str] = Query(None, description="Case-insensitive title search"),
    tmdb_id: Optional[str] = Query(None, alias="tmdbId"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    page = CatalogService(table).list_movies(limit=limit, cursor=cursor, genre=genre, title=title, tmdb_id=tmdb_id)
    return page.to_public()


@router.get("/{movie_id}")
def get_movie(
    movie_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return CatalogService(table).get_movie(movie_id).to_public()


@router.patch("/{movie_id}")
def update_movie(
    movie_id: str,
    data: MovieUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return CatalogService(table).update_movie(movie_id, data).to_public()


@router.delete("/{movie_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_movie(
    movie_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    CatalogService(table).delete_movie(movie_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
