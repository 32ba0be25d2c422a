from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from worthwatch.core.auth import AuthenticatedUser, get_current_user
from worthwatch.core.enums import ShowStatus
from worthwatch.db import get_table
from worthwatch.schemas.show import ShowCreate, ShowUpdate
from worthwatch.services.catalog_service import CatalogService

router = APIRouter(prefix="/shows", tags=["shows"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_show(
    data: ShowCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return CatalogService(table).create_show(data).to_public()


@router.get("")
def list_shows(
    limit: int = Query(20, ge=1, le=100, description="Page size"),
    cursor: Optional[str] = Query(None),
    genre: Optional[str] = Query(None),
    title: Optional[str] = Query(None),
    show_status: Optional[ShowStatus] = Query(None, alias="status"),
    tmdb_id: Optional[str] = Query(None, alias="tmdbId"),
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    page = CatalogService(table).list_shows(
        limit=limit, cursor=cursor, genre=genre, title=title, status=show_status, tmdb_id=tmdb_id
    )
    return page.to_public()


@router.get("/{show_id}")
def get_show(
    show_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return CatalogService(table).get_show(show_id).to_public()


@router.patch("/{show_id}")
def update_show(
    show_id: str,
    data: ShowUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return CatalogService(table).update_show(show_id, data).to_public()


@router.delete("/{show_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_show(
    show_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    CatalogService(table).delete_show(show_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
