from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from worthwatch.core.auth import AuthenticatedUser, get_current_user
from worthwatch.core.enums import ContentType
from worthwatch.db import get_table
from worthwatch.schemas.watchlist import (
    WatchlistCreate, WatchlistItemCreate, WatchlistItemUpdate, WatchlistReorder, WatchlistUpdate
)
from worthwatch.services.watchlist_service import WatchlistService

router = APIRouter(prefix="/watchlists", tags=["watchlists"])


# Public feed (no token required)
@router.get("/public")
def list_public_watchlists(
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[str] = Query(None),
    tag: Optional[str] = Query(None, description="Only watchlists carrying this tag"),
    table=Depends(get_table)
):
    return WatchlistService(table).list_public(limit=limit, cursor=cursor, tag=tag).to_public()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_watchlist(
    data: WatchlistCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return WatchlistService(table).create_watchlist(current_user.sub, data).to_public()


@router.get("/{watchlist_id}")
def get_watchlist(
    watchlist_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return WatchlistService(table).get_watchlist(watchlist_id, current_user.sub).to_public()


@router.patch("/{watchlist_id}")
def update_watchlist(
    watchlist_id: str,
    data: WatchlistUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return WatchlistService(table).update_watchlist(watchlist_id, current_user.sub, data).to_public()


@router.delete("/{watchlist_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_watchlist(
    watchlist_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    WatchlistService(table).delete_watchlist(watchlist_id, current_user.sub)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Items
@router.get("/{watchlist_id}/items")
def list_items(
    watchlist_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    items = WatchlistService(table).list_items(watchlist_id, current_user.sub)
    return {"items": [item.to_public() for item in items]}


@router.post("/{watchlist_id}/items", status_code=status.HTTP_201_CREATED)
def add_item(
    watchlist_id: str,
    data: WatchlistItemCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return WatchlistService(table).add_item(watchlist_id, current_user.sub, data).to_public()


@router.put("/{watchlist_id}/items/order")
def reorder_items(
    watchlist_id: str,
    data: WatchlistReorder,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    items = WatchlistService(table).reorder_items(watchlist_id, current_user.sub, data)
    return {"items": [item.to_public() for item in items]}


@router.patch("/{watchlist_id}/items/{content_type}/{content_id}")
def update_item(
    watchlist_id: str,
    content_type: ContentType,
    content_id: str,
    data: WatchlistItemUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    item = WatchlistService(table).update_item(watchlist_id, current_user.sub, content_type, content_id, data)
    return item.to_public()


@router.delete("/{watchlist_id}/items/{content_type}/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_item(
    watchlist_id: str,
    content_type: ContentType,
    content_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    WatchlistService(table).remove_item(watchlist_id, current_user.sub, content_type, content_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Likes
@router.put("/{watchlist_id}/like")
def like_watchlist(
    watchlist_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    watchlist = WatchlistService(table).like(watchlist_id, current_user.sub)
    return {"liked": True, "likeCount": watchlist.like_count}


@router.delete("/{watchlist_id}/like")
def unlike_watchlist(
    watchlist_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    watchlist = WatchlistService(table).unlike(watchlist_id, current_user.sub)
    return {"liked": False, "likeCount": watchlist.like_count}


@router.get("/{watchlist_id}/like")
def has_liked_watchlist(
    watchlist_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return {"liked": WatchlistService(table).has_liked(watchlist_id, current_user.sub)}


@router.get("/{watchlist_id}/likes")
def list_watchlist_likes(
    watchlist_id: str,
    limit: int = Query(50, ge=1, le=200),
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    likes = WatchlistService(table).list_likes_by_watchlist(watchlist_id, current_user.sub, limit=limit)
    return {"items": [like.to_public() for like in likes]}
