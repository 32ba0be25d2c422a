from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from worthwatch.core.auth import AuthenticatedUser, get_current_user
from worthwatch.db import get_table
from worthwatch.schemas.user import UserCreate, UserUpdate
from worthwatch.services.user_service import UserService
from worthwatch.services.watchlist_service import WatchlistService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/me", status_code=status.HTTP_201_CREATED)
def create_profile(
    user_data: UserCreate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return UserService(table).create_user(current_user, user_data).to_public()


@router.get("/me")
def get_profile(
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return UserService(table).get_user_by_id(current_user.sub).to_public()


@router.patch("/me")
def update_profile(
    user_data: UserUpdate,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return UserService(table).update_user(current_user.sub, user_data).to_public()


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
def delete_profile(
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    UserService(table).delete_user(current_user.sub)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me/likes")
def get_my_likes(
    limit: int = Query(50, ge=1, le=200),
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    likes = WatchlistService(table).list_likes_by_user(current_user.sub, limit=limit)
    return {"items": [like.to_public() for like in likes]}


@router.get("/{user_id}")
def get_user(
    user_id: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    return UserService(table).get_user_by_id(user_id).to_public()


@router.get("/{user_id}/watchlists")
def get_user_watchlists(
    user_id: str,
    limit: int = Query(20, ge=1, le=100),
    cursor: Optional[str] = Query(None),
    current_user: AuthenticatedUser = Depends(get_current_user),
    table=Depends(get_table)
):
    """Curators see all of their own watchlists, everyone else only public ones"""
    page = WatchlistService(table).list_by_curator(user_id, current_user.sub, limit=limit, cursor=cursor)
    return page.to_public()
