"""
Users router — CRUD endpoints over the user service.

Endpoints:
  POST   /users        — Create a user (public: this is how people sign up)
  GET    /users        — List users, paginated (requires JWT)
  GET    /users/{id}   — Get a user (requires JWT, own record only)
  PATCH  /users/{id}   — Update fields of a user (requires JWT, own record only)
  DELETE /users/{id}   — Remove a user (requires JWT, own record only)

Query parameters use bracket notation (see user_api/query.py), e.g.
  GET /users?username[$in]=alice&username[$in]=bob&$sort[username]=-1

Request bodies are taken as raw JSON objects and validated by the service,
so every validation failure has the same shape (422, error_type
"validation_error", one entry per offending field).
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from user_api.database import get_db
from user_api.dependencies import get_current_user, get_optional_user
from user_api.models.user import User
from user_api.query import parse_query_string
from user_api.resolvers import HookContext
from user_api.schemas.user import UserPage, UserResponse
from user_api.services import user_service

router = APIRouter()


def _query(request: Request) -> dict:
    return parse_query_string(request.query_params.multi_items())


@router.post(
    "",
    response_model=UserResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(
    data: dict[str, Any] = Body(...),
    user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new user.

    - **username**: Required, must be unique
    - **password**: Required, stored as an Argon2 hash
    - **avatar**: Optional URL; defaults to the username's Gravatar
    """
    context = HookContext(method="create", user=user)
    return await user_service.create_user(db, data, context)


@router.get(
    "",
    response_model=UserPage,
    response_model_exclude_unset=True,
    summary="List users",
)
async def find_users(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List users matching the query. Not restricted to the caller's record."""
    context = HookContext(method="find", user=user)
    return await user_service.find_users(db, _query(request), context)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    response_model_exclude_unset=True,
    summary="Get a user",
)
async def get_user(
    user_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return a user. Any id other than the caller's own yields 404."""
    context = HookContext(method="get", user=user, id=user_id)
    return await user_service.get_user(db, user_id, _query(request), context)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    response_model_exclude_unset=True,
    summary="Update a user",
)
async def patch_user(
    user_id: str,
    request: Request,
    data: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update the given fields of the caller's own record.

    Omitted fields stay unchanged; a new password is hashed before storage.
    """
    context = HookContext(method="patch", user=user, id=user_id)
    return await user_service.patch_user(db, user_id, data, _query(request), context)


@router.delete(
    "/{user_id}",
    response_model=UserResponse,
    response_model_exclude_unset=True,
    summary="Remove a user",
)
async def remove_user(
    user_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete the caller's own record and return it."""
    context = HookContext(method="remove", user=user, id=user_id)
    return await user_service.remove_user(db, user_id, _query(request), context)
