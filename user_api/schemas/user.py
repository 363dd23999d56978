"""
User schemas, validators and resolvers.

One section per lifecycle boundary, each pairing a pydantic schema (what may
come in), a validator built from it, and a Resolver (what gets derived):

  - UserSchema  the full stored record          user_validator / user_resolver
  - external    what a requester may see         user_external_resolver
  - UserData    body of a create                 user_data_validator / user_data_resolver
  - UserPatch   body of a patch                  user_patch_validator / user_patch_resolver
  - UserQuery   filters for find/get/patch/remove user_query_validator / user_query_resolver

Wire names (`_id`, `createdAt`, `updatedAt`) are pydantic aliases; every
schema forbids unknown fields.

The password is hashed by the data resolvers and removed by the external
resolver, so it never leaves the service in any form.
"""

import hashlib
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from user_api.resolvers import HookContext, Resolver, hide
from user_api.security import password_hash
from user_api.validators import get_validator


GRAVATAR_URL = "https://s.gravatar.com/avatar/{hash}?s=60"

# Fields a query may filter, sort and select on
QUERY_FIELDS = ("_id", "username")
QueryField = Literal["_id", "username"]


# ---------------------------------------------------------------------------
# Main data model
# ---------------------------------------------------------------------------

class UserSchema(BaseModel):
    """A complete user record, as stored."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(alias="_id")
    username: str
    password: str
    avatar: str = Field(default=None)
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")


user_validator = get_validator(UserSchema, "data")
user_resolver = Resolver({})

# The password should never be visible externally
user_external_resolver = Resolver({
    "password": hide,
})


# ---------------------------------------------------------------------------
# Creating new users
# ---------------------------------------------------------------------------

class UserData(BaseModel):
    """Request body for creating a user."""
    model_config = ConfigDict(extra="forbid")

    username: str
    password: str
    avatar: str = Field(default=None)


def gravatar_url(username: str) -> str:
    """Gravatar image URL for a username (MD5 of the lower-cased name)."""
    digest = hashlib.md5(
        username.lower().encode("utf-8"), usedforsecurity=False
    ).hexdigest()
    return GRAVATAR_URL.format(hash=digest)


async def resolve_avatar(value, data, context: HookContext) -> str:
    # An avatar passed by the user wins
    if value is not None:
        return value
    return gravatar_url(data["username"])


async def resolve_timestamp(value, data, context: HookContext) -> int:
    return context.timestamp


user_data_validator = get_validator(UserData, "data")
user_data_resolver = Resolver({
    "password": password_hash(strategy="local"),
    "avatar": resolve_avatar,
    "createdAt": resolve_timestamp,
    "updatedAt": resolve_timestamp,
})


# ---------------------------------------------------------------------------
# Updating existing users
# ---------------------------------------------------------------------------

class UserPatch(BaseModel):
    """
    Request body for patching a user. Every field is optional.

    Fields default to None only so they can be omitted; an explicit null is
    rejected for every field.
    """
    model_config = ConfigDict(extra="forbid")

    username: str = Field(default=None)
    password: str = Field(default=None)
    avatar: str = Field(default=None)
    created_at: int = Field(default=None, alias="createdAt")
    updated_at: int = Field(default=None, alias="updatedAt")


user_patch_validator = get_validator(UserPatch, "data")
user_patch_resolver = Resolver({
    "password": password_hash(strategy="local"),
})


# ---------------------------------------------------------------------------
# Querying users
# ---------------------------------------------------------------------------

class UserFieldOperators(BaseModel):
    """Comparison operators allowed on a single query field."""
    model_config = ConfigDict(extra="forbid")

    ne: str = Field(default=None, alias="$ne")
    in_: list[str] = Field(default=None, alias="$in")
    nin: list[str] = Field(default=None, alias="$nin")
    lt: str = Field(default=None, alias="$lt")
    lte: str = Field(default=None, alias="$lte")
    gt: str = Field(default=None, alias="$gt")
    gte: str = Field(default=None, alias="$gte")

    @field_validator("in_", "nin", mode="before")
    @classmethod
    def wrap_scalar(cls, value):
        # ?username[$in]=alice parses to a single string
        if isinstance(value, str):
            return [value]
        return value


class UserQueryProperties(BaseModel):
    """Filterable user properties: a literal value or an operator object."""
    model_config = ConfigDict(extra="forbid")

    id: str | UserFieldOperators = Field(default=None, alias="_id")
    username: str | UserFieldOperators = Field(default=None)


class UserQuery(UserQueryProperties):
    """Query parameters for find/get/patch/remove."""

    limit: int = Field(default=None, ge=0, alias="$limit")
    skip: int = Field(default=None, ge=0, alias="$skip")
    sort: dict[QueryField, int] = Field(default=None, alias="$sort")
    select: list[QueryField] = Field(default=None, alias="$select")
    or_: list[UserQueryProperties] = Field(default=None, alias="$or")

    @field_validator("sort")
    @classmethod
    def check_sort_direction(cls, value):
        for field, direction in value.items():
            if direction not in (1, -1):
                raise ValueError(f"sort direction for {field} must be 1 or -1")
        return value

    @field_validator("select", mode="before")
    @classmethod
    def wrap_select(cls, value):
        if isinstance(value, str):
            return [value]
        return value


async def restrict_to_owner(value, query, context: HookContext):
    # Anyone may list all users, but an authenticated user
    # may only get, patch or remove their own record
    if context.user is not None and context.method != "find":
        return context.user.id
    return value


user_query_validator = get_validator(UserQuery, "query")
user_query_resolver = Resolver({
    "_id": restrict_to_owner,
})


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    """
    A user as returned by the API. There is no password field.

    Everything but the id may be missing when the query used $select.
    """
    id: str = Field(alias="_id")
    username: str = Field(default=None)
    avatar: str | None = None
    created_at: int = Field(default=None, alias="createdAt")
    updated_at: int = Field(default=None, alias="updatedAt")


class UserPage(BaseModel):
    """One page of a find: totals plus the users on this page."""
    total: int
    limit: int
    skip: int
    data: list[UserResponse]
