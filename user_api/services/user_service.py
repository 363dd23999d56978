"""
User service — the users lifecycle, run through validators and resolvers.

Every method follows the same pipeline:

    validate (query, then data)  ->  resolve (query, then data)
        ->  storage  ->  resolve full record  ->  resolve external view

Validation always happens before any resolver runs, so invalid input never
gets partially resolved (and never gets its password hashed).

Ownership enforcement:
  The query resolver rewrites `_id` to the actor's own id for get, patch and
  remove. Asking for someone else's id then simply matches no row, and the
  caller gets UserNotFoundError; existence of other users is not revealed.
  `find` is not restricted, so anyone authenticated can list users.

Passwords:
  Hashed by the data resolvers before storage; removed by the external
  resolver before anything is returned.
"""

from typing import Any, Mapping

from loguru import logger
from sqlalchemy import and_, func, or_, select, true
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from user_api.config import settings
from user_api.exceptions import DuplicateUsernameError, UserNotFoundError
from user_api.models.user import User
from user_api.resolvers import HookContext
from user_api.schemas.user import (
    QUERY_FIELDS,
    user_data_resolver,
    user_data_validator,
    user_external_resolver,
    user_patch_resolver,
    user_patch_validator,
    user_query_resolver,
    user_query_validator,
    user_resolver,
    user_validator,
)


# Wire name -> ORM attribute
COLUMNS = {
    "_id": "id",
    "username": "username",
    "password": "password",
    "avatar": "avatar",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

OPERATORS = {
    "$ne": lambda column, value: column != value,
    "$in": lambda column, value: column.in_(value),
    "$nin": lambda column, value: column.not_in(value),
    "$lt": lambda column, value: column < value,
    "$lte": lambda column, value: column <= value,
    "$gt": lambda column, value: column > value,
    "$gte": lambda column, value: column >= value,
}


# ---------------------------------------------------------------------------
# Record conversion
# ---------------------------------------------------------------------------

def _to_record(user: User) -> dict:
    """
    ORM instance -> wire-named dict.

    The avatar column is nullable for rows written before avatars were
    required; a NULL there is left out rather than failing validation.
    """
    record = {name: getattr(user, attribute) for name, attribute in COLUMNS.items()}
    if record["avatar"] is None:
        del record["avatar"]
    return record


def _to_columns(data: Mapping[str, Any]) -> dict:
    """Wire-named dict -> ORM keyword arguments."""
    return {COLUMNS[name]: value for name, value in data.items()}


async def to_external(user: User, context: HookContext) -> dict:
    """The full record run through the full and external resolvers."""
    record = user_validator(_to_record(user))
    record = await user_resolver.resolve(record, context)
    return await user_external_resolver.resolve(record, context)


def _apply_select(record: dict, select_fields: list[str] | None) -> dict:
    if not select_fields:
        return record
    # The id is always returned so the record can be addressed again
    return {
        name: value for name, value in record.items()
        if name in select_fields or name == "_id"
    }


# ---------------------------------------------------------------------------
# Query translation
# ---------------------------------------------------------------------------

def _field_condition(column, value):
    if isinstance(value, dict):
        return and_(true(), *(OPERATORS[op](column, arg) for op, arg in value.items()))
    return column == value


def _conditions(query: Mapping[str, Any]) -> list:
    conditions = [
        _field_condition(getattr(User, COLUMNS[name]), query[name])
        for name in QUERY_FIELDS
        if name in query
    ]
    if query.get("$or"):
        conditions.append(or_(*(and_(true(), *_conditions(sub)) for sub in query["$or"])))
    return conditions


async def _resolve_query(query: Mapping[str, Any], context: HookContext) -> dict:
    return await user_query_resolver.resolve(query, context)


async def _get_row(db: AsyncSession, user_id: str, query: Mapping[str, Any]) -> User:
    result = await db.execute(
        select(User).where(User.id == user_id, *_conditions(query))
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def _ensure_unique_username(db: AsyncSession, username: str) -> None:
    result = await db.execute(select(User.id).where(User.username == username))
    if result.scalar_one_or_none() is not None:
        raise DuplicateUsernameError(username)


async def _flush(db: AsyncSession, username: str) -> None:
    # The unique index still catches a concurrent insert of the same username
    try:
        await db.flush()
    except IntegrityError:
        logger.warning("Username {} taken by a concurrent write", username)
        raise DuplicateUsernameError(username) from None


# ---------------------------------------------------------------------------
# Service methods
# ---------------------------------------------------------------------------

async def find_users(
    db: AsyncSession,
    query: Mapping[str, Any] | None,
    context: HookContext,
) -> dict:
    """
    List users matching the query, one page at a time.

    Returns:
        {"total": <matching rows>, "limit": ..., "skip": ..., "data": [...]}
        where limit defaults to PAGINATE_DEFAULT and never exceeds PAGINATE_MAX.
    """
    query = user_query_validator(query or {})
    query = await _resolve_query(query, context)
    conditions = _conditions(query)

    limit = min(query.get("$limit", settings.PAGINATE_DEFAULT), settings.PAGINATE_MAX)
    skip = query.get("$skip", 0)

    total = await db.scalar(select(func.count()).select_from(User).where(*conditions))

    statement = select(User).where(*conditions)
    sort = query.get("$sort")
    if sort:
        for name, direction in sort.items():
            column = getattr(User, COLUMNS[name])
            statement = statement.order_by(column.asc() if direction == 1 else column.desc())
    else:
        statement = statement.order_by(User.created_at, User.id)
    statement = statement.offset(skip).limit(limit)

    result = await db.execute(statement)
    records = [user_validator(_to_record(user)) for user in result.scalars().all()]
    records = await user_resolver.resolve_many(records, context)
    records = await user_external_resolver.resolve_many(records, context)
    data = [_apply_select(record, query.get("$select")) for record in records]
    return {"total": total, "limit": limit, "skip": skip, "data": data}


async def get_user(
    db: AsyncSession,
    user_id: str,
    query: Mapping[str, Any] | None,
    context: HookContext,
) -> dict:
    """
    Get a single user by id.

    Raises:
        UserNotFoundError: If no user has this id, or the query (after the
            ownership rewrite) excludes it.
    """
    query = user_query_validator(query or {})
    query = await _resolve_query(query, context)
    user = await _get_row(db, user_id, query)
    return _apply_select(await to_external(user, context), query.get("$select"))


async def create_user(
    db: AsyncSession,
    data: Mapping[str, Any],
    context: HookContext,
) -> dict:
    """
    Create a user from {username, password, avatar?}.

    The password is hashed, the avatar defaults to the username's Gravatar
    and both timestamps are set to the context's timestamp.

    Raises:
        ValidationError: If data has unknown fields or lacks username/password.
        DuplicateUsernameError: If the username is taken.
    """
    data = user_data_validator(data)
    data = await user_data_resolver.resolve(data, context)

    await _ensure_unique_username(db, data["username"])

    user = User(**_to_columns(data))
    db.add(user)
    await _flush(db, data["username"])

    logger.info("User {} created (username={})", user.id, user.username)
    return await to_external(user, context)


async def patch_user(
    db: AsyncSession,
    user_id: str,
    data: Mapping[str, Any],
    query: Mapping[str, Any] | None,
    context: HookContext,
) -> dict:
    """
    Partially update a user. Only the fields sent are changed.

    updatedAt is not refreshed automatically; callers that want it bumped
    send it along with the other fields.

    Raises:
        ValidationError: If data or query do not match their schemas.
        UserNotFoundError: If the user doesn't exist or isn't the actor's.
        DuplicateUsernameError: If renaming to a username that is taken.
    """
    query = user_query_validator(query or {})
    data = user_patch_validator(data)

    query = await _resolve_query(query, context)
    data = await user_patch_resolver.resolve(data, context)

    user = await _get_row(db, user_id, query)

    if "username" in data and data["username"] != user.username:
        await _ensure_unique_username(db, data["username"])

    for attribute, value in _to_columns(data).items():
        setattr(user, attribute, value)
    await _flush(db, user.username)

    logger.info("User {} patched (fields={})", user.id, sorted(data))
    return _apply_select(await to_external(user, context), query.get("$select"))


async def remove_user(
    db: AsyncSession,
    user_id: str,
    query: Mapping[str, Any] | None,
    context: HookContext,
) -> dict:
    """
    Delete a user and return the external view of the removed record.

    Raises:
        UserNotFoundError: If the user doesn't exist or isn't the actor's.
    """
    query = user_query_validator(query or {})
    query = await _resolve_query(query, context)
    user = await _get_row(db, user_id, query)

    removed = await to_external(user, context)
    await db.delete(user)
    await db.flush()

    logger.info("User {} removed", user_id)
    return _apply_select(removed, query.get("$select"))
