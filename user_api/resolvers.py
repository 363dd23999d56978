"""
Field resolvers — per-field transforms applied after validation.

A Resolver is an ordered table of async functions keyed by field name.
Each function receives:

    value    the field's current value (None when the field is absent)
    data     the full record being resolved (read-only for resolvers)
    context  the HookContext of the call (actor, method, timestamp)

and returns the field's resolved value. Returning None means "field absent":
the key is dropped from the result. Fields without an entry in the table
pass through untouched.

Entries run in table order, so a field that depends on another (avatar
depends on username) only needs to be listed after it. Every entry sees the
original record, never a half-resolved one.

Usage:
    user_external_resolver = Resolver({"password": hide})
    safe = await user_external_resolver.resolve(user, context)
"""

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from user_api.models.user import User


FieldResolver = Callable[[Any, Mapping[str, Any], "HookContext"], Awaitable[Any]]


def epoch_millis() -> int:
    """Current time as integer milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class HookContext:
    """
    The request context a resolver runs in.

    Attributes:
        method: Service method being invoked: find, get, create, patch or remove.
        user: The authenticated actor, or None for internal/anonymous calls.
        id: The record id the call targets (get/patch/remove), if any.
        timestamp: Epoch millis captured once per call, so every timestamp
            field resolved in the same call gets the same instant.
    """
    method: str
    user: User | None = None
    id: str | None = None
    timestamp: int = field(default_factory=epoch_millis)


class Resolver:
    """An ordered table of field resolvers applied to a single record."""

    def __init__(self, properties: Mapping[str, FieldResolver] | None = None):
        self.properties = dict(properties or {})

    async def resolve(self, data: Mapping[str, Any], context: HookContext) -> dict:
        result = dict(data)

        for name, resolver in self.properties.items():
            value = await resolver(data.get(name), data, context)
            if value is None:
                result.pop(name, None)
            else:
                result[name] = value

        return result

    async def resolve_many(
        self, records: list[Mapping[str, Any]], context: HookContext
    ) -> list[dict]:
        return [await self.resolve(record, context) for record in records]


async def hide(value, data, context) -> None:
    """Resolver that always removes its field."""
    return None
