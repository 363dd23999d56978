"""
Schema validators — pydantic models wrapped as plain functions.

`get_validator(schema, kind)` returns a function that takes raw input
(a dict) and returns the validated data as a dict keyed by wire names
(`_id`, `createdAt`, ...), containing only the keys the caller sent.

Two kinds of validator exist:

  - "data":  request bodies. Strict: JSON already carries types, so "5" is
             not accepted where a number is expected.
  - "query": query parameters. Lax: query strings are untyped, so "10" is
             coerced to 10 for $limit and friends.

Any failure is raised as user_api.exceptions.ValidationError with one entry
per offending top-level field, before any resolver runs.
"""

from typing import Any, Callable, Literal

import pydantic
from pydantic import BaseModel

from user_api.exceptions import ValidationError


Validator = Callable[[Any], dict]


def _collect_errors(exc: pydantic.ValidationError) -> list[dict]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "(root)"
        if error["type"] == "extra_forbidden":
            message = "is not allowed"
        elif error["type"] == "missing":
            message = "is required"
        else:
            message = error["msg"]
        messages = errors.setdefault(field, [])
        if message not in messages:
            messages.append(message)
    return [
        {"field": field, "message": "; ".join(messages)}
        for field, messages in errors.items()
    ]


def get_validator(
    schema: type[BaseModel], kind: Literal["data", "query"] = "data"
) -> Validator:
    """Build a validator for `schema`; see the module docstring for `kind`."""
    strict = kind == "data"
    name = schema.__name__

    def validate(value: Any) -> dict:
        try:
            model = schema.model_validate(value, strict=strict)
        except pydantic.ValidationError as exc:
            raise ValidationError(name, _collect_errors(exc)) from None
        return model.model_dump(by_alias=True, exclude_unset=True)

    validate.schema = schema
    return validate
