"""
Query-string parsing for bracket notation.

HTTP query strings are flat key/value pairs. Filters with operators and
sorting need nesting, which is written with brackets:

    ?username[$in]=alice&username[$in]=bob     {"username": {"$in": ["alice", "bob"]}}
    ?$sort[username]=-1                        {"$sort": {"username": "-1"}}
    ?$select[]=username&$select[]=_id          {"$select": ["username", "_id"]}
    ?$or[0][username]=alice&$or[1][_id]=abc    {"$or": [{"username": "alice"}, {"_id": "abc"}]}

Values stay strings; the query validator coerces them. A key given both a
plain value and a nested one (`username=a&username[$ne]=b`) is rejected.
"""

import re
from typing import Iterable

from user_api.exceptions import ValidationError


_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


def _split_key(key: str) -> list[str]:
    head, _, rest = key.partition("[")
    if not rest:
        return [key]
    return [head] + _SEGMENT.findall("[" + rest)


def _conflict(field: str) -> ValidationError:
    return ValidationError(
        "query", [{"field": field, "message": "has both a plain and a nested value"}]
    )


def _assign(target: dict, parts: list[str], value: str, field: str) -> None:
    name, rest = parts[0], parts[1:]

    if not rest:
        if name in target:
            existing = target[name]
            if isinstance(existing, dict):
                raise _conflict(field)
            if isinstance(existing, list):
                existing.append(value)
            else:
                target[name] = [existing, value]
        else:
            target[name] = value
        return

    if rest == [""]:
        # key[]=value always builds a list
        target.setdefault(name, [])
        if isinstance(target[name], dict):
            raise _conflict(field)
        if not isinstance(target[name], list):
            target[name] = [target[name]]
        target[name].append(value)
        return

    child = target.setdefault(name, {})
    if not isinstance(child, dict):
        raise _conflict(field)
    _assign(child, rest, value, field)


def _listify(value):
    """Turn dicts whose keys are all indexes ("0", "1", ...) into lists."""
    if isinstance(value, dict):
        value = {key: _listify(item) for key, item in value.items()}
        if value and all(key.isdigit() for key in value):
            return [value[key] for key in sorted(value, key=int)]
        return value
    if isinstance(value, list):
        return [_listify(item) for item in value]
    return value


def parse_query_string(pairs: Iterable[tuple[str, str]]) -> dict:
    """
    Build a nested query mapping from (key, value) pairs.

    Accepts anything that yields pairs, such as
    `request.query_params.multi_items()`.
    """
    query: dict = {}
    for key, value in pairs:
        if not key:
            continue
        parts = _split_key(key)
        _assign(query, parts, value, parts[0])
    return {key: _listify(value) for key, value in query.items()}
