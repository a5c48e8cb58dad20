from __future__ import annotations as _annotations

import collections.abc
from enum import Enum
import logging
import types
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import BaseModel
import typing_extensions

from .base import SemanticType

logger = logging.getLogger(__name__)

_ARRAY_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.deque,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.Iterable,
)
_OBJECT_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


# same as `pydantic_ai_slim/pydantic_ai/_result.py:origin_is_union`
def origin_is_union(tp: type[Any] | None) -> bool:
    """Determine whether a given type parameter is a Union type."""
    return tp is Union or tp is types.UnionType


def get_union_args(tp: Any) -> tuple[Any, ...]:
    """Extract the arguments of a Union type if `tp` is a union, otherwise return the original type."""
    if isinstance(tp, typing_extensions.TypeAliasType):
        tp = tp.__value__

    origin = get_origin(tp)
    if origin_is_union(origin):
        return get_args(tp)
    else:
        return (tp,)


def unpack_annotated(tp: Any) -> tuple[Any, list[Any]]:
    """Strip `Annotated` from the type if present.

    Returns
    -------
        `(tp argument, ())` if not annotated, otherwise `(stripped type, annotations)`.
    """
    origin = get_origin(tp)
    if origin is Annotated or origin is typing_extensions.Annotated:
        inner_tp, *args = get_args(tp)
        return inner_tp, args
    else:
        return tp, []


def unwrap_optional(tp: Any) -> tuple[Any, bool]:
    """Split `Optional[T]` into `(T, True)`; other annotations are returned as `(tp, False)`."""
    tp, _ = unpack_annotated(tp)
    args = get_union_args(tp)
    if type(None) not in args:
        return tp, False

    inner = tuple(arg for arg in args if arg is not type(None))
    if len(inner) == 1:
        return inner[0], True
    # Optional[A | B] stays a union; semantic_type() decides whether it maps
    return Union[inner], True


def _is_typeddict(tp: Any) -> bool:
    return typing_extensions.is_typeddict(tp)


def semantic_type(tp: Any) -> SemanticType:
    """Map a python annotation to the type tag used in function-calling schemas.

    Raises
    ------
    TypeError
        If the annotation has no sensible mapping (e.g. `Any`, or a union of unrelated types).
    """
    tp, _ = unpack_annotated(tp)
    origin = get_origin(tp)

    if origin is Literal:
        values = get_args(tp)
        if all(isinstance(v, str) for v in values):
            return "string"
        if all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
            return "number"
        if all(isinstance(v, bool) for v in values):
            return "boolean"
        raise TypeError(f"Literal mixes value types: {tp}")

    if origin_is_union(origin):
        tags = {semantic_type(arg) for arg in get_args(tp)}
        if len(tags) == 1:
            return tags.pop()
        raise TypeError(f"Union of unrelated types cannot be described as one parameter type: {tp}")

    if origin is not None:
        if origin in _ARRAY_ORIGINS:
            return "array"
        if origin in _OBJECT_ORIGINS:
            return "object"
        raise TypeError(f"Unsupported generic parameter type: {tp}")

    if tp is bool:
        return "boolean"
    if tp in (int, float):
        return "number"
    if tp is str:
        return "string"
    if isinstance(tp, type):
        if issubclass(tp, Enum):
            member_types = {type(member.value) for member in tp}
            if member_types <= {str}:
                return "string"
            if member_types <= {int, float}:
                return "number"
            raise TypeError(f"Enum mixes value types: {tp}")
        if tp in _ARRAY_ORIGINS:
            return "array"
        if tp in _OBJECT_ORIGINS or issubclass(tp, BaseModel) or _is_typeddict(tp):
            return "object"

    raise TypeError(f"Cannot map parameter type {tp!r} to a schema type")


def item_type(tp: Any) -> SemanticType | None:
    """Semantic type of the elements of an array annotation, when it can be determined."""
    tp, _ = unpack_annotated(tp)
    args = get_args(tp)
    if not args:
        return None
    try:
        return semantic_type(args[0])
    except TypeError:
        return None
