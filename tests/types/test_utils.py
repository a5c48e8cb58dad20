from enum import Enum
from typing import Annotated, Any, Literal, Optional, Sequence, Union

from pydantic import BaseModel, Field
import pytest

from llmloop.types.utils import get_union_args, item_type, semantic_type, unpack_annotated, unwrap_optional


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Level(Enum):
    LOW = 1
    HIGH = 2


class Mixed(Enum):
    A = "a"
    B = 1


class Point(BaseModel):
    x: int


class TestUnionHelpers:
    def test_get_union_args(self):
        assert get_union_args(Union[int, str]) == (int, str)
        assert get_union_args(int | None) == (int, type(None))
        assert get_union_args(int) == (int,)

    def test_unpack_annotated(self):
        assert unpack_annotated(Annotated[int, Field(gt=0)])[0] is int
        assert unpack_annotated(int) == (int, [])

    def test_unwrap_optional(self):
        assert unwrap_optional(Optional[str]) == (str, True)
        assert unwrap_optional(str | None) == (str, True)
        assert unwrap_optional(str) == (str, False)

    def test_unwrap_optional_union(self):
        inner, optional = unwrap_optional(Union[int, float, None])
        assert optional
        assert get_union_args(inner) == (int, float)


class TestSemanticType:
    @pytest.mark.parametrize(
        "tp, expected",
        [
            (str, "string"),
            (int, "number"),
            (float, "number"),
            (bool, "boolean"),
            (Color, "string"),
            (Level, "number"),
            (Literal[True, False], "boolean"),
            (int | float, "number"),
            (list, "array"),
            (Sequence[str], "array"),
            (dict, "object"),
            (Point, "object"),
            (Annotated[str, "meta"], "string"),
        ],
    )
    def test_mapping(self, tp, expected):
        assert semantic_type(tp) == expected

    @pytest.mark.parametrize("tp", [Any, Mixed, Literal["a", 1], int | str, type[int]])
    def test_unmappable(self, tp):
        with pytest.raises(TypeError):
            semantic_type(tp)


class TestItemType:
    def test_item_type(self):
        assert item_type(list[int]) == "number"
        assert item_type(list[Point]) == "object"
        assert item_type(list[Any]) is None
        assert item_type(list) is None
