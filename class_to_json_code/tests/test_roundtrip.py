"""
Round trip tests: generated companions are executed and called.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

import pytest

from class_to_json_code.pipeline import GeneratorConfig

POINT = """
from dataclasses import dataclass

from class_to_json_code import json_serializable


@json_serializable
@dataclass
class Point:
    x: int
    y: int
"""

POINT_ENCODE_ONLY_Y = """
from dataclasses import dataclass
from typing import Annotated

from class_to_json_code import JsonKey, json_serializable


@json_serializable
@dataclass
class Point:
    x: int
    y: Annotated[int, JsonKey(include_from_json=False, include_to_json=True)] = 0
"""

NESTED = """
from dataclasses import dataclass, field
from enum import Enum

from class_to_json_code import json_enum, json_serializable


@json_enum
class Color(Enum):
    RED = "red"
    GREEN = "green"


@json_serializable
@dataclass
class Tag:
    label: str
    color: Color


@json_serializable
@dataclass
class Drawing:
    name: str
    tags: list[Tag]
    colors: dict[str, Color]
    weights: dict[int, float]
    origin: Tag | None = None
    layers: list[list[int]] = field(default_factory=list)
"""

VALUE_TYPES = """
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from class_to_json_code import json_serializable


@json_serializable
@dataclass
class Invoice:
    id: UUID
    issued: date
    created: datetime
    total: Decimal
    paid_at: datetime | None = None
"""

PLAIN_CLASS = """
from typing import Annotated

from class_to_json_code import JsonKey, json_serializable


@json_serializable(field_rename="kebab", include_if_null=False)
class Account:
    def __init__(self, user_name: str, retries: int = 3):
        self.user_name = user_name
        self.retries = retries
        self.nick_name: str | None = None
        self.score: Annotated[int, JsonKey(name="pts", default_value=0)] = 0

    def __eq__(self, other):
        return vars(self) == vars(other)
"""

GENERIC = """
from dataclasses import dataclass
from typing import Generic, TypeVar

from class_to_json_code import json_serializable

T = TypeVar("T")


@json_serializable(generic_argument_factories=True)
@dataclass
class Box(Generic[T]):
    value: T
    items: list[T]
"""

MIXED_GENERIC = """
from dataclasses import dataclass
from typing import Generic, TypeVar

from class_to_json_code import json_serializable

T = TypeVar("T")


@json_serializable
@dataclass
class Plain(Generic[T]):
    value: T


@json_serializable(generic_argument_factories=True)
@dataclass
class Holder(Generic[T]):
    inner: Plain[int]
    item: T
"""


class TestScenarios:
    """The reference Point scenarios"""

    def test_point_decode_and_encode(self, load_generated):
        """Decoding {"x": 1, "y": 2} builds Point(1, 2), which encodes back to the same map"""
        module, companion = load_generated(POINT)
        point = companion._point_from_json({"x": 1, "y": 2})
        assert point == module.Point(x=1, y=2)
        assert companion._point_to_json(point) == {"x": 1, "y": 2}

    def test_encode_only_field(self, load_generated):
        """A field excluded from decode ignores the incoming key but is still encoded"""
        module, companion = load_generated(POINT_ENCODE_ONLY_Y)
        point = companion._point_from_json({"x": 1, "y": 5})
        assert point == module.Point(x=1, y=0)
        assert companion._point_to_json(point) == {"x": 1, "y": 0}


class TestRoundTrip:
    """encode(decode(encode(instance))) == encode(instance)"""

    def test_nested_classes_enums_and_containers(self, load_generated):
        """Nested classes, enum values, lists and dicts survive a round trip"""
        module, companion = load_generated(NESTED)
        drawing = module.Drawing(
            name="d",
            tags=[module.Tag("a", module.Color.RED)],
            colors={"sky": module.Color.GREEN},
            weights={1: 0.5},
            origin=module.Tag("o", module.Color.GREEN),
            layers=[[1, 2], [3]],
        )
        encoded = companion._drawing_to_json(drawing)
        assert encoded == {
            "name": "d",
            "tags": [{"label": "a", "color": "red"}],
            "colors": {"sky": "green"},
            "weights": {"1": 0.5},
            "origin": {"label": "o", "color": "green"},
            "layers": [[1, 2], [3]],
        }
        decoded = companion._drawing_from_json(encoded)
        assert decoded == drawing
        assert companion._drawing_to_json(decoded) == encoded

    def test_null_optional_nested_class(self, load_generated):
        """A missing optional nested object decodes to None"""
        module, companion = load_generated(NESTED)
        decoded = companion._drawing_from_json({"name": "d", "tags": [], "colors": {}, "weights": {}})
        assert decoded.origin is None
        assert decoded.layers == []

    def test_unknown_enum_value_fails(self, load_generated):
        """Values outside the enum map raise ValueError"""
        _, companion = load_generated(NESTED)
        with pytest.raises(ValueError, match="not one of the supported values"):
            companion._tag_from_json({"label": "a", "color": "blue"})

    def test_value_types(self, load_generated):
        """UUID, date, datetime and Decimal use their string forms"""
        module, companion = load_generated(VALUE_TYPES)
        invoice = module.Invoice(
            id=UUID("12345678-1234-5678-1234-567812345678"),
            issued=date(2024, 1, 2),
            created=datetime(2024, 1, 2, 3, 4, 5),
            total=Decimal("10.50"),
        )
        encoded = companion._invoice_to_json(invoice)
        assert encoded == {
            "id": "12345678-1234-5678-1234-567812345678",
            "issued": "2024-01-02",
            "created": "2024-01-02T03:04:05",
            "total": "10.50",
            "paid_at": None,
        }
        assert companion._invoice_from_json(encoded) == invoice

    def test_plain_class_with_rename_and_assigned_fields(self, load_generated):
        """Plain classes bind __init__ parameters and assign the remaining attributes"""
        module, companion = load_generated(PLAIN_CLASS)
        account = module.Account("ann", retries=5)
        account.score = 7
        encoded = companion._account_to_json(account)
        assert encoded == {"user-name": "ann", "retries": 5, "pts": 7}

        decoded = companion._account_from_json(encoded)
        assert decoded == account
        assert companion._account_to_json(decoded) == encoded

    def test_plain_class_defaults(self, load_generated):
        """Missing optional parameters keep their Python default; JSON defaults cover missing keys"""
        module, companion = load_generated(PLAIN_CLASS)
        decoded = companion._account_from_json({"user-name": "ann", "nick-name": "a", "pts": None})
        assert decoded.retries == 3
        assert decoded.nick_name == "a"
        assert decoded.score == 0

    def test_generic_argument_factories(self, load_generated):
        """Type parameters are converted through the factory callables"""
        module, companion = load_generated(GENERIC)
        box = module.Box(value=Decimal("1.5"), items=[Decimal("2")])
        encoded = companion._box_to_json(box, str)
        assert encoded == {"value": "1.5", "items": ["2"]}
        assert companion._box_from_json(encoded, Decimal) == box

    def test_generic_class_without_factories_inside_one_with_factories(self, load_generated):
        """A same-unit generic class keeps its own factory setting when nested"""
        module, companion = load_generated(MIXED_GENERIC)
        holder = module.Holder(inner=module.Plain(1), item=2)
        encoded = companion._holder_to_json(holder, lambda v: v)
        assert encoded == {"inner": {"value": 1}, "item": 2}
        assert companion._holder_from_json(encoded, int) == holder


class TestKeyChecks:
    """Generated _check_keys guards"""

    SOURCE = """
    from dataclasses import dataclass
    from typing import Annotated

    from class_to_json_code import JsonKey, json_serializable


    @json_serializable(disallow_unrecognized_keys=True)
    @dataclass
    class Login:
        user: Annotated[str, JsonKey(required=True, disallow_null_value=True)]
        token: str | None = None
    """

    def test_unrecognized_key(self, load_generated):
        _, companion = load_generated(self.SOURCE)
        with pytest.raises(ValueError, match="Unrecognized keys"):
            companion._login_from_json({"user": "u", "extra": 1})

    def test_missing_required_key(self, load_generated):
        _, companion = load_generated(self.SOURCE)
        with pytest.raises(ValueError, match="Required keys are missing"):
            companion._login_from_json({"token": "t"})

    def test_null_value(self, load_generated):
        _, companion = load_generated(self.SOURCE)
        with pytest.raises(ValueError, match="`None` values"):
            companion._login_from_json({"user": None})

    def test_valid_payload(self, load_generated):
        module, companion = load_generated(self.SOURCE)
        assert companion._login_from_json({"user": "u"}) == module.Login(user="u")


class TestEncodeOptions:
    """include_if_null and exclude_default_values"""

    SOURCE = """
    from dataclasses import dataclass

    from class_to_json_code import json_serializable


    @json_serializable
    @dataclass
    class Settings:
        theme: str | None = None
        size: int = 12
        name: str = "main"
    """

    def test_include_if_null_false_drops_none(self, load_generated):
        module, companion = load_generated(self.SOURCE, GeneratorConfig(include_if_null=False))
        assert companion._settings_to_json(module.Settings()) == {"size": 12, "name": "main"}

    def test_exclude_default_values(self, load_generated):
        module, companion = load_generated(self.SOURCE, GeneratorConfig(exclude_default_values=True))
        assert companion._settings_to_json(module.Settings()) == {}
        assert companion._settings_to_json(module.Settings(size=14)) == {"size": 14}
