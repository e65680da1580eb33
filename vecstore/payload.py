"""Point payload values and the filter language used to query them."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from vecstore.types import PayloadSchemaType

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _required(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _keyword(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a string, got {value!r}")
    return value


def _integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected an integer, got {value!r}")
    if not _I64_MIN <= value <= _I64_MAX:
        raise ValueError(f"integer {value} is out of range")
    return value


def _float(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {value!r}")
    return float(value)


def _optional(value: Any, parse: Callable[[Any], Any]) -> Any:
    return None if value is None else parse(value)


def _item_json(item: Any) -> Any:
    return item.to_json() if isinstance(item, GeoPoint) else item


@dataclass(frozen=True)
class GeoPoint:
    """A geographic location in degrees."""

    lon: float
    lat: float

    @classmethod
    def from_json(cls, data: Any) -> GeoPoint:
        mapping = _mapping(data, "geo point")
        return cls(
            lon=_float(_required(mapping, "lon")),
            lat=_float(_required(mapping, "lat")),
        )

    def to_json(self) -> dict[str, float]:
        return {"lon": self.lon, "lat": self.lat}


_ITEM_PARSERS: dict[PayloadSchemaType, Callable[[Any], Any]] = {
    PayloadSchemaType.KEYWORD: _keyword,
    PayloadSchemaType.INTEGER: _integer,
    PayloadSchemaType.FLOAT: _float,
    PayloadSchemaType.GEO: GeoPoint.from_json,
}


def _schema_type(value: Any) -> PayloadSchemaType:
    try:
        return PayloadSchemaType(value)
    except (ValueError, TypeError):
        raise ValueError(f"unknown payload type `{value!r}`") from None


@dataclass
class PayloadType:
    """Stored payload: a list of values of a single type."""

    data_type: PayloadSchemaType
    values: list[Any]

    @classmethod
    def from_json(cls, data: Any) -> PayloadType:
        mapping = _mapping(data, "payload")
        data_type = _schema_type(_required(mapping, "type"))
        raw = _required(mapping, "value")
        if not isinstance(raw, list):
            raise ValueError("payload value must be a list")
        parse = _ITEM_PARSERS[data_type]
        return cls(data_type, [parse(item) for item in raw])

    def to_json(self) -> dict[str, Any]:
        return {
            "type": self.data_type.value,
            "value": [_item_json(item) for item in self.values],
        }


def schema_type_of(payload: PayloadType) -> PayloadSchemaType:
    """Return the schema type of a stored payload."""
    return payload.data_type


@dataclass
class PayloadVariant:
    """Either a single value or a list of values; a Python list means the list form."""

    value: Any

    @property
    def is_list(self) -> bool:
        return isinstance(self.value, list)

    def to_list(self) -> list[Any]:
        return list(self.value) if self.is_list else [self.value]

    def to_json(self) -> Any:
        if self.is_list:
            return [_item_json(item) for item in self.value]
        return _item_json(self.value)


def _parse_variant(data: Any, parse: Callable[[Any], Any]) -> PayloadVariant:
    if isinstance(data, list):
        try:
            return PayloadVariant([parse(item) for item in data])
        except ValueError:
            pass
    return PayloadVariant(parse(data))


_SHORTCUT_ORDER = (
    PayloadSchemaType.KEYWORD,
    PayloadSchemaType.INTEGER,
    PayloadSchemaType.FLOAT,
)


@dataclass
class PayloadInterface:
    """Payload as accepted from users: a bare shortcut value or a typed (strict) form."""

    data_type: PayloadSchemaType
    variant: PayloadVariant
    strict: bool = False

    def __post_init__(self) -> None:
        if not self.strict and self.data_type not in _SHORTCUT_ORDER:
            raise ValueError(f"no shortcut form for `{self.data_type.value}` payload")

    @classmethod
    def from_json(cls, data: Any) -> PayloadInterface:
        for data_type in _SHORTCUT_ORDER:
            try:
                return cls(data_type, _parse_variant(data, _ITEM_PARSERS[data_type]))
            except ValueError:
                continue
        try:
            mapping = _mapping(data, "payload")
            data_type = _schema_type(_required(mapping, "type"))
            variant = _parse_variant(_required(mapping, "value"), _ITEM_PARSERS[data_type])
            return cls(data_type, variant, strict=True)
        except ValueError:
            pass
        raise ValueError("data did not match any variant of untagged enum PayloadInterface")

    def to_json(self) -> Any:
        if self.strict:
            return {"type": self.data_type.value, "value": self.variant.to_json()}
        return self.variant.to_json()

    def to_payload_type(self) -> PayloadType:
        return PayloadType(self.data_type, self.variant.to_list())


@dataclass
class Match:
    """Value a payload field must hold."""

    keyword: Optional[str] = None
    integer: Optional[int] = None

    @classmethod
    def from_json(cls, data: Any) -> Match:
        mapping = _mapping(data, "match")
        return cls(
            keyword=_optional(mapping.get("keyword"), _keyword),
            integer=_optional(mapping.get("integer"), _integer),
        )

    def to_json(self) -> dict[str, Any]:
        return {"keyword": self.keyword, "integer": self.integer}


@dataclass
class Range:
    """Bounds a numeric payload field must lie within."""

    lt: Optional[float] = None
    gt: Optional[float] = None
    gte: Optional[float] = None
    lte: Optional[float] = None

    @classmethod
    def from_json(cls, data: Any) -> Range:
        mapping = _mapping(data, "range")
        return cls(**{key: _optional(mapping.get(key), _float) for key in ("lt", "gt", "gte", "lte")})

    def to_json(self) -> dict[str, Any]:
        return {"lt": self.lt, "gt": self.gt, "gte": self.gte, "lte": self.lte}


@dataclass
class GeoBoundingBox:
    """Rectangular area given by its top-left and bottom-right corners."""

    top_left: GeoPoint
    bottom_right: GeoPoint

    @classmethod
    def from_json(cls, data: Any) -> GeoBoundingBox:
        mapping = _mapping(data, "geo bounding box")
        return cls(
            top_left=GeoPoint.from_json(_required(mapping, "top_left")),
            bottom_right=GeoPoint.from_json(_required(mapping, "bottom_right")),
        )

    def to_json(self) -> dict[str, Any]:
        return {"top_left": self.top_left.to_json(), "bottom_right": self.bottom_right.to_json()}


@dataclass
class GeoRadius:
    """Circular area: a center and a radius in meters."""

    center: GeoPoint
    radius: float

    @classmethod
    def from_json(cls, data: Any) -> GeoRadius:
        mapping = _mapping(data, "geo radius")
        return cls(
            center=GeoPoint.from_json(_required(mapping, "center")),
            radius=_float(_required(mapping, "radius")),
        )

    def to_json(self) -> dict[str, Any]:
        return {"center": self.center.to_json(), "radius": self.radius}


@dataclass
class FieldCondition:
    """Condition on the payload stored under ``key``."""

    key: str
    match: Optional[Match] = None
    range: Optional[Range] = None
    geo_bounding_box: Optional[GeoBoundingBox] = None
    geo_radius: Optional[GeoRadius] = None

    @classmethod
    def from_json(cls, data: Any) -> FieldCondition:
        mapping = _mapping(data, "field condition")
        return cls(
            key=_keyword(_required(mapping, "key")),
            match=_optional(mapping.get("match"), Match.from_json),
            range=_optional(mapping.get("range"), Range.from_json),
            geo_bounding_box=_optional(mapping.get("geo_bounding_box"), GeoBoundingBox.from_json),
            geo_radius=_optional(mapping.get("geo_radius"), GeoRadius.from_json),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "match": None if self.match is None else self.match.to_json(),
            "range": None if self.range is None else self.range.to_json(),
            "geo_bounding_box": (
                None if self.geo_bounding_box is None else self.geo_bounding_box.to_json()
            ),
            "geo_radius": None if self.geo_radius is None else self.geo_radius.to_json(),
        }


def _point_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < 2**64:
        raise ValueError(f"point id must be an unsigned 64-bit integer, got {value!r}")
    return value


@dataclass(frozen=True)
class HasIdCondition:
    """Condition satisfied by points whose id is in ``has_id``."""

    has_id: frozenset[int]

    def __init__(self, has_id: Iterable[int]) -> None:
        object.__setattr__(self, "has_id", frozenset(has_id))

    @classmethod
    def from_json(cls, data: Any) -> HasIdCondition:
        mapping = _mapping(data, "has_id condition")
        raw = _required(mapping, "has_id")
        if not isinstance(raw, list):
            raise ValueError("`has_id` must be a list")
        return cls(_point_id(item) for item in raw)

    def to_json(self) -> dict[str, Any]:
        return {"has_id": sorted(self.has_id)}


Condition = Union[FieldCondition, HasIdCondition, "Filter"]


def parse_condition(data: Any) -> Condition:
    """Parse a condition: a field condition, an id set, or a nested filter, tried in that order."""
    parsers: tuple[Callable[[Any], Condition], ...] = (
        FieldCondition.from_json,
        HasIdCondition.from_json,
        Filter.from_json,
    )
    for parse in parsers:
        try:
            return parse(data)
        except ValueError:
            continue
    raise ValueError("data did not match any variant of untagged enum Condition")


def _conditions(value: Any, name: str) -> Optional[list[Condition]]:
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValueError(f"`{name}` must be a list of conditions")
    return [parse_condition(item) for item in value]


def _conditions_json(conditions: Optional[list[Condition]]) -> Optional[list[Any]]:
    if conditions is None:
        return None
    return [condition.to_json() for condition in conditions]


_FILTER_KEYS = frozenset({"should", "must", "must_not"})


@dataclass
class Filter:
    """Boolean combination of conditions."""

    should: Optional[list[Condition]] = None
    must: Optional[list[Condition]] = None
    must_not: Optional[list[Condition]] = None

    @classmethod
    def new_should(cls, condition: Condition) -> Filter:
        return cls(should=[condition])

    @classmethod
    def new_must(cls, condition: Condition) -> Filter:
        return cls(must=[condition])

    @classmethod
    def new_must_not(cls, condition: Condition) -> Filter:
        return cls(must_not=[condition])

    @classmethod
    def from_json(cls, data: Any) -> Filter:
        mapping = _mapping(data, "filter")
        unknown = set(mapping) - _FILTER_KEYS
        if unknown:
            raise ValueError(f"unknown field `{sorted(unknown)[0]}` in filter")
        return cls(
            should=_conditions(mapping.get("should"), "should"),
            must=_conditions(mapping.get("must"), "must"),
            must_not=_conditions(mapping.get("must_not"), "must_not"),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "should": _conditions_json(self.should),
            "must": _conditions_json(self.must),
            "must_not": _conditions_json(self.must_not),
        }


def _is_finite(value: float) -> bool:
    return not (math.isnan(value) or math.isinf(value))