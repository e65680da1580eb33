"""Core segment types: distances, scoring results, index and segment configuration."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, TypeVar

DEFAULT_FULL_SCAN_THRESHOLD = 20_000

_E = TypeVar("_E", bound=Enum)


class Distance(Enum):
    """Distance function used to compare vectors."""

    COSINE = "Cosine"
    EUCLID = "Euclid"
    DOT = "Dot"


class Order(Enum):
    """Preferred ordering of scores for a distance."""

    LARGE_BETTER = "large_better"
    SMALL_BETTER = "small_better"


_DISTANCE_ORDERS = {
    Distance.COSINE: Order.LARGE_BETTER,
    Distance.EUCLID: Order.SMALL_BETTER,
    Distance.DOT: Order.LARGE_BETTER,
}


def distance_order(distance: Distance) -> Order:
    """Return the preferred result order for a distance function."""
    return _DISTANCE_ORDERS[distance]


def _score_key(score: float) -> tuple[bool, float]:
    # NaN sorts above every number, as a total float order would place it.
    if math.isnan(score):
        return (True, 0.0)
    return (False, score)


@dataclass(frozen=True)
class ScoredPoint:
    """A point id together with its similarity to a query; ordered by score."""

    id: int
    score: float

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ScoredPoint):
            return NotImplemented
        return _score_key(self.score) < _score_key(other.score)

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ScoredPoint):
            return NotImplemented
        return _score_key(self.score) <= _score_key(other.score)

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ScoredPoint):
            return NotImplemented
        return _score_key(self.score) > _score_key(other.score)

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ScoredPoint):
            return NotImplemented
        return _score_key(self.score) >= _score_key(other.score)

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "score": self.score}


class SegmentType(Enum):
    """Kind of segment, by the index it holds."""

    PLAIN = "plain"
    INDEXED = "indexed"
    SPECIAL = "special"


class PayloadSchemaType(Enum):
    """Type of values stored under a payload key."""

    KEYWORD = "keyword"
    INTEGER = "integer"
    FLOAT = "float"
    GEO = "geo"


@dataclass(frozen=True)
class PayloadSchemaInfo:
    data_type: PayloadSchemaType
    indexed: bool


@dataclass
class SegmentInfo:
    segment_type: SegmentType
    num_vectors: int
    num_deleted_vectors: int
    ram_usage_bytes: int
    disk_usage_bytes: int
    is_appendable: bool
    schema: dict[str, PayloadSchemaInfo] = field(default_factory=dict)


@dataclass(frozen=True)
class SearchParams:
    """Additional search parameters; ``hnsw_ef`` is the beam size of an HNSW search."""

    hnsw_ef: int | None = None


@dataclass(frozen=True)
class HnswConfig:
    """Parameters of an HNSW index."""

    m: int = 16
    ef_construct: int = 100
    full_scan_threshold: int = DEFAULT_FULL_SCAN_THRESHOLD


class PayloadIndexType(Enum):
    PLAIN = "plain"
    STRUCT = "struct"


class StorageType(Enum):
    IN_MEMORY = "in_memory"
    MMAP = "mmap"


def _as_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a JSON object")
    return data


def _require(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ValueError(f"missing field `{key}`") from None


def _as_uint(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"`{name}` must be a non-negative integer, got {value!r}")
    return value


def _enum_value(enum_cls: type[_E], value: Any, what: str) -> _E:
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        raise ValueError(f"unknown {what} `{value!r}`") from None


def _tagged_unit_from_json(enum_cls: type[_E], data: Any, what: str) -> _E:
    mapping = _as_mapping(data, what)
    return _enum_value(enum_cls, _require(mapping, "type"), what)


def _hnsw_from_json(data: Any) -> HnswConfig:
    mapping = _as_mapping(data, "hnsw config")
    return HnswConfig(
        m=_as_uint(_require(mapping, "m"), "m"),
        ef_construct=_as_uint(_require(mapping, "ef_construct"), "ef_construct"),
        full_scan_threshold=_as_uint(
            _require(mapping, "full_scan_threshold"), "full_scan_threshold"
        ),
    )


def _hnsw_to_json(config: HnswConfig) -> dict[str, int]:
    return {
        "m": config.m,
        "ef_construct": config.ef_construct,
        "full_scan_threshold": config.full_scan_threshold,
    }


@dataclass(frozen=True)
class Indexes:
    """Vector index selection: plain full scan when ``hnsw`` is None, HNSW otherwise."""

    hnsw: HnswConfig | None = None

    @property
    def is_plain(self) -> bool:
        return self.hnsw is None

    @classmethod
    def default_hnsw(cls) -> Indexes:
        return cls(HnswConfig())

    @classmethod
    def from_json(cls, data: Any) -> Indexes:
        mapping = _as_mapping(data, "index")
        kind = _require(mapping, "type")
        if kind == "plain":
            _as_mapping(mapping.get("options", {}), "plain index options")
            return cls()
        if kind == "hnsw":
            return cls(_hnsw_from_json(_require(mapping, "options")))
        raise ValueError(f"unknown index type `{kind!r}`")

    def to_json(self) -> dict[str, Any]:
        if self.hnsw is None:
            return {"type": "plain", "options": {}}
        return {"type": "hnsw", "options": _hnsw_to_json(self.hnsw)}


@dataclass
class SegmentConfig:
    """Configuration of a single segment."""

    vector_size: int
    distance: Distance
    index: Indexes = field(default_factory=Indexes)
    payload_index: PayloadIndexType | None = None
    storage_type: StorageType = StorageType.IN_MEMORY

    @classmethod
    def from_json(cls, data: Any) -> SegmentConfig:
        mapping = _as_mapping(data, "segment config")
        raw_payload_index = mapping.get("payload_index")
        payload_index = (
            None
            if raw_payload_index is None
            else _tagged_unit_from_json(PayloadIndexType, raw_payload_index, "payload index type")
        )
        return cls(
            vector_size=_as_uint(_require(mapping, "vector_size"), "vector_size"),
            distance=_enum_value(Distance, _require(mapping, "distance"), "distance"),
            index=Indexes.from_json(_require(mapping, "index")),
            payload_index=payload_index,
            storage_type=_tagged_unit_from_json(
                StorageType, _require(mapping, "storage_type"), "storage type"
            ),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "vector_size": self.vector_size,
            "distance": self.distance.value,
            "index": self.index.to_json(),
            "payload_index": (
                None if self.payload_index is None else {"type": self.payload_index.value}
            ),
            "storage_type": {"type": self.storage_type.value},
        }


@dataclass
class SegmentState:
    """Persisted state of a segment: its version and configuration."""

    version: int
    config: SegmentConfig

    @classmethod
    def from_json(cls, data: Any) -> SegmentState:
        mapping = _as_mapping(data, "segment state")
        return cls(
            version=_as_uint(_require(mapping, "version"), "version"),
            config=SegmentConfig.from_json(_require(mapping, "config")),
        )

    def to_json(self) -> dict[str, Any]:
        return {"version": self.version, "config": self.config.to_json()}