import json

import pytest

from vecstore.payload import (
    FieldCondition,
    Filter,
    GeoBoundingBox,
    GeoPoint,
    HasIdCondition,
    Match,
    PayloadInterface,
    PayloadType,
    PayloadVariant,
    Range,
    parse_condition,
    schema_type_of,
)
from vecstore.types import PayloadSchemaType


def _parse(text):
    return PayloadInterface.from_json(json.loads(text))


def test_strict_geo_parse():
    payload = _parse('{"type": "geo", "value": {"lon": 1.0, "lat": 1.0}}').to_payload_type()
    assert payload.data_type is PayloadSchemaType.GEO
    assert len(payload.values) == 1
    assert payload.values[0].lat == 1.0
    assert payload.values[0].lon == 1.0


@pytest.mark.parametrize(
    "text",
    ['["Berlin", "Barcelona", "Moscow"]', '{"type": "keyword", "value": ["Berlin", "Barcelona", "Moscow"]}'],
)
def test_keyword_parse(text):
    payload = _parse(text).to_payload_type()
    assert payload.data_type is PayloadSchemaType.KEYWORD
    assert payload.values == ["Berlin", "Barcelona", "Moscow"]


@pytest.mark.parametrize("text", ["[1, 2, 3]", '{"type": "integer", "value": [1, 2, 3]}'])
def test_integer_parse(text):
    payload = _parse(text).to_payload_type()
    assert payload.data_type is PayloadSchemaType.INTEGER
    assert payload.values == [1, 2, 3]


@pytest.mark.parametrize("text", ["[1.0, 2.0, 3.0]", '{"type": "float", "value": [1.0, 2.0, 3.0]}'])
def test_float_parse(text):
    payload = _parse(text).to_payload_type()
    assert payload.data_type is PayloadSchemaType.FLOAT
    assert payload.values == [1.0, 2.0, 3.0]


def test_strict_deserialize_int_list_is_shortcut():
    payload = _parse("[1, 2]")
    assert payload == PayloadInterface(PayloadSchemaType.INTEGER, PayloadVariant([1, 2]))
    assert not payload.strict


def test_unparsable_payload_raises():
    with pytest.raises(ValueError):
        PayloadInterface.from_json({"type": "unknown", "value": 1})
    with pytest.raises(ValueError):
        PayloadInterface.from_json(True)


def test_geo_shortcut_not_allowed():
    with pytest.raises(ValueError):
        PayloadInterface(PayloadSchemaType.GEO, PayloadVariant(GeoPoint(1.0, 1.0)))


@pytest.mark.parametrize(
    "payload",
    [
        PayloadInterface(PayloadSchemaType.KEYWORD, PayloadVariant("val"), strict=True),
        PayloadInterface(PayloadSchemaType.INTEGER, PayloadVariant([1, 2]), strict=True),
        PayloadInterface(PayloadSchemaType.INTEGER, PayloadVariant([1, 2])),
        PayloadInterface(PayloadSchemaType.KEYWORD, PayloadVariant("val")),
        PayloadInterface(PayloadSchemaType.KEYWORD, PayloadVariant(["val", "val2"])),
        PayloadInterface(PayloadSchemaType.FLOAT, PayloadVariant(1.22)),
        PayloadInterface(PayloadSchemaType.FLOAT, PayloadVariant(1.0)),
        PayloadInterface(PayloadSchemaType.INTEGER, PayloadVariant(1)),
        PayloadInterface(PayloadSchemaType.GEO, PayloadVariant([GeoPoint(1.5, 2.5)]), strict=True),
    ],
)
def test_json_round_trip(payload):
    restored = PayloadInterface.from_json(json.loads(json.dumps(payload.to_json())))
    assert restored == payload


def test_variant_json_and_list():
    assert PayloadVariant("val").to_json() == "val"
    assert PayloadVariant(["val", "val2"]).to_json() == ["val", "val2"]
    assert PayloadVariant("val").to_list() == ["val"]
    assert PayloadVariant([1, 2]).to_list() == [1, 2]


def test_payload_type_round_trip_and_schema():
    label = PayloadType(PayloadSchemaType.KEYWORD, ["Hello"])
    assert label.to_json() == {"type": "keyword", "value": ["Hello"]}
    assert PayloadType.from_json(label.to_json()) == label
    assert schema_type_of(label) is PayloadSchemaType.KEYWORD


def test_serialize_query_round_trip():
    flt = Filter(
        must=[FieldCondition(key="hello", match=Match(keyword="world"))],
    )
    data = json.loads(json.dumps(flt.to_json()))
    assert data["must"][0]["match"]["keyword"] == "world"
    assert Filter.from_json(data) == flt


def test_deny_unknown_fields():
    with pytest.raises(ValueError):
        Filter.from_json(json.loads('{"wrong": "query"}'))


def test_payload_query_parse():
    query = """
    {
        "must": [
            {"key": "hello", "match": {"integer": 42}},
            {
                "must_not": [
                    {"has_id": [1, 2, 3, 4]},
                    {
                        "key": "geo_field",
                        "geo_bounding_box": {
                            "top_left": {"lon": 13.410146, "lat": 52.519289},
                            "bottom_right": {"lon": 13.432683, "lat": 52.505582}
                        }
                    }
                ]
            }
        ]
    }
    """
    flt = Filter.from_json(json.loads(query))
    assert flt.must_not is None
    assert len(flt.must) == 2
    first, nested = flt.must
    assert isinstance(first, FieldCondition)
    assert first.match.integer == 42
    assert isinstance(nested, Filter)
    assert len(nested.must_not) == 2
    assert nested.must_not[0] == HasIdCondition({1, 2, 3, 4})
    bbox = nested.must_not[1].geo_bounding_box
    assert bbox == GeoBoundingBox(GeoPoint(13.410146, 52.519289), GeoPoint(13.432683, 52.505582))


def test_filter_constructors():
    cond = HasIdCondition([3])
    assert Filter.new_should(cond) == Filter(should=[cond])
    assert Filter.new_must(cond) == Filter(must=[cond])
    assert Filter.new_must_not(cond) == Filter(must_not=[cond])


def test_parse_condition_rejects_garbage():
    with pytest.raises(ValueError):
        parse_condition({"key": 5})
    with pytest.raises(ValueError):
        parse_condition({"has_id": [-1]})


def test_range_round_trip():
    cond = FieldCondition(key="int", range=Range(gte=50.0, lte=100.0))
    assert parse_condition(json.loads(json.dumps(cond.to_json()))) == cond