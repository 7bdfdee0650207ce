import datetime

import pytest

from modelhandler.errors import MalformedQueryError
from modelhandler.parser import parse, parse_condition, coerce_value
from modelhandler.query import Condition, QuerySpec


def test_parse_equality_filter_and_pagination(widget_model):
    spec = parse({"color": "red", "limit": "2", "offset": "0"}, widget_model)
    assert spec == QuerySpec(where={"color": (Condition("eq", "red"),)}, limit=2, offset=0)


def test_parse_is_deterministic(widget_model):
    params = {"color": ["red", "blue"], "sort": "-price,name", "include": "tags", "fields": "name"}
    assert parse(params, widget_model) == parse(dict(params), widget_model)


def test_unknown_arguments_are_dropped(widget_model):
    spec = parse({"colour": "red", "utm_source": "mail", "color": "blue"}, widget_model)
    assert list(spec.where) == ["color"]


def test_filter_values_are_coerced(widget_model):
    spec = parse({"price": "$gte:2.5", "owner_id": "3"}, widget_model)
    assert spec.where["price"] == (Condition("gte", 2.5),)
    assert spec.where["owner_id"] == (Condition("eq", 3),)


def test_null_means_unset(widget_model):
    spec = parse({"deleted_at": "null", "name": "$ne:null"}, widget_model)
    assert spec.where["deleted_at"] == (Condition("eq", None),)
    assert spec.where["name"] == (Condition("ne", None),)


def test_in_operator_and_repeated_arguments(widget_model):
    assert parse({"color": "$in:red,blue"}, widget_model).where["color"] == (Condition("in", ("red", "blue")),)
    assert parse({"color": ["red", "blue"]}, widget_model).where["color"] == (Condition("in", ("red", "blue")),)
    assert parse({"owner_id": "$nin:1,2"}, widget_model).where["owner_id"] == (Condition("nin", (1, 2)),)


def test_repeated_operator_arguments_are_combined(widget_model):
    spec = parse({"price": ["$gt:1", "$lte:4"]}, widget_model)
    assert spec.where["price"] == (Condition("gt", 1.0), Condition("lte", 4.0))


def test_unknown_operator_is_malformed(widget_model):
    with pytest.raises(MalformedQueryError):
        parse({"price": "$between:1,2"}, widget_model)


def test_uncoercible_value_is_malformed(widget_model):
    with pytest.raises(MalformedQueryError):
        parse({"owner_id": "alice"}, widget_model)


@pytest.mark.parametrize("params", [{"limit": "0"}, {"limit": "ten"}, {"offset": "-1"}, {"limit": ["1", "2"]}])
def test_invalid_pagination_is_malformed(widget_model, params):
    with pytest.raises(MalformedQueryError):
        parse(params, widget_model)


def test_sort(widget_model):
    spec = parse({"sort": "-price,+name,unknown,color"}, widget_model)
    assert spec.order == (("price", "desc"), ("name", "asc"), ("color", "asc"))
    assert parse({"order": ["-id"]}, widget_model).order == (("id", "desc"),)


def test_fields_always_contain_the_primary_key(widget_model):
    assert parse({"fields": "name,color,bogus"}, widget_model).attributes == ("id", "name", "color")
    assert parse({"fields": "bogus"}, widget_model).attributes is None
    assert parse({}, widget_model).attributes is None


def test_include_names_are_not_validated(widget_model):
    # relation names are resolved by the builder
    assert parse({"include": "tags,nope"}, widget_model).include == ("tags", "nope")


def test_coerce_value():
    assert coerce_value("true", bool) is True
    assert coerce_value("0", bool) is False
    assert coerce_value("2024-01-02T03:04:05", datetime.datetime) == datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert coerce_value("abc", None) == "abc"
    with pytest.raises(MalformedQueryError):
        coerce_value("maybe", bool)


def test_like_operand_is_not_coerced():
    assert parse_condition("$like:red%", str) == Condition("like", "red%")
