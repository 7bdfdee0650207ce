"""
Query specifications: the normalized, store-agnostic description of a request
that is handed to the repository, and the upstream request options
"""
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Tuple


ASC = "asc"
DESC = "desc"
# Condition operators
OPERATORS = ("eq", "ne", "gt", "gte", "lt", "lte", "like", "in", "nin")


@dataclass(frozen=True)
class Condition:
    """
    A single comparison on a field, eg. Condition("gte", 10)
    """

    op: str
    value: Any = None

    @classmethod
    def coerce(cls, value: Any) -> Tuple["Condition", ...]:
        """
        Convert a where value given by upstream code to a tuple of conditions
        :param value: Condition, sequence of conditions, list of values (in) or a plain value (eq)
        """
        if isinstance(value, Condition):
            return (value,)
        if isinstance(value, (list, tuple, set, frozenset)):
            if value and all(isinstance(item, Condition) for item in value):
                return tuple(value)
            return (cls("in", tuple(value)),)
        return (cls("eq", value),)


@dataclass(frozen=True)
class QuerySpec:
    """
    Store-agnostic description of a filter/sort/paginate/include request

    :param where: field name -> tuple of conditions that must all hold
    :param attributes: the fields to load, None for all fields
    :param limit: page size, None for no limit
    :param offset: page offset
    :param order: tuple of (field, "asc" | "desc")
    :param include: relations to load eagerly: names when parsed, RelationDescriptors when built
    """

    where: Mapping[str, Tuple[Condition, ...]] = field(default_factory=dict)
    attributes: Optional[Tuple[str, ...]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    order: Tuple[Tuple[str, str], ...] = ()
    include: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class QueryOptions:
    """
    Request options attached by upstream code (eg. an authorization scope),
    unset (None) members leave the client request untouched

    where values may be plain values, lists of values or Conditions, cfr. Condition.coerce
    """

    where: Optional[Mapping[str, Any]] = None
    attributes: Optional[Tuple[str, ...]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    order: Optional[Tuple[Tuple[str, str], ...]] = None
    include: Optional[Tuple[Any, ...]] = None


