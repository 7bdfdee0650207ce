# Request parameter parsing
#
# Translates the flat request parameters (query string merged with the path parameters)
# into a QuerySpec. Reserved arguments:
#   limit=, offset=               : pagination
#   sort= (order=)                : csv, prefix a field with "-" for a descending sort
#   fields= (attributes=)         : csv, the fields to load
#   include=                      : csv, the relations to load
# Any other argument naming a model attribute is a filter:
#   color=red                     : equality
#   deleted_at=null               : the attribute is not set
#   price=$gte:10                 : comparison, operators are listed in query.OPERATORS
#   color=$in:red,blue            : csv for the in and nin operators
#   color=red&color=blue          : repeated arguments mean "in"
# Arguments that don't name an attribute are ignored.
#
# No policy is applied here, cfr. builder.build
#
import datetime
import modelhandler
from typing import Any, Dict, Optional, Tuple
from .errors import MalformedQueryError
from .query import ASC, DESC, OPERATORS, Condition, QuerySpec

LIMIT_ARGS = ("limit",)
OFFSET_ARGS = ("offset",)
SORT_ARGS = ("sort", "order")
FIELDS_ARGS = ("fields", "attributes")
INCLUDE_ARGS = ("include",)
RESERVED_ARGS = LIMIT_ARGS + OFFSET_ARGS + SORT_ARGS + FIELDS_ARGS + INCLUDE_ARGS

NULL = "null"
OPERATOR_PREFIX = "$"
TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off")


def _first(params: Dict[str, Any], names: Tuple[str, ...]):
    for name in names:
        if name in params:
            return params[name]
    return None


def _csv(value) -> Tuple[str, ...]:
    """
    :param value: csv string or list of csv strings
    :return: tuple of the non-empty items
    """
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        value = [value]
    result = []
    for item in value:
        result += [part.strip() for part in str(item).split(",") if part.strip()]
    return tuple(result)


def _scalar(value, name: str):
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            raise MalformedQueryError(f"Multiple values for {name}")
        value = value[0]
    return value


def parse_int(value, name: str, minimum: int = 0) -> Optional[int]:
    """
    :param value: request argument value
    :param name: argument name, used in the error message
    :param minimum: smallest accepted value
    :return: integer value or None if the argument wasn't given
    """
    if value is None:
        return None
    value = _scalar(value, name)
    try:
        result = int(value)
    except (TypeError, ValueError):
        raise MalformedQueryError(f'Invalid {name} "{value}"')
    if result < minimum:
        raise MalformedQueryError(f'Invalid {name} "{value}"')
    return result


def coerce_value(value: Any, python_type: Optional[type]) -> Any:
    """
    Convert a request argument string to the attribute type
    :param value: argument value
    :param python_type: attribute type, as found in ModelDescriptor.attributes
    :return: converted value
    """
    if value is None or python_type is None or not isinstance(value, str):
        return value
    if value == NULL:
        return None
    try:
        if python_type is bool:
            lowered = value.lower()
            if lowered in TRUE_VALUES:
                return True
            if lowered in FALSE_VALUES:
                return False
            raise ValueError(value)
        if python_type in (int, float):
            return python_type(value)
        if python_type is datetime.datetime:
            return datetime.datetime.fromisoformat(value)
        if python_type is datetime.date:
            return datetime.date.fromisoformat(value)
    except ValueError:
        raise MalformedQueryError(f'Invalid value "{value}", expected {python_type.__name__}')
    return value


def parse_condition(value: Any, python_type: Optional[type] = None) -> Condition:
    """
    :param value: filter argument value, eg. "red", "null" or "$gte:10"
    :param python_type: attribute type
    :return: Condition
    """
    if isinstance(value, str) and value.startswith(OPERATOR_PREFIX):
        op, sep, operand = value[len(OPERATOR_PREFIX) :].partition(":")
        if not sep or op not in OPERATORS:
            raise MalformedQueryError(f'Invalid filter operator "{value}"')
        if op in ("in", "nin"):
            return Condition(op, tuple(coerce_value(item, python_type) for item in _csv(operand)))
        if op == "like":
            return Condition(op, operand)
        return Condition(op, None if operand == NULL else coerce_value(operand, python_type))
    if value == NULL:
        return Condition("eq", None)
    return Condition("eq", coerce_value(value, python_type))


def parse_filter(value: Any, python_type: Optional[type] = None) -> Tuple[Condition, ...]:
    """
    :param value: filter argument value or list of values (repeated argument)
    :param python_type: attribute type
    :return: tuple of conditions, all of them must hold
    """
    if not isinstance(value, (list, tuple)):
        return (parse_condition(value, python_type),)
    if len(value) == 1:
        return (parse_condition(value[0], python_type),)
    if any(isinstance(item, str) and item.startswith(OPERATOR_PREFIX) for item in value):
        return tuple(parse_condition(item, python_type) for item in value)
    return (Condition("in", tuple(coerce_value(item, python_type) for item in value)),)


def parse_order(value, model) -> Tuple[Tuple[str, str], ...]:
    """
    :param value: sort= argument, eg. "-price,name"
    :param model: ModelDescriptor
    :return: tuple of (field, direction)
    """
    result = []
    for item in _csv(value):
        direction = ASC
        if item[0] in "-+":
            direction = DESC if item[0] == "-" else ASC
            item = item[1:]
        if not model.has_attribute(item):
            modelhandler.log.debug(f"{model.name} has no attribute {item}, not sorting")
            continue
        result.append((item, direction))
    return tuple(result)


def parse_fields(value, model) -> Optional[Tuple[str, ...]]:
    """
    :param value: fields= argument
    :param model: ModelDescriptor
    :return: the requested fields, None if no valid field was requested
    """
    fields = [name for name in _csv(value) if model.has_attribute(name)]
    if not fields:
        return None
    if model.primary_key not in fields:
        fields.insert(0, model.primary_key)
    return tuple(dict.fromkeys(fields))


def parse(params: Dict[str, Any], model) -> QuerySpec:
    """
    :param params: flat request parameters, values are strings or lists of strings
    :param model: ModelDescriptor
    :return: QuerySpec
    """
    where = {}
    for name, value in params.items():
        if name in RESERVED_ARGS:
            continue
        if not model.has_attribute(name):
            modelhandler.log.debug(f"Ignoring request argument {name}, not an attribute of {model.name}")
            continue
        where[name] = parse_filter(value, model.attribute_type(name))

    return QuerySpec(
        where=where,
        attributes=parse_fields(_first(params, FIELDS_ARGS), model),
        limit=parse_int(_first(params, LIMIT_ARGS), "limit", minimum=1),
        offset=parse_int(_first(params, OFFSET_ARGS), "offset"),
        order=parse_order(_first(params, SORT_ARGS), model),
        include=_csv(_first(params, INCLUDE_ARGS)),
    )
