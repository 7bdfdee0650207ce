# Query builder
#
# The builder combines the parsed request parameters with the endpoint Policy and the
# upstream request options (eg. auth scoping) into the QuerySpec handed to the repository:
#  1. parse the request parameters
#  2. restrict the parsed spec to the allowed fields
#  3. merge the upstream options, these always win
#  4. pagination defaults (or a primary key lookup)
#  5. soft delete suppression
#  6. drop or resolve the included relations
#
from dataclasses import replace
from typing import Any, Dict, Optional, Tuple
import modelhandler
from .errors import MalformedQueryError, NotFoundError
from .parser import parse, coerce_value
from .query import Condition, QueryOptions, QuerySpec


def restrict(spec: QuerySpec, allowed_fields, model) -> QuerySpec:
    """
    Drop everything that isn't on the allow-list from a (client) query spec
    :param spec: parsed QuerySpec
    :param allowed_fields: allowed field and relation names
    :param model: ModelDescriptor, the primary key is always part of the projection
    :return: restricted QuerySpec
    """
    allowed = set(allowed_fields)
    where = {name: conditions for name, conditions in spec.where.items() if name in allowed}
    primary_key = model.primary_key
    requested = spec.attributes if spec.attributes is not None else tuple(name for name in model.attributes if name in allowed)
    attributes = [name for name in requested if name in allowed and name != primary_key and model.has_attribute(name)]
    attributes.insert(0, primary_key)
    order = tuple((name, direction) for name, direction in spec.order if name in allowed)
    include = tuple(name for name in spec.include if name in allowed)
    return replace(spec, where=where, attributes=tuple(attributes), order=order, include=include)


def merge_options(spec: QuerySpec, options: Optional[QueryOptions]) -> QuerySpec:
    """
    Merge the upstream options into the client query spec.
    The upstream options always win: when both constrain the same field, the
    client conditions for that field are ignored

    :param spec: client QuerySpec
    :param options: upstream QueryOptions
    :return: merged QuerySpec
    """
    if options is None:
        return spec
    where = dict(spec.where)
    for name, value in (options.where or {}).items():
        if name in where:
            modelhandler.log.debug(f"Ignoring client filter on {name}, it is set by the request options")
        where[name] = Condition.coerce(value)
    changes: Dict[str, Any] = {"where": where}
    for member in ("attributes", "limit", "offset", "order", "include"):
        value = getattr(options, member)
        if value is not None:
            changes[member] = tuple(value) if isinstance(value, list) else value
    return replace(spec, **changes)


def resolve_includes(model, names) -> Tuple[Any, ...]:
    """
    :param model: ModelDescriptor
    :param names: relation names (or RelationDescriptors)
    :return: tuple of RelationDescriptors
    """
    result = []
    for name in names:
        if not isinstance(name, str):
            result.append(name)
            continue
        relation = model.relation(name)
        if relation is None:
            raise MalformedQueryError(f'Invalid relationship "{name}" for {model.name}')
        result.append(relation)
    return tuple(result)


def primary_key_value(model, key):
    """
    Convert the key from the url path to the primary key type,
    a key that can't be converted can't exist
    """
    try:
        return coerce_value(key, model.attribute_type(model.primary_key))
    except MalformedQueryError:
        raise NotFoundError(f"{model.name} {key}")


def build(params, model, policy, options: Optional[QueryOptions] = None, key: Any = None) -> QuerySpec:
    """
    Build the query spec for a request

    :param params: flat request parameters (query string, merged with the path parameters)
    :param model: ModelDescriptor
    :param policy: endpoint Policy
    :param options: upstream QueryOptions
    :param key: primary key from the url path, if given we build a lookup for a single record
    :return: QuerySpec
    """
    spec = parse(params, model)

    if policy.allowed_fields is not None:
        spec = restrict(spec, policy.allowed_fields, model)

    spec = merge_options(spec, options)
    where = dict(spec.where)

    if key is not None:
        # single record lookups aren't paginated and find soft deleted records
        pk = model.primary_key
        pk_conditions = Condition.coerce(options.where[pk]) if options and options.where and pk in options.where else ()
        where[pk] = pk_conditions + (Condition("eq", primary_key_value(model, key)),)
        spec = replace(spec, limit=None, offset=None)
    else:
        limit = spec.limit if spec.limit is not None else policy.default_limit
        offset = spec.offset if spec.offset is not None else policy.default_offset
        if limit is not None and policy.max_limit is not None and limit > policy.max_limit:
            limit = policy.max_limit
        spec = replace(spec, limit=limit, offset=offset)

        marker = policy.soft_delete_attribute
        if policy.soft_delete and not policy.query_deleted and marker not in where:
            # only return those that haven't been deleted, unless the client filters on the marker
            where[marker] = (Condition("eq", None),)

    if policy.include_associations:
        include = resolve_includes(model, spec.include)
    else:
        include = ()

    return replace(spec, where=where, include=include)
