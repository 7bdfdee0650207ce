"""
Response body transforms

A transform converts the record (or list of records) returned by a handler to the response body:
- raw : return the records as-is, they are serialized by the json provider
- plain : project the loaded attributes and relations of the records to dicts
"""
from typing import Any


def raw(model, result: Any) -> Any:
    return result


def _loaded(record: Any) -> dict:
    """
    The loaded values of a record: SQLAlchemy keeps the loaded attributes
    in the instance __dict__, unloaded (deferred or lazy) attributes are absent
    """
    if isinstance(record, dict):
        return record
    return getattr(record, "__dict__", {})


def plain(model, result: Any) -> Any:
    """
    :param model: ModelDescriptor
    :param result: record or list of records
    :return: dict or list of dicts
    """
    if result is None:
        return None
    if isinstance(result, (list, tuple)):
        return [plain(model, record) for record in result]
    values = _loaded(result)
    data = {name: values[name] for name in model.attributes if name in values}
    for name in model.relations:
        if name in values:
            data[name] = values[name]
    return data
