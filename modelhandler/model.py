"""
Model descriptors: the handlers only read these, the data model itself is owned by the repository

A descriptor is built once, when the model is registered, so relation names are
resolved against a fixed registry instead of looking up setters by name on every request.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional


@dataclass(frozen=True)
class RelationDescriptor:
    """
    :param name: relation name, as used in request bodies and include= arguments
    :param target: related model (class)
    :param to_many: whether the relation holds a collection
    :param setter: callable(record, value) that sets the relation on a record,
                   it may return an awaitable
    """

    name: str
    target: Any = None
    to_many: bool = False
    setter: Optional[Callable[[Any, Any], Any]] = field(default=None, compare=False)


@dataclass(frozen=True)
class ModelDescriptor:
    """
    :param name: collection name, used in the urls
    :param primary_key: name of the primary key attribute
    :param attributes: attribute name -> python type (None if unknown)
    :param relations: relation name -> RelationDescriptor
    :param model: the underlying model class, if any
    """

    name: str
    primary_key: str = "id"
    attributes: Mapping[str, Optional[type]] = field(default_factory=dict)
    relations: Mapping[str, RelationDescriptor] = field(default_factory=dict)
    model: Any = field(default=None, compare=False)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def attribute_type(self, name: str) -> Optional[type]:
        return self.attributes.get(name)

    def relation(self, name: str) -> Optional[RelationDescriptor]:
        return self.relations.get(name)

    def split_payload(self, payload: Dict[str, Any]):
        """
        Split a request body in the attribute values and the relation values
        :param payload: request body
        :return: attributes dict, relations dict
        """
        attributes = {}
        relations = {}
        for key, value in payload.items():
            if key in self.relations:
                relations[key] = value
            else:
                attributes[key] = value
        return attributes, relations
