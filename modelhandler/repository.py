"""
Repository adapter interface

The handlers only talk to the data store through these operations, cfr. sqla.SQLAlchemyRepository
"""
import abc
import inspect
from typing import Any, Dict, List, Optional, Tuple
from .query import QuerySpec


class Repository(abc.ABC):
    """
    CRUD operations on the records of one model.
    Errors raised by the store are propagated to the caller.
    """

    @abc.abstractmethod
    def create(self, attributes: Dict[str, Any]) -> Any:
        """
        :param attributes: record attributes
        :return: the created record
        """

    @abc.abstractmethod
    def find_one(self, spec: QuerySpec) -> Optional[Any]:
        """
        :return: the first record matching the spec, None if there's no match
        """

    @abc.abstractmethod
    def find_and_count(self, spec: QuerySpec) -> Tuple[List[Any], int]:
        """
        :return: the page of records described by the spec and the total count of the matching records
        """

    @abc.abstractmethod
    def destroy(self, record: Any) -> None:
        ...

    @abc.abstractmethod
    def update_attributes(self, record: Any, attributes: Dict[str, Any]) -> Any:
        """
        :return: the updated record
        """

    async def set_association(self, record: Any, relation, value: Any) -> None:
        """
        Set a relation of a record with the setter of the RelationDescriptor.
        This is a coroutine so all the association writes of a request can be awaited together.

        :param record: record
        :param relation: RelationDescriptor
        :param value: related record id(s), as found in the request body
        """
        result = relation.setter(record, value)
        if inspect.isawaitable(result):
            await result

    def commit(self) -> None:
        """
        Called once at the end of a successful request, stores without transactions can ignore it
        """

    def rollback(self) -> None:
        """
        Called when a request failed, stores without transactions can ignore it
        """
