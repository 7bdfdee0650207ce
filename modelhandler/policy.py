"""
Endpoint policies

A Policy is fixed when the handlers are built (at startup) and shared by all the
requests to the endpoint, it is never modified: use `replace` to derive a new one.
"""
from dataclasses import dataclass, replace as dataclass_replace
from typing import FrozenSet, Optional
from .config import get_config, get_int_config


@dataclass(frozen=True)
class Policy:
    """
    :param default_limit: page size used when the client doesn't send a limit, None for no limit
    :param default_offset: page offset used when the client doesn't send an offset
    :param max_limit: requested limits are clamped to this value
    :param allowed_fields: if set, the client can only filter, sort, select and include these fields
    :param include_associations: allow the client to load relations with include=
    :param update_associations: set the relations found in the create and update request bodies
    :param soft_delete: remove sets the soft_delete_attribute timestamp instead of destroying the record
    :param query_deleted: list soft deleted records by default
    :param soft_delete_attribute: the soft delete timestamp attribute
    """

    default_limit: Optional[int] = 50
    default_offset: int = 0
    max_limit: Optional[int] = 10000
    allowed_fields: Optional[FrozenSet[str]] = None
    include_associations: bool = False
    update_associations: bool = False
    soft_delete: bool = False
    query_deleted: bool = False
    soft_delete_attribute: str = "deleted_at"

    def __post_init__(self):
        if self.allowed_fields is not None and not isinstance(self.allowed_fields, frozenset):
            object.__setattr__(self, "allowed_fields", frozenset(self.allowed_fields))

    @classmethod
    def from_config(cls, **overrides) -> "Policy":
        """
        Create a policy with the configured defaults
        :param overrides: Policy members
        """
        settings = dict(
            default_limit=get_int_config("DEFAULT_PAGE_LIMIT"),
            default_offset=get_int_config("DEFAULT_PAGE_OFFSET"),
            max_limit=get_int_config("MAX_PAGE_LIMIT"),
            soft_delete_attribute=get_config("SOFT_DELETE_ATTRIBUTE"),
        )
        settings.update(overrides)
        return cls(**settings)

    def replace(self, **overrides) -> "Policy":
        if not overrides:
            return self
        return dataclass_replace(self, **overrides)

