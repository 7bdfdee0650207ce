# flake8: noqa: F401
#
# modelhandler builds the create, get, query, update and remove handlers of a data model
# and exposes them as flask-restful resources
#
from .config import log, Settings, get_config
from .errors import (
    HandlerError,
    NotFoundError,
    ValidationError,
    MalformedQueryError,
    StoreError,
    AssociationWriteError,
)
from .model import ModelDescriptor, RelationDescriptor
from .query import Condition, QuerySpec, QueryOptions
from .parser import parse
from .policy import Policy
from .builder import build
from .request import RequestContext
from .response import ResultEnvelope, HandlerResponse
from .repository import Repository
from .transforms import raw, plain
from .handlers import ModelHandler
from .sqla import SQLAlchemyRepository, describe
from .api import ModelApi
from .__about__ import __version__, __description__

__all__ = (
    "__version__",
    "__description__",
    "log",
    # handlers:
    "ModelHandler",
    "Policy",
    "RequestContext",
    "HandlerResponse",
    "ResultEnvelope",
    "raw",
    "plain",
    # queries:
    "parse",
    "build",
    "Condition",
    "QuerySpec",
    "QueryOptions",
    # models and repositories:
    "ModelDescriptor",
    "RelationDescriptor",
    "Repository",
    "SQLAlchemyRepository",
    "describe",
    # flask:
    "ModelApi",
    # Errors:
    "HandlerError",
    "NotFoundError",
    "ValidationError",
    "MalformedQueryError",
    "StoreError",
    "AssociationWriteError",
)
