"""
Per-request context passed to the handlers

The context is built by the http binding from the flask request. Upstream code
(eg. authorization) attaches QueryOptions through the scope callable registered
on the ModelApi, not by setting attributes on the request object.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from .query import QueryOptions


@dataclass(frozen=True)
class RequestContext:
    """
    :param path: url path parameters, eg. {"id": "42"}
    :param query: query string arguments, repeated arguments are lists
    :param body: deserialized request body
    :param options: QueryOptions attached by upstream code
    """

    path: Dict[str, Any] = field(default_factory=dict)
    query: Dict[str, Any] = field(default_factory=dict)
    body: Any = None
    options: Optional[QueryOptions] = None

    @property
    def params(self) -> Dict[str, Any]:
        """
        :return: query string arguments merged with the path parameters, path parameters win
        """
        result = dict(self.query)
        result.update(self.path)
        return result

    @classmethod
    def from_request(cls, request, path: Optional[Dict[str, Any]] = None, options: Optional[QueryOptions] = None) -> "RequestContext":
        """
        :param request: flask request
        :param path: url path parameters (the view kwargs)
        :param options: upstream QueryOptions
        """
        query = {}
        for arg, values in request.args.lists():
            query[arg] = values[0] if len(values) == 1 else values
        body = None
        if request.method in ("POST", "PATCH", "PUT"):
            body = request.get_json(silent=True)
        return cls(path=dict(path or {}), query=query, body=body, options=options)
