# flask-restful binding of the model handlers
#
# ModelApi.expose(handler) creates two flask-restful resources for a ModelHandler:
#   /<collection>       GET: query, POST: create
#   /<collection>/<id>  GET: get, PATCH|PUT: update, DELETE: remove
#
# The handlers raise their errors, http_method_decorator rolls back the repository
# and converts the errors to a json error response. Successful requests are committed.
#
from http import HTTPStatus
import logging
from functools import wraps
import werkzeug
from flask import jsonify, make_response as flask_make_response, request, url_for
from flask_restful import Api, Resource, abort
import modelhandler
from .config import Settings, get_config, is_debug
from .errors import HandlerError
from .json_encoder import ModelJSONProvider
from .request import RequestContext
from .response import HandlerResponse
from typing import Callable, Optional

HTTP_METHODS = ["GET", "POST", "PATCH", "PUT", "DELETE"]


class ModelResource(Resource):
    """
    Superclass for the exposed endpoints
    * Collections : CollectionResource
    * Instances : InstanceResource
    """

    # handler: the ModelHandler of the exposed model, set when the resource class is created
    handler = None
    # handlers built by handler.handlers()
    handlers = {}
    # scope: callable(ModelDescriptor) -> QueryOptions, used to attach upstream query options
    scope = None
    instance_endpoint = None

    def request_context(self, kwargs) -> RequestContext:
        """
        :param kwargs: url path parameters
        :return: RequestContext for the current flask request
        """
        options = self.scope(self.handler.model) if self.scope is not None else None
        return RequestContext.from_request(request, kwargs, options)

    def run_handler(self, name: str, kwargs):
        """
        Run the handler and convert its HandlerResponse
        :param name: handler name, eg. "query"
        :param kwargs: url path parameters
        :return: flask response
        """
        ctx = self.request_context(kwargs)
        result = self.handlers[name](ctx)
        return self.make_response(result)

    def make_response(self, result: HandlerResponse):
        if result.status == HTTPStatus.NO_CONTENT.value:
            response = flask_make_response("", result.status)
        else:
            response = flask_make_response(jsonify(result.body), result.status)
        for header, value in result.headers.items():
            response.headers[header] = value
        return response


class CollectionResource(ModelResource):
    def get(self, **kwargs):
        """
        Retrieve a page of records, the Content-Range header contains "<start>-<end>/<count>"
        """
        return self.run_handler("query", kwargs)

    def post(self, **kwargs):
        """
        Create a record, the Location header is set to the url of the new record
        """
        ctx = self.request_context(kwargs)
        result = self.handlers["create"](ctx)
        response = self.make_response(result)
        if result.key is not None and self.instance_endpoint:
            response.headers["Location"] = url_for(self.instance_endpoint, id=result.key)
        return response


class InstanceResource(ModelResource):
    def get(self, **kwargs):
        return self.run_handler("get", kwargs)

    def patch(self, **kwargs):
        return self.run_handler("update", kwargs)

    def put(self, **kwargs):
        return self.run_handler("update", kwargs)

    def delete(self, **kwargs):
        return self.run_handler("remove", kwargs)


class ModelApi(Api):
    """
    flask-restful Api subclass where we add the expose method,
    this method creates the API endpoints for a ModelHandler
    """

    def __init__(self, app, prefix: str = "", scope: Optional[Callable] = None, **kwargs) -> None:
        """
        :param app: flask app
        :param prefix: url prefix
        :param scope: default callable(ModelDescriptor) -> QueryOptions for the exposed handlers
        :param kwargs: configuration, stored in config.Settings (eg. DEFAULT_PAGE_LIMIT=100)
        """
        for conf_name, conf_val in kwargs.items():
            setattr(Settings, conf_name, conf_val)
        self.scope = scope
        app.config.setdefault("ERROR_404_HELP", False)
        app.url_map.strict_slashes = False
        if app.config.get("DEBUG", False):
            modelhandler.log.setLevel(logging.DEBUG)
        super().__init__(app, prefix=prefix)
        app.json = ModelJSONProvider(app)

    def expose(self, handler, collection: Optional[str] = None, scope: Optional[Callable] = None, **overrides) -> None:
        """
        Create the url endpoints for a ModelHandler

        :param handler: ModelHandler
        :param collection: collection name used in the urls, defaults to the model name
        :param scope: callable(ModelDescriptor) -> QueryOptions, overrides the api scope
        :param overrides: Policy overrides for the handlers
        """
        collection = collection or handler.model.name
        scope = scope or self.scope
        # the prefix is part of the endpoint names, so a collection can be exposed by multiple apis
        url_prefix = ".".join(part for part in self.prefix.split("/") if part)
        url_prefix = f"{url_prefix}." if url_prefix else ""
        # the endpoint names and the handler policies are resolved against the app config
        with self.app.app_context():
            collection_endpoint = get_config("ENDPOINT_FMT").format(url_prefix, collection)
            instance_endpoint = get_config("INSTANCE_ENDPOINT_FMT").format(url_prefix, collection)
            handlers = handler.handlers(**overrides)
        properties = {
            "handler": handler,
            "handlers": handlers,
            "scope": staticmethod(scope) if scope is not None else None,
            "instance_endpoint": instance_endpoint,
        }

        url = f"/{collection}"
        api_class = api_decorator(type(f"{collection}_API", (CollectionResource,), properties))
        modelhandler.log.info(f"Exposing {collection} on {url}, endpoint: {collection_endpoint}")
        self.add_resource(api_class, url, endpoint=collection_endpoint)

        url = f"/{collection}/<string:id>"
        api_class = api_decorator(type(f"{collection}_API_i", (InstanceResource,), properties))
        modelhandler.log.info(f"Exposing {collection} instances on {url}, endpoint: {instance_endpoint}")
        self.add_resource(api_class, url, endpoint=instance_endpoint)

    def expose_all(self, *handlers, **overrides) -> None:
        """
        Expose multiple handlers at once
        """
        for handler in handlers:
            self.expose(handler, **overrides)


def api_decorator(cls):
    """Decorator for the API views: add the generic exception handling

    :param cls: The class that will be decorated (CollectionResource, InstanceResource)
    :return: decorated class
    """
    for method_name in ("get", "post", "patch", "put", "delete"):
        method = getattr(cls, method_name, None)
        if not method:
            continue
        setattr(cls, method_name, http_method_decorator(method))
    return cls


def http_method_decorator(fun: Callable) -> Callable:
    """Decorator for the HTTP methods (get, post, patch, put, delete)
    - commit the repository
    - convert all exceptions to a JSON error response

    :param fun:
    :return: wrapped fun
    """

    @wraps(fun)
    def method_wrapper(self, *args, **kwargs):
        """Wrap the method and perform error handling
        :return: result of the wrapped method
        """
        repository = self.handler.repository
        exception = None
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR.value
        message = ""
        try:
            result = fun(self, *args, **kwargs)
            repository.commit()
            return result

        except werkzeug.exceptions.NotFound as exc:
            # this also catches errors.NotFoundError
            status_code = HTTPStatus.NOT_FOUND.value
            exception = exc
            message = HTTPStatus.NOT_FOUND.description

        except HandlerError as exc:
            modelhandler.log.debug(f"{fun.__name__} failed: {exc.message}")
            exception = exc

        except werkzeug.exceptions.HTTPException as exc:
            status_code = exc.code
            message = exc.description
            modelhandler.log.error(message)

        except Exception as exc:
            modelhandler.log.exception(exc)
            message = str(exc) if is_debug() else "Logging Disabled"

        status_code = getattr(exception, "status_code", status_code)
        title = getattr(exception, "message", message) or message
        detail = getattr(exception, "detail", title)

        repository.rollback()
        errors = dict(title=title, detail=detail, code=str(status_code))
        abort(status_code, errors=[errors])

    return method_wrapper
