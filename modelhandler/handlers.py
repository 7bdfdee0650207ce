# Request handlers
#
# ModelHandler builds the five request handlers of a model: create, get, query, update and remove.
# A handler is a callable taking a RequestContext and returning a HandlerResponse,
# failures are raised and handled by the caller (cfr. api.http_method_decorator):
#   parse -> build the query -> execute -> shape the response
#
# Every handler method accepts Policy overrides, the resulting policy is fixed when the
# handler is built, eg.
#
#   handler = ModelHandler(describe(User), SQLAlchemyRepository(User, db))
#   query = handler.query(include_associations=True)
#   response = query(RequestContext(query={"name": "alice"}))
#
import datetime
from http import HTTPStatus
from typing import Any, Callable, Dict, Optional
import modelhandler
from .associations import write_associations
from .builder import build
from .errors import NotFoundError, ValidationError
from .policy import Policy
from .request import RequestContext
from .response import HandlerResponse, ResultEnvelope
from .transforms import raw

Handler = Callable[[RequestContext], HandlerResponse]

# context key of the primary key in the url path
KEY_PARAM = "id"


def _payload(ctx: RequestContext) -> Dict[str, Any]:
    if not isinstance(ctx.body, dict):
        raise ValidationError(f"Invalid JSON Payload : {ctx.body}")
    return ctx.body


def _key(ctx: RequestContext) -> Any:
    key = ctx.path.get(KEY_PARAM)
    if key is None:
        raise NotFoundError("No id in the url path")
    return key


class ModelHandler:
    """
    Handler factory for one model

    :param model: ModelDescriptor
    :param repository: Repository of the model records
    :param policy: Policy shared by the handlers, defaults to the configured Policy,
                   resolved when the handlers are built (cfr. ModelApi.expose)
    :param transform: response body transform, cfr. transforms
    """

    def __init__(self, model, repository, policy: Optional[Policy] = None, transform=raw) -> None:
        self.model = model
        self.repository = repository
        self.policy = policy
        self.transform = transform

    def __repr__(self) -> str:
        return f"<ModelHandler {self.model.name}>"

    def _policy(self, overrides) -> Policy:
        policy = self.policy if self.policy is not None else Policy.from_config()
        return policy.replace(**overrides)

    def _find(self, ctx: RequestContext, policy: Policy, params: Dict[str, Any]):
        """
        Find the record addressed by the url path, soft deleted records are found as well
        """
        key = _key(ctx)
        spec = build(params, self.model, policy, ctx.options, key=key)
        record = self.repository.find_one(spec)
        if record is None:
            raise NotFoundError(f"{self.model.name} {key}")
        return record

    def create(self, transform=None, **overrides) -> Handler:
        """
        POST /resource : create a record and set the relations in the body, 201 Created
        """
        policy = self._policy(overrides)
        transform = transform or self.transform

        def create(ctx: RequestContext) -> HandlerResponse:
            payload = _payload(ctx)
            attributes, _ = self.model.split_payload(payload)
            record = self.repository.create(attributes)
            if policy.update_associations:
                write_associations(self.repository, self.model, record, payload)
            key = record.get(self.model.primary_key) if isinstance(record, dict) else getattr(record, self.model.primary_key, None)
            return HandlerResponse(status=HTTPStatus.CREATED.value, body=transform(self.model, record), key=key)

        return create

    def get(self, transform=None, **overrides) -> Handler:
        """
        GET /resource/:id : 200 OK or 404
        """
        policy = self._policy(overrides)
        transform = transform or self.transform

        def get(ctx: RequestContext) -> HandlerResponse:
            record = self._find(ctx, policy, ctx.query)
            return HandlerResponse(body=transform(self.model, record))

        return get

    def query(self, transform=None, **overrides) -> Handler:
        """
        GET /resource : 200 OK if all matching records are returned, 206 Partial Content otherwise
        """
        policy = self._policy(overrides)
        transform = transform or self.transform

        def query(ctx: RequestContext) -> HandlerResponse:
            spec = build(ctx.params, self.model, policy, ctx.options)
            rows, count = self.repository.find_and_count(spec)
            envelope = ResultEnvelope.from_page(rows, count, spec.offset, spec.limit)
            modelhandler.log.debug(f"{self.model.name}: {envelope.content_range}")
            return HandlerResponse.page(envelope, transform(self.model, envelope.rows))

        return query

    def update(self, transform=None, **overrides) -> Handler:
        """
        PATCH|PUT /resource/:id : update the attributes and relations in the body, 200 OK or 404
        """
        policy = self._policy(overrides)
        transform = transform or self.transform

        def update(ctx: RequestContext) -> HandlerResponse:
            payload = _payload(ctx)
            record = self._find(ctx, policy, {})
            attributes, _ = self.model.split_payload(payload)
            attributes.pop(self.model.primary_key, None)
            record = self.repository.update_attributes(record, attributes)
            if policy.update_associations:
                write_associations(self.repository, self.model, record, payload)
            return HandlerResponse(body=transform(self.model, record))

        return update

    def remove(self, **overrides) -> Handler:
        """
        DELETE /resource/:id : destroy or soft delete the record, 204 No Content or 404
        """
        policy = self._policy(overrides)
        if policy.soft_delete and not self.model.has_attribute(policy.soft_delete_attribute):
            raise ValueError(f"{self.model.name} has no soft delete attribute {policy.soft_delete_attribute}")

        def remove(ctx: RequestContext) -> HandlerResponse:
            record = self._find(ctx, policy, {})
            if policy.soft_delete:
                now = datetime.datetime.now(datetime.timezone.utc)
                self.repository.update_attributes(record, {policy.soft_delete_attribute: now})
            else:
                self.repository.destroy(record)
            return HandlerResponse(status=HTTPStatus.NO_CONTENT.value)

        return remove

    def handlers(self, **overrides) -> Dict[str, Handler]:
        """
        :return: all handlers, built with the same policy overrides
        """
        return {
            "create": self.create(**overrides),
            "get": self.get(**overrides),
            "query": self.query(**overrides),
            "update": self.update(**overrides),
            "remove": self.remove(**overrides),
        }
