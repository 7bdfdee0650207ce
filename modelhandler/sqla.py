# SQLAlchemy repository adapter
#
# - describe() creates the ModelDescriptor of a mapped class, the relation setters are resolved here
# - SQLAlchemyRepository executes the QuerySpecs built by the handlers with the legacy sqla Query api
#
# Writes are flushed, not committed: the flask binding commits (or rolls back) once per request
#
import datetime
from functools import wraps
import sqlalchemy
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, load_only, object_session
import modelhandler
from .errors import MalformedQueryError, StoreError, ValidationError
from .model import ModelDescriptor, RelationDescriptor
from .parser import coerce_value
from .query import DESC
from .repository import Repository
from typing import Any, Dict, List, Optional, Tuple

# relationship loading strategies we can set a joinedload option for
JOINABLE_LAZY = ("select", "joined", "subquery", "selectin")


def python_type(column) -> Optional[type]:
    """
    :param column: sqla column
    :return: the python type of the column values, None if sqla doesn't know it
    """
    try:
        return column.type.python_type
    except (NotImplementedError, AttributeError):
        return None


def primary_key_name(mapper) -> str:
    primary_keys = [mapper.get_property_by_column(column).key for column in mapper.primary_key]
    if len(primary_keys) > 1:
        modelhandler.log.warning(f"Composite primary keys are not supported, using {primary_keys[0]} for {mapper.class_}")
    return primary_keys[0]


def resolve_related(session, target, item: Any) -> Any:
    """
    Load the related record referenced in a request body
    :param session: sqla session
    :param target: related class
    :param item: an instance of target, a primary key value or a dict containing the primary key
    :return: target instance
    """
    if isinstance(item, target):
        return item
    mapper = sqlalchemy.inspect(target)
    pk_name = primary_key_name(mapper)
    key = item.get(pk_name) if isinstance(item, dict) else item
    pk_column = mapper.get_property(pk_name).columns[0]
    try:
        key = coerce_value(key, python_type(pk_column))
    except MalformedQueryError:
        key = None
    instance = session.get(target, key) if key is not None else None
    if instance is None:
        raise ValidationError(f"Invalid {target.__name__} id {item}")
    return instance


def relationship_setter(relationship):
    """
    Create the association setter for a sqla relationship
    :param relationship: sqla RelationshipProperty
    :return: setter(record, value)
    """
    target = relationship.mapper.class_
    rel_name = relationship.key

    def setter(record: Any, value: Any) -> None:
        session = object_session(record)
        if relationship.uselist:
            items = value if isinstance(value, (list, tuple)) else [value]
            setattr(record, rel_name, [resolve_related(session, target, item) for item in items])
        else:
            setattr(record, rel_name, resolve_related(session, target, value))

    return setter


def describe(model_class, name: Optional[str] = None) -> ModelDescriptor:
    """
    :param model_class: sqla mapped class
    :param name: collection name, defaults to the table name
    :return: ModelDescriptor
    """
    mapper = sqlalchemy.inspect(model_class)
    attributes = {prop.key: python_type(prop.columns[0]) for prop in mapper.column_attrs}
    relations = {
        rel.key: RelationDescriptor(name=rel.key, target=rel.mapper.class_, to_many=bool(rel.uselist), setter=relationship_setter(rel))
        for rel in mapper.relationships
    }
    if name is None:
        name = getattr(model_class, "__tablename__", None) or model_class.__name__
    return ModelDescriptor(name=name, primary_key=primary_key_name(mapper), attributes=attributes, relations=relations, model=model_class)


def store_operation(fun):
    """
    Wrap the sqla errors in a StoreError, the original error is kept as __cause__
    """

    @wraps(fun)
    def wrapper(*args, **kwargs):
        try:
            return fun(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreError(f"{exc}") from exc

    return wrapper


def condition_expression(column, condition):
    """
    :param column: sqla column attribute
    :param condition: query.Condition
    :return: sqla filter expression
    """
    op, value = condition.op, condition.value
    if op == "eq":
        return column.is_(None) if value is None else column == value
    if op == "ne":
        return column.is_not(None) if value is None else column != value
    if op == "gt":
        return column > value
    if op == "gte":
        return column >= value
    if op == "lt":
        return column < value
    if op == "lte":
        return column <= value
    if op == "like":
        return column.like(value)
    if op in ("in", "nin"):
        # sql IN never matches NULL, null values are compared with IS (NOT) NULL
        values = [item for item in value if item is not None]
        if op == "in":
            expression = column.in_(values)
            return or_(expression, column.is_(None)) if len(values) < len(value) else expression
        expression = column.not_in(values)
        if len(values) < len(value):
            return and_(expression, column.is_not(None))
        return or_(expression, column.is_(None))
    raise MalformedQueryError(f'Invalid filter operator "{op}"')


class SQLAlchemyRepository(Repository):
    """
    :param model: sqla mapped class
    :param db: flask_sqlalchemy.SQLAlchemy instance, its (scoped) session is used
    :param session: sqla session, used instead of db.session
    """

    def __init__(self, model, db=None, session=None) -> None:
        if db is None and session is None:
            raise ValueError("SQLAlchemyRepository requires a db or a session")
        self.model = model
        self.db = db
        self._session = session
        mapper = sqlalchemy.inspect(model)
        self.columns = {prop.key: python_type(prop.columns[0]) for prop in mapper.column_attrs}
        self.primary_key = primary_key_name(mapper)

    def __repr__(self) -> str:
        return f"<SQLAlchemyRepository {self.model.__name__}>"

    @property
    def session(self):
        return self._session if self._session is not None else self.db.session

    def _values(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """
        :return: the attributes that are columns of the model, date(time) strings are converted
        """
        result = {}
        for name, value in attributes.items():
            if name not in self.columns:
                modelhandler.log.debug(f"{self.model.__name__} has no column {name}, ignoring it")
                continue
            column_type = self.columns[name]
            if isinstance(value, str) and column_type in (datetime.datetime, datetime.date):
                try:
                    value = coerce_value(value, column_type)
                except MalformedQueryError as exc:
                    raise ValidationError(f"{name}: {value}") from exc
            result[name] = value
        return result

    def select(self, spec):
        """
        :param spec: QuerySpec
        :return: sqla query filtered by spec.where
        """
        query = self.session.query(self.model)
        for name, conditions in spec.where.items():
            column = getattr(self.model, name)
            query = query.filter(*[condition_expression(column, condition) for condition in conditions])
        return query

    def _load_options(self, query, spec):
        if spec.attributes:
            query = query.options(load_only(*[getattr(self.model, name) for name in spec.attributes]))
        for relation in spec.include:
            rel_attr = getattr(self.model, relation.name)
            if rel_attr.property.lazy not in JOINABLE_LAZY:
                # we can't set options for lazy_load 'dynamic'/'raise'/'noload' relationships
                modelhandler.log.warning(f"Can't include {self.model.__name__}.{relation.name} (lazy={rel_attr.property.lazy})")
                continue
            query = query.options(joinedload(rel_attr))
        return query

    def _order(self, query, spec):
        order = spec.order or ((self.primary_key, "asc"),)
        for name, direction in order:
            column = getattr(self.model, name)
            query = query.order_by(column.desc() if direction == DESC else column.asc())
        return query

    @store_operation
    def create(self, attributes: Dict[str, Any]) -> Any:
        record = self.model(**self._values(attributes))
        self.session.add(record)
        self.session.flush()
        return record

    @store_operation
    def find_one(self, spec) -> Optional[Any]:
        query = self._load_options(self.select(spec), spec)
        return query.first()

    @store_operation
    def find_and_count(self, spec) -> Tuple[List[Any], int]:
        query = self.select(spec)
        count = query.order_by(None).count()
        query = self._order(self._load_options(query, spec), spec)
        if spec.offset:
            query = query.offset(spec.offset)
        if spec.limit is not None:
            query = query.limit(spec.limit)
        return query.all(), count

    @store_operation
    def destroy(self, record: Any) -> None:
        self.session.delete(record)
        self.session.flush()

    @store_operation
    def update_attributes(self, record: Any, attributes: Dict[str, Any]) -> Any:
        for name, value in self._values(attributes).items():
            setattr(record, name, value)
        self.session.flush()
        return record

    async def set_association(self, record: Any, relation, value: Any) -> None:
        try:
            await super().set_association(record, relation, value)
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreError(f"{exc}") from exc

    @store_operation
    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
