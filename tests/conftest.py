import asyncio
import datetime
from typing import Optional

import pytest
from flask import Flask
from flask_sqlalchemy import SQLAlchemy

from modelhandler import ModelDescriptor, RelationDescriptor, Repository, ValidationError
from modelhandler.query import DESC


def _matches(value, condition) -> bool:
    op, operand = condition.op, condition.value
    if op == "eq":
        return value == operand
    if op == "ne":
        return value != operand
    if op == "in":
        return value in operand
    if op == "nin":
        return value not in operand
    if value is None:
        return False
    if op == "gt":
        return value > operand
    if op == "gte":
        return value >= operand
    if op == "lt":
        return value < operand
    if op == "lte":
        return value <= operand
    raise AssertionError(f"unsupported operator {op}")


class MemoryRepository(Repository):
    """
    Repository keeping dict records in memory, it records the calls made by the handlers
    """

    def __init__(self, records: Optional[list] = None, primary_key: str = "id") -> None:
        self.records = [dict(record) for record in records or []]
        self.primary_key = primary_key
        self.calls = []
        self.specs = []
        self.associations = []
        # set_association fails for these relations
        self.failing_relations = set()

    def _select(self, spec):
        result = []
        for record in self.records:
            if all(_matches(record.get(name), condition) for name, conditions in spec.where.items() for condition in conditions):
                result.append(record)
        return result

    def create(self, attributes):
        self.calls.append(("create", dict(attributes)))
        record = dict(attributes)
        record.setdefault(self.primary_key, max([r[self.primary_key] for r in self.records] or [0]) + 1)
        self.records.append(record)
        return record

    def find_one(self, spec):
        self.calls.append(("find_one", spec))
        self.specs.append(spec)
        found = self._select(spec)
        return found[0] if found else None

    def find_and_count(self, spec):
        self.calls.append(("find_and_count", spec))
        self.specs.append(spec)
        found = self._select(spec)
        for name, direction in reversed(spec.order):
            found = sorted(found, key=lambda record: record.get(name), reverse=direction == DESC)
        offset = spec.offset or 0
        rows = found[offset : offset + spec.limit] if spec.limit is not None else found[offset:]
        return rows, len(found)

    def destroy(self, record):
        self.calls.append(("destroy", record[self.primary_key]))
        self.records.remove(record)

    def update_attributes(self, record, attributes):
        self.calls.append(("update_attributes", dict(attributes)))
        record.update(attributes)
        return record

    async def set_association(self, record, relation, value):
        self.associations.append(("start", relation.name))
        await asyncio.sleep(0)
        if relation.name in self.failing_relations:
            raise ValidationError(f"Invalid {relation.name}: {value}")
        await super().set_association(record, relation, value)
        self.associations.append(("end", relation.name))

    def call_names(self):
        return [call[0] for call in self.calls]


def _record_setter(name):
    def setter(record, value):
        record[name] = value

    return setter


WIDGET_ATTRIBUTES = {
    "id": int,
    "name": str,
    "color": str,
    "price": float,
    "owner_id": int,
    "deleted_at": datetime.datetime,
}


@pytest.fixture
def widget_model():
    relations = {
        "tags": RelationDescriptor("tags", target="Tag", to_many=True, setter=_record_setter("tags")),
        "owner": RelationDescriptor("owner", target="User", to_many=False, setter=_record_setter("owner")),
    }
    return ModelDescriptor(name="widgets", primary_key="id", attributes=dict(WIDGET_ATTRIBUTES), relations=relations)


@pytest.fixture
def widgets():
    colors = ["red", "red", "blue", "red", "green", "red", "red"]
    return [
        {"id": i + 1, "name": f"widget{i + 1}", "color": color, "price": float(i + 1), "owner_id": 1 + i % 2, "deleted_at": None}
        for i, color in enumerate(colors)
    ]


@pytest.fixture
def repository(widgets):
    return MemoryRepository(widgets)


#
# Flask-SQLAlchemy models used by the integration tests
#
db = SQLAlchemy()

widget_tags = db.Table(
    "widget_tags",
    db.Column("widget_id", db.Integer, db.ForeignKey("widgets.id"), primary_key=True),
    db.Column("tag_id", db.Integer, db.ForeignKey("tags.id"), primary_key=True),
)


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, default="")
    widgets = db.relationship("Widget", back_populates="owner")


class Tag(db.Model):
    __tablename__ = "tags"
    id = db.Column(db.Integer, primary_key=True)
    label = db.Column(db.String, nullable=False)


class Widget(db.Model):
    __tablename__ = "widgets"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String, default="")
    color = db.Column(db.String, default="")
    price = db.Column(db.Float, default=0.0)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    deleted_at = db.Column(db.DateTime, nullable=True)
    owner = db.relationship("User", back_populates="widgets")
    tags = db.relationship("Tag", secondary=widget_tags)


@pytest.fixture
def app():
    app = Flask("modelhandler_tests")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite://", TESTING=True)
    db.init_app(app)
    with app.app_context():
        db.create_all()
        alice = User(name="alice")
        bob = User(name="bob")
        db.session.add_all([alice, bob, Tag(label="new"), Tag(label="sale"), Tag(label="hot")])
        for i in range(5):
            db.session.add(Widget(name=f"red{i}", color="red", price=float(i), owner=alice if i % 2 else bob))
        db.session.add(Widget(name="blue0", color="blue", price=10.0, owner=alice))
        db.session.commit()
        yield app
        db.session.remove()
        db.drop_all()
