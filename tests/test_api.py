from http import HTTPStatus

import pytest
from flask import Flask

from modelhandler import ModelApi, ModelHandler, QueryOptions, SQLAlchemyRepository, describe, plain
from conftest import Tag, User, Widget, db


@pytest.fixture
def api(app):
    api = ModelApi(app, prefix="/api")
    widgets = ModelHandler(describe(Widget), SQLAlchemyRepository(Widget, db), transform=plain)
    api.expose(widgets, include_associations=True, update_associations=True)
    api.expose(widgets, collection="archive", soft_delete=True)
    api.expose(widgets, collection="mine", scope=lambda model: QueryOptions(where={"owner_id": 1}))
    api.expose(ModelHandler(describe(User), SQLAlchemyRepository(User, db)))
    return api


@pytest.fixture
def client(app, api):
    return app.test_client()


def test_partial_content(client):
    response = client.get("/api/widgets?color=red&limit=2")
    assert response.status_code == HTTPStatus.PARTIAL_CONTENT
    assert response.headers["Content-Range"] == "0-2/5"
    assert [widget["name"] for widget in response.json] == ["red0", "red1"]


def test_complete_content(client):
    response = client.get("/api/widgets?color=red&sort=-price&fields=name")
    assert response.status_code == HTTPStatus.OK
    assert response.headers["Content-Range"] == "0-5/5"
    assert response.json[0] == {"id": 5, "name": "red4"}


def test_invalid_query(client):
    response = client.get("/api/widgets?limit=0")
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json["errors"][0]["code"] == "400"
    response = client.get("/api/widgets?include=parts")
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_include(client):
    response = client.get("/api/widgets?id=2&include=owner,tags")
    assert response.json[0]["owner"] == {"id": 1, "name": "alice"}
    assert response.json[0]["tags"] == []


def test_get(client):
    response = client.get("/api/widgets/6")
    assert response.status_code == HTTPStatus.OK
    assert response.json["name"] == "blue0"
    assert "Content-Range" not in response.headers


@pytest.mark.parametrize("url", ["/api/widgets/42", "/api/widgets/abc", "/api/mine/1"])
def test_not_found(client, url):
    response = client.get(url)
    assert response.status_code == HTTPStatus.NOT_FOUND
    error = response.json["errors"][0]
    assert error["code"] == "404"
    assert error["title"].startswith("Not Found")


def test_records_are_serialized(client):
    response = client.get("/api/users")
    assert response.json == [{"id": 1, "name": "alice"}, {"id": 2, "name": "bob"}]


def test_create(client):
    response = client.post("/api/widgets", json={"name": "green0", "color": "green", "tags": [1, 2], "owner": 2})
    assert response.status_code == HTTPStatus.CREATED
    assert response.headers["Location"].endswith("/api/widgets/7")
    assert response.json["name"] == "green0"
    widget = db.session.get(Widget, 7)
    assert [tag.label for tag in widget.tags] == ["new", "sale"]
    assert widget.owner_id == 2


def test_create_is_rolled_back(client):
    response = client.post("/api/widgets", json={"name": "green0", "tags": [1, 99]})
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert "tags" in response.json["errors"][0]["title"]
    assert db.session.query(Widget).count() == 6
    assert db.session.query(Tag).count() == 3


def test_create_invalid_body(client):
    response = client.post("/api/widgets", data="name=green0", content_type="text/plain")
    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_update(client):
    response = client.patch("/api/widgets/1", json={"price": 7.5, "tags": [3]})
    assert response.status_code == HTTPStatus.OK
    assert response.json["price"] == 7.5
    widget = db.session.get(Widget, 1)
    assert [tag.label for tag in widget.tags] == ["hot"]
    assert client.put("/api/widgets/42", json={"price": 1}).status_code == HTTPStatus.NOT_FOUND


def test_remove(client):
    response = client.delete("/api/widgets/1")
    assert response.status_code == HTTPStatus.NO_CONTENT
    assert response.data == b""
    assert client.get("/api/widgets/1").status_code == HTTPStatus.NOT_FOUND
    assert client.delete("/api/widgets/1").status_code == HTTPStatus.NOT_FOUND


def test_soft_delete(client):
    assert client.delete("/api/archive/1").status_code == HTTPStatus.NO_CONTENT
    assert client.get("/api/archive?color=red").headers["Content-Range"] == "0-4/4"
    assert client.get("/api/archive?deleted_at=$ne:null").json[0]["id"] == 1
    # the record is still there
    assert client.get("/api/widgets/1").json["deleted_at"] is not None
    assert client.get("/api/widgets?color=red").headers["Content-Range"] == "0-5/5"


def test_scope(client):
    response = client.get("/api/mine?owner_id=2")
    assert [widget["id"] for widget in response.json] == [2, 4, 6]
    assert response.headers["Content-Range"] == "0-3/3"


def test_configured_page_size(app, client):
    app.config["DEFAULT_PAGE_LIMIT"] = 2
    api = ModelApi(app, prefix="/small")
    api.expose(ModelHandler(describe(Widget), SQLAlchemyRepository(Widget, db)))
    response = client.get("/small/widgets")
    assert response.status_code == HTTPStatus.PARTIAL_CONTENT
    assert response.headers["Content-Range"] == "0-2/6"


def test_soft_deleted_records_are_addressable(client):
    assert client.delete("/api/archive/1").status_code == HTTPStatus.NO_CONTENT
    response = client.patch("/api/archive/1", json={"name": "restored"})
    assert response.status_code == HTTPStatus.OK
    assert response.json["name"] == "restored"
    assert client.delete("/api/archive/1").status_code == HTTPStatus.NO_CONTENT
    assert db.session.get(Widget, 1).deleted_at is not None


def test_app_config_applies_to_handlers_built_at_import(widget_model, repository):
    # no application context: the handler is built like a module level handler
    handler = ModelHandler(widget_model, repository)
    app = Flask("import_time_test")
    app.config["DEFAULT_PAGE_LIMIT"] = 2
    api = ModelApi(app)
    api.expose(handler)
    response = app.test_client().get("/widgets")
    assert response.status_code == HTTPStatus.PARTIAL_CONTENT
    assert response.headers["Content-Range"] == "0-2/7"
    response = app.test_client().post("/widgets", json={"name": "new"})
    assert response.headers["Location"].endswith("/widgets/8")


def test_collections_can_be_exposed_by_multiple_apis(app, client):
    ModelApi(app, prefix="/v2").expose(ModelHandler(describe(User), SQLAlchemyRepository(User, db)))
    assert client.get("/v2/users").json == client.get("/api/users").json
