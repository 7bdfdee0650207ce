#!/usr/bin/env python
# run:
# $ FLASK_APP=mini_app flask run
#
# try:
# $ curl -i "http://127.0.0.1:5000/api/books?author_id=1&limit=2&sort=-year"
# $ curl -i -X POST -H "Content-Type: application/json" -d '{"title": "new", "author": 2}' http://127.0.0.1:5000/api/books
#
from flask import Flask, request
from flask_sqlalchemy import SQLAlchemy
from modelhandler import ModelApi, ModelHandler, QueryOptions, SQLAlchemyRepository, describe, plain

db = SQLAlchemy()


class Author(db.Model):
    __tablename__ = "authors"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String)
    books = db.relationship("Book", back_populates="author")


class Book(db.Model):
    __tablename__ = "books"
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String)
    year = db.Column(db.Integer)
    author_id = db.Column(db.Integer, db.ForeignKey("authors.id"))
    deleted_at = db.Column(db.DateTime)
    author = db.relationship("Author", back_populates="books")


def author_scope(model):
    """
    Requests with an X-Author header only see the books of that author
    """
    author_id = request.headers.get("X-Author")
    if author_id is None or model.name != "books":
        return None
    return QueryOptions(where={"author_id": int(author_id)})


def create_api(app, prefix="/api"):
    api = ModelApi(app, prefix=prefix, scope=author_scope)
    books = ModelHandler(describe(Book), SQLAlchemyRepository(Book, db), transform=plain)
    api.expose(books, include_associations=True, update_associations=True, soft_delete=True)
    api.expose(ModelHandler(describe(Author), SQLAlchemyRepository(Author, db)), allowed_fields={"name"})
    print(f"Starting API: http://127.0.0.1:5000{prefix}/books")


def create_app():
    app = Flask("demo_app")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite:///mini_app.sqlitedb", DEFAULT_PAGE_LIMIT=10)
    db.init_app(app)
    with app.app_context():
        db.create_all()
        if not db.session.query(Author).count():
            for name in ("Ursula", "Terry"):
                author = Author(name=name)
                db.session.add(author)
                for year in range(1970, 1975):
                    db.session.add(Book(title=f"{name} {year}", year=year, author=author))
            db.session.commit()
        create_api(app)
    return app


app = create_app()

if __name__ == "__main__":
    app.run()
