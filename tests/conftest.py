import enum

import pytest
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from marshmallow.validate import Regexp

import sqlafill
from sqlafill import EntityFill, NotBlank

db = SQLAlchemy()


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True, info={"groups": ["test", "public"]})
    email = db.Column(db.String(120), info={"groups": ["test", "public"], "validate": [NotBlank()]})
    name = db.Column(db.String(64), info={"groups": ["public"]})
    secret = db.Column(db.String(64), info={"groups": ["private"]})
    age = db.Column(db.Integer, info={"groups": ["public"]})
    address_id = db.Column(db.Integer, db.ForeignKey("addresses.id"))
    address = db.relationship("Address", info={"groups": ["public"]})
    books = db.relationship("Book", back_populates="owner", info={"groups": ["public"]})


class Address(db.Model):
    __tablename__ = "addresses"
    id = db.Column(db.Integer, primary_key=True, info={"groups": ["public"]})
    zip = db.Column(db.String(10), info={"groups": ["public"], "validate": [Regexp(r"^\d{5}$", error="invalid format")]})
    city = db.Column(db.String(64), info={"groups": ["public"]})


class Book(db.Model):
    __tablename__ = "books"
    id = db.Column(db.Integer, primary_key=True, info={"groups": ["public"]})
    title = db.Column(db.String(120), info={"groups": ["public"], "validate": [NotBlank()]})
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"))
    owner = db.relationship("User", back_populates="books")


class TagKind(enum.Enum):
    TOPIC = "topic"
    AUTHOR = "author"


class Tag(db.Model):
    """Composite primary key"""

    __tablename__ = "tags"
    allow_client_generated_ids = True
    namespace = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(32), primary_key=True)
    description = db.Column(db.String(120))
    kind = db.Column(db.Enum(TagKind))


def create_app(**config):
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
    app.config["ERROR_404_HELP"] = False
    app.config.update(config)
    db.init_app(app)
    return app


@pytest.fixture
def app():
    app = create_app()
    with app.app_context():
        db.create_all()
        EntityFill(app)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def fill(app):
    return sqlafill.get_extension(app)


@pytest.fixture
def configurator(fill):
    return fill.configurator()

