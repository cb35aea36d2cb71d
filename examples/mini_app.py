#!/usr/bin/env python
# run:
# $ FLASK_APP=mini_app flask run
#
# $ curl -X POST localhost:5000/my_api/Users/ -H "Content-Type: application/json" \
#        -d '{"name": "test", "email": "email@x.org", "address": {"zip": "12345"}}'
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from marshmallow.validate import Email, Regexp
from sqlafill import ApiController, EntityApi, NotBlank, api_decorator

db = SQLAlchemy()


class User(db.Model):
    """
    description: My User description
    """

    __tablename__ = "Users"
    id = db.Column(db.Integer, primary_key=True, info={"groups": ["public"]})
    name = db.Column(db.String, info={"groups": ["public"], "validate": [NotBlank()]})
    email = db.Column(db.String, info={"groups": ["public"], "validate": [Email()]})
    password = db.Column(db.String, info={"groups": ["private"]})
    address_id = db.Column(db.Integer, db.ForeignKey("Addresses.id"))
    address = db.relationship("Address", info={"groups": ["public"]})


class Address(db.Model):
    __tablename__ = "Addresses"
    id = db.Column(db.Integer, primary_key=True, info={"groups": ["public"]})
    zip = db.Column(db.String, info={"groups": ["public"], "validate": [Regexp(r"^\d{5}$", error="invalid format")]})


@api_decorator
class Registration(ApiController):
    """
    Register a user, the billing and shipping keys both fill the address relationship
    """

    def post(self):
        context = self.get_entity_context().with_overrides(relations={"address": ["billing", "shipping"]})
        configurator = self.extension.configurator(context)
        errors = configurator.create(self.get_data(), User)
        return self.response({"errors": errors, "user": self.extension.serializer.to_array(configurator.get_entity(), ["public"])})


def create_api(app, host="127.0.0.1", port=5000, prefix="/my_api"):
    api = EntityApi(app, prefix=prefix)
    api.expose_object(User, groups=["public"])
    api.add_resource(Registration, "/register/", methods=["POST", "OPTIONS"])
    print(f"Starting API: http://{host}:{port}{prefix}")


def create_app(host="127.0.0.1"):
    app = Flask("demo_app")
    app.config.update(SQLALCHEMY_DATABASE_URI="sqlite:///mini_app.sqlitedb")
    db.init_app(app)
    with app.app_context():
        db.create_all()
        create_api(app, host)
    return app


app = create_app()

if __name__ == "__main__":
    app.run()
