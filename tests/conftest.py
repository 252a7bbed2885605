import copy
import os
import re

import pytest
from botocore.exceptions import ClientError

os.environ["AWS_REGION"] = "us-east-1"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id"
os.environ["JWT_SECRET_KEY"] = "test-secret"

from fastapi.testclient import TestClient  # noqa: E402

from eventflow import dynamodb_service  # noqa: E402
from eventflow.main import app  # noqa: E402
from eventflow.security import create_access_token, hash_password  # noqa: E402


# "#a = :a" or "#a = list_append(if_not_exists(#a, :empty), :new)"
SET_CLAUSE = re.compile(
    r"(?P<append_target>#\w+) = list_append\(if_not_exists\(#\w+, (?P<default>:\w+)\), (?P<appended>:\w+)\)"
    r"|(?P<target>#\w+) = (?P<value>:\w+)"
)


class FakeTable:
    """In-memory stand-in for a boto3 DynamoDB Table resource."""

    def __init__(self, key_name):
        self.key_name = key_name
        self.items = {}
        self.puts = 0
        # Number of put_item calls allowed before every further put fails
        self.fail_put_after = None

    def put_item(self, Item):
        if self.fail_put_after is not None and self.puts >= self.fail_put_after:
            raise ClientError({"Error": {"Code": "InternalServerError", "Message": "boom"}}, "PutItem")
        self.puts += 1
        self.items[Item[self.key_name]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        item = self.items.get(Key[self.key_name])
        return {"Item": copy.deepcopy(item)} if item else {}

    def delete_item(self, Key):
        self.items.pop(Key[self.key_name], None)
        return {}

    def scan(self, FilterExpression=None, **kwargs):
        items = [item for item in self.items.values() if self._matches(item, FilterExpression)]
        return {"Items": copy.deepcopy(items)}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeNames, ExpressionAttributeValues,
                    ConditionExpression=None, ReturnValues=None):
        key = Key[self.key_name]
        current = self.items.get(key, {})
        if not self._matches(current, ConditionExpression):
            raise ClientError({"Error": {"Code": "ConditionalCheckFailedException", "Message": "failed"}},
                              "UpdateItem")

        item = self.items.setdefault(key, {self.key_name: key})
        names, values = ExpressionAttributeNames, ExpressionAttributeValues
        for match in SET_CLAUSE.finditer(UpdateExpression):
            if match.group("append_target"):
                name = names[match.group("append_target")]
                existing = item.get(name, values[match.group("default")])
                item[name] = existing + copy.deepcopy(values[match.group("appended")])
            else:
                item[names[match.group("target")]] = copy.deepcopy(values[match.group("value")])
        return {"Attributes": copy.deepcopy(item)}

    def batch_writer(self):
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    @classmethod
    def _matches(cls, item, condition):
        if condition is None:
            return True
        expression = condition.get_expression()
        operator, operands = expression["operator"], expression["values"]
        if operator == "=":
            attr, value = operands
            return item.get(attr.name) == value
        if operator == "attribute_exists":
            return operands[0].name in item
        if operator == "contains":
            attr, value = operands
            return attr.name in item and value in item[attr.name]
        if operator == "NOT":
            return not cls._matches(item, operands[0])
        if operator == "AND":
            return all(cls._matches(item, operand) for operand in operands)
        raise NotImplementedError(operator)


@pytest.fixture
def tables(monkeypatch):
    fake = {
        "users": FakeTable("user_id"),
        "events": FakeTable("event_id"),
        "guests": FakeTable("guest_id"),
    }
    monkeypatch.setattr(dynamodb_service, "users_table", fake["users"])
    monkeypatch.setattr(dynamodb_service, "events_table", fake["events"])
    monkeypatch.setattr(dynamodb_service, "guests_table", fake["guests"])
    return fake


@pytest.fixture
def client(tables):
    return TestClient(app)


def make_user(tables, user_id="user-1", email="ana@example.com", password="secret123", **extra):
    user = {
        "user_id": user_id,
        "email": email,
        "display_name": "Ana",
        "password_hash": hash_password(password),
        "provider": "password",
        "push_tokens": [],
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    user.update(extra)
    tables["users"].items[user_id] = user
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user['user_id'], user['email'])}"}


@pytest.fixture
def user(tables):
    return make_user(tables)


@pytest.fixture
def headers(user):
    return auth_headers(user)


def make_event(tables, event_id="event-1", user_id="user-1", **extra):
    event = {
        "event_id": event_id,
        "description": "Cumpleaños de Ana",
        "date": "2024-05-10T00:00:00.000Z",
        "time": "2024-05-10T18:30:00.000Z",
        "location": "Casa",
        "observations": "",
        "userId": user_id,
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    event.update(extra)
    tables["events"].items[event_id] = event
    return event


def make_guest(tables, guest_id="guest-1", event_id="event-1", **extra):
    guest = {
        "guest_id": guest_id,
        "nombre": "Luis",
        "edad": "30",
        "sexo": "Masculino",
        "telefono": "555-1234",
        "eventId": event_id,
        "created_at": "2024-01-01T00:00:00+00:00",
    }
    guest.update(extra)
    tables["guests"].items[guest_id] = guest
    return guest
