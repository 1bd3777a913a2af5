"""
Pytest configuration and shared fixtures for the live support chat tests.
"""

import copy
import os
import time

import pytest
from bson import ObjectId
from jose import jwt
from pymongo import ReturnDocument
from starlette.websockets import WebSocketState

TEST_SECRET = "test-secret-key-for-live-support-tests"
os.environ["JWT_SECRET"] = TEST_SECRET

from src.livechat.api.deps import get_config  # noqa: E402
from src.livechat.chat.service_container import ServiceContainer  # noqa: E402
from src.livechat.models.chat import CurrentUser, UserRole  # noqa: E402


# In-memory stand-in for the subset of motor's collection API the
# services use. Documents are deep-copied on the way in and out.

def _matches(document, query):
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict) and any(
            k.startswith("$") for k in condition
        ):
            for op, operand in condition.items():
                if op == "$ne" and value == operand:
                    return False
                if op == "$in" and value not in operand:
                    return False
                if op == "$gte" and not (value is not None and value >= operand):
                    return False
                if op == "$gt" and not (value is not None and value > operand):
                    return False
                if op == "$lt" and not (value is not None and value < operand):
                    return False
                if op == "$lte" and not (value is not None and value <= operand):
                    return False
        elif value != condition:
            return False
    return True


class FakeInsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class FakeUpdateResult:
    def __init__(self, matched_count, upserted_id=None):
        self.matched_count = matched_count
        self.modified_count = matched_count
        self.upserted_id = upserted_id


class FakeCursor:
    def __init__(self, documents):
        self._documents = documents

    def sort(self, key, direction=1):
        self._documents.sort(key=lambda d: d.get(key), reverse=direction == -1)
        return self

    def skip(self, count):
        self._documents = self._documents[count:]
        return self

    def limit(self, count):
        if count:
            self._documents = self._documents[:count]
        return self

    async def to_list(self, length=None):
        docs = [copy.deepcopy(d) for d in self._documents]
        return docs if length is None else docs[:length]


class FakeCollection:
    def __init__(self):
        self.documents = []

    async def create_index(self, keys, **kwargs):
        return "_".join(str(k) for k, _ in keys)

    async def insert_one(self, document):
        stored = copy.deepcopy(document)
        stored.setdefault("_id", ObjectId())
        self.documents.append(stored)
        return FakeInsertResult(stored["_id"])

    async def find_one(self, query):
        for document in self.documents:
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query=None):
        return FakeCursor(
            [d for d in self.documents if _matches(d, query or {})]
        )

    @staticmethod
    def _apply(document, update, inserting=False):
        document.update(update.get("$set", {}))
        if inserting:
            document.update(update.get("$setOnInsert", {}))

    async def find_one_and_update(
        self, query, update, return_document=ReturnDocument.BEFORE
    ):
        for document in self.documents:
            if _matches(document, query):
                before = copy.deepcopy(document)
                self._apply(document, update)
                if return_document == ReturnDocument.AFTER:
                    return copy.deepcopy(document)
                return before
        return None

    async def update_one(self, query, update, upsert=False):
        for document in self.documents:
            if _matches(document, query):
                self._apply(document, update)
                return FakeUpdateResult(1)
        if upsert:
            document = {
                k: v for k, v in query.items() if not isinstance(v, dict)
            }
            document.setdefault("_id", ObjectId())
            self._apply(document, update, inserting=True)
            self.documents.append(document)
            return FakeUpdateResult(0, document["_id"])
        return FakeUpdateResult(0)

    async def count_documents(self, query):
        return sum(1 for d in self.documents if _matches(d, query))

    def aggregate(self, pipeline):
        documents = list(self.documents)
        for stage in pipeline:
            if "$match" in stage:
                documents = [
                    d for d in documents if _matches(d, stage["$match"])
                ]
            elif "$group" in stage:
                group = stage["$group"]
                result = {"_id": group["_id"]}
                for name, accumulator in group.items():
                    if name == "_id":
                        continue
                    field = accumulator["$avg"].lstrip("$")
                    values = [
                        d[field] for d in documents
                        if d.get(field) is not None
                    ]
                    result[name] = (
                        sum(values) / len(values) if values else None
                    )
                documents = [result] if documents else []
        return FakeCursor(documents)


class FakeWebSocket:
    """Records frames sent by the connection manager."""

    def __init__(self, name="socket", fail=False):
        self.name = name
        self.fail = fail
        self.client_state = WebSocketState.CONNECTED
        self.sent = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    def events(self):
        return [frame["type"] for frame in self.sent]

    def last(self, event_type):
        for frame in reversed(self.sent):
            if frame["type"] == event_type:
                return frame["data"]
        return None

    def __repr__(self):
        return f"FakeWebSocket({self.name})"


def make_token(user, secret=TEST_SECRET, expires_in=3600, **overrides):
    now = int(time.time())
    payload = {
        "sub": user.id,
        "username": user.username,
        "role": user.role.value,
        "email": user.email,
        "iat": now,
        "exp": now + expires_in,
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture(scope="session")
def cfg():
    return get_config()


@pytest.fixture
def services(cfg):
    """Service container wired over in-memory collections."""
    container = ServiceContainer(cfg)
    container.bind_collections(
        FakeCollection(), FakeCollection(), FakeCollection()
    )
    return container


@pytest.fixture
def customer():
    return CurrentUser(
        id="user-1", username="alice", role=UserRole.USER,
        email="alice@example.com"
    )


@pytest.fixture
def other_customer():
    return CurrentUser(id="user-2", username="bob", role=UserRole.USER)


@pytest.fixture
def agent():
    return CurrentUser(id="agent-1", username="carol", role=UserRole.AGENT)


@pytest.fixture
def other_agent():
    return CurrentUser(id="agent-2", username="dave", role=UserRole.AGENT)


@pytest.fixture
def admin():
    return CurrentUser(id="admin-1", username="erin", role=UserRole.ADMIN)


@pytest.fixture
def auth_header():
    def build(user):
        return {"Authorization": f"Bearer {make_token(user)}"}
    return build
