import copy
from collections import defaultdict
from datetime import datetime, timedelta, timezone

import pytest
from azure.cosmos import exceptions

from storage import StoreNotConnectedError
from routers.daily_log.models import NewLogEntry
from routers.daily_log.service import DailyLogService


def _not_found(item):
    return exceptions.CosmosResourceNotFoundError(status_code=404, message=f"{item} not found")


def _apply_patch(doc, operations):
    for op in operations:
        path = op["path"]
        if op["op"] == "add" and path.endswith("/-"):
            doc[path[1:-2]].append(copy.deepcopy(op["value"]))
        elif op["op"] == "incr":
            doc[path[1:]] = doc.get(path[1:], 0) + op["value"]
        elif op["op"] == "set":
            doc[path[1:]] = op["value"]
        else:
            raise AssertionError(f"unexpected patch op {op}")


class FakeContainer:
    """In-memory stand-in for the ContainerProxy calls the services make."""

    def __init__(self):
        self.docs = {}
        self.calls = []
        self.queries = []
        self.fail_with = None
        self.fail_after = None       # calls that succeed before fail_with kicks in

    def _call(self, name):
        self.calls.append(name)
        if self.fail_with is None:
            return
        if self.fail_after is None or len(self.calls) > self.fail_after:
            raise self.fail_with

    def read_item(self, item, partition_key, **kwargs):
        self._call("read_item")
        if item not in self.docs:
            raise _not_found(item)
        return copy.deepcopy(self.docs[item])

    def create_item(self, body, **kwargs):
        self._call("create_item")
        if body["id"] in self.docs:
            raise exceptions.CosmosResourceExistsError(status_code=409, message="conflict")
        self.docs[body["id"]] = copy.deepcopy(body)
        return copy.deepcopy(body)

    def patch_item(self, item, partition_key, patch_operations, **kwargs):
        self._call("patch_item")
        if item not in self.docs:
            raise _not_found(item)
        assert len(patch_operations) <= 10
        doc = copy.deepcopy(self.docs[item])
        _apply_patch(doc, patch_operations)
        self.docs[item] = doc
        return copy.deepcopy(doc)

    def execute_item_batch(self, batch_operations, partition_key, **kwargs):
        self._call("execute_item_batch")
        assert len(batch_operations) <= 100
        staged = copy.deepcopy(self.docs)
        for kind, args in batch_operations:
            assert kind == "patch"
            item, operations = args
            assert item == partition_key
            assert len(operations) <= 10
            if item not in staged:
                raise exceptions.CosmosHttpResponseError(status_code=404, message="batch failed")
            _apply_patch(staged[item], operations)
        self.docs = staged
        return []

    def delete_item(self, item, partition_key, **kwargs):
        self._call("delete_item")
        if item not in self.docs:
            raise _not_found(item)
        del self.docs[item]

    def query_items(self, query, parameters=None, enable_cross_partition_query=None, **kwargs):
        self._call("query_items")
        params = {p["name"]: p["value"] for p in (parameters or [])}
        self.queries.append((query, params))

        start, end = params.get("@start_date"), params.get("@end_date")
        docs = [
            d for d in sorted(self.docs.values(), key=lambda d: d["date"])
            if (start is None or d["date"] >= start) and (end is None or d["date"] <= end)
        ]

        if query.startswith("SELECT VALUE l FROM c JOIN l IN c.logs"):
            text = (params.get("@message") or "").lower()
            return iter([
                copy.deepcopy(entry)
                for d in docs for entry in d["logs"]
                if ("@level" not in params or entry["level"] == params["@level"])
                and ("@category" not in params or entry.get("category") == params["@category"])
                and text in entry["message"].lower()
            ])
        if query.startswith("SELECT DISTINCT VALUE c.date"):
            return iter([d["date"] for d in docs])
        if query.startswith("SELECT c.id, c.date"):
            return iter([{"id": d["id"], "date": d["date"]} for d in docs])
        if query.startswith("SELECT * FROM c"):
            return iter(copy.deepcopy(docs))
        raise AssertionError(f"unexpected query {query}")

    def write_calls(self):
        return [c for c in self.calls if c in ("create_item", "patch_item", "execute_item_batch")]


class FakeStore:
    def __init__(self):
        self.containers = defaultdict(FakeContainer)
        self.is_connected = True
        self.ensured = []

    def open(self):
        self.is_connected = True
        return self

    def close(self):
        self.is_connected = False

    def container(self, name):
        if not self.is_connected:
            raise StoreNotConnectedError("not connected")
        return self.containers[name]

    def ensure_container(self, name, partition_key_path="/id"):
        self.ensured.append((name, partition_key_path))
        return self.container(name)

    def ping(self):
        if not self.is_connected:
            raise StoreNotConnectedError("not connected")
        return {"id": "daily_logs_test"}


class TickingClock:
    """Every call is one millisecond later than the previous one."""

    def __init__(self, start=datetime(2025, 10, 1, 8, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now = current + timedelta(milliseconds=1)
        return current


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def container(store):
    return store.containers["daily_logs"]


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def service(store, clock):
    return DailyLogService(store, "daily_logs", timezone.utc, clock)


@pytest.fixture
def make_entry():
    def _make(level="info", message="hello", category=None, **kwargs):
        return NewLogEntry(level=level, message=message, category=category, **kwargs)
    return _make
