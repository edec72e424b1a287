"""Shared test fixtures: parquet paths, sample datasets, fake HTTP sessions and clients."""
import matplotlib

matplotlib.use("Agg")

import pytest
import requests


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.content = b"" if payload is None else b"x"
        self.text = "" if payload is None else str(payload)

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for requests.Session; replays queued responses and records calls."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []
        self.closed = False

    def _next(self):
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append(("POST", url, json))
        return self._next()

    def get(self, url, timeout=None):
        self.calls.append(("GET", url, None))
        return self._next()

    def close(self):
        self.closed = True


class FakeSqlClient:
    """Answers execute_sql / fetch_all from a list of pages."""

    def __init__(self, pages):
        self.pages = list(pages)
        self.statements = []
        self.closed = False

    def execute_sql(self, sql):
        self.statements.append(sql)
        return self.pages.pop(0) if self.pages else []

    def fetch_all(self, query, params=None):
        self.statements.append((query, params))
        return self.pages.pop(0) if self.pages else []

    def close(self):
        self.closed = True


class FakeGraphQLClient:
    """Answers query() with queued `data` objects."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def query(self, query, variables=None):
        self.calls.append((query, variables))
        return self.responses.pop(0) if self.responses else {}

    def close(self):
        self.closed = True


@pytest.fixture
def parquet_path(tmp_path):
    return str(tmp_path / "case_1" / "sentio-case_1-transfers.parquet")


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_sql_client():
    return FakeSqlClient


@pytest.fixture
def fake_graphql_client():
    return FakeGraphQLClient


@pytest.fixture
def transfer_records():
    """Normalized transfers as written by the pipeline."""
    return [
        {
            "id": "0x01-0",
            "blockNumber": 100,
            "transactionHash": "0x01",
            "from": "0xaa",
            "to": "0xbb",
            "value": "100",
        },
        {
            "id": "0x02-1",
            "blockNumber": 101,
            "transactionHash": "0x02",
            "from": "0xcc",
            "to": "0xdd",
            "value": "123000000000000000000",
        },
        {
            "id": "0x03-0",
            "blockNumber": 105,
            "transactionHash": "0x03",
            "from": "0xee",
            "to": "0xff",
            "value": "0",
        },
    ]


@pytest.fixture
def block_records():
    return [
        {"number": n, "hash": f"0x{n:04x}", "parentHash": f"0x{n - 1:04x}" if n else "0x0", "timestamp": 1700000000 + n}
        for n in range(5)
    ]
