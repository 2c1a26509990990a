"""
Shared fixtures: an in-memory stand-in for the Supabase client's query
builder and a scripted stand-in for the OpenAI chat completions client.
"""
import asyncio
import json
from types import SimpleNamespace

import pytest

from neetprep_api import prompt_flow
from neetprep_api.supabase_service import SupabaseService


USER_ID = "11111111-1111-1111-1111-111111111111"


# ── Fake Supabase ─────────────────────────────────────────────

class FakeQuery:
    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload = None
        self.filters = []
        self.order_by = None
        self.row_limit = None
        self.on_conflict = ""

    def select(self, *columns):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op, self.payload = "insert", payload
        return self

    def upsert(self, payload, on_conflict=""):
        self.op, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    def update(self, payload):
        self.op, self.payload = "update", payload
        return self

    def delete(self):
        self.op = "delete"
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, count):
        self.row_limit = count
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def _insert_row(self, row):
        row = dict(row)
        if "id" not in row:
            self.db.next_id += 1
            row["id"] = self.db.next_id
        self.db.rows(self.table).append(row)
        return row

    def execute(self):
        if self.table in self.db.failing_tables:
            raise Exception(f"relation {self.table} is unavailable")
        rows = self.db.rows(self.table)

        if self.op == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            return SimpleNamespace(data=[self._insert_row(r) for r in payload])

        if self.op == "upsert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            out = []
            for item in payload:
                existing = next((r for r in rows if all(r.get(k) == item.get(k) for k in keys)), None)
                if existing is not None:
                    existing.update(item)
                    out.append(dict(existing))
                else:
                    out.append(self._insert_row(item))
            return SimpleNamespace(data=out)

        matched = [r for r in rows if self._matches(r)]

        if self.op == "update":
            for r in matched:
                r.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in matched])

        if self.op == "delete":
            for r in matched:
                rows.remove(r)
            return SimpleNamespace(data=matched)

        if self.order_by:
            column, desc = self.order_by
            matched = sorted(matched, key=lambda r: str(r.get(column) or ""), reverse=desc)
        if self.row_limit is not None:
            matched = matched[:self.row_limit]
        return SimpleNamespace(data=[dict(r) for r in matched])


class FakeRpc:
    def __init__(self, db, name, params):
        self.db, self.name, self.params = db, name, params

    def execute(self):
        if self.db.rpc_error:
            raise self.db.rpc_error
        self.db.rpc_calls.append((self.name, self.params))
        return SimpleNamespace(data=None)


class FakeAuth:
    def __init__(self, db):
        self.db = db
        self.admin = SimpleNamespace(sign_out=self._sign_out)
        self.signed_out = []

    def get_user(self, token):
        if token not in self.db.tokens:
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=self.db.tokens[token]))

    def sign_in_with_password(self, credentials):
        if credentials["password"] != "correct-horse":
            raise Exception("Invalid login credentials")
        return SimpleNamespace(
            user=SimpleNamespace(id=USER_ID),
            session=SimpleNamespace(access_token="access-123", refresh_token="refresh-456"),
        )

    def sign_up(self, credentials):
        self.db.signups.append(credentials)
        return SimpleNamespace(user=SimpleNamespace(id=USER_ID), session=None)

    def _sign_out(self, token):
        self.signed_out.append(token)


class FakeSupabaseClient:
    def __init__(self):
        self.tables = {}
        self.next_id = 0
        self.failing_tables = set()
        self.rpc_calls = []
        self.rpc_error = None
        self.tokens = {"valid-token": USER_ID}
        self.signups = []
        self.auth = FakeAuth(self)

    def rows(self, table):
        return self.tables.setdefault(table, [])

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)


# ── Fake OpenAI ───────────────────────────────────────────────

class FakeCompletions:
    def __init__(self, replies, pause=False):
        self.replies = list(replies)
        self.calls = []
        self.pause = pause

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.pause:
            # hand control back to the loop, as a real network call would
            await asyncio.sleep(0)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if not isinstance(reply, str) and reply is not None:
            reply = json.dumps(reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeOpenAI:
    """Replies are served in order; the last one repeats"""

    def __init__(self, *replies, pause=False):
        self.completions = FakeCompletions(replies or [None], pause=pause)
        self.chat = SimpleNamespace(completions=self.completions)


# ── Fixtures ──────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def no_real_openai(monkeypatch):
    monkeypatch.setattr(prompt_flow, "OPENAI_API_KEY", None)
    monkeypatch.setattr(prompt_flow, "_default_client", None)


@pytest.fixture()
def fake_db():
    return FakeSupabaseClient()


@pytest.fixture()
def db_service(fake_db):
    service = SupabaseService(client=fake_db)
    service.supabase_url = None
    return service


@pytest.fixture()
def use_openai(monkeypatch):
    """Install a FakeOpenAI as the shared client and return it"""
    def install(*replies):
        client = FakeOpenAI(*replies)
        monkeypatch.setattr(prompt_flow, "_default_client", client)
        return client
    return install


@pytest.fixture()
def seeded_puzzle(fake_db):
    puzzle = {
        "id": "math_001",
        "name": "The Sequence Solver",
        "category": "Mathematical Challenges",
        "subject": None,
        "description": "Find the next number in this sequence: 1, 1, 2, 3, 5, 8, ?",
        "max_level": 3,
        "default_xp_award": 10,
        "base_definition": {
            "type": "sequence_solver",
            "original_data": {"sequence": "1, 1, 2, 3, 5, 8"},
            "solution": "13",
        },
    }
    fake_db.rows("puzzles").append(puzzle)
    return puzzle
