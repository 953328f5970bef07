from __future__ import annotations

import copy
import itertools
from types import SimpleNamespace

import pytest
from supabase import PostgrestAPIError, StorageException


class FakeQuery:
    """Subconjunto do query builder do postgrest usado pelo app, sobre listas em memória."""

    def __init__(self, sb: "FakeSupabase", table: str):
        self.sb = sb
        self.table = table
        self.op = "select"
        self.columns = "*"
        self.count = None
        self.payload = None
        self.preds = []
        self.order_by = None
        self.max_rows = None
        self._negate = False

    # operações
    def select(self, columns="*", count=None):
        self.op, self.columns, self.count = "select", columns, count
        return self

    def insert(self, row):
        self.op, self.payload = "insert", row
        return self

    def update(self, patch):
        self.op, self.payload = "update", patch
        return self

    def delete(self):
        self.op = "delete"
        return self

    # filtros
    def _add(self, pred):
        if self._negate:
            self._negate = False
            self.preds.append(lambda r: not pred(r))
        else:
            self.preds.append(pred)
        return self

    @property
    def not_(self):
        self._negate = True
        return self

    def eq(self, col, val):
        return self._add(lambda r: r.get(col) == val)

    def in_(self, col, vals):
        vals = list(vals)
        return self._add(lambda r: r.get(col) in vals)

    def gte(self, col, val):
        return self._add(lambda r: r.get(col) is not None and r.get(col) >= val)

    def lt(self, col, val):
        return self._add(lambda r: r.get(col) is not None and r.get(col) < val)

    def is_(self, col, val):
        assert val == "null"
        return self._add(lambda r: r.get(col) is None)

    def or_(self, expr):
        clauses = []
        for part in expr.split(","):
            col, op, pattern = part.split(".", 2)
            assert op == "ilike"
            clauses.append((col, pattern.strip("%").lower()))
        return self._add(lambda r: any(needle in str(r.get(col) or "").lower() for col, needle in clauses))

    def order(self, col, desc=False):
        self.order_by = (col, desc)
        return self

    def limit(self, n):
        self.max_rows = n
        return self

    # execução
    def _match(self, rows):
        return [r for r in rows if all(p(r) for p in self.preds)]

    def _project(self, row):
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        cols = [c.strip() for c in self.columns.split(",")]
        return {c: copy.deepcopy(row.get(c)) for c in cols}

    def execute(self):
        self.sb.calls.append((self.table, self.op))
        entry = self.sb.failures.get((self.table, self.op))
        if entry is not None:
            if entry["after"] > 0:
                entry["after"] -= 1
            elif isinstance(entry["failure"], Exception):
                raise entry["failure"]
            else:
                message, code = entry["failure"]
                raise PostgrestAPIError({"message": message, "code": code, "details": None, "hint": None})

        rows = self.sb.tables.setdefault(self.table, [])

        if self.op == "insert":
            row = dict(self.payload)
            row.setdefault("id", f"{self.table}-{next(self.sb.ids)}")
            row.setdefault("created_at", self.sb.next_timestamp())
            rows.append(row)
            return SimpleNamespace(data=[copy.deepcopy(row)], count=None)

        matched = self._match(rows)

        if self.op == "update":
            for r in matched:
                r.update(copy.deepcopy(self.payload))
            return SimpleNamespace(data=[copy.deepcopy(r) for r in matched], count=None)

        if self.op == "delete":
            self.sb.tables[self.table] = [r for r in rows if r not in matched]
            return SimpleNamespace(data=[copy.deepcopy(r) for r in matched], count=None)

        total = len(matched)
        if self.order_by:
            col, desc = self.order_by
            matched = sorted(matched, key=lambda r: (r.get(col) is None, r.get(col) or ""), reverse=desc)
        if self.max_rows is not None:
            matched = matched[: self.max_rows]
        return SimpleNamespace(data=[self._project(r) for r in matched], count=total if self.count else None)


class FakeBucket:
    def __init__(self, storage: "FakeStorage", name: str):
        self.storage = storage
        self.name = name

    @property
    def files(self):
        return self.storage.files.setdefault(self.name, {})

    def upload(self, path, data, file_options=None):
        for needle, failure in self.storage.upload_failures.items():
            if needle in path:
                if isinstance(failure, Exception):
                    raise failure
                raise StorageException({"message": failure, "statusCode": 400})
        self.files[path] = {"data": data, "options": dict(file_options or {})}
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://fake.supabase.co/storage/v1/object/public/{self.name}/{path}"

    def list(self, folder):
        if self.storage.list_error:
            raise StorageException({"message": self.storage.list_error})
        prefix = f"{folder}/"
        return [{"name": p[len(prefix):]} for p in self.files if p.startswith(prefix)]

    def remove(self, paths):
        if self.storage.remove_error:
            raise StorageException({"message": self.storage.remove_error})
        for p in paths:
            self.files.pop(p, None)
        return [{"name": p} for p in paths]


class FakeStorage:
    def __init__(self):
        self.files = {}
        self.upload_failures = {}
        self.list_error = None
        self.remove_error = None

    def from_(self, bucket):
        return FakeBucket(self, bucket)

    def fail_upload(self, needle, failure="Internal error"):
        """`failure` é a mensagem de um StorageException ou a própria exceção a levantar."""
        self.upload_failures[needle] = failure


class FakeSupabase:
    def __init__(self, tables=None):
        self.tables = {k: [dict(r) for r in v] for k, v in (tables or {}).items()}
        self.failures = {}
        self.calls = []
        self.ids = itertools.count(1)
        self._ts = itertools.count(0)
        self.storage = FakeStorage()

    def table(self, name):
        return FakeQuery(self, name)

    def fail(self, table, op, message="erro simulado", code="500", exc=None, after=0):
        """Faz `op` em `table` falhar a partir da chamada after+1 (APIError, ou `exc` se informada)."""
        self.failures[(table, op)] = {"failure": exc if exc is not None else (message, code), "after": after}

    def next_timestamp(self):
        return f"2024-01-01T00:00:{next(self._ts):02d}+00:00"

    def rows(self, table):
        return self.tables.get(table, [])

    def row(self, table, row_id):
        return next(r for r in self.rows(table) if r["id"] == row_id)


@pytest.fixture
def sb():
    return FakeSupabase()


@pytest.fixture(autouse=True)
def _helper_fee_default(monkeypatch):
    monkeypatch.delenv("GF_HELPER_FEE", raising=False)


@pytest.fixture
def endereco():
    def make(**over):
        data = {
            "logradouro": "Rua das Flores",
            "numero": "10",
            "bairro": "Centro",
            "cidade": "São Paulo",
            "uf": "SP",
            "cep": "01001-000",
        }
        data.update(over)
        return data
    return make


@pytest.fixture
def corrida_form(endereco):
    def make(**over):
        data = {
            "cliente_nome": "Maria Souza",
            "cliente_contato": "11999990000",
            "origem": endereco(),
            "destino": endereco(logradouro="Avenida Brasil", numero="200", cidade="Campinas"),
            "descricao": "Geladeira e fogão",
            "numero_ajudantes": 0,
            "valor": "250,00",
        }
        data.update(over)
        return data
    return make
