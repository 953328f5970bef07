import httpx
import pytest

import db_supabase as db
from errors import StorageError


def test_api_error_becomes_storage_error(sb):
    sb.fail("motoristas", "select", message="permission denied for table motoristas", code="42501")

    with pytest.raises(StorageError) as exc:
        db.list_rows(sb, "motoristas")

    assert exc.value.code == "42501"
    assert str(exc.value) == "List motoristas falhou: permission denied for table motoristas"


@pytest.mark.parametrize("error", [
    httpx.ConnectError("connection refused"),
    httpx.ReadTimeout("timed out"),
])
def test_network_error_becomes_storage_error(sb, error):
    sb.fail("corridas", "update", exc=error)

    with pytest.raises(StorageError) as exc:
        db.update_rows(sb, "corridas", "c1", {"status": "cancelada"})

    assert exc.value.code == "network"
    assert exc.value.__cause__ is error


def test_conditional_update_matches_nothing(sb):
    sb.tables["corridas"] = [{"id": "c1", "status": "cancelada"}]

    assert db.update_rows(sb, "corridas", "c1", {"status": "atribuída"}, where={"status": "pendente"}) == []
    assert sb.row("corridas", "c1")["status"] == "cancelada"


def test_require_row_missing(sb):
    with pytest.raises(StorageError) as exc:
        db.require_row(sb, "corridas", "c9")

    assert exc.value.code == "not_found"


@pytest.mark.parametrize("text, expected", [
    ("silva, joão", "silva joão"),
    ("(11) 9999", "11 9999"),
    ("  ", ""),
    (None, ""),
])
def test_search_term_drops_filter_syntax(text, expected):
    assert db._search_term(text) == expected


def test_search_with_comma_and_parentheses(sb):
    sb.tables["motoristas"] = [
        {"id": "m1", "nome": "Ana", "telefone": "11 99999"},
        {"id": "m2", "nome": "Bruno", "telefone": "21 88888"},
    ]

    rows = db.search_rows(sb, "motoristas", "(11),", ["nome", "telefone"])

    assert [r["id"] for r in rows] == ["m1"]


def test_count_and_batched_lookup(sb):
    sb.tables["motoristas"] = [{"id": f"m{i}", "status": "ativo" if i % 2 else "inativo"} for i in range(5)]

    assert db.count_rows(sb, "motoristas") == 5
    assert db.count_rows(sb, "motoristas", {"status": "ativo"}) == 2
    assert set(db.get_rows_by_ids(sb, "motoristas", ["m1", None, "m1", "m3"])) == {"m1", "m3"}
    assert db.get_rows_by_ids(sb, "motoristas", [None]) == {}
