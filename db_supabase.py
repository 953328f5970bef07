from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import httpx
from supabase import Client, PostgrestAPIError

from errors import StorageError

logger = logging.getLogger(__name__)


def _err_text(err: Any) -> str:
    if err is None:
        return ""
    if isinstance(err, dict):
        return err.get("message") or str(err)
    msg = getattr(err, "message", None)
    return msg or str(err)


def _raise_if_error(resp: Any, context: str) -> None:
    # clientes antigos devolvem o erro na resposta em vez de levantar
    err = getattr(resp, "error", None)
    if err:
        raise StorageError(_err_text(err), context=context)


def _execute(query: Any, context: str) -> Any:
    try:
        resp = query.execute()
    except PostgrestAPIError as e:
        logger.error("%s: %s (code=%s details=%s)", context, e.message, e.code, e.details)
        raise StorageError(e.message or str(e), code=e.code, details=e.details, context=context) from e
    except httpx.HTTPError as e:
        logger.error("%s: falha de rede (%s: %s)", context, type(e).__name__, e)
        raise StorageError(f"falha de rede: {e}", code="network", context=context) from e
    _raise_if_error(resp, context)
    return resp


# --------------------------------------------------------------------------------------
# Leitura
# --------------------------------------------------------------------------------------
def list_rows(
    sb: Client,
    table: str,
    columns: str = "*",
    filters: Optional[Dict[str, Any]] = None,
    order: Optional[str] = None,
    desc: bool = False,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    q = sb.table(table).select(columns)
    for col, val in (filters or {}).items():
        q = q.eq(col, val)
    if order:
        q = q.order(order, desc=desc)
    if limit is not None:
        q = q.limit(limit)
    resp = _execute(q, f"List {table} falhou")
    return resp.data or []


def get_row(sb: Client, table: str, row_id: Any) -> Optional[Dict[str, Any]]:
    resp = _execute(sb.table(table).select("*").eq("id", row_id).limit(1), f"Get {table} {row_id} falhou")
    data = resp.data or []
    return data[0] if data else None


def require_row(sb: Client, table: str, row_id: Any) -> Dict[str, Any]:
    row = get_row(sb, table, row_id)
    if row is None:
        raise StorageError("registro não encontrado", code="not_found", context=f"Get {table} {row_id} falhou")
    return row


def get_rows_by_ids(sb: Client, table: str, ids: Iterable[Any], columns: str = "*") -> Dict[Any, Dict[str, Any]]:
    wanted = sorted({i for i in ids if i is not None}, key=str)
    if not wanted:
        return {}
    resp = _execute(sb.table(table).select(columns).in_("id", wanted), f"Get {table} em lote falhou")
    return {r["id"]: r for r in (resp.data or [])}


_RE_FILTER_RESERVED = re.compile(r"[,()]")


def _search_term(query: str) -> str:
    """Texto livre para dentro de um filtro or_(): vírgula e parênteses são sintaxe do PostgREST."""
    return " ".join(_RE_FILTER_RESERVED.sub(" ", query or "").split())


def search_rows(
    sb: Client,
    table: str,
    query: str,
    fields: Iterable[str],
    order: Optional[str] = None,
) -> List[Dict[str, Any]]:
    q = _search_term(query)
    if not q:
        return list_rows(sb, table, order=order)

    expr = ",".join(f"{f}.ilike.%{q}%" for f in fields)
    builder = sb.table(table).select("*").or_(expr)
    if order:
        builder = builder.order(order)
    resp = _execute(builder, f"Search {table} falhou")
    return resp.data or []


def count_rows(sb: Client, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
    q = sb.table(table).select("id", count="exact")
    for col, val in (filters or {}).items():
        q = q.eq(col, val)
    resp = _execute(q.limit(1), f"Count {table} falhou")
    return int(resp.count or 0)


def select_column(
    sb: Client,
    table: str,
    column: str,
    filters: Optional[Dict[str, Any]] = None,
    gte: Optional[Dict[str, Any]] = None,
    lt: Optional[Dict[str, Any]] = None,
    not_null: bool = False,
) -> List[Any]:
    """Valores de uma coluna, com filtros de igualdade e de intervalo."""
    q = sb.table(table).select(column)
    for col, val in (filters or {}).items():
        q = q.eq(col, val)
    for col, val in (gte or {}).items():
        q = q.gte(col, val)
    for col, val in (lt or {}).items():
        q = q.lt(col, val)
    if not_null:
        q = q.not_.is_(column, "null")
    resp = _execute(q, f"Select {table}.{column} falhou")
    return [r.get(column) for r in (resp.data or [])]


# --------------------------------------------------------------------------------------
# Escrita
# --------------------------------------------------------------------------------------
def insert_row(sb: Client, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
    resp = _execute(sb.table(table).insert(row), f"Insert {table} falhou")
    data = resp.data or []
    if not data:
        raise StorageError("insert não retornou o registro criado", context=f"Insert {table} falhou")
    return data[0]


def update_rows(
    sb: Client,
    table: str,
    row_id: Any,
    patch: Dict[str, Any],
    where: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """UPDATE ... WHERE id = row_id [AND col = val ...]; devolve as linhas alteradas.

    Com `where`, a atualização só acontece se as colunas ainda tiverem os valores
    esperados; lista vazia indica que nenhuma linha casou.
    """
    q = sb.table(table).update(patch).eq("id", row_id)
    for col, val in (where or {}).items():
        q = q.eq(col, val)
    resp = _execute(q, f"Update {table} {row_id} falhou")
    return resp.data or []


def delete_rows(sb: Client, table: str, row_id: Any) -> None:
    _execute(sb.table(table).delete().eq("id", row_id), f"Delete {table} {row_id} falhou")
