from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

import db_supabase as db
import storage
from config import (
    ACCEPTED_DOC_TYPES,
    ACCEPTED_IMAGE_TYPES,
    DOC_TYPES,
    MAX_FILE_SIZE,
    MOTORISTA_ATIVO,
    MOTORISTA_INATIVO,
    MOTORISTA_STATUS_LABELS,
    TABLE_MOTORISTAS,
)
from errors import StorageError, ValidationError
from models import MotoristaForm, Veiculo, parse_form
from storage import Arquivo

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("nome", "email", "telefone", "placa_veiculo")


def _normalize(row: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(row)
    out["veiculo"] = Veiculo.coerce(row.get("veiculo")).model_dump()
    out["documentos"] = dict(row.get("documentos") or {})
    return out


def _check_documentos(documentos: Mapping[str, Arquivo]) -> None:
    errors = []
    for doc_type, f in documentos.items():
        if doc_type not in DOC_TYPES:
            errors.append(f"Documento desconhecido: {doc_type}.")
            continue
        accepted = ACCEPTED_IMAGE_TYPES if doc_type == "perfil" else ACCEPTED_DOC_TYPES
        if f.content_type not in accepted:
            errors.append(f"{doc_type}: formato não aceito ({f.content_type}).")
        if f.size > MAX_FILE_SIZE:
            errors.append(f"{doc_type}: tamanho máximo de 10MB.")
    if errors:
        raise ValidationError(errors)


def _upload_documentos(sb: Any, motorista_id: Any, documentos: Mapping[str, Arquivo]) -> Dict[str, str]:
    """Sobe os documentos informados; devolve {doc_type: url}. Para no primeiro erro."""
    urls = {}
    for doc_type, f in documentos.items():
        urls[doc_type] = storage.upload_document(sb, f, motorista_id, doc_type)
    return urls


def _split_perfil(urls: Dict[str, str]) -> Dict[str, Any]:
    patch: Dict[str, Any] = {}
    docs = {k: v for k, v in urls.items() if k != "perfil"}
    if docs:
        patch["documentos"] = docs
    if "perfil" in urls:
        patch["foto_perfil"] = urls["perfil"]
    return patch


def list_drivers(sb: Any, status: Optional[str] = None, search: Optional[str] = None) -> List[Dict[str, Any]]:
    if search and search.strip():
        rows = db.search_rows(sb, TABLE_MOTORISTAS, search, SEARCH_FIELDS, order="nome")
        if status:
            rows = [r for r in rows if r.get("status") == status]
    else:
        rows = db.list_rows(sb, TABLE_MOTORISTAS, filters={"status": status} if status else None, order="nome")
    return [_normalize(r) for r in rows]


def get_driver(sb: Any, motorista_id: Any) -> Optional[Dict[str, Any]]:
    row = db.get_row(sb, TABLE_MOTORISTAS, motorista_id)
    return _normalize(row) if row else None


def create_driver(
    sb: Any,
    form: Union[MotoristaForm, Dict[str, Any]],
    documentos: Optional[Mapping[str, Arquivo]] = None,
) -> Dict[str, Any]:
    if not isinstance(form, MotoristaForm):
        form = parse_form(MotoristaForm, form)
    documentos = dict(documentos or {})
    _check_documentos(documentos)

    # cria primeiro para ter o id que nomeia a pasta dos documentos
    row = db.insert_row(sb, TABLE_MOTORISTAS, form.to_row())
    logger.info("Motorista %s criado (%s).", row["id"], row.get("nome"))

    if documentos:
        try:
            patch = _split_perfil(_upload_documentos(sb, row["id"], documentos))
            updated = db.update_rows(sb, TABLE_MOTORISTAS, row["id"], patch)
            if updated:
                row = updated[0]
        except StorageError:
            # o cadastro fica válido sem os documentos; podem ser reenviados na edição
            logger.exception("Motorista %s criado sem documentos.", row["id"])

    return _normalize(row)


def update_driver(
    sb: Any,
    motorista_id: Any,
    form: Union[MotoristaForm, Dict[str, Any]],
    documentos: Optional[Mapping[str, Arquivo]] = None,
) -> Dict[str, Any]:
    if not isinstance(form, MotoristaForm):
        form = parse_form(MotoristaForm, form)
    documentos = dict(documentos or {})
    _check_documentos(documentos)

    current = db.require_row(sb, TABLE_MOTORISTAS, motorista_id)
    patch = form.to_row()

    uploaded = _split_perfil(_upload_documentos(sb, motorista_id, documentos))
    docs = dict(current.get("documentos") or {})
    docs.update(uploaded.get("documentos", {}))
    patch["documentos"] = docs
    if "foto_perfil" in uploaded:
        patch["foto_perfil"] = uploaded["foto_perfil"]

    rows = db.update_rows(sb, TABLE_MOTORISTAS, motorista_id, patch)
    if not rows:
        raise StorageError("registro não encontrado", code="not_found", context=f"Update {TABLE_MOTORISTAS} {motorista_id} falhou")
    return _normalize(rows[0])


def set_driver_status(sb: Any, motorista_id: Any, status: str) -> Dict[str, Any]:
    """Só muda o motorista; corridas já atribuídas a ele continuam como estão."""
    if status not in MOTORISTA_STATUS_LABELS:
        raise ValidationError([f"Status de motorista desconhecido: {status}."])
    rows = db.update_rows(sb, TABLE_MOTORISTAS, motorista_id, {"status": status})
    if not rows:
        raise StorageError("registro não encontrado", code="not_found", context=f"Update {TABLE_MOTORISTAS} {motorista_id} falhou")
    return _normalize(rows[0])


def toggle_driver_status(sb: Any, motorista_id: Any) -> Dict[str, Any]:
    current = db.require_row(sb, TABLE_MOTORISTAS, motorista_id)
    new_status = MOTORISTA_INATIVO if current.get("status") == MOTORISTA_ATIVO else MOTORISTA_ATIVO
    return set_driver_status(sb, motorista_id, new_status)


def delete_driver(sb: Any, motorista_id: Any) -> None:
    db.delete_rows(sb, TABLE_MOTORISTAS, motorista_id)
    removed = storage.remove_driver_documents(sb, motorista_id)
    logger.info("Motorista %s removido (%d arquivo(s) apagados).", motorista_id, removed)
