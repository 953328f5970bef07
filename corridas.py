from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Union

import db_supabase as db
import storage
from config import (
    ACCEPTED_IMAGE_TYPES,
    BUCKET_CORRIDAS,
    CORRIDA_ATRIBUIDA,
    CORRIDA_CANCELADA,
    CORRIDA_FINALIZADA,
    CORRIDA_PENDENTE,
    CORRIDA_TO_SOLICITACAO,
    MAX_FILE_SIZE,
    MAX_FOTOS,
    MOTORISTA_ATIVO,
    TABLE_CORRIDAS,
    TABLE_MOTORISTAS,
    TABLE_SOLICITACOES,
    TIPOS_VEICULOS,
    TRANSITIONS,
)
from errors import (
    ConflictError,
    DriverUnavailableError,
    InvalidTransitionError,
    LifecycleError,
    StorageError,
    ValidationError,
)
from models import NovaCorridaForm, parse_form
from pricing import compute_price, to_db_value
from storage import Arquivo, UploadResult

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass
class RideResult:
    corrida: Dict[str, Any]
    fotos: UploadResult = field(default_factory=UploadResult)


def vehicle_types() -> List[Dict[str, str]]:
    return [{"id": k, "nome": v} for k, v in TIPOS_VEICULOS.items()]


def _check_fotos(fotos: Sequence[Arquivo]) -> None:
    errors = []
    if len(fotos) > MAX_FOTOS:
        errors.append(f"Máximo de {MAX_FOTOS} fotos por envio.")
    for f in fotos:
        if f.content_type not in ACCEPTED_IMAGE_TYPES:
            errors.append(f"{f.name}: formatos aceitos .jpg, .jpeg, .png e .webp.")
        if f.size > MAX_FILE_SIZE:
            errors.append(f"{f.name}: tamanho máximo de 10MB.")
    if errors:
        raise ValidationError(errors)


# --------------------------------------------------------------------------------------
# Criação (solicitação + corrida)
# --------------------------------------------------------------------------------------
def create_ride(
    sb: Any,
    form: Union[NovaCorridaForm, Dict[str, Any]],
    fotos: Optional[Sequence[Arquivo]] = None,
) -> RideResult:
    if not isinstance(form, NovaCorridaForm):
        form = parse_form(NovaCorridaForm, form)
    fotos = list(fotos or [])
    _check_fotos(fotos)

    # valor final = valor base + R$100 por ajudante, calculado uma única vez aqui
    valor = to_db_value(compute_price(form.valor, form.numero_ajudantes))

    try:
        upload = storage.upload_images(sb, fotos, "carga") if fotos else UploadResult()
        solicitacao = db.insert_row(sb, TABLE_SOLICITACOES, form.to_solicitacao_row(valor, upload.urls))
    except StorageError as e:
        raise LifecycleError(f"Erro ao criar solicitação: {e}") from e

    try:
        corrida = db.insert_row(sb, TABLE_CORRIDAS, {
            "solicitacao_id": solicitacao["id"],
            "status": CORRIDA_PENDENTE,
            "valor": valor,
        })
    except StorageError as e:
        logger.error("Corrida não criada para a solicitação %s; removendo a solicitação.", solicitacao["id"])
        try:
            db.delete_rows(sb, TABLE_SOLICITACOES, solicitacao["id"])
        except StorageError:
            logger.exception("Solicitação %s ficou sem corrida.", solicitacao["id"])
        storage.remove_files(sb, BUCKET_CORRIDAS, upload.paths)
        raise LifecycleError(f"Erro ao criar corrida: {e}") from e

    logger.info("Corrida %s criada (solicitação %s, valor %s).", corrida["id"], solicitacao["id"], valor)
    corrida["solicitacao"] = solicitacao
    return RideResult(corrida=corrida, fotos=upload)


# --------------------------------------------------------------------------------------
# Transições
# --------------------------------------------------------------------------------------
def _load_ride(sb: Any, corrida_id: Any) -> Dict[str, Any]:
    try:
        return db.require_row(sb, TABLE_CORRIDAS, corrida_id)
    except StorageError as e:
        raise LifecycleError(f"Erro ao buscar corrida {corrida_id}: {e}", corrida_id) from e


def _guard(corrida: Dict[str, Any], action: str) -> None:
    status = corrida.get("status")
    if status not in TRANSITIONS[action]:
        raise InvalidTransitionError(corrida["id"], status, action)


def _rollback(sb: Any, before: Dict[str, Any], patch: Dict[str, Any]) -> bool:
    restore = {k: before.get(k) for k in patch}
    try:
        rows = db.update_rows(sb, TABLE_CORRIDAS, before["id"], restore, where={"status": patch["status"]})
    except StorageError as e:
        logger.error("Restauração da corrida %s falhou: %s", before["id"], e)
        rows = []
    if not rows:
        logger.error(
            "Não foi possível restaurar a corrida %s; corrida e solicitação %s estão divergentes.",
            before["id"], before.get("solicitacao_id"),
        )
        return False
    logger.warning("Corrida %s restaurada para '%s'.", before["id"], before.get("status"))
    return True


def _undo(sb: Any, corrida: Dict[str, Any], patch: Dict[str, Any], reason: str) -> LifecycleError:
    cid = corrida["id"]
    if _rollback(sb, corrida, patch):
        return LifecycleError(f"{reason} A corrida {cid} voltou para '{corrida['status']}'.", cid)
    return LifecycleError(
        f"{reason} A corrida {cid} NÃO pôde ser restaurada e está divergente da solicitação "
        f"{corrida.get('solicitacao_id')}; corrija manualmente.",
        cid,
        diverged=True,
    )


def _apply(sb: Any, corrida: Dict[str, Any], action: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    """Grava a corrida (condicionada ao status lido) e depois espelha o status na solicitação."""
    cid = corrida["id"]
    try:
        rows = db.update_rows(sb, TABLE_CORRIDAS, cid, patch, where={"status": corrida["status"]})
    except StorageError as e:
        raise LifecycleError(f"Erro ao {action} corrida {cid}: {e}", cid) from e
    if not rows:
        raise ConflictError(f"A corrida {cid} foi alterada por outra pessoa. Recarregue e tente novamente.", cid)

    sol_id = corrida.get("solicitacao_id")
    sol_status = CORRIDA_TO_SOLICITACAO[patch["status"]]
    try:
        sol_rows = db.update_rows(sb, TABLE_SOLICITACOES, sol_id, {"status": sol_status})
    except StorageError as e:
        raise _undo(sb, corrida, patch, f"Erro ao atualizar a solicitação {sol_id}: {e}.") from e
    if not sol_rows:
        raise _undo(sb, corrida, patch, f"Solicitação {sol_id} não encontrada.")

    logger.info("Corrida %s: %s -> %s (solicitação %s -> %s).", cid, corrida["status"], patch["status"], sol_id, sol_status)
    return rows[0]


def assign_driver(sb: Any, corrida_id: Any, motorista_id: Any) -> Dict[str, Any]:
    corrida = _load_ride(sb, corrida_id)
    _guard(corrida, "atribuir")

    try:
        motorista = db.get_row(sb, TABLE_MOTORISTAS, motorista_id)
    except StorageError as e:
        raise LifecycleError(f"Erro ao buscar motorista {motorista_id}: {e}", corrida_id) from e
    if motorista is None:
        raise DriverUnavailableError(f"Motorista {motorista_id} não encontrado.", corrida_id)
    if motorista.get("status") != MOTORISTA_ATIVO:
        raise DriverUnavailableError(
            f"Motorista {motorista.get('nome') or motorista_id} não está ativo (status '{motorista.get('status')}').",
            corrida_id,
        )

    return _apply(sb, corrida, "atribuir", {
        "motorista_id": motorista_id,
        "data_inicio": utc_now_iso(),
        "status": CORRIDA_ATRIBUIDA,
    })


def _parse_avaliacao(value: Any, errors: List[str]) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        errors.append("Avaliação deve ser um número inteiro entre 1 e 5.")
        return None
    try:
        nota = int(value)
    except (TypeError, ValueError):
        errors.append("Avaliação deve ser um número inteiro entre 1 e 5.")
        return None
    if not 1 <= nota <= 5:
        errors.append("Avaliação deve ser entre 1 e 5.")
    return nota


def _parse_distancia(value: Any, errors: List[str]) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        km = float(str(value).replace(",", "."))
    except (TypeError, ValueError):
        errors.append("Distância deve ser um número.")
        return None
    if km < 0:
        errors.append("Distância não pode ser negativa.")
    return km


def finalize_ride(
    sb: Any,
    corrida_id: Any,
    valor: Union[str, Decimal, float, None] = None,
    observacoes: Optional[str] = None,
    fotos: Optional[Sequence[Arquivo]] = None,
    avaliacao: Optional[int] = None,
    feedback: Optional[str] = None,
    distancia_km: Optional[float] = None,
) -> RideResult:
    errors = []
    avaliacao = _parse_avaliacao(avaliacao, errors)
    distancia_km = _parse_distancia(distancia_km, errors)
    if errors:
        raise ValidationError(errors)
    fotos = list(fotos or [])
    _check_fotos(fotos)

    corrida = _load_ride(sb, corrida_id)
    _guard(corrida, "finalizar")

    try:
        upload = storage.upload_images(sb, fotos, "entrega") if fotos else UploadResult()
    except StorageError as e:
        raise LifecycleError(f"Erro ao enviar fotos da entrega: {e}", corrida_id) from e

    try:
        updated = _apply(sb, corrida, "finalizar", {
            "status": CORRIDA_FINALIZADA,
            "data_fim": utc_now_iso(),
            "valor": to_db_value(valor) or 0,
            "observacoes": observacoes,
            "fotos_entrega": upload.urls,
            "avaliacao": avaliacao,
            "feedback": feedback,
            "distancia_km": distancia_km,
        })
    except LifecycleError:
        storage.remove_files(sb, BUCKET_CORRIDAS, upload.paths)
        raise
    return RideResult(corrida=updated, fotos=upload)


def cancel_ride(sb: Any, corrida_id: Any, motivo: Optional[str] = None) -> Dict[str, Any]:
    corrida = _load_ride(sb, corrida_id)
    _guard(corrida, "cancelar")

    patch: Dict[str, Any] = {"status": CORRIDA_CANCELADA}
    if motivo is not None:
        patch["observacoes"] = motivo
    return _apply(sb, corrida, "cancelar", patch)


# --------------------------------------------------------------------------------------
# Consultas
# --------------------------------------------------------------------------------------
def _enrich(sb: Any, corridas: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    sols = db.get_rows_by_ids(sb, TABLE_SOLICITACOES, (c.get("solicitacao_id") for c in corridas))
    mots = db.get_rows_by_ids(sb, TABLE_MOTORISTAS, (c.get("motorista_id") for c in corridas), columns="id, nome")
    out = []
    for c in corridas:
        item = dict(c)
        item["solicitacao"] = sols.get(c.get("solicitacao_id"))
        if c.get("motorista_id"):
            m = mots.get(c["motorista_id"])
            item["motorista_nome"] = (m or {}).get("nome") or "Motorista não encontrado"
        out.append(item)
    return out


def list_rides(sb: Any, status: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    rows = db.list_rows(
        sb, TABLE_CORRIDAS,
        filters={"status": status} if status else None,
        order="created_at", desc=True, limit=limit,
    )
    return _enrich(sb, rows)


def get_ride(sb: Any, corrida_id: Any) -> Optional[Dict[str, Any]]:
    row = db.get_row(sb, TABLE_CORRIDAS, corrida_id)
    return _enrich(sb, [row])[0] if row else None


def list_assignable_drivers(sb: Any) -> List[Dict[str, Any]]:
    return db.list_rows(sb, TABLE_MOTORISTAS, columns="id, nome", filters={"status": MOTORISTA_ATIVO}, order="nome")
