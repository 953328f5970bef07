from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

import corridas
import db_supabase as db
from config import (
    CORRIDA_ATRIBUIDA,
    CORRIDA_CANCELADA,
    CORRIDA_FINALIZADA,
    MOTORISTA_ATIVO,
    TABLE_CORRIDAS,
    TABLE_MOTORISTAS,
)

logger = logging.getLogger(__name__)


@dataclass
class DashboardMetrics:
    total_motoristas: int = 0
    motoristas_ativos: int = 0
    total_corridas: int = 0
    corridas_finalizadas: int = 0
    corridas_em_andamento: int = 0
    corridas_canceladas: int = 0
    faturamento_total: Decimal = Decimal("0.00")
    faturamento_mes_atual: Decimal = Decimal("0.00")
    avaliacao_media: float = 0.0


def month_bounds(today: date) -> Tuple[str, str]:
    """[primeiro dia do mês, primeiro dia do mês seguinte) em ISO UTC."""
    start = datetime.combine(today.replace(day=1), time.min, tzinfo=timezone.utc)
    if today.month == 12:
        nxt = today.replace(year=today.year + 1, month=1, day=1)
    else:
        nxt = today.replace(month=today.month + 1, day=1)
    end = datetime.combine(nxt, time.min, tzinfo=timezone.utc)
    return start.isoformat(), end.isoformat()


def _sum_money(values: Iterable[Any]) -> Decimal:
    total = sum((Decimal(str(v)) for v in values if v is not None), Decimal("0"))
    return total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _mean(values: Iterable[Any]) -> float:
    vals = [float(v) for v in values if v is not None]
    if not vals:
        return 0.0
    return round(sum(vals) / len(vals), 2)


def get_dashboard_metrics(sb: Any, today: Optional[date] = None) -> DashboardMetrics:
    today = today or datetime.now(timezone.utc).date()
    inicio, fim = month_bounds(today)
    finalizada = {"status": CORRIDA_FINALIZADA}

    m = DashboardMetrics(
        total_motoristas=db.count_rows(sb, TABLE_MOTORISTAS),
        motoristas_ativos=db.count_rows(sb, TABLE_MOTORISTAS, {"status": MOTORISTA_ATIVO}),
        total_corridas=db.count_rows(sb, TABLE_CORRIDAS),
        corridas_finalizadas=db.count_rows(sb, TABLE_CORRIDAS, finalizada),
        corridas_em_andamento=db.count_rows(sb, TABLE_CORRIDAS, {"status": CORRIDA_ATRIBUIDA}),
        corridas_canceladas=db.count_rows(sb, TABLE_CORRIDAS, {"status": CORRIDA_CANCELADA}),
        faturamento_total=_sum_money(db.select_column(sb, TABLE_CORRIDAS, "valor", filters=finalizada)),
        faturamento_mes_atual=_sum_money(
            db.select_column(sb, TABLE_CORRIDAS, "valor", filters=finalizada, gte={"data_fim": inicio}, lt={"data_fim": fim})
        ),
        avaliacao_media=_mean(db.select_column(sb, TABLE_CORRIDAS, "avaliacao", filters=finalizada, not_null=True)),
    )
    logger.debug("Métricas calculadas: %s", m)
    return m


def latest_rides(sb: Any, limit: int = 5) -> List[Dict[str, Any]]:
    return corridas.list_rides(sb, limit=limit)


def active_drivers(sb: Any, limit: int = 5) -> List[Dict[str, Any]]:
    return db.list_rows(
        sb, TABLE_MOTORISTAS, filters={"status": MOTORISTA_ATIVO}, order="created_at", desc=True, limit=limit
    )


REPORT_COLUMNS = {
    "id": "Corrida",
    "status": "Status",
    "cliente_nome": "Cliente",
    "endereco_origem": "Origem",
    "endereco_destino": "Destino",
    "motorista_nome": "Motorista",
    "valor": "Valor (R$)",
    "avaliacao": "Avaliação",
    "distancia_km": "Distância (km)",
    "data_inicio": "Início",
    "data_fim": "Fim",
    "created_at": "Criada em",
}


def rides_frame(rides: List[Dict[str, Any]]) -> pd.DataFrame:
    """Achata corridas (com solicitação embutida) para tabela e CSV."""
    rows = []
    for c in rides:
        sol = c.get("solicitacao") or {}
        rows.append({
            "id": c.get("id"),
            "status": c.get("status"),
            "cliente_nome": sol.get("cliente_nome"),
            "endereco_origem": sol.get("endereco_origem"),
            "endereco_destino": sol.get("endereco_destino"),
            "motorista_nome": c.get("motorista_nome"),
            "valor": c.get("valor"),
            "avaliacao": c.get("avaliacao"),
            "distancia_km": c.get("distancia_km"),
            "data_inicio": c.get("data_inicio"),
            "data_fim": c.get("data_fim"),
            "created_at": c.get("created_at"),
        })
    df = pd.DataFrame(rows, columns=list(REPORT_COLUMNS))
    return df.rename(columns=REPORT_COLUMNS)
