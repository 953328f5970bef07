from datetime import date
from decimal import Decimal

import dashboard
from config import TABLE_CORRIDAS, TABLE_MOTORISTAS, TABLE_SOLICITACOES

TODAY = date(2024, 5, 20)


def test_empty_database_gives_zeros(sb):
    m = dashboard.get_dashboard_metrics(sb, today=TODAY)

    assert m.total_corridas == 0
    assert m.corridas_finalizadas == 0
    assert m.faturamento_total == Decimal("0.00")
    assert m.faturamento_mes_atual == Decimal("0.00")
    assert m.avaliacao_media == 0.0


def test_metrics(sb):
    sb.tables[TABLE_MOTORISTAS] = [
        {"id": "m1", "nome": "A", "status": "ativo"},
        {"id": "m2", "nome": "B", "status": "ativo"},
        {"id": "m3", "nome": "C", "status": "ferias"},
    ]
    sb.tables[TABLE_CORRIDAS] = [
        {"id": "c1", "status": "finalizada", "valor": 100, "avaliacao": 5, "data_fim": "2024-05-02T10:00:00+00:00"},
        {"id": "c2", "status": "finalizada", "valor": 200, "avaliacao": 4, "data_fim": "2024-04-30T23:00:00+00:00"},
        {"id": "c3", "status": "finalizada", "valor": None, "avaliacao": None, "data_fim": "2024-05-10T10:00:00+00:00"},
        {"id": "c4", "status": "cancelada", "valor": 999, "avaliacao": 1},
        {"id": "c5", "status": "atribuída", "valor": 50},
        {"id": "c6", "status": "pendente", "valor": 80},
    ]

    m = dashboard.get_dashboard_metrics(sb, today=TODAY)

    assert m.total_motoristas == 3
    assert m.motoristas_ativos == 2
    assert m.total_corridas == 6
    assert m.corridas_finalizadas == 3
    assert m.corridas_em_andamento == 1
    assert m.corridas_canceladas == 1
    assert m.faturamento_total == Decimal("300.00")
    assert m.faturamento_mes_atual == Decimal("100.00")
    assert m.avaliacao_media == 4.5


def test_month_bounds_wraps_year():
    start, end = dashboard.month_bounds(date(2024, 12, 31))

    assert start.startswith("2024-12-01T00:00:00")
    assert end.startswith("2025-01-01T00:00:00")


def test_average_is_rounded():
    assert dashboard._mean([5, 4, 4]) == 4.33
    assert dashboard._mean([]) == 0.0


def test_rides_frame(sb):
    rides = [{
        "id": "c1",
        "status": "atribuída",
        "valor": 120.0,
        "motorista_nome": "João",
        "solicitacao": {"cliente_nome": "Maria", "endereco_origem": "Rua A, 1", "endereco_destino": "Rua B, 2"},
    }]

    df = dashboard.rides_frame(rides)

    assert list(df.columns) == list(dashboard.REPORT_COLUMNS.values())
    assert df.iloc[0]["Cliente"] == "Maria"
    assert df.iloc[0]["Motorista"] == "João"
    assert dashboard.rides_frame([]).empty


def test_latest_rides_and_active_drivers(sb):
    sb.tables[TABLE_SOLICITACOES] = [{"id": "s1", "cliente_nome": "Maria"}]
    sb.tables[TABLE_CORRIDAS] = [
        {"id": f"c{i}", "solicitacao_id": "s1", "status": "pendente", "created_at": f"2024-05-0{i}"}
        for i in range(1, 8)
    ]
    sb.tables[TABLE_MOTORISTAS] = [
        {"id": "m1", "nome": "A", "status": "ativo", "created_at": "2024-01-01"},
        {"id": "m2", "nome": "B", "status": "inativo", "created_at": "2024-01-02"},
    ]

    latest = dashboard.latest_rides(sb)

    assert [r["id"] for r in latest] == ["c7", "c6", "c5", "c4", "c3"]
    assert latest[0]["solicitacao"]["cliente_nome"] == "Maria"
    assert [m["id"] for m in dashboard.active_drivers(sb)] == ["m1"]
