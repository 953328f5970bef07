from datetime import date

import pytest

from errors import ValidationError
from models import FinalizarCorridaForm, NovaCorridaForm, Veiculo, parse_form


def test_nova_corrida_defaults(corrida_form):
    form = parse_form(NovaCorridaForm, corrida_form(numero_ajudantes="", tipo_veiculo_requerido=""))

    assert form.numero_ajudantes == 0
    assert form.tipo_veiculo_requerido == "carro"


def test_nova_corrida_row(corrida_form):
    form = parse_form(NovaCorridaForm, corrida_form(
        cliente_email="MARIA@EXEMPLO.COM", data_retirada=date(2024, 6, 1), horario_retirada="08:30",
    ))

    row = form.to_solicitacao_row(250.0, ["u1"])

    assert row["status"] == "pendente"
    assert row["cliente_email"] == "maria@exemplo.com"
    assert row["data_retirada"] == "2024-06-01"
    assert row["estado_destino"] == "SP"
    assert row["cidade_destino"] == "Campinas"
    assert row["fotos_carga"] == ["u1"]


def test_nova_corrida_error_messages_name_fields(corrida_form, endereco):
    with pytest.raises(ValidationError) as exc:
        parse_form(NovaCorridaForm, corrida_form(
            origem=endereco(uf="XX"), horario_retirada="25:00", tipo_veiculo_requerido="foguete",
        ))

    fields = sorted(msg.split(":")[0] for msg in exc.value.errors)
    assert fields == ["horario_retirada", "origem.uf", "tipo_veiculo_requerido"]
    assert not any("Value error" in msg for msg in exc.value.errors)


def test_negative_helpers_rejected(corrida_form):
    with pytest.raises(ValidationError):
        parse_form(NovaCorridaForm, corrida_form(numero_ajudantes=-1))


def test_finalizar_form_accepts_comma_distance():
    form = parse_form(FinalizarCorridaForm, {"valor": "300,00", "distancia_km": "12,5", "avaliacao": "4", "feedback": ""})

    assert form.distancia_km == 12.5
    assert form.avaliacao == 4
    assert form.feedback is None


def test_finalizar_form_rejects_rating_out_of_range():
    with pytest.raises(ValidationError):
        parse_form(FinalizarCorridaForm, {"valor": "300,00", "avaliacao": "0"})


def test_veiculo_label():
    assert Veiculo(tipo="van", descricao="Ducato").label == "Van - Ducato"
    assert Veiculo.coerce(None).label == "—"
    assert Veiculo.coerce({"tipo": "moto"}).label == "Moto"
