from __future__ import annotations

import logging

import pandas as pd
import streamlit as st

import corridas
import dashboard
import motoristas
import settings
from config import (
    CORRIDA_ATRIBUIDA,
    CORRIDA_PENDENTE,
    DOC_TYPES,
    MAX_FOTOS,
    MOTORISTA_STATUS_LABELS,
    TERMINAL_STATUSES,
    TIPOS_VEICULOS,
    UF_LIST,
)
from errors import ValidationError
from models import FinalizarCorridaForm, Veiculo, parse_form
from net_guard import require_supabase_admin_ok
from pricing import format_brl
from storage import Arquivo
from validators import format_cep
from supabase_client import get_admin_client

settings.configure_logging()
logger = logging.getLogger("admin")

st.set_page_config(page_title="Gestão de Fretes - Admin", layout="wide")

sb = get_admin_client()
require_supabase_admin_ok(sb)


def run_safe(fn, label: str, *args, **kwargs):
    try:
        out = fn(*args, **kwargs)
        st.success(f"{label}: concluído.")
        return out
    except ValidationError as e:
        for msg in e.errors:
            st.error(msg)
    except Exception as e:
        logger.exception("%s falhou", label)
        st.error(f"{label}: falhou.")
        with st.expander("Detalhes técnicos"):
            st.code(str(e))
    return None


def _arquivos(files) -> list:
    return [Arquivo.from_upload(f) for f in (files or [])]


def _report_upload(result) -> None:
    if result is not None and result.fotos.failed:
        st.warning(f"Fotos: {result.fotos.summary()}. Falharam: " + ", ".join(n for _, n, _ in result.fotos.failed))


# --------------------------------------------------------------------------------------
# Dashboard
# --------------------------------------------------------------------------------------
def dashboard_view() -> None:
    st.title("Dashboard")
    m = dashboard.get_dashboard_metrics(sb)

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Motoristas", m.total_motoristas, f"{m.motoristas_ativos} ativos", delta_color="off")
    c2.metric("Corridas", m.total_corridas)
    c3.metric("Faturamento total", f"R$ {format_brl(m.faturamento_total)}")
    c4.metric("Faturamento do mês", f"R$ {format_brl(m.faturamento_mes_atual)}")

    c5, c6, c7, c8 = st.columns(4)
    c5.metric("Finalizadas", m.corridas_finalizadas)
    c6.metric("Em andamento", m.corridas_em_andamento)
    c7.metric("Canceladas", m.corridas_canceladas)
    c8.metric("Avaliação média", f"{m.avaliacao_media:.1f}")

    left, right = st.columns([3, 2])
    with left:
        st.subheader("Últimas corridas")
        st.dataframe(dashboard.rides_frame(dashboard.latest_rides(sb)), use_container_width=True, hide_index=True)
    with right:
        st.subheader("Motoristas ativos")
        ativos = dashboard.active_drivers(sb)
        if ativos:
            st.dataframe(pd.DataFrame(ativos)[["nome", "telefone"]], use_container_width=True, hide_index=True)
        else:
            st.caption("Nenhum motorista ativo.")


# --------------------------------------------------------------------------------------
# Corridas
# --------------------------------------------------------------------------------------
def _endereco_inputs(prefix: str) -> dict:
    e1, e2, e3 = st.columns([2, 4, 1])
    cep = e1.text_input("CEP", key=f"{prefix}_cep")
    logradouro = e2.text_input("Endereço *", key=f"{prefix}_logradouro")
    numero = e3.text_input("Número *", key=f"{prefix}_numero")
    e4, e5, e6, e7 = st.columns([2, 2, 2, 1])
    complemento = e4.text_input("Complemento", key=f"{prefix}_complemento")
    bairro = e5.text_input("Bairro *", key=f"{prefix}_bairro")
    cidade = e6.text_input("Cidade *", key=f"{prefix}_cidade")
    uf = e7.selectbox("UF *", [""] + UF_LIST, key=f"{prefix}_uf")
    ref = st.text_input("Ponto de referência", key=f"{prefix}_ref")
    return {
        "cep": cep, "logradouro": logradouro, "numero": numero, "complemento": complemento,
        "bairro": bairro, "cidade": cidade, "uf": uf, "ponto_referencia": ref,
    }


def nova_corrida_form() -> None:
    with st.form("nova_corrida", clear_on_submit=False):
        st.markdown("### Cliente")
        c1, c2 = st.columns(2)
        cliente_nome = c1.text_input("Nome *")
        cliente_contato = c2.text_input("Contato *")
        c3, c4 = st.columns(2)
        cliente_email = c3.text_input("E-mail")
        cliente_empresa = c4.text_input("Empresa")

        st.markdown("### Origem")
        origem = _endereco_inputs("origem")
        st.markdown("### Destino")
        destino = _endereco_inputs("destino")

        st.markdown("### Carga")
        descricao = st.text_area("Descrição da carga *")
        k1, k2, k3 = st.columns(3)
        dimensoes = k1.text_input("Dimensões")
        peso = k2.text_input("Peso aproximado")
        quantidade = k3.text_input("Quantidade de itens")
        k4, k5, k6 = st.columns(3)
        tipos = {t["id"]: t["nome"] for t in corridas.vehicle_types()}
        tipo = k4.selectbox("Veículo necessário", list(tipos), format_func=tipos.get)
        ajudantes = k5.number_input("Ajudantes", min_value=0, step=1, value=0)
        valor = k6.text_input("Valor base (R$)", placeholder="1.234,56")
        k7, k8 = st.columns(2)
        data_retirada = k7.date_input("Data de retirada", value=None)
        horario = k8.text_input("Horário de retirada", placeholder="HH:MM")
        observacoes = st.text_area("Observações")
        fotos = st.file_uploader(
            f"Fotos da carga (até {MAX_FOTOS})", type=["jpg", "jpeg", "png", "webp"], accept_multiple_files=True
        )

        if st.form_submit_button("Criar corrida", type="primary"):
            data = {
                "cliente_nome": cliente_nome, "cliente_contato": cliente_contato,
                "cliente_email": cliente_email, "cliente_empresa": cliente_empresa,
                "origem": origem, "destino": destino,
                "descricao": descricao, "dimensoes": dimensoes, "peso_aproximado": peso,
                "quantidade_itens": quantidade, "tipo_veiculo_requerido": tipo,
                "numero_ajudantes": int(ajudantes), "valor": valor, "observacoes": observacoes,
                "data_retirada": data_retirada, "horario_retirada": horario,
            }
            result = run_safe(corridas.create_ride, "Nova corrida", sb, data, _arquivos(fotos))
            _report_upload(result)


def corrida_actions(c: dict) -> None:
    cid = c["id"]
    status = c.get("status")
    if status in TERMINAL_STATUSES:
        st.caption(f"Corrida {status}; nenhuma ação disponível.")
        return

    if status == CORRIDA_PENDENTE:
        drivers = corridas.list_assignable_drivers(sb)
        if drivers:
            options = {d["id"]: d["nome"] for d in drivers}
            mid = st.selectbox("Motorista", list(options), format_func=options.get, key=f"mot_{cid}")
            if st.button("Atribuir motorista", key=f"atribuir_{cid}", type="primary"):
                if run_safe(corridas.assign_driver, "Atribuir motorista", sb, cid, mid) is not None:
                    st.rerun()
        else:
            st.caption("Nenhum motorista ativo disponível.")

    if status == CORRIDA_ATRIBUIDA:
        with st.form(f"finalizar_{cid}"):
            f1, f2, f3 = st.columns(3)
            valor = f1.text_input("Valor (R$) *", value=format_brl(c.get("valor") or 0))
            distancia = f2.text_input("Distância (km)")
            avaliacao = f3.selectbox("Avaliação", ["", "1", "2", "3", "4", "5"], index=5)
            observacoes = st.text_area("Observações")
            feedback = st.text_area("Feedback do cliente")
            fotos = st.file_uploader(
                f"Fotos da entrega (até {MAX_FOTOS})", type=["jpg", "jpeg", "png", "webp"],
                accept_multiple_files=True, key=f"fotos_{cid}",
            )
            if st.form_submit_button("Finalizar corrida", type="primary"):
                try:
                    form = parse_form(FinalizarCorridaForm, {
                        "valor": valor, "distancia_km": distancia, "avaliacao": avaliacao,
                        "observacoes": observacoes, "feedback": feedback,
                    })
                except ValidationError as e:
                    for msg in e.errors:
                        st.error(msg)
                else:
                    result = run_safe(
                        corridas.finalize_ride, "Finalizar corrida", sb, cid, form.valor,
                        observacoes=form.observacoes, fotos=_arquivos(fotos), avaliacao=form.avaliacao,
                        feedback=form.feedback, distancia_km=form.distancia_km,
                    )
                    _report_upload(result)

    if status in (CORRIDA_PENDENTE, CORRIDA_ATRIBUIDA):
        motivo = st.text_input("Motivo do cancelamento", key=f"motivo_{cid}")
        if st.button("Cancelar corrida", key=f"cancelar_{cid}"):
            if run_safe(corridas.cancel_ride, "Cancelar corrida", sb, cid, motivo.strip() or None) is not None:
                st.rerun()


def corridas_view() -> None:
    st.title("Corridas")
    with st.expander("Nova corrida"):
        nova_corrida_form()

    rides = corridas.list_rides(sb)
    if not rides:
        st.info("Nenhuma corrida cadastrada.")
        return

    st.dataframe(dashboard.rides_frame(rides), use_container_width=True, hide_index=True)

    st.subheader("Detalhes")
    by_id = {c["id"]: c for c in rides}
    chosen = st.selectbox(
        "Corrida", list(by_id),
        format_func=lambda i: f"{(by_id[i].get('solicitacao') or {}).get('cliente_nome', '—')} [{by_id[i]['status']}]",
    )
    c = by_id[chosen]
    left, right = st.columns([1, 1])
    with left:
        st.json(c)
    with right:
        corrida_actions(c)


# --------------------------------------------------------------------------------------
# Motoristas
# --------------------------------------------------------------------------------------
def motorista_form(key: str, current: dict | None = None) -> None:
    cur = current or {}
    veic = cur.get("veiculo") or {}
    with st.form(key):
        p1, p2, p3 = st.columns(3)
        nome = p1.text_input("Nome *", value=cur.get("nome", ""))
        email = p2.text_input("E-mail *", value=cur.get("email", ""))
        telefone = p3.text_input("Telefone *", value=cur.get("telefone", ""))
        p4, p5, p6 = st.columns(3)
        cpf = p4.text_input("CPF", value=cur.get("cpf") or "")
        rg = p5.text_input("RG", value=cur.get("rg") or "")
        labels = list(MOTORISTA_STATUS_LABELS)
        status = p6.selectbox(
            "Status", labels, format_func=MOTORISTA_STATUS_LABELS.get,
            index=labels.index(cur.get("status", labels[0])) if cur.get("status") in labels else 0,
        )
        v1, v2, v3, v4 = st.columns(4)
        tipos = list(TIPOS_VEICULOS)
        veiculo_tipo = v1.selectbox(
            "Veículo *", tipos, format_func=TIPOS_VEICULOS.get,
            index=tipos.index(veic["tipo"]) if veic.get("tipo") in tipos else 0,
        )
        veiculo_descricao = v2.text_input("Descrição do veículo *", value=veic.get("descricao", ""))
        placa = v3.text_input("Placa", value=cur.get("placa_veiculo") or "")
        capacidade = v4.text_input("Capacidade (kg)", value=str(cur.get("capacidade_carga") or ""))
        area = st.text_input("Área de atuação", value=cur.get("area_atuacao") or "")
        a1, a2, a3, a4, a5, a6 = st.columns([2, 4, 1, 2, 2, 1])
        cep = a1.text_input("CEP", value=format_cep(cur.get("cep") or ""))
        rua = a2.text_input("Rua", value=cur.get("rua") or "")
        numero = a3.text_input("Nº", value=cur.get("numero") or "")
        bairro = a4.text_input("Bairro", value=cur.get("bairro") or "")
        cidade = a5.text_input("Cidade", value=cur.get("cidade") or "")
        ufs = [""] + UF_LIST
        uf = a6.selectbox("UF", ufs, index=ufs.index(cur["uf"]) if cur.get("uf") in ufs else 0)

        docs = {}
        d_cols = st.columns(len(DOC_TYPES))
        for col, doc_type in zip(d_cols, DOC_TYPES):
            f = col.file_uploader(doc_type, type=["pdf", "jpg", "jpeg", "png", "webp"], key=f"{key}_{doc_type}")
            if f is not None:
                docs[doc_type] = Arquivo.from_upload(f)

        if st.form_submit_button("Salvar", type="primary"):
            data = {
                "nome": nome, "email": email, "telefone": telefone, "status": status,
                "cpf": cpf, "rg": rg, "veiculo_tipo": veiculo_tipo, "veiculo_descricao": veiculo_descricao,
                "placa_veiculo": placa, "capacidade_carga": capacidade.replace(",", "."), "area_atuacao": area,
                "cep": cep, "rua": rua, "numero": numero, "bairro": bairro, "cidade": cidade, "uf": uf,
            }
            if current:
                run_safe(motoristas.update_driver, "Atualizar motorista", sb, current["id"], data, docs)
            else:
                run_safe(motoristas.create_driver, "Cadastrar motorista", sb, data, docs)


def motoristas_view() -> None:
    st.title("Motoristas")
    with st.expander("Novo motorista"):
        motorista_form("novo_motorista")

    s1, s2 = st.columns([3, 1])
    busca = s1.text_input("Buscar por nome / e-mail / telefone / placa")
    filtro = s2.selectbox("Status", ["todos"] + list(MOTORISTA_STATUS_LABELS))
    rows = motoristas.list_drivers(sb, status=None if filtro == "todos" else filtro, search=busca)
    if not rows:
        st.warning("Nenhum motorista encontrado.")
        return

    df = pd.DataFrame([{
        "Nome": r.get("nome"),
        "E-mail": r.get("email"),
        "Telefone": r.get("telefone"),
        "Veículo": Veiculo.coerce(r["veiculo"]).label,
        "Placa": r.get("placa_veiculo"),
        "Status": MOTORISTA_STATUS_LABELS.get(r.get("status"), r.get("status")),
    } for r in rows])
    st.dataframe(df, use_container_width=True, hide_index=True)

    by_id = {r["id"]: r for r in rows}
    chosen = st.selectbox("Motorista", list(by_id), format_func=lambda i: by_id[i].get("nome"))
    m = by_id[chosen]

    b1, b2 = st.columns(2)
    with b1:
        label = "Inativar" if m.get("status") == "ativo" else "Ativar"
        if st.button(label, use_container_width=True):
            if run_safe(motoristas.toggle_driver_status, label, sb, m["id"]) is not None:
                st.rerun()
    with b2:
        if st.button("Excluir", use_container_width=True):
            run_safe(motoristas.delete_driver, "Excluir motorista", sb, m["id"])

    with st.expander("Editar"):
        motorista_form(f"editar_{m['id']}", m)


# --------------------------------------------------------------------------------------
# Relatório
# --------------------------------------------------------------------------------------
def report_view() -> None:
    st.subheader("Relatório de corridas")
    df = dashboard.rides_frame(corridas.list_rides(sb))
    if df.empty:
        st.info("Sem dados.")
        return
    st.dataframe(df, use_container_width=True, hide_index=True)
    csv = df.to_csv(index=False).encode("utf-8")
    st.download_button("Baixar CSV", data=csv, file_name="relatorio_corridas.csv", mime="text/csv")


tabs = st.tabs(["Dashboard", "Corridas", "Motoristas", "Relatório"])
with tabs[0]:
    dashboard_view()
with tabs[1]:
    corridas_view()
with tabs[2]:
    motoristas_view()
with tabs[3]:
    report_view()
