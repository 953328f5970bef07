from __future__ import annotations

import logging
import os
import streamlit as st

import db_supabase as db
from config import TABLE_MOTORISTAS

logger = logging.getLogger(__name__)

def _is_ssl_error(msg: str) -> bool:
    m = (msg or "").lower()
    return (
        "certificate_verify_failed" in m
        or "unable to get local issuer certificate" in m
        or "ssl:" in m and "certificate" in m
    )

def _ssl_help_message() -> str:
    return (
        "Este ambiente exige um CA bundle com o certificado raiz da empresa.\n\n"
        "1) Garanta que o arquivo ca-bundle.pem existe na máquina.\n\n"
        "2) Defina a variável de ambiente SSL_CERT_FILE apontando para esse arquivo.\n\n"
        "Linux/macOS:\n"
        "   export SSL_CERT_FILE=/caminho/para/ca-bundle.pem\n"
        "PowerShell:\n"
        r"   $env:SSL_CERT_FILE='C:\...\certs\ca-bundle.pem'" "\n\n"
        "Depois reinicie o app."
    )

def require_supabase_admin_ok(sb) -> None:
    """
    Valida que o cliente admin (SERVICE ROLE) consegue falar com o Supabase via HTTPS.
    """
    try:
        db.count_rows(sb, TABLE_MOTORISTAS)
        return
    except Exception as e:
        msg = str(e)
        if _is_ssl_error(msg):
            logger.error("Falha de SSL ao conectar no Supabase: %s", msg)
            st.error("Falha de SSL ao conectar no Supabase.")
            st.info(_ssl_help_message())
            st.caption(f"SSL_CERT_FILE atual: {os.environ.get('SSL_CERT_FILE') or 'NÃO DEFINIDO'}")
            st.stop()
        raise
