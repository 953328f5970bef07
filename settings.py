from __future__ import annotations

import logging
import os
import platform
from decimal import Decimal, InvalidOperation
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

APP_NAME = "Gestao_Fretes"

load_dotenv()


def _default_runtime_dir() -> Path:
    system = platform.system().lower()

    # Windows: prefer LOCALAPPDATA (not synced by OneDrive)
    if "windows" in system:
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("TEMP") or str(Path.home())
        return Path(base) / APP_NAME

    # Linux/macOS: use home hidden dir
    return Path.home() / f".{APP_NAME.lower()}"


def runtime_dir() -> Path:
    """Root directory for runtime artifacts (logs).

    Override with env var:
      - GF_RUNTIME_DIR
    """
    p = os.environ.get("GF_RUNTIME_DIR")
    return Path(p).expanduser() if p else _default_runtime_dir()


def logs_dir() -> Path:
    """Logs directory. Override with:
      - GF_LOGS_DIR
    """
    p = os.environ.get("GF_LOGS_DIR")
    return Path(p).expanduser() if p else runtime_dir() / "logs"


def ensure_runtime_dirs() -> None:
    runtime_dir().mkdir(parents=True, exist_ok=True)
    logs_dir().mkdir(parents=True, exist_ok=True)


def secret(name: str) -> Optional[str]:
    """Reads a credential from the environment, falling back to st.secrets."""
    v = os.environ.get(name)
    if v:
        return v

    import streamlit as st

    try:
        return st.secrets[name]
    except (KeyError, FileNotFoundError):
        return None


def supabase_url() -> str:
    url = secret("SUPABASE_URL")
    if not url:
        raise RuntimeError("SUPABASE_URL não está definido (env ou .streamlit/secrets.toml).")
    return url


def supabase_key(admin: bool = True) -> str:
    name = "SUPABASE_SERVICE_ROLE_KEY" if admin else "SUPABASE_ANON_KEY"
    key = secret(name)
    if not key:
        raise RuntimeError(f"{name} não está definido (env ou .streamlit/secrets.toml).")
    return key


def helper_fee() -> Decimal:
    """Custo por ajudante somado ao valor da corrida. Override with:
      - GF_HELPER_FEE (ex.: "120.00")
    """
    raw = os.environ.get("GF_HELPER_FEE", "").strip()
    if not raw:
        return Decimal("100.00")
    try:
        return Decimal(raw)
    except InvalidOperation:
        raise RuntimeError(f"GF_HELPER_FEE inválido: {raw!r}")


def log_level() -> str:
    return os.environ.get("GF_LOG_LEVEL", "INFO").upper()


_LOGGING_READY = False


def configure_logging() -> None:
    """Console + rotating file under logs_dir(). Safe to call on every Streamlit rerun."""
    global _LOGGING_READY
    if _LOGGING_READY:
        return

    ensure_runtime_dirs()
    fmt = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    root = logging.getLogger()
    root.setLevel(log_level())

    sh = logging.StreamHandler()
    sh.setFormatter(fmt)
    root.addHandler(sh)

    fh = RotatingFileHandler(logs_dir() / "gestao_fretes.log", maxBytes=2_000_000, backupCount=5, encoding="utf-8")
    fh.setFormatter(fmt)
    root.addHandler(fh)

    _LOGGING_READY = True
