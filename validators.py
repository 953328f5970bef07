from __future__ import annotations
import re
from typing import Optional

from config import UF_LIST

_RE_DIGITS = re.compile(r"\D+")
_RE_CEP = re.compile(r"^\d{5}-\d{3}$|^\d{8}$")
_RE_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_RE_HORARIO = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

LOWER_PARTS = {"da", "das", "de", "do", "dos", "e"}


def only_digits(value: str) -> str:
    return re.sub(_RE_DIGITS, "", value or "")

def validate_exact_digits(label: str, value: str, n: int) -> str:
    d = only_digits(value)
    if len(d) != n:
        raise ValueError(f"{label} deve conter exatamente {n} números. Você informou {len(d)}.")
    return d

def validate_phone(label: str, value: str) -> str:
    d = only_digits(value)
    # BR: 10 ou 11 dígitos (com DDD)
    if len(d) not in (10, 11):
        raise ValueError(f"{label} inválido. Informe DDD + número (10 ou 11 dígitos).")
    return d

def validate_cep(value: str) -> str:
    """Aceita 00000-000 ou 00000000; devolve só os dígitos."""
    v = (value or "").strip()
    if not _RE_CEP.match(v):
        raise ValueError("CEP inválido.")
    return only_digits(v)

def format_cep(value: str) -> str:
    d = only_digits(value)
    if len(d) != 8:
        return value or ""
    return f"{d[:5]}-{d[5:]}"

def validate_uf(label: str, value: str) -> str:
    uf = (value or "").strip().upper()
    if len(uf) != 2:
        raise ValueError(f"{label} deve ter 2 letras.")
    if uf not in UF_LIST:
        raise ValueError(f"{label} desconhecida: {uf}.")
    return uf

def validate_email(value: str) -> str:
    v = (value or "").strip().lower()
    if not _RE_EMAIL.match(v):
        raise ValueError("Email inválido.")
    return v

def validate_horario(value: str) -> str:
    v = (value or "").strip()
    if not _RE_HORARIO.match(v):
        raise ValueError("Horário inválido. Use HH:MM.")
    return v

def normalize_placa(value: str) -> str:
    return re.sub(r"[^A-Z0-9]", "", (value or "").upper())

def normalize_name(name: str) -> str:
    s = (name or "").strip()
    if not s:
        return s
    parts = [p for p in re.split(r"\s+", s) if p]
    out = []
    for p in parts:
        pl = p.lower()
        if pl in LOWER_PARTS:
            out.append(pl)
        else:
            out.append(pl[:1].upper() + pl[1:])
    return " ".join(out)

def format_endereco(
    logradouro: str,
    numero: Optional[str] = None,
    bairro: Optional[str] = None,
    cidade: Optional[str] = None,
    uf: Optional[str] = None,
) -> str:
    """Campo legado endereco_origem/endereco_destino: Rua X, 10, Centro, Cidade - UF."""
    out = (logradouro or "").strip()
    for part in (numero, bairro, cidade):
        if part:
            out += f", {part}"
    if uf:
        out += f" - {uf}"
    return out
