from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from config import (
    DEFAULT_TIPO_VEICULO,
    MOTORISTA_ATIVO,
    MOTORISTA_STATUS_LABELS,
    SOLICITACAO_PENDENTE,
    TIPOS_VEICULOS,
)
from errors import ValidationError
from validators import (
    format_endereco,
    normalize_name,
    normalize_placa,
    validate_cep,
    validate_email,
    validate_exact_digits,
    validate_horario,
    validate_phone,
    validate_uf,
)

M = TypeVar("M", bound=BaseModel)


def parse_form(model: Type[M], data: Dict[str, Any]) -> M:
    """Valida um formulário; erros do pydantic viram ValidationError com uma mensagem por campo."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        msgs = []
        for err in e.errors():
            field = ".".join(str(p) for p in err.get("loc", ()))
            msg = err.get("msg", "").removeprefix("Value error, ")
            msgs.append(f"{field}: {msg}" if field else msg)
        raise ValidationError(msgs) from e


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class Veiculo(BaseModel):
    tipo: str = ""
    descricao: str = ""

    @classmethod
    def coerce(cls, value: Union["Veiculo", Dict[str, Any], str, None]) -> "Veiculo":
        """Registros antigos guardam o veículo como texto livre; normaliza para {tipo, descricao}."""
        if isinstance(value, Veiculo):
            return value
        if isinstance(value, dict):
            return cls(tipo=str(value.get("tipo") or ""), descricao=str(value.get("descricao") or ""))
        if isinstance(value, str) and value.strip():
            return cls(tipo="", descricao=value.strip())
        return cls()

    @property
    def label(self) -> str:
        tipo = TIPOS_VEICULOS.get(self.tipo, self.tipo)
        if tipo and self.descricao:
            return f"{tipo} - {self.descricao}"
        return tipo or self.descricao or "—"


class Endereco(BaseModel):
    logradouro: str = Field(min_length=5)
    numero: str = Field(min_length=1)
    complemento: Optional[str] = None
    bairro: str = Field(min_length=2)
    cidade: str = Field(min_length=2)
    uf: str
    cep: Optional[str] = None
    ponto_referencia: Optional[str] = None

    @field_validator("logradouro", "numero", "bairro", "cidade", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("complemento", "ponto_referencia", mode="before")
    @classmethod
    def _optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("uf")
    @classmethod
    def _uf(cls, v: str) -> str:
        return validate_uf("UF", v)

    @field_validator("cep", mode="before")
    @classmethod
    def _cep(cls, v: Any) -> Optional[str]:
        v = _blank_to_none(v)
        return None if v is None else validate_cep(v)

    def to_row(self, suffix: str) -> Dict[str, Any]:
        return {
            f"endereco_{suffix}": format_endereco(self.logradouro, self.numero, self.bairro, self.cidade, self.uf),
            f"cep_{suffix}": self.cep,
            f"numero_{suffix}": self.numero,
            f"complemento_{suffix}": self.complemento,
            f"bairro_{suffix}": self.bairro,
            f"cidade_{suffix}": self.cidade,
            f"estado_{suffix}": self.uf,
            f"ponto_referencia_{suffix}": self.ponto_referencia,
        }


class NovaCorridaForm(BaseModel):
    # Cliente
    cliente_nome: str = Field(min_length=3)
    cliente_contato: str = Field(min_length=9)
    cliente_email: Optional[str] = None
    cliente_empresa: Optional[str] = None

    origem: Endereco
    destino: Endereco

    # Carga
    descricao: str = Field(min_length=5)
    dimensoes: Optional[str] = None
    peso_aproximado: Optional[str] = None
    quantidade_itens: Optional[str] = None
    tipo_veiculo_requerido: str = DEFAULT_TIPO_VEICULO
    numero_ajudantes: int = Field(default=0, ge=0)

    valor: Optional[str] = None
    observacoes: Optional[str] = None
    data_retirada: Optional[date] = None
    horario_retirada: Optional[str] = None

    @field_validator("cliente_nome", "cliente_contato", "descricao", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator(
        "cliente_empresa", "dimensoes", "peso_aproximado", "quantidade_itens",
        "valor", "observacoes", "data_retirada", mode="before",
    )
    @classmethod
    def _optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("cliente_email", mode="before")
    @classmethod
    def _email(cls, v: Any) -> Optional[str]:
        v = _blank_to_none(v)
        return None if v is None else validate_email(v)

    @field_validator("horario_retirada", mode="before")
    @classmethod
    def _horario(cls, v: Any) -> Optional[str]:
        v = _blank_to_none(v)
        return None if v is None else validate_horario(v)

    @field_validator("tipo_veiculo_requerido", mode="before")
    @classmethod
    def _tipo(cls, v: Any) -> str:
        v = _blank_to_none(v) or DEFAULT_TIPO_VEICULO
        if v not in TIPOS_VEICULOS:
            raise ValueError(f"Tipo de veículo desconhecido: {v}.")
        return v

    @field_validator("numero_ajudantes", mode="before")
    @classmethod
    def _ajudantes(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        return v

    def to_solicitacao_row(self, valor: Optional[float], fotos: List[str]) -> Dict[str, Any]:
        row: Dict[str, Any] = {
            "cliente_nome": self.cliente_nome,
            "cliente_contato": self.cliente_contato,
            "cliente_email": self.cliente_email,
            "cliente_empresa": self.cliente_empresa,
            "descricao": self.descricao,
            "dimensoes": self.dimensoes,
            "peso_aproximado": self.peso_aproximado,
            "quantidade_itens": self.quantidade_itens,
            "tipo_veiculo_requerido": self.tipo_veiculo_requerido,
            "numero_ajudantes": self.numero_ajudantes,
            "fotos_carga": fotos,
            "valor": valor,
            "observacoes": self.observacoes,
            "data_retirada": self.data_retirada.isoformat() if self.data_retirada else None,
            "horario_retirada": self.horario_retirada,
            "status": SOLICITACAO_PENDENTE,
        }
        row.update(self.origem.to_row("origem"))
        row.update(self.destino.to_row("destino"))
        return row


class FinalizarCorridaForm(BaseModel):
    valor: str = Field(min_length=1)
    observacoes: Optional[str] = None
    distancia_km: Optional[float] = Field(default=None, ge=0)
    avaliacao: Optional[int] = Field(default=None, ge=1, le=5)
    feedback: Optional[str] = None

    @field_validator("observacoes", "feedback", "distancia_km", "avaliacao", mode="before")
    @classmethod
    def _optional(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        # distância digitada com vírgula decimal
        if isinstance(v, str):
            v = v.strip().replace(",", ".")
        return v


class MotoristaForm(BaseModel):
    nome: str = Field(min_length=3)
    email: str
    telefone: str
    status: str = MOTORISTA_ATIVO

    cpf: Optional[str] = None
    rg: Optional[str] = Field(default=None, min_length=5, max_length=20)

    veiculo_tipo: str = Field(min_length=1)
    veiculo_descricao: str = Field(min_length=3)
    placa_veiculo: Optional[str] = None
    capacidade_carga: Optional[float] = Field(default=None, ge=0)
    area_atuacao: Optional[str] = None

    cep: Optional[str] = None
    rua: Optional[str] = None
    numero: Optional[str] = None
    bairro: Optional[str] = None
    cidade: Optional[str] = None
    uf: Optional[str] = None

    user_id: Optional[str] = None

    @field_validator(
        "cpf", "rg", "placa_veiculo", "capacidade_carga", "area_atuacao",
        "cep", "rua", "numero", "bairro", "cidade", "uf", "user_id", mode="before",
    )
    @classmethod
    def _optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("nome")
    @classmethod
    def _nome(cls, v: str) -> str:
        return normalize_name(v)

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("telefone")
    @classmethod
    def _telefone(cls, v: str) -> str:
        return validate_phone("Telefone", v)

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        if v not in MOTORISTA_STATUS_LABELS:
            raise ValueError(f"Status de motorista desconhecido: {v}.")
        return v

    @field_validator("cpf")
    @classmethod
    def _cpf(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return validate_exact_digits("CPF", v, 11)

    @field_validator("placa_veiculo")
    @classmethod
    def _placa(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        p = normalize_placa(v)
        if len(p) != 7:
            raise ValueError("Placa inválida.")
        return p

    @field_validator("cep")
    @classmethod
    def _cep(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_cep(v)

    @field_validator("uf")
    @classmethod
    def _uf(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else validate_uf("UF", v)

    @property
    def veiculo(self) -> Veiculo:
        return Veiculo(tipo=self.veiculo_tipo, descricao=self.veiculo_descricao.strip())

    def to_row(self) -> Dict[str, Any]:
        row = {
            "nome": self.nome,
            "email": self.email,
            "telefone": self.telefone,
            "status": self.status,
            "cpf": self.cpf,
            "rg": self.rg,
            "veiculo": self.veiculo.model_dump(),
            "placa_veiculo": self.placa_veiculo,
            "capacidade_carga": self.capacidade_carga,
            "area_atuacao": self.area_atuacao,
            "cep": self.cep,
            "rua": self.rua,
            "numero": self.numero,
            "bairro": self.bairro,
            "cidade": self.cidade,
            "uf": self.uf,
        }
        # conta de login vinculada: só é gravada quando informada explicitamente
        if "user_id" in self.model_fields_set:
            row["user_id"] = self.user_id
        return row
