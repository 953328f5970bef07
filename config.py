from __future__ import annotations

# Tables
TABLE_SOLICITACOES = "solicitacoes"
TABLE_CORRIDAS = "corridas"
TABLE_MOTORISTAS = "motoristas"

# Storage buckets
BUCKET_CORRIDAS = "corridas"
BUCKET_DOCUMENTOS = "documentos"

# Status da corrida (valores gravados na tabela corridas)
CORRIDA_PENDENTE = "pendente"
CORRIDA_ATRIBUIDA = "atribuída"
CORRIDA_FINALIZADA = "finalizada"
CORRIDA_CANCELADA = "cancelada"

# Status da solicitação (valores gravados na tabela solicitacoes)
SOLICITACAO_PENDENTE = "pendente"
SOLICITACAO_EM_ANDAMENTO = "em andamento"
SOLICITACAO_FINALIZADA = "finalizada"
SOLICITACAO_CANCELADA = "cancelada"

# A solicitação sempre espelha o status da corrida
CORRIDA_TO_SOLICITACAO = {
    CORRIDA_PENDENTE: SOLICITACAO_PENDENTE,
    CORRIDA_ATRIBUIDA: SOLICITACAO_EM_ANDAMENTO,
    CORRIDA_FINALIZADA: SOLICITACAO_FINALIZADA,
    CORRIDA_CANCELADA: SOLICITACAO_CANCELADA,
}

# Transições permitidas: ação -> status de origem aceitos
TRANSITIONS = {
    "atribuir": (CORRIDA_PENDENTE,),
    "finalizar": (CORRIDA_ATRIBUIDA,),
    "cancelar": (CORRIDA_PENDENTE, CORRIDA_ATRIBUIDA),
}
TERMINAL_STATUSES = (CORRIDA_FINALIZADA, CORRIDA_CANCELADA)

# Status do motorista
MOTORISTA_ATIVO = "ativo"
MOTORISTA_INATIVO = "inativo"
MOTORISTA_FERIAS = "ferias"
MOTORISTA_SUSPENSO = "suspenso"

MOTORISTA_STATUS_LABELS = {
    MOTORISTA_ATIVO: "Ativo",
    MOTORISTA_INATIVO: "Inativo",
    MOTORISTA_FERIAS: "Em férias",
    MOTORISTA_SUSPENSO: "Suspenso",
}

# Tipos de veículo: id -> rótulo
TIPOS_VEICULOS = {
    "carro": "Carro de Passeio",
    "utilitario": "Utilitário",
    "van": "Van",
    "caminhao_pequeno": "Caminhão Pequeno (3/4)",
    "caminhao_medio": "Caminhão Médio (Toco)",
    "caminhao_grande": "Caminhão Grande (Truck)",
    "caminhao_carreta": "Carreta",
    "moto": "Moto",
}
DEFAULT_TIPO_VEICULO = "carro"

# Documentos do motorista (nome do arquivo no bucket, sem extensão)
DOC_TYPES = ("cnh", "identidade_frente", "identidade_verso", "documento_veiculo", "perfil")

# Regras de upload
MAX_FOTOS = 5
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ACCEPTED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")
ACCEPTED_DOC_TYPES = ("application/pdf", "image/jpeg", "image/jpg", "image/png")

UF_LIST = ["AC","AL","AP","AM","BA","CE","DF","ES","GO","MA","MT","MS","MG","PA","PB","PR","PE","PI","RJ","RN","RS","RO","RR","SC","SP","SE","TO"]
