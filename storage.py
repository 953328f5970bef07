from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

import httpx
from supabase import Client, StorageException

from config import BUCKET_CORRIDAS, BUCKET_DOCUMENTOS
from errors import StorageError

logger = logging.getLogger(__name__)


@dataclass
class Arquivo:
    """Arquivo recebido de um formulário (nome original, bytes, content-type)."""
    name: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return self.name.rsplit(".", 1)[-1].lower() if "." in self.name else "bin"

    @classmethod
    def from_upload(cls, f: Any) -> "Arquivo":
        """Converte um UploadedFile do Streamlit."""
        return cls(name=f.name, data=f.getvalue(), content_type=getattr(f, "type", None) or "application/octet-stream")


@dataclass
class UploadResult:
    urls: List[str] = field(default_factory=list)
    paths: List[str] = field(default_factory=list)
    failed: List[Tuple[int, str, str]] = field(default_factory=list)  # (índice, nome, erro)

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        total = len(self.urls) + len(self.failed)
        return f"{len(self.urls)}/{total} arquivo(s) enviados"


def _exc_text(e: Exception) -> str:
    arg = e.args[0] if e.args else None
    if isinstance(arg, dict):
        return arg.get("message") or arg.get("error") or str(arg)
    return str(e)


def _is_permission_error(msg: str) -> bool:
    m = (msg or "").lower()
    return "permission" in m or "policy" in m or "unauthorized" in m


def public_url(sb: Client, bucket: str, path: str) -> str:
    url = sb.storage.from_(bucket).get_public_url(path)
    # versões antigas devolvem {"publicUrl": ...}
    if isinstance(url, dict):
        url = url.get("publicUrl") or url.get("publicURL") or ""
    return url


def upload_images(
    sb: Client,
    files: Sequence[Arquivo],
    prefix: str,
    bucket: str = BUCKET_CORRIDAS,
    now_ms: Optional[int] = None,
) -> UploadResult:
    """Envia os arquivos um a um como `{prefix}_{timestamp}_{index}.{ext}`.

    Falha em um arquivo é registrada em `failed` e o lote continua; erro de
    permissão/policy do bucket interrompe o lote com StorageError.
    """
    result = UploadResult()
    if not files:
        return result

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    bucket_api = sb.storage.from_(bucket)

    for index, f in enumerate(files):
        path = f"{prefix}_{stamp}_{index}.{f.extension}"
        logger.info("Enviando arquivo %d/%d: %s (%d bytes)", index + 1, len(files), f.name, f.size)
        try:
            bucket_api.upload(
                path,
                f.data,
                file_options={"content-type": f.content_type, "cache-control": "3600", "upsert": "true"},
            )
        except StorageException as e:
            msg = _exc_text(e)
            if _is_permission_error(msg):
                raise StorageError(
                    f"Erro de permissão ao enviar o arquivo. Verifique as políticas de acesso do bucket '{bucket}'. Detalhe: {msg}",
                    code="permission",
                    context=f"Upload {path} falhou",
                ) from e
            logger.warning("Upload de %s falhou, arquivo ignorado: %s", f.name, msg)
            result.failed.append((index, f.name, msg))
            continue
        except httpx.HTTPError as e:
            msg = f"falha de rede: {e}"
            logger.warning("Upload de %s falhou, arquivo ignorado: %s", f.name, msg)
            result.failed.append((index, f.name, msg))
            continue

        result.paths.append(path)
        result.urls.append(public_url(sb, bucket, path))

    if result.failed:
        logger.warning("Upload %s: %s", prefix, result.summary())
    return result


def upload_document(sb: Client, f: Arquivo, motorista_id: Any, doc_type: str) -> str:
    path = f"{motorista_id}/{doc_type}.{f.extension}"
    try:
        sb.storage.from_(BUCKET_DOCUMENTOS).upload(
            path,
            f.data,
            file_options={"content-type": f.content_type, "upsert": "true"},
        )
    except StorageException as e:
        msg = _exc_text(e)
        logger.error("Erro ao fazer upload de %s do motorista %s: %s", doc_type, motorista_id, msg)
        raise StorageError(msg, context=f"Upload {doc_type} falhou") from e
    except httpx.HTTPError as e:
        logger.error("Falha de rede no upload de %s do motorista %s: %s", doc_type, motorista_id, e)
        raise StorageError(f"falha de rede: {e}", code="network", context=f"Upload {doc_type} falhou") from e
    return public_url(sb, BUCKET_DOCUMENTOS, path)


def remove_driver_documents(sb: Client, motorista_id: Any) -> int:
    """Remove a pasta do motorista no bucket de documentos. Falhas só são registradas."""
    bucket_api = sb.storage.from_(BUCKET_DOCUMENTOS)
    try:
        entries = bucket_api.list(str(motorista_id)) or []
        paths = [f"{motorista_id}/{e['name']}" for e in entries if e.get("name")]
        if paths:
            bucket_api.remove(paths)
        return len(paths)
    except StorageException as e:
        logger.error("Erro ao remover arquivos do motorista %s: %s", motorista_id, _exc_text(e))
        return 0
    except httpx.HTTPError as e:
        logger.error("Falha de rede ao remover arquivos do motorista %s: %s", motorista_id, e)
        return 0


def remove_files(sb: Client, bucket: str, paths: Sequence[str]) -> bool:
    """Apaga arquivos já enviados (ex.: fotos de uma transição desfeita). Falhas só são registradas."""
    if not paths:
        return True
    try:
        sb.storage.from_(bucket).remove(list(paths))
        return True
    except (StorageException, httpx.HTTPError) as e:
        logger.error("Arquivos órfãos no bucket %s: %s (%s)", bucket, ", ".join(paths), e)
        return False
