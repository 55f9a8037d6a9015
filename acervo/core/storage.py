# acervo/core/storage.py
"""
Armazenamento das imagens de capa dos livros.

Cada arquivo recebido é gravado em `UPLOAD_DIR` com um nome novo (UUID +
extensão original), de modo que dois uploads com o mesmo nome nunca se
sobrescrevam. O banco guarda apenas esse nome.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from pathlib import Path, PurePath
from typing import Optional

from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

# --- Módulos da Aplicação ---
from acervo.core.config import settings

logger = logging.getLogger(__name__)


def get_upload_dir() -> Path:
    """Diretório de uploads, criado sob demanda."""
    upload_dir = Path(settings.UPLOAD_DIR).resolve()
    upload_dir.mkdir(parents=True, exist_ok=True)
    return upload_dir


def stored_name_for(original_filename: Optional[str]) -> str:
    """Nome único para o arquivo, preservando apenas a extensão do original."""
    suffix = PurePath(original_filename or "").suffix
    return f"{uuid.uuid4()}{suffix}"


async def salvar_imagem(imagem: Optional[UploadFile]) -> Optional[str]:
    """
    Grava a imagem enviada e devolve o nome armazenado.

    Returns:
        O nome gerado, ou None se nenhum arquivo (ou um arquivo vazio) foi enviado.

    Raises:
        OSError: Se não for possível gravar o arquivo.
    """
    if imagem is None or not imagem.filename:
        return None
    content = await imagem.read()
    if not content:
        return None

    stored_name = stored_name_for(imagem.filename)
    target = get_upload_dir() / stored_name
    await run_in_threadpool(target.write_bytes, content)
    logger.info(f"Imagem de capa '{imagem.filename}' gravada como '{stored_name}'.")
    return stored_name


def deletar_imagem(filename: Optional[str]) -> None:
    """Remove uma imagem de capa. Falhas são registradas e ignoradas."""
    if not filename:
        return
    upload_dir = get_upload_dir()
    path = (upload_dir / filename).resolve()
    if path.parent != upload_dir:
        logger.warning(f"Nome de imagem fora do diretório de uploads ignorado: '{filename}'")
        return
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Não foi possível deletar a imagem '{filename}': {e}")
