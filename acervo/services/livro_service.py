# acervo/services/livro_service.py
"""
Controle de inventário do acervo.

Mantém, em todas as operações, `0 <= quantidade_disponivel <=
quantidade_total` e o status derivado da quantidade disponível.

Empréstimos e devoluções são uma única atualização condicional no
MongoDB: o filtro exige estoque para a operação e a nova quantidade é
calculada a partir do valor armazenado. Requisições concorrentes sobre o
mesmo livro são serializadas pelo banco, sem releitura nem tentativas.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

# --- Módulos da Aplicação ---
from acervo.core import storage
from acervo.core.exceptions import (
    DuplicateIsbn,
    LivroNotFound,
    NoCopiesAvailable,
    NoLoanOutstanding,
    QuantityExceedsTotal,
)
from acervo.db import livro_crud
from acervo.models.livro import Livro, LivroCatalogo, LivroCreate, LivroUpdate, status_for

logger = logging.getLogger(__name__)

# ========================
# --- Cadastro e Consulta ---
# ========================
async def create_livro(
    db: AsyncIOMotorDatabase,
    livro_in: LivroCreate,
    imagem: Optional[UploadFile] = None,
) -> Optional[Livro]:
    """
    Cadastra um livro. A quantidade informada é ao mesmo tempo a
    disponível e a total.

    Returns:
        O livro criado, ou None se o banco falhar.

    Raises:
        DuplicateIsbn: Se o ISBN já estiver cadastrado.
    """
    caminho_capa = await storage.salvar_imagem(imagem)
    quantidade = livro_in.quantidade_disponivel
    livro = Livro(
        id=uuid.uuid4(),
        **livro_in.model_dump(),
        quantidade_total=quantidade,
        status=status_for(quantidade),
        caminho_imagem_capa=caminho_capa,
        created_at=datetime.now(timezone.utc),
    )

    try:
        created = await livro_crud.create_livro(db, livro)
    except DuplicateKeyError as e:
        storage.deletar_imagem(caminho_capa)
        raise DuplicateIsbn(livro_in.isbn) from e

    if created is None:
        storage.deletar_imagem(caminho_capa)
        return None
    logger.info(f"Livro '{created.titulo}' cadastrado com ID {created.id} ({quantidade} exemplares).")
    return created

async def get_livro(db: AsyncIOMotorDatabase, livro_id: uuid.UUID) -> Livro:
    livro = await livro_crud.get_livro_by_id(db, livro_id)
    if livro is None:
        raise LivroNotFound(livro_id)
    return livro

async def list_livros(db: AsyncIOMotorDatabase) -> List[Livro]:
    return await livro_crud.list_livros(db)

async def search_livros(db: AsyncIOMotorDatabase, termo: Optional[str]) -> List[Livro]:
    """Busca por título, autor, gênero ou tags. Termo vazio lista todos."""
    if not termo or not termo.strip():
        return await livro_crud.list_livros(db)
    return await livro_crud.search_livros(db, termo.strip())

async def search_by_tag(db: AsyncIOMotorDatabase, tag: Optional[str]) -> List[Livro]:
    """Busca pelas tags. Tag vazia lista todos."""
    if not tag or not tag.strip():
        return await livro_crud.list_livros(db)
    return await livro_crud.search_by_tag(db, tag.strip())

async def list_for_catalog(db: AsyncIOMotorDatabase) -> List[LivroCatalogo]:
    """Projeção do catálogo, sem isbn, tags e datas."""
    livros = await livro_crud.list_livros(db)
    return [LivroCatalogo.model_validate(livro) for livro in livros]

# ========================
# --- Atualização e Remoção ---
# ========================
async def update_livro(
    db: AsyncIOMotorDatabase,
    livro_id: uuid.UUID,
    livro_in: LivroUpdate,
    imagem: Optional[UploadFile] = None,
) -> Optional[Livro]:
    """
    Atualização parcial: campos ausentes mantêm o valor armazenado.

    Uma nova quantidade disponível recalcula o status; a quantidade
    total nunca muda por aqui. Uma nova capa substitui (e apaga) a
    anterior.

    Returns:
        O livro atualizado, ou None se o banco falhar.

    Raises:
        LivroNotFound: Se o livro não existir.
        QuantityExceedsTotal: Se a nova quantidade disponível passar da total.
        DuplicateIsbn: Se o novo ISBN já pertencer a outro livro.
    """
    current = await get_livro(db, livro_id)
    changes = livro_in.changes()

    if "quantidade_disponivel" in changes:
        quantidade = changes["quantidade_disponivel"]
        if quantidade > current.quantidade_total:
            raise QuantityExceedsTotal(livro_id, quantidade, current.quantidade_total)
        changes["status"] = status_for(quantidade).value

    nova_capa = await storage.salvar_imagem(imagem)
    if nova_capa is not None:
        changes["caminho_imagem_capa"] = nova_capa

    if not changes:
        return current

    try:
        updated = await livro_crud.update_livro(db, livro_id, changes)
    except DuplicateKeyError as e:
        storage.deletar_imagem(nova_capa)
        raise DuplicateIsbn(changes.get("isbn")) from e

    if updated is None:
        storage.deletar_imagem(nova_capa)
        # Removido entre a leitura e a escrita.
        if await livro_crud.get_livro_by_id(db, livro_id) is None:
            raise LivroNotFound(livro_id)
        return None

    if nova_capa is not None:
        storage.deletar_imagem(current.caminho_imagem_capa)
    logger.info(f"Livro {livro_id} atualizado (campos: {', '.join(sorted(changes))}).")
    return updated

async def delete_livro(db: AsyncIOMotorDatabase, livro_id: uuid.UUID) -> bool:
    """
    Remove o livro e a sua capa.

    Returns:
        True se removido, False se o banco falhar.

    Raises:
        LivroNotFound: Se o livro não existir.
    """
    current = await get_livro(db, livro_id)
    deleted = await livro_crud.delete_livro(db, livro_id)
    if deleted:
        storage.deletar_imagem(current.caminho_imagem_capa)
        logger.info(f"Livro {livro_id} removido.")
    return deleted

# ========================
# --- Empréstimo, Devolução e Reserva ---
# ========================
async def _ajustar_quantidade(db: AsyncIOMotorDatabase, livro_id: uuid.UUID, delta: int) -> Livro:
    updated = await livro_crud.ajustar_quantidade(db, livro_id, delta)
    if updated is not None:
        return updated

    # Nenhum documento casou com o filtro: livro ausente ou sem estoque para a operação.
    await get_livro(db, livro_id)
    if delta < 0:
        logger.info(f"Empréstimo recusado: livro {livro_id} sem exemplares disponíveis.")
        raise NoCopiesAvailable(livro_id)
    logger.info(f"Devolução recusada: todos os exemplares do livro {livro_id} já estão no acervo.")
    raise NoLoanOutstanding(livro_id)

async def request_loan(db: AsyncIOMotorDatabase, livro_id: uuid.UUID) -> Livro:
    """
    Empresta um exemplar.

    Raises:
        LivroNotFound: Se o livro não existir.
        NoCopiesAvailable: Se não houver exemplar disponível.
    """
    livro = await _ajustar_quantidade(db, livro_id, -1)
    logger.info(
        f"Empréstimo do livro {livro_id} registrado; "
        f"{livro.quantidade_disponivel}/{livro.quantidade_total} disponíveis."
    )
    return livro

async def return_livro(db: AsyncIOMotorDatabase, livro_id: uuid.UUID) -> Livro:
    """
    Devolve um exemplar.

    Raises:
        LivroNotFound: Se o livro não existir.
        NoLoanOutstanding: Se todos os exemplares já estiverem disponíveis.
    """
    livro = await _ajustar_quantidade(db, livro_id, +1)
    logger.info(
        f"Devolução do livro {livro_id} registrada; "
        f"{livro.quantidade_disponivel}/{livro.quantidade_total} disponíveis."
    )
    return livro

async def reserve_livro(db: AsyncIOMotorDatabase, livro_id: uuid.UUID) -> Livro:
    """
    Reserva um livro. Ainda não altera o inventário: apenas confirma que
    o livro existe e registra o pedido.

    Raises:
        LivroNotFound: Se o livro não existir.
    """
    livro = await get_livro(db, livro_id)
    logger.info(f"Reserva solicitada para o livro {livro_id} ('{livro.titulo}').")
    return livro
