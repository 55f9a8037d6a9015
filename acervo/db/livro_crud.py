# acervo/db/livro_crud.py
"""
Módulo contendo as funções CRUD para a coleção de livros no MongoDB,
as duas buscas por substring (geral e por tag) e o ajuste atômico da
quantidade disponível usada por empréstimos e devoluções.
"""

# ========================
# --- Importações ---
# ========================
import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError
from pydantic import ValidationError

# --- Módulos da Aplicação ---
from acervo.models.livro import Livro, LivroStatus

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)
LIVROS_COLLECTION = "livros"
SEARCH_FIELDS = ("titulo", "autor", "genero", "tags")

# ========================
# --- Funções Auxiliares (Internas) ---
# ========================
def _get_livros_collection(db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    """Retorna a coleção de livros do banco de dados."""
    return db[LIVROS_COLLECTION]

def _contains(term: str) -> Dict[str, str]:
    """Filtro de substring sem diferenciar maiúsculas/minúsculas."""
    return {"$regex": re.escape(term), "$options": "i"}

def _to_livro(livro_dict: Optional[Dict[str, Any]], context: str) -> Optional[Livro]:
    if not livro_dict:
        return None
    livro_dict.pop('_id', None)
    try:
        return Livro.model_validate(livro_dict)
    except ValidationError as e:
        logger.error(f"DB Validation error {context}: {e}")
        return None

async def _find_many(db: AsyncIOMotorDatabase, query: Dict[str, Any], context: str) -> List[Livro]:
    collection = _get_livros_collection(db)
    livros: List[Livro] = []
    try:
        async for livro_dict in collection.find(query).sort("created_at", ASCENDING):
            livro = _to_livro(livro_dict, f"{context} {livro_dict.get('id', 'N/A')}")
            if livro is not None:
                livros.append(livro)
        return livros
    except Exception as e:
        logger.exception(f"DB Error {context}: {e}")
        return []

# ========================
# --- Operações CRUD para Livros ---
# ========================
async def create_livro(db: AsyncIOMotorDatabase, livro_db: Livro) -> Optional[Livro]:
    """
    Persiste um novo livro já montado (ID, status e quantidades preenchidos).

    Returns:
        O livro criado, ou None em caso de erro.

    Raises:
        DuplicateKeyError: Se o ISBN já estiver cadastrado.
    """
    collection = _get_livros_collection(db)
    try:
        insert_result = await collection.insert_one(livro_db.model_dump(mode="json"))
        if insert_result.acknowledged:
            return livro_db
        logger.warning(f"Criação do livro {livro_db.id} não foi reconhecida pelo DB (acknowledged=False).") # pragma: no cover
        return None # pragma: no cover
    except DuplicateKeyError:
        logger.warning(f"Tentativa de cadastrar livro com ISBN duplicado: {livro_db.isbn}")
        raise
    except Exception as e:
        logger.exception(f"DB Error creating livro {livro_db.id}: {e}")
        return None

async def get_livro_by_id(db: AsyncIOMotorDatabase, livro_id: uuid.UUID) -> Optional[Livro]:
    """Busca um livro pelo ID."""
    collection = _get_livros_collection(db)
    livro_dict = await collection.find_one({"id": str(livro_id)})
    return _to_livro(livro_dict, f"get_livro_by_id {livro_id}")

async def list_livros(db: AsyncIOMotorDatabase) -> List[Livro]:
    """Lista todos os livros em ordem de cadastro."""
    return await _find_many(db, {}, "list_livros")

async def search_livros(db: AsyncIOMotorDatabase, termo: str) -> List[Livro]:
    """Livros cujo título, autor, gênero ou tags contenham `termo`."""
    query = {"$or": [{field: _contains(termo)} for field in SEARCH_FIELDS]}
    return await _find_many(db, query, "search_livros")

async def search_by_tag(db: AsyncIOMotorDatabase, tag: str) -> List[Livro]:
    """Livros cujas tags contenham `tag`."""
    return await _find_many(db, {"tags": _contains(tag)}, "search_by_tag")

async def update_livro(db: AsyncIOMotorDatabase, livro_id: uuid.UUID, update_data: Dict[str, Any]) -> Optional[Livro]:
    """
    Aplica `update_data` (pronto para `$set`) ao livro. `updated_at` é
    preenchido automaticamente.

    Returns:
        O livro atualizado, ou None se não encontrado ou em erro.
    """
    collection = _get_livros_collection(db)
    update_data = dict(update_data)
    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

    try:
        updated = await collection.find_one_and_update(
            {"id": str(livro_id)},
            {"$set": update_data},
            return_document=ReturnDocument.AFTER
        )
    except DuplicateKeyError:
        logger.warning(f"Atualização do livro {livro_id} resultou em ISBN duplicado.")
        raise
    except Exception as e:
        logger.exception(f"DB Error updating livro {livro_id}: {e}")
        return None

    if updated is None:
        logger.warning(f"Tentativa de atualizar livro não encontrado: ID {livro_id}")
        return None
    return _to_livro(updated, f"update_livro {livro_id}")

async def ajustar_quantidade(
    db: AsyncIOMotorDatabase,
    livro_id: uuid.UUID,
    delta: int
) -> Optional[Livro]:
    """
    Soma `delta` à quantidade disponível em uma única operação atômica.

    O filtro já carrega a condição de estoque: para retiradas exige
    `quantidade_disponivel > 0`, para devoluções exige
    `quantidade_disponivel < quantidade_total`. A atualização em pipeline
    calcula a nova quantidade e o status a partir do valor armazenado, de
    modo que requisições concorrentes sobre o mesmo livro são serializadas
    pelo próprio MongoDB sem releitura.

    Returns:
        O livro atualizado, ou None se o livro não existe ou a condição
        de estoque não vale.
    """
    collection = _get_livros_collection(db)
    query: Dict[str, Any] = {"id": str(livro_id)}
    if delta < 0:
        query["quantidade_disponivel"] = {"$gt": 0}
    else:
        query["$expr"] = {"$lt": ["$quantidade_disponivel", "$quantidade_total"]}

    nova_quantidade = {"$add": ["$quantidade_disponivel", delta]}
    pipeline = [{"$set": {
        "quantidade_disponivel": nova_quantidade,
        "status": {"$cond": [
            {"$gt": [nova_quantidade, 0]},
            LivroStatus.DISPONIVEL.value,
            LivroStatus.EMPRESTADO.value,
        ]},
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }}]

    updated = await collection.find_one_and_update(
        query,
        pipeline,
        return_document=ReturnDocument.AFTER
    )
    if updated is None:
        return None
    return _to_livro(updated, f"ajustar_quantidade {livro_id}")

async def delete_livro(db: AsyncIOMotorDatabase, livro_id: uuid.UUID) -> bool:
    """Remove um livro. True se exatamente um documento foi removido."""
    collection = _get_livros_collection(db)
    try:
        delete_result = await collection.delete_one({"id": str(livro_id)})
        return delete_result.deleted_count == 1
    except Exception as e:
        logger.exception(f"DB Error deleting livro {livro_id}: {e}")
        return False

# ========================
# --- Criação de Índices do Banco de Dados ---
# ========================
async def create_livro_indexes(db: AsyncIOMotorDatabase):
    """Cria os índices da coleção de livros (ID único, ISBN único e ordem de cadastro)."""
    collection = _get_livros_collection(db)
    try:
        await collection.create_index("id", unique=True, name="livro_id_unique_idx")
        await collection.create_index(
            "isbn",
            unique=True,
            name="livro_isbn_unique_idx",
            partialFilterExpression={"isbn": {"$type": "string"}}
        )
        await collection.create_index([("created_at", ASCENDING)], name="livro_created_at_idx")
        logger.info("Índices da coleção 'livros' verificados/criados.")
    except Exception as e:
        logger.error(f"Erro ao criar índices da coleção 'livros': {e}", exc_info=True)
