# acervo/db/user_crud.py
"""
Funções CRUD da coleção de usuários no MongoDB (o armazenamento de
credenciais). Inclui a criação de índices de unicidade.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

# --- Módulos da Aplicação ---
from acervo.models.user import UserInDB

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)
USERS_COLLECTION = "users"

# ========================
# --- Funções Auxiliares (Internas) ---
# ========================
def _get_users_collection(db: AsyncIOMotorDatabase) -> AsyncIOMotorCollection:
    """Retorna a coleção de usuários do banco de dados."""
    return db[USERS_COLLECTION]

def _to_user(user_dict: Optional[Dict[str, Any]], context: str) -> Optional[UserInDB]:
    if not user_dict:
        return None
    user_dict.pop('_id', None)
    try:
        return UserInDB.model_validate(user_dict)
    except ValidationError as e:
        logger.error(f"DB Validation error {context}: {e}")
        return None

# ========================
# --- Operações CRUD para Usuários ---
# ========================
async def get_user_by_id(db: AsyncIOMotorDatabase, user_id: uuid.UUID) -> Optional[UserInDB]:
    """Busca um usuário pelo seu ID."""
    collection = _get_users_collection(db)
    user_dict = await collection.find_one({"id": str(user_id)})
    return _to_user(user_dict, f"get_user_by_id {user_id}")

async def get_user_by_login(db: AsyncIOMotorDatabase, login: str) -> Optional[UserInDB]:
    """
    Busca um usuário pelo login.

    Usada pelo autenticador no login e pelo filtro de autenticação para
    carregar o principal a partir do `sub` do token.
    """
    collection = _get_users_collection(db)
    user_dict = await collection.find_one({"login": login})
    return _to_user(user_dict, f"get_user_by_login {login}")

async def exists_by_id(db: AsyncIOMotorDatabase, user_id: uuid.UUID) -> bool:
    """True se existir um usuário com o ID informado."""
    collection = _get_users_collection(db)
    user_dict = await collection.find_one({"id": str(user_id)}, {"_id": 1})
    return user_dict is not None

async def list_users(db: AsyncIOMotorDatabase) -> List[UserInDB]:
    """Lista todos os usuários em ordem de cadastro."""
    collection = _get_users_collection(db)
    users: List[UserInDB] = []
    try:
        async for user_dict in collection.find({}).sort("created_at", ASCENDING):
            user = _to_user(user_dict, f"list_users {user_dict.get('id', 'N/A')}")
            if user is not None:
                users.append(user)
        return users
    except Exception as e:
        logger.exception(f"DB Error listing users: {e}")
        return []

async def create_user(db: AsyncIOMotorDatabase, user_db: UserInDB) -> Optional[UserInDB]:
    """
    Persiste um novo usuário. A senha já deve chegar hasheada.

    Returns:
        O usuário criado, ou None em caso de erro inesperado.

    Raises:
        DuplicateKeyError: Se login ou e-mail já existirem (índices únicos).
    """
    collection = _get_users_collection(db)
    try:
        insert_result = await collection.insert_one(user_db.model_dump(mode="json"))
        if not insert_result.acknowledged: # pragma: no cover
            logger.error(f"DB Insert User Acknowledged False for login {user_db.login}")
            return None
        return user_db
    except DuplicateKeyError:
        logger.warning(f"Tentativa de criar usuário com login ou email duplicado: {user_db.login} / {user_db.email}")
        raise
    except Exception as e:
        logger.exception(f"Erro inesperado ao inserir usuário {user_db.login} no DB: {e}")
        return None

async def update_user(db: AsyncIOMotorDatabase, user_id: uuid.UUID, update_data: Dict[str, Any]) -> Optional[UserInDB]:
    """
    Aplica `update_data` (já pronto para `$set`) ao usuário.

    Returns:
        O usuário atualizado, ou None se não encontrado ou em erro.

    Raises:
        DuplicateKeyError: Se o novo e-mail já pertencer a outra conta.
    """
    collection = _get_users_collection(db)
    update_data = dict(update_data)
    update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

    try:
        updated_user_doc = await collection.find_one_and_update(
            {"id": str(user_id)},
            {"$set": update_data},
            return_document=True
        )
    except DuplicateKeyError:
        logger.warning(f"DB Error: update do usuário {user_id} resultou em chave duplicada.")
        raise
    except Exception as e:
        logger.exception(f"DB Error updating user {user_id}: {e}")
        return None

    if updated_user_doc is None:
        logger.warning(f"Attempt to update user not found: ID {user_id}")
        return None
    return _to_user(updated_user_doc, f"update_user {user_id}")

async def delete_user(db: AsyncIOMotorDatabase, user_id: uuid.UUID) -> bool:
    """Remove um usuário. True se exatamente um documento foi removido."""
    collection = _get_users_collection(db)
    try:
        delete_result = await collection.delete_one({"id": str(user_id)})
        if delete_result.deleted_count == 1:
            logger.info(f"User {user_id} deleted successfully.")
            return True
        logger.warning(f"Attempt to delete user {user_id}, but user was not found.")
        return False
    except Exception as e:
        logger.exception(f"DB Error deleting user {user_id}: {e}")
        return False

# ========================
# --- Configuração de Índices do Banco de Dados ---
# ========================
async def create_user_indexes(db: AsyncIOMotorDatabase):
    """Cria os índices de unicidade de `id`, `login` e `email`."""
    collection = _get_users_collection(db)
    try:
        await collection.create_index("id", unique=True, name="user_id_unique_idx")
        await collection.create_index("login", unique=True, name="login_unique_idx")
        await collection.create_index("email", unique=True, name="email_unique_idx")
        logger.info("Índices da coleção 'users' ('id', 'login', 'email') verificados/criados com sucesso.")
    except Exception as e:
        logger.error(f"Erro ao criar índices para a coleção 'users': {e}", exc_info=True)
