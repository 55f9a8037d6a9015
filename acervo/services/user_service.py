# acervo/services/user_service.py
"""Administração de usuários (cadastrar, listar, consultar, atualizar e remover)."""

import logging
import uuid
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from acervo.core.exceptions import DuplicateEmail, UserNotFound
from acervo.core.security import get_password_hash
from acervo.db import user_crud
from acervo.services import auth_service
from acervo.models.user import UserAdminCreate, UserInDB, UserUpdate

logger = logging.getLogger(__name__)


async def create_user(db: AsyncIOMotorDatabase, user_in: UserAdminCreate) -> Optional[UserInDB]:
    """
    Cadastra uma conta com o papel escolhido pelo administrador.

    Raises:
        DuplicateLogin: Se o login já existir.
        DuplicateEmail: Se o e-mail já pertencer a outra conta.
    """
    return await auth_service.register(db, user_in.login, str(user_in.email), user_in.password, role=user_in.role)


async def list_users(db: AsyncIOMotorDatabase) -> List[UserInDB]:
    return await user_crud.list_users(db)


async def get_user(db: AsyncIOMotorDatabase, user_id: uuid.UUID) -> UserInDB:
    user = await user_crud.get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFound(user_id)
    return user


async def update_user(db: AsyncIOMotorDatabase, user_id: uuid.UUID, user_in: UserUpdate) -> Optional[UserInDB]:
    """
    Atualização parcial. A nova senha, se houver, é hasheada antes de salvar.

    Returns:
        O usuário atualizado, ou None se o banco falhar.

    Raises:
        UserNotFound: Se o usuário não existir.
        DuplicateEmail: Se o novo e-mail já pertencer a outra conta.
    """
    current = await get_user(db, user_id)

    changes = user_in.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return current

    update_data = {}
    if "email" in changes:
        update_data["email"] = changes["email"]
    if "role" in changes:
        update_data["role"] = user_in.role.value
    if "password" in changes:
        update_data["hashed_password"] = get_password_hash(changes["password"])

    try:
        updated = await user_crud.update_user(db, user_id, update_data)
    except DuplicateKeyError as e:
        raise DuplicateEmail(str(user_in.email)) from e

    if updated is not None:
        logger.info(f"Usuário {user_id} atualizado (campos: {', '.join(sorted(update_data))}).")
    return updated


async def delete_user(db: AsyncIOMotorDatabase, user_id: uuid.UUID) -> bool:
    """
    Remove o usuário.

    Returns:
        True se removido, False se o banco falhar.

    Raises:
        UserNotFound: Se o usuário não existir.
    """
    if not await user_crud.exists_by_id(db, user_id):
        raise UserNotFound(user_id)
    return await user_crud.delete_user(db, user_id)
