# acervo/services/auth_service.py
"""
Autenticador: confere login e senha contra o armazenamento de credenciais
e registra novos usuários.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

# --- Módulos da Aplicação ---
from acervo.core.exceptions import DuplicateEmail, DuplicateLogin, InvalidCredentials
from acervo.core.security import get_password_hash, verify_password
from acervo.db import user_crud
from acervo.models.user import UserInDB, UserRole

logger = logging.getLogger(__name__)

# Hash usado quando o login não existe, para que a resposta leve o mesmo
# tempo de uma senha errada.
_DUMMY_HASH = get_password_hash("acervo-dummy-password")


async def authenticate(db: AsyncIOMotorDatabase, login: str, password: str) -> UserInDB:
    """
    Autentica um usuário pelo login e senha.

    Returns:
        O usuário encontrado.

    Raises:
        InvalidCredentials: Se o login não existir ou a senha não conferir.
    """
    user = await user_crud.get_user_by_login(db, login)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        logger.info(f"Falha de login: usuário '{login}' inexistente.")
        raise InvalidCredentials()

    if not verify_password(password, user.hashed_password):
        logger.info(f"Falha de login: senha incorreta para '{login}'.")
        raise InvalidCredentials()

    logger.info(f"Usuário '{login}' autenticado.")
    return user


async def register(
    db: AsyncIOMotorDatabase,
    login: str,
    email: str,
    password: str,
    role: UserRole = UserRole.USER
) -> Optional[UserInDB]:
    """
    Registra um novo usuário. O autorregistro usa sempre o papel USER;
    apenas a administração de usuários informa outro papel.

    Returns:
        O usuário criado, ou None se o banco falhar de forma inesperada.

    Raises:
        DuplicateLogin: Se o login já existir.
        DuplicateEmail: Se o e-mail já pertencer a outra conta.
    """
    if await user_crud.get_user_by_login(db, login) is not None:
        logger.info(f"Registro recusado: login '{login}' já existe.")
        raise DuplicateLogin(login)

    user_db = UserInDB(
        id=uuid.uuid4(),
        login=login,
        email=email,
        role=role,
        hashed_password=get_password_hash(password),
        created_at=datetime.now(timezone.utc),
    )
    try:
        created = await user_crud.create_user(db, user_db)
    except DuplicateKeyError as e:
        # O login foi checado acima; uma colisão aqui é corrida no login ou e-mail repetido.
        key_value = (e.details or {}).get("keyValue") or {}
        if "login" in key_value:
            raise DuplicateLogin(login) from e
        raise DuplicateEmail(email) from e

    if created is not None:
        logger.info(f"Usuário '{login}' registrado com sucesso (papel {role.value}).")
    return created
