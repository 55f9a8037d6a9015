# tests/conftest.py
# Inibir warnings de depreciação de bibliotecas
import warnings
warnings.filterwarnings("ignore", category=DeprecationWarning, module="passlib")

# ========================
# --- Configuração .env.test ---
# ========================
from dotenv import load_dotenv
import os
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env.test'))
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET_KEY", "chave-secreta-apenas-para-testes-0123456789abcdef")

"""
Fixtures do Pytest compartilhadas pela suíte de testes do Acervo.

Em vez de um MongoDB real, os testes usam `FakeDatabase`: um dublê em
memória que implementa apenas as operações do Motor usadas pela
aplicação (find_one, find().sort(), insert_one, find_one_and_update,
delete_one, create_index e o comando 'ping'), com índices únicos,
filtros `$or`/`$regex`/`$gt`/`$expr` e atualizações em pipeline. Cada
operação assíncrona cede o loop uma vez, de modo que requisições
concorrentes realmente se intercalam.

Fixtures incluem:
- `fake_db`: banco em memória instalado como `db_instance` global.
- `test_async_client`: cliente HTTP assíncrono para a aplicação FastAPI.
- Usuários ADMIN e USER já cadastrados, com seus tokens e headers.
- `upload_dir`: diretório temporário para as capas.
- `live_db` e `live_client`: MongoDB real, apenas com ACERVO_LIVE_MONGO=1
  (testes marcados como `integration`).
"""

# ========================
# --- Importações ---
# ========================
import asyncio
import copy
import logging
import re
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

# --- Módulos da Aplicação ---
from acervo.core.config import settings
from acervo.core.security import get_password_hash, issue_token
from acervo.db import livro_crud, mongodb_utils, user_crud
from acervo.main import app as fastapi_app
from acervo.models.user import UserInDB, UserRole

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)

ADMIN_LOGIN = "admin"
ADMIN_PASSWORD = "admin-secret"
USER_LOGIN = "ana"
USER_PASSWORD = "secret"

# ========================
# --- Dublê do MongoDB ---
# ========================
def _evaluate(doc: Dict[str, Any], expression: Any) -> Any:
    """Avalia o subconjunto de expressões de agregação usado pela aplicação."""
    if isinstance(expression, str) and expression.startswith("$"):
        return doc.get(expression[1:])
    if isinstance(expression, dict) and len(expression) == 1:
        operator, operands = next(iter(expression.items()))
        if operator == "$add":
            return sum(_evaluate(doc, operand) for operand in operands)
        if operator == "$cond":
            condition, if_true, if_false = operands
            return _evaluate(doc, if_true) if _evaluate(doc, condition) else _evaluate(doc, if_false)
        if operator in ("$gt", "$lt"):
            left, right = (_evaluate(doc, operand) for operand in operands)
            return left > right if operator == "$gt" else left < right
        raise NotImplementedError(operator)
    return expression

def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$or":
            if not any(_matches(doc, sub_query) for sub_query in condition):
                return False
            continue
        if key == "$expr":
            if not _evaluate(doc, condition):
                return False
            continue
        value = doc.get(key)
        if isinstance(condition, dict) and "$regex" in condition:
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or re.search(condition["$regex"], value, flags) is None:
                return False
        elif isinstance(condition, dict) and "$gt" in condition:
            if value is None or not value > condition["$gt"]:
                return False
        elif value != condition:
            return False
    return True

def _apply_update(doc: Dict[str, Any], update: Any) -> Dict[str, Any]:
    """Calcula os campos alterados por um `$set` simples ou por um pipeline de `$set`."""
    if isinstance(update, list):
        changes: Dict[str, Any] = {}
        current = dict(doc)
        for stage in update:
            stage_changes = {field: _evaluate(current, expr) for field, expr in stage["$set"].items()}
            current.update(stage_changes)
            changes.update(stage_changes)
        return changes
    return copy.deepcopy(update.get("$set", {}))


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._docs = sorted(self._docs, key=lambda d: d.get(key) or "", reverse=direction == DESCENDING)
        return self

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._docs:
            await asyncio.sleep(0)
            yield copy.deepcopy(doc)


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.unique_fields: set = set()
        self.indexes: List[str] = []

    def _check_unique(self, candidate: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None):
        for field in self.unique_fields:
            value = candidate.get(field)
            if value is None:
                continue
            for other in self.docs:
                if other is not ignore and other.get(field) == value:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {self.name} index: {field}",
                        11000,
                        {"keyValue": {field: value}},
                    )

    async def create_index(self, keys, unique: bool = False, name: Optional[str] = None, **kwargs):
        if unique and isinstance(keys, str):
            self.unique_fields.add(keys)
        self.indexes.append(name or str(keys))
        return name

    async def insert_one(self, doc: Dict[str, Any]):
        await asyncio.sleep(0)
        self._check_unique(doc)
        stored = copy.deepcopy(doc)
        stored["_id"] = uuid.uuid4().hex
        self.docs.append(stored)
        return SimpleNamespace(acknowledged=True, inserted_id=stored["_id"])

    async def find_one(self, query: Dict[str, Any], projection: Optional[Dict[str, Any]] = None):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                if projection:
                    return {k: doc[k] for k in projection if k in doc}
                return copy.deepcopy(doc)
        return None

    def find(self, query: Optional[Dict[str, Any]] = None) -> FakeCursor:
        return FakeCursor([doc for doc in self.docs if _matches(doc, query or {})])

    async def find_one_and_update(self, query: Dict[str, Any], update: Any, return_document: bool = False, **kwargs):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                changes = _apply_update(doc, update)
                self._check_unique({**doc, **changes}, ignore=doc)
                doc.update(changes)
                return copy.deepcopy(doc) if return_document else before
        return None

    async def delete_one(self, query: Dict[str, Any]):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                self.docs.remove(doc)
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query: Dict[str, Any]):
        remaining = [doc for doc in self.docs if not _matches(doc, query)]
        deleted = len(self.docs) - len(remaining)
        self.docs = remaining
        return SimpleNamespace(deleted_count=deleted)


class FakeDatabase:
    def __init__(self, unique_fields: Optional[Dict[str, Iterable[str]]] = None):
        self._collections: Dict[str, FakeCollection] = {}
        for collection_name, fields in (unique_fields or {}).items():
            self[collection_name].unique_fields.update(fields)

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]

    async def command(self, name: str):
        if name == "ping":
            return {"ok": 1.0}
        raise NotImplementedError(name)

# ========================
# --- Fixtures de Banco ---
# ========================
@pytest.fixture
def fake_db(monkeypatch) -> FakeDatabase:
    """
    Banco em memória com os mesmos índices únicos da aplicação, instalado
    como a instância global devolvida por `get_database`.
    """
    db = FakeDatabase(unique_fields={
        "users": ("id", "login", "email"),
        "livros": ("id", "isbn"),
    })
    monkeypatch.setattr(mongodb_utils, "db_instance", db)
    return db

@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Diretório temporário de uploads."""
    target = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(target))
    return target

# ========================
# --- Fixture Principal: Cliente de Teste HTTP ---
# ========================
@pytest_asyncio.fixture(scope="function")
async def test_async_client(fake_db, upload_dir) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP (`AsyncClient` + `ASGITransport`) sobre o banco em memória."""
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        logger.debug("Fixture 'test_async_client': Cliente HTTP fornecido ao teste.")
        yield client

# ========================
# --- Fixtures de Usuários ---
# ========================
async def _create_user(db, login: str, password: str, role: UserRole) -> UserInDB:
    user = UserInDB(
        id=uuid.uuid4(),
        login=login,
        email=f"{login}@example.com",
        role=role,
        hashed_password=get_password_hash(password),
        created_at=datetime.now(timezone.utc),
    )
    created = await user_crud.create_user(db, user)
    assert created is not None, f"Falha ao criar usuário de teste '{login}'"
    return created

@pytest_asyncio.fixture
async def admin_user(fake_db) -> UserInDB:
    return await _create_user(fake_db, ADMIN_LOGIN, ADMIN_PASSWORD, UserRole.ADMIN)

@pytest_asyncio.fixture
async def regular_user(fake_db) -> UserInDB:
    return await _create_user(fake_db, USER_LOGIN, USER_PASSWORD, UserRole.USER)

@pytest.fixture
def admin_headers(admin_user: UserInDB) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(admin_user.login)}"}

@pytest.fixture
def user_headers(regular_user: UserInDB) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(regular_user.login)}"}

# ========================
# --- Fixture de Integração: MongoDB Real ---
# ========================
LIVE_MONGO_ENV = "ACERVO_LIVE_MONGO"
LIVE_COLLECTIONS = (user_crud.USERS_COLLECTION, livro_crud.LIVROS_COLLECTION)

@pytest_asyncio.fixture(scope="function")
async def live_db(upload_dir) -> AsyncGenerator[AsyncIOMotorDatabase, None]:
    """
    Conexão com um MongoDB real para os testes marcados como `integration`.

    Só roda com a variável `ACERVO_LIVE_MONGO=1`; sem ela, ou sem servidor
    alcançável em `MONGODB_URL`, o teste é pulado. As coleções de usuários
    e livros são limpas antes e depois de cada teste e os índices da
    aplicação são recriados.
    """
    if os.environ.get(LIVE_MONGO_ENV) != "1":
        pytest.skip(f"Defina {LIVE_MONGO_ENV}=1 para rodar os testes contra um MongoDB real.")

    db_instance = await mongodb_utils.connect_to_mongo()
    if db_instance is None:
        pytest.skip(f"MongoDB indisponível em {settings.MONGODB_URL}.")

    try:
        if "test" not in settings.DATABASE_NAME.lower():
            logger.warning(
                f"ATENÇÃO: Testes estão sendo executados no banco de dados '{settings.DATABASE_NAME}'. "
                "As coleções de usuários e livros serão limpas!"
            )
        for name in LIVE_COLLECTIONS:
            await db_instance[name].delete_many({})
        await user_crud.create_user_indexes(db_instance)
        await livro_crud.create_livro_indexes(db_instance)
        logger.debug(f"Fixture 'live_db': coleções limpas no DB '{settings.DATABASE_NAME}'.")

        yield db_instance

    finally:
        try:
            for name in LIVE_COLLECTIONS:
                await db_instance[name].delete_many({})
            logger.debug("Fixture 'live_db': coleções limpas APÓS o teste.")
        except Exception as e:
            logger.error(f"Fixture 'live_db': erro ao limpar coleções após o teste: {e}", exc_info=True)
        await mongodb_utils.close_mongo_connection()

@pytest_asyncio.fixture(scope="function")
async def live_client(live_db) -> AsyncGenerator[AsyncClient, None]:
    """Cliente HTTP sobre o MongoDB real."""
    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
