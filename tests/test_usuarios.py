# tests/test_usuarios.py
"""
Testes de integração das rotas `/usuario`: administração (somente ADMIN)
e `/usuario/me`.
"""

# ========================
# --- Importações ---
# ========================
import uuid
import pytest
from fastapi import status
from httpx import AsyncClient
from jose import jwt

# --- Módulos da Aplicação ---
from acervo.core.config import settings
from acervo.core.security import issue_token, verify_password
from acervo.db import user_crud
from acervo.models.user import UserInDB, UserRole

pytestmark = pytest.mark.asyncio

# ========================
# --- /usuario/me ---
# ========================
async def test_read_me_returns_authenticated_user(test_async_client: AsyncClient, user_headers, regular_user: UserInDB):
    response = await test_async_client.get("/usuario/me", headers=user_headers)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["id"] == str(regular_user.id)
    assert body["role"] == "USER"
    assert "hashed_password" not in body

async def test_read_me_without_token_returns_401(test_async_client: AsyncClient):
    response = await test_async_client.get("/usuario/me")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED

async def test_read_me_with_unrepresentable_expiry_returns_401(test_async_client: AsyncClient, regular_user: UserInDB):
    token = jwt.encode(
        {"iss": settings.JWT_ISSUER, "sub": regular_user.login, "exp": 10**20},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )

    response = await test_async_client.get("/usuario/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED

# ========================
# --- Cadastro pelo Administrador ---
# ========================
async def test_admin_creates_user_with_role(test_async_client: AsyncClient, admin_headers, fake_db):
    response = await test_async_client.post(
        "/usuario",
        json={"login": "bibliotecaria", "email": "bib@example.com", "password": "senha-forte", "role": "ADMIN"},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_201_CREATED, response.text
    body = response.json()
    assert body["role"] == "ADMIN"
    assert "hashed_password" not in body
    assert response.headers["location"] == f"/usuario/{body['id']}"

    stored = await user_crud.get_user_by_login(fake_db, "bibliotecaria")
    assert stored.role is UserRole.ADMIN
    assert stored.hashed_password != "senha-forte"
    assert verify_password("senha-forte", stored.hashed_password)

async def test_admin_created_user_defaults_to_user_role_and_can_log_in(test_async_client: AsyncClient, admin_headers):
    created = await test_async_client.post(
        "/usuario",
        json={"login": "leitor", "email": "leitor@example.com", "password": "senha"},
        headers=admin_headers,
    )
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["role"] == "USER"

    login = await test_async_client.post("/login-process", data={"login": "leitor", "password": "senha"})
    assert login.status_code == status.HTTP_200_OK

@pytest.mark.parametrize("field", ["login", "email"])
async def test_admin_create_duplicate_returns_409(test_async_client: AsyncClient, admin_headers, regular_user: UserInDB, field):
    payload = {"login": "outra", "email": "outra@example.com", "password": "x"}
    payload[field] = getattr(regular_user, field)

    response = await test_async_client.post("/usuario", json=payload, headers=admin_headers)

    assert response.status_code == status.HTTP_409_CONFLICT

async def test_admin_create_with_invalid_role_returns_422(test_async_client: AsyncClient, admin_headers):
    response = await test_async_client.post(
        "/usuario",
        json={"login": "outra", "email": "outra@example.com", "password": "x", "role": "ROOT"},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

async def test_regular_user_cannot_create_users(test_async_client: AsyncClient, user_headers, fake_db):
    response = await test_async_client.post(
        "/usuario",
        json={"login": "intruso", "email": "intruso@example.com", "password": "x", "role": "ADMIN"},
        headers=user_headers,
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert await user_crud.get_user_by_login(fake_db, "intruso") is None

# ========================
# --- Listagem e Consulta ---
# ========================
async def test_admin_lists_users(test_async_client: AsyncClient, admin_headers, regular_user: UserInDB):
    response = await test_async_client.get("/usuario", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert {u["login"] for u in response.json()} == {"admin", regular_user.login}

async def test_regular_user_cannot_list_users(test_async_client: AsyncClient, user_headers):
    response = await test_async_client.get("/usuario", headers=user_headers)

    assert response.status_code == status.HTTP_403_FORBIDDEN

async def test_admin_gets_user_by_id(test_async_client: AsyncClient, admin_headers, regular_user: UserInDB):
    found = await test_async_client.get(f"/usuario/{regular_user.id}", headers=admin_headers)
    missing = await test_async_client.get(f"/usuario/{uuid.uuid4()}", headers=admin_headers)

    assert found.status_code == status.HTTP_200_OK
    assert found.json()["email"] == regular_user.email
    assert missing.status_code == status.HTTP_404_NOT_FOUND

# ========================
# --- Atualização ---
# ========================
async def test_admin_updates_email_and_role(test_async_client: AsyncClient, admin_headers, regular_user: UserInDB):
    response = await test_async_client.put(
        f"/usuario/{regular_user.id}",
        json={"email": "ana.nova@example.com", "role": "ADMIN"},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_200_OK, response.text
    body = response.json()
    assert body["email"] == "ana.nova@example.com"
    assert body["role"] == "ADMIN"
    assert body["updated_at"] is not None

async def test_promoted_user_gains_admin_routes(test_async_client: AsyncClient, admin_headers, user_headers, regular_user: UserInDB):
    await test_async_client.put(f"/usuario/{regular_user.id}", json={"role": "ADMIN"}, headers=admin_headers)

    response = await test_async_client.get("/usuario", headers=user_headers)

    assert response.status_code == status.HTTP_200_OK

async def test_admin_updates_password(test_async_client: AsyncClient, admin_headers, regular_user: UserInDB):
    response = await test_async_client.put(
        f"/usuario/{regular_user.id}",
        json={"password": "nova-senha"},
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK

    login = await test_async_client.post("/login-process", data={"login": regular_user.login, "password": "nova-senha"})
    assert login.status_code == status.HTTP_200_OK

async def test_update_to_existing_email_returns_409(test_async_client: AsyncClient, admin_headers, admin_user: UserInDB, regular_user: UserInDB):
    response = await test_async_client.put(
        f"/usuario/{regular_user.id}",
        json={"email": admin_user.email},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_409_CONFLICT

async def test_update_with_invalid_email_returns_422(test_async_client: AsyncClient, admin_headers, regular_user: UserInDB):
    response = await test_async_client.put(
        f"/usuario/{regular_user.id}",
        json={"email": "invalido"},
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

async def test_update_unknown_user_returns_404(test_async_client: AsyncClient, admin_headers):
    response = await test_async_client.put(f"/usuario/{uuid.uuid4()}", json={"role": "ADMIN"}, headers=admin_headers)

    assert response.status_code == status.HTTP_404_NOT_FOUND

# ========================
# --- Remoção ---
# ========================
async def test_admin_deletes_user_and_token_stops_working(test_async_client: AsyncClient, admin_headers, regular_user: UserInDB, fake_db):
    token = issue_token(regular_user.login)

    deleted = await test_async_client.delete(f"/usuario/{regular_user.id}", headers=admin_headers)
    again = await test_async_client.delete(f"/usuario/{regular_user.id}", headers=admin_headers)
    me = await test_async_client.get("/usuario/me", headers={"Authorization": f"Bearer {token}"})

    assert deleted.status_code == status.HTTP_204_NO_CONTENT
    assert again.status_code == status.HTTP_404_NOT_FOUND
    assert me.status_code == status.HTTP_401_UNAUTHORIZED
    assert await user_crud.get_user_by_id(fake_db, regular_user.id) is None
