# acervo/core/dependencies.py
"""
Dependências reutilizáveis das rotas: acesso ao banco de dados e ao
usuário autenticado da requisição.

A autenticação em si acontece no `AuthenticationMiddleware`; aqui apenas
lemos o contexto que ele instalou.
"""

# ========================
# --- Importações ---
# ========================
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from motor.motor_asyncio import AsyncIOMotorDatabase

# --- Módulos da Aplicação ---
from acervo.db.mongodb_utils import get_database
from acervo.core.auth_filter import SecurityContext, get_security_context
from acervo.models.user import UserInDB

# ========================
# --- Tipos de Dependência ---
# ========================
DbDep = Annotated[AsyncIOMotorDatabase, Depends(get_database)]

# ========================
# --- Dependência: Contexto de Segurança ---
# ========================
def require_security_context(request: Request) -> SecurityContext:
    """
    Contexto instalado para a requisição.

    A política de autorização já barra requisições sem contexto nas rotas
    protegidas; o 401 aqui cobre rotas usadas fora desse fluxo.

    Raises:
        HTTPException: Status 401 se nenhum contexto foi instalado.
    """
    context = get_security_context(request)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Não foi possível validar as credenciais",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context

# ========================
# --- Tipos Anotados para Rotas ---
# ========================
CurrentContext = Annotated[SecurityContext, Depends(require_security_context)]

def get_current_user(context: CurrentContext) -> UserInDB:
    return context.principal

CurrentUser = Annotated[UserInDB, Depends(get_current_user)]
