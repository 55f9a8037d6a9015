# acervo/core/authorization.py
"""
Política de autorização por rota.

Executada depois do filtro de autenticação e antes de qualquer handler:
rotas públicas passam direto; as demais exigem um contexto de segurança
instalado e, algumas, uma autoridade específica. Uma requisição barrada
aqui nunca chega à lógica de negócio.
"""

# ========================
# --- Importações ---
# ========================
import logging
import re
from enum import Enum
from typing import FrozenSet, NamedTuple, Optional, Pattern

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

# --- Módulos da Aplicação ---
from acervo.core.auth_filter import SecurityContext, get_security_context
from acervo.models.user import ROLE_ADMIN, ROLE_USER

logger = logging.getLogger(__name__)

# ========================
# --- Rotas Públicas ---
# ========================
PUBLIC_PATHS = frozenset({
    "/login",
    "/login-process",
    "/register",
    "/register-process",
    "/health",
    "/docs",
    "/openapi.json",
})
PUBLIC_PREFIXES = ("/css/", "/js/", "/assets/")

# ========================
# --- Regras por Rota ---
# ========================
class AccessRule(NamedTuple):
    methods: Optional[FrozenSet[str]]  # None: qualquer método
    pattern: Pattern[str]
    authority: str

    def matches(self, method: str, path: str) -> bool:
        if self.methods is not None and method not in self.methods:
            return False
        return self.pattern.match(path) is not None


_READ = frozenset({"GET", "HEAD"})
_WRITE = frozenset({"POST", "PUT", "PATCH", "DELETE"})

# Avaliadas em ordem; a primeira que casar define a autoridade exigida.
ACCESS_RULES = (
    AccessRule(frozenset({"POST"}), re.compile(r"^/livro/[^/]+/(emprestimo|devolucao|reserva)/?$"), ROLE_USER),
    AccessRule(_READ, re.compile(r"^/livro(/.*)?$"), ROLE_USER),
    AccessRule(_WRITE, re.compile(r"^/livro(/.*)?$"), ROLE_ADMIN),
    AccessRule(None, re.compile(r"^/usuario/me/?$"), ROLE_USER),
    AccessRule(None, re.compile(r"^/usuario(/.*)?$"), ROLE_ADMIN),
)


class Decision(str, Enum):
    ALLOW = "allow"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


def is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)

def required_authority(method: str, path: str) -> Optional[str]:
    """Autoridade exigida pela rota, ou None se basta estar autenticado."""
    for rule in ACCESS_RULES:
        if rule.matches(method, path):
            return rule.authority
    return None

def evaluate(method: str, path: str, context: Optional[SecurityContext]) -> Decision:
    """Decide se a requisição pode seguir para o handler."""
    if is_public(path):
        return Decision.ALLOW
    if context is None:
        return Decision.UNAUTHENTICATED
    authority = required_authority(method.upper(), path)
    if authority is not None and not context.has_authority(authority):
        return Decision.FORBIDDEN
    return Decision.ALLOW

# ========================
# --- Middleware ---
# ========================
class AuthorizationMiddleware(BaseHTTPMiddleware):
    """Aplica `evaluate` ao contexto instalado pelo `AuthenticationMiddleware`."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = get_security_context(request)
        decision = evaluate(request.method, request.url.path, context)

        if decision is Decision.UNAUTHENTICATED:
            logger.info(f"Acesso negado (não autenticado): {request.method} {request.url.path}")
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Não autenticado"},
                headers={"WWW-Authenticate": "Bearer"},
            )
        if decision is Decision.FORBIDDEN:
            logger.info(
                f"Acesso negado (sem permissão): {request.method} {request.url.path} "
                f"para '{context.principal.login}'"
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": "Permissão insuficiente"},
            )
        return await call_next(request)
