# acervo/core/auth_filter.py
"""
Filtro de autenticação por requisição.

Para cada requisição o filtro procura um token (header `Authorization:
Bearer <token>` e, só se ele estiver ausente ou malformado, o cookie
`jwt_token`), verifica o token e carrega o usuário pelo `sub`. O
resultado é um `SecurityContext` ou None.

O filtro nunca rejeita nada: sem token, com token inválido, com usuário
inexistente ou diante de qualquer exceção, a requisição segue sem
autenticação e a política de autorização decide o que fazer com ela.
"""

# ========================
# --- Importações ---
# ========================
import logging
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from fastapi import Request
from pydantic import BaseModel, ConfigDict
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

# --- Módulos da Aplicação ---
from acervo.core.config import settings
from acervo.core.security import verify_token
from acervo.db import user_crud
from acervo.db.mongodb_utils import get_database
from acervo.models.user import UserInDB

# ========================
# --- Configuração do Logger ---
# ========================
logger = logging.getLogger(__name__)

PrincipalLoader = Callable[[str], Awaitable[Optional[UserInDB]]]
TokenExtractor = Callable[[Request], Optional[str]]

# ========================
# --- Contexto de Segurança ---
# ========================
class SecurityContext(BaseModel):
    """Usuário autenticado da requisição e as autoridades derivadas do seu papel."""
    principal: UserInDB
    authorities: Tuple[str, ...]

    model_config = ConfigDict(frozen=True)

    @classmethod
    def for_principal(cls, principal: UserInDB) -> "SecurityContext":
        return cls(principal=principal, authorities=tuple(principal.authorities))

    def has_authority(self, authority: str) -> bool:
        return authority in self.authorities

# ========================
# --- Extração do Token ---
# ========================
def bearer_from_header(request: Request) -> Optional[str]:
    """Token do header `Authorization: Bearer <token>`, ou None se ausente/malformado."""
    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token

def token_from_cookie(request: Request) -> Optional[str]:
    """Token do cookie de autenticação."""
    return request.cookies.get(settings.AUTH_COOKIE_NAME) or None

# Ordem importa: o primeiro extrator que encontrar um token vence.
TOKEN_EXTRACTORS: Tuple[TokenExtractor, ...] = (bearer_from_header, token_from_cookie)

def extract_token(request: Request, extractors: Sequence[TokenExtractor] = TOKEN_EXTRACTORS) -> Optional[str]:
    for extractor in extractors:
        token = extractor(request)
        if token:
            return token
    return None

# ========================
# --- Carregamento do Principal ---
# ========================
async def load_principal(login: str) -> Optional[UserInDB]:
    """Busca no banco o usuário identificado pelo `sub` do token."""
    return await user_crud.get_user_by_login(get_database(), login)

# ========================
# --- Etapa de Autenticação ---
# ========================
async def authenticate_request(
    request: Request,
    existing_context: Optional[SecurityContext] = None,
    principal_loader: Optional[PrincipalLoader] = None,
) -> Optional[SecurityContext]:
    """
    Executa a autenticação de uma requisição.

    Args:
        request: A requisição recebida. Não é modificada.
        existing_context: Contexto já instalado por outro mecanismo. Se
            presente, é devolvido sem nenhuma verificação adicional.
        principal_loader: Função que carrega o usuário pelo login. Se None,
            usa `load_principal`.

    Returns:
        O contexto de segurança, ou None se a requisição segue sem autenticação.
    """
    if existing_context is not None:
        return existing_context

    loader = principal_loader or load_principal
    try:
        token = extract_token(request)
        if token is None:
            return None

        login = verify_token(token)
        if login is None:
            logger.debug(f"Token inválido em {request.method} {request.url.path}; seguindo sem autenticação.")
            return None

        principal = await loader(login)
    except Exception as e:
        logger.warning(f"Falha ao autenticar {request.method} {request.url.path}; seguindo sem autenticação: {e}")
        return None

    if principal is None:
        logger.info(f"Token válido para login '{login}', mas o usuário não existe mais.")
        return None

    return SecurityContext.for_principal(principal)

# ========================
# --- Middleware ---
# ========================
def get_security_context(request: Request) -> Optional[SecurityContext]:
    """Contexto instalado em `request.state`, se houver."""
    return getattr(request.state, "security_context", None)

class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Instala `request.state.security_context` antes de qualquer handler.

    A autenticação roda uma única vez por requisição: se o escopo já
    passou por aqui (por exemplo, numa montagem interna), o contexto
    existente é mantido.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if getattr(request.state, "authentication_done", False):
            return await call_next(request)

        request.state.security_context = await authenticate_request(
            request,
            existing_context=get_security_context(request),
        )
        request.state.authentication_done = True
        return await call_next(request)
