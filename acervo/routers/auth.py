# acervo/routers/auth.py
"""
Rotas públicas de autenticação: login (emissão do token, também gravado
no cookie `jwt_token`) e registro de novos usuários. As páginas de login
e registro são apenas respostas JSON simples.
"""

# ========================
# --- Importações ---
# ========================
import logging
from typing import Annotated

from fastapi import APIRouter, Form, HTTPException, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

# --- Módulos da Aplicação ---
from acervo.core.config import settings
from acervo.core.dependencies import DbDep
from acervo.core.exceptions import DuplicateEmail, DuplicateLogin, InvalidCredentials, SigningError
from acervo.core.security import issue_token
from acervo.models.token import Token
from acervo.models.user import User, UserCreate
from acervo.services import auth_service

logger = logging.getLogger(__name__)

# ========================
# --- Configuração do Router ---
# ========================
router = APIRouter(
    tags=["Authentication"],
)

# ========================
# --- Páginas ---
# ========================
@router.get("/login", summary="Página de login")
async def login_page():
    return {"page": "login", "action": "/login-process", "fields": ["login", "password"]}

@router.get("/register", summary="Página de registro")
async def register_page():
    return {"page": "register", "action": "/register-process", "fields": ["login", "email", "password"]}

# ========================
# --- Endpoint de Login ---
# ========================
@router.post(
    "/login-process",
    response_model=Token,
    summary="Autentica o usuário e obtém um token de acesso JWT",
    description="Envie 'login' e 'password' como form data. O token também é gravado no cookie de autenticação.",
    response_description="Token de acesso JWT e tipo do token ('bearer')."
)
async def login_process(
    db: DbDep,
    response: Response,
    login: Annotated[str, Form()],
    password: Annotated[str, Form()],
):
    """
    Autentica o usuário e emite o token.

    A resposta de falha é sempre a mesma, sem indicar se foi o login ou a
    senha que não conferiu.
    """
    try:
        user = await auth_service.authenticate(db, login, password)
    except InvalidCredentials as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        access_token = issue_token(subject=user.login)
    except SigningError as e:
        logger.error(f"Não foi possível emitir token para '{user.login}': {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Não foi possível emitir o token de acesso."
        )

    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=access_token,
        max_age=settings.AUTH_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
    )
    return Token(access_token=access_token, token_type="bearer")

# ========================
# --- Endpoint de Registro ---
# ========================
@router.post(
    "/register-process",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    summary="Registra um novo usuário no sistema",
    response_description="Dados do usuário recém-registrado (sem senha).",
)
async def register_process(
    db: DbDep,
    login: Annotated[str, Form()],
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
):
    """Registra um usuário com papel USER. Login ou e-mail repetido resulta em 409."""
    try:
        user_in = UserCreate(login=login, email=email, password=password)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))

    try:
        created = await auth_service.register(db, user_in.login, str(user_in.email), user_in.password)
    except (DuplicateLogin, DuplicateEmail) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if created is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Não foi possível criar o usuário devido a um erro interno no servidor."
        )
    return User.model_validate(created)
