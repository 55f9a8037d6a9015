# acervo/core/security.py
"""
Hashing de senhas e codec de tokens de acesso do Acervo.

Os tokens são JWT HS256 com os claims `iss`, `sub` (login) e `exp`.
São totalmente stateless: nada é armazenado no servidor, e a validade
é recalculada a cada requisição a partir da assinatura e da expiração.
Um token inválido é um resultado normal (`None`), nunca uma exceção.
"""

# ========================
# --- Importações ---
# ========================
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError
from pydantic import ValidationError

# --- Módulos da Aplicação ---
from acervo.core.config import settings
from acervo.core.exceptions import SigningError
from acervo.models.token import TokenPayload

# ========================
# --- Configuração do Logger ---
# ========================
logger = logging.getLogger(__name__)

# ========================
# --- Configuração Hashing de Senha ---
# ========================
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ========================
# --- Constantes JWT ---
# ========================
ALGORITHM = settings.JWT_ALGORITHM

# ========================
# --- Funções de Senha ---
# ========================
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verifica se uma senha em texto plano corresponde a um hash armazenado.

    Returns:
        True se a senha corresponder ao hash, False caso contrário
        (inclusive quando o hash está em formato inválido).
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        logger.warning("Tentativa de verificar senha com hash em formato inválido.")
        return False

def get_password_hash(password: str) -> str:
    """Gera um hash bcrypt (com salt) para a senha fornecida."""
    return pwd_context.hash(password)

# ========================
# --- Codec de Tokens ---
# ========================
def issue_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Emite um token assinado para `subject` (o login do usuário).

    Args:
        subject: Login do usuário, gravado no claim `sub`.
        expires_delta: Validade do token. Se None, usa `ACCESS_TOKEN_EXPIRE_MINUTES`.

    Returns:
        O JWT codificado.

    Raises:
        SigningError: Se a chave de assinatura não estiver configurada
                      ou a assinatura falhar.
    """
    secret_key = settings.JWT_SECRET_KEY
    if not secret_key:
        raise SigningError("JWT_SECRET_KEY não configurada; impossível assinar tokens.")

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    expire = datetime.now(timezone.utc) + expires_delta

    to_encode = {
        "iss": settings.JWT_ISSUER,
        "sub": subject,
        "exp": expire,
    }
    try:
        return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)
    except JWTError as e:
        raise SigningError(f"Erro ao gerar token: {e}") from e

def verify_token(token: Optional[str]) -> Optional[str]:
    """
    Verifica assinatura, emissor e expiração de um token.

    A expiração é conferida aqui, sempre como `exp > agora`.

    Returns:
        O login (`sub`) se o token for válido, None caso contrário.
    """
    if not token or not isinstance(token, str):
        return None

    secret_key = settings.JWT_SECRET_KEY
    if not secret_key:
        logger.debug("Verificação de token ignorada: JWT_SECRET_KEY não configurada.")
        return None

    try:
        payload = jwt.decode(
            token,
            secret_key,
            algorithms=[ALGORITHM],
            issuer=settings.JWT_ISSUER,
            options={"verify_exp": False}
        )
        token_data = TokenPayload.model_validate(payload)
        token_expiration_time = datetime.fromtimestamp(token_data.exp, tz=timezone.utc)
    except ExpiredSignatureError:
        logger.info("Token JWT expirado.")
        return None
    except JWTClaimsError as e:
        logger.info(f"Token JWT com claims inválidos: {e}")
        return None
    except (OverflowError, OSError) as e:
        logger.info(f"Token JWT com 'exp' fora do intervalo representável: {e}")
        return None
    except (JWTError, ValidationError, ValueError) as e:
        logger.info(f"Token JWT inválido: {e}")
        return None

    if datetime.now(timezone.utc) >= token_expiration_time:
        logger.info("Token JWT expirado.")
        return None

    return token_data.sub

def is_token_valid(token: Optional[str]) -> bool:
    """True se e somente se `verify_token` devolver um login não vazio."""
    return bool(verify_token(token))
