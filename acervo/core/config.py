# acervo/core/config.py

# ========================
# --- Importações ---
# ========================
import os
import logging
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import Field, ValidationError, model_validator
from dotenv import load_dotenv

# ===============================
# --- Configuração do Logger ---
# ===============================
logger = logging.getLogger(__name__)

# ===============================
# --- Carregamento do .env ---
# ===============================
# Define o caminho para o arquivo .env na raiz do projeto
dotenv_path = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), '.env')
loaded = load_dotenv(dotenv_path=dotenv_path)

# ======================================
# --- Definição das Configurações ---
# ======================================
class Settings(BaseSettings):
    """
    Configurações do Acervo lidas do ambiente usando Pydantic BaseSettings.
    Procura variáveis de ambiente ou variáveis em um arquivo .env.
    """
    # =========================
    # --- Config Gerais ---
    # =========================
    PROJECT_NAME: str = Field("Acervo API", description="Nome do Projeto")

    # =============================
    # --- Configurações MongoDB ---
    # =============================
    MONGODB_URL: str = Field(..., description="URL de conexão completa do MongoDB (obrigatória)")
    DATABASE_NAME: str = Field("acervo_db", description="Nome do banco de dados MongoDB")
    MONGODB_TIMEOUT_MS: int = Field(5000, description="Timeout de seleção de servidor do MongoDB, em milissegundos")

    # ===========================
    # --- Configurações JWT ---
    # ===========================
    # Sem chave a emissão falha com SigningError e toda verificação é inválida.
    JWT_SECRET_KEY: Optional[str] = Field(None, description="Chave secreta para assinar tokens JWT")
    JWT_ALGORITHM: str = Field("HS256", description="Algoritmo de assinatura JWT")
    JWT_ISSUER: str = Field("core-system", description="Emissor (claim 'iss') exigido nos tokens")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(120, description="Validade do token de acesso em minutos (padrão: 2 horas)")

    # ===============================
    # --- Configurações de Cookie ---
    # ===============================
    AUTH_COOKIE_NAME: str = Field("jwt_token", description="Nome do cookie que transporta o token")
    AUTH_COOKIE_MAX_AGE: int = Field(7200, description="Max-Age do cookie de autenticação em segundos")

    # ==================================
    # --- Configurações do Acervo ---
    # ==================================
    UPLOAD_DIR: str = Field("uploads", description="Diretório onde as capas dos livros são gravadas")
    STATIC_DIR: str = Field("static", description="Diretório raiz dos arquivos estáticos (css, js, assets)")

    # ===============================
    # --- Configuração de Logging ---
    # ===============================
    LOG_LEVEL: str = Field(default="INFO", description="Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)")

    # ===================================
    # --- Configurações CORS ---
    # ===================================
    CORS_ALLOWED_ORIGINS: List[str] = Field(default=[], description="Lista de origens CORS permitidas")

    model_config = {
        "case_sensitive": False,
    }

    # ===============================
    # --- Validadores ---
    # ===============================
    @model_validator(mode='after')
    def check_jwt_config(self) -> 'Settings':
        """Avisa quando a chave JWT não foi configurada."""
        if not self.JWT_SECRET_KEY:
            logger.warning("JWT_SECRET_KEY não definida: nenhum token poderá ser emitido ou validado.")
        return self

# ================================
# --- Criação da Instância ---
# ================================
try:
    settings = Settings()
except ValidationError as e:
    logger.critical(f"Erro fatal de validação ao carregar configurações: {e}")
    raise e
except Exception as e:
    logger.critical(f"Erro inesperado ao carregar configurações: {e}", exc_info=True)
    raise e
