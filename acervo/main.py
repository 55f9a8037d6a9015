# acervo/main.py
"""
Ponto de entrada principal e configuração da aplicação FastAPI do Acervo.
Define a instância da aplicação, middlewares (CORS, autenticação e
autorização), rotas, arquivos estáticos e o ciclo de vida (lifespan).
Também inclui o setup de logging inicial.
"""

# ========================
# --- Importações ---
# ========================
import logging
import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager

# --- Módulos da Aplicação ---
from acervo.routers import auth, health, livros, usuarios
from acervo.db.mongodb_utils import connect_to_mongo, close_mongo_connection
from acervo.db.user_crud import create_user_indexes
from acervo.db.livro_crud import create_livro_indexes
from acervo.core.authorization import AuthorizationMiddleware
from acervo.core.auth_filter import AuthenticationMiddleware
from acervo.core.config import Settings, settings
from acervo.core.logging_config import setup_logging
from acervo.core.storage import get_upload_dir

# ========================
# --- Configuração de Logging ---
# ========================
setup_logging(log_level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ========================
# --- Função de Setup do Middleware CORS ---
# ========================
def _setup_cors_middleware(app_instance: FastAPI, current_settings: Settings):
    """Configura o middleware CORS para a aplicação."""
    if current_settings.CORS_ALLOWED_ORIGINS:
        logger.info(f"Configurando CORS para origens: {current_settings.CORS_ALLOWED_ORIGINS}")
        app_instance.add_middleware(
            CORSMiddleware,
            allow_origins=current_settings.CORS_ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    else:
        logger.warning(
            "Nenhuma origem CORS configurada (settings.CORS_ALLOWED_ORIGINS está vazia). "
            "API pode não ser acessível de frontends em outros domínios."
        )

# ========================
# --- Função de Setup da Segurança ---
# ========================
def _setup_security_middlewares(app_instance: FastAPI):
    """
    Registra o filtro de autenticação e a política de autorização.

    O último middleware adicionado é o mais externo, então a autorização
    é adicionada primeiro para rodar depois da autenticação.
    """
    app_instance.add_middleware(AuthorizationMiddleware)
    app_instance.add_middleware(AuthenticationMiddleware)

# ========================
# --- Função de Setup dos Arquivos Estáticos ---
# ========================
def _mount_static_files(app_instance: FastAPI, current_settings: Settings):
    """Capas enviadas em /uploads e os assets do frontend em /css, /js e /assets."""
    app_instance.mount(
        "/uploads",
        StaticFiles(directory=get_upload_dir()),
        name="uploads",
    )
    for asset_dir in ("css", "js", "assets"):
        directory = os.path.join(current_settings.STATIC_DIR, asset_dir)
        if not os.path.isdir(directory):
            logger.debug(f"Diretório estático ausente, rota /{asset_dir} não montada: {directory}")
            continue
        app_instance.mount(f"/{asset_dir}", StaticFiles(directory=directory), name=asset_dir)

# ========================
# --- Ciclo de Vida (Lifespan) ---
# ========================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gerencia o ciclo de vida da aplicação.

    Conecta ao MongoDB e cria índices no startup.
    Fecha a conexão com o MongoDB no shutdown.
    """
    logger.info("Iniciando ciclo de vida da aplicação...")
    db_connection = await connect_to_mongo()

    if db_connection is None:
        logger.critical("Falha fatal ao conectar ao MongoDB na inicialização. App pode não funcionar corretamente.")
        yield
        logger.info("Encerrando ciclo de vida (conexão DB falhou no início).")
        return

    app.state.db = db_connection
    logger.info("Conectado ao MongoDB.")

    try:
        logger.info("Tentando criar/verificar índices...")
        await create_user_indexes(db_connection)
        await create_livro_indexes(db_connection)
        logger.info("Criação/verificação de índices concluída.")
    except Exception as e:
        logger.error(f"Erro durante a criação de índices: {e}", exc_info=True)

    logger.info("Aplicação iniciada e pronta.") # pragma: no cover
    yield # pragma: no cover

    # Código abaixo é executado no shutdown da aplicação
    logger.info("Iniciando processo de encerramento...")
    await close_mongo_connection()
    logger.info("Aplicação encerrada.")

# ========================
# --- Instância FastAPI ---
# ========================
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API do acervo da biblioteca: catálogo de livros, empréstimos e usuários, com autenticação JWT stateless.",
    version="0.1.0",
    license_info={
        "name": "MIT License",
        "url": "https://opensource.org/licenses/MIT",
    },
    lifespan=lifespan
)

# ========================
# --- Configuração de Middlewares ---
# ========================
_setup_security_middlewares(app)
_setup_cors_middleware(app, settings)

# ========================
# --- Rotas (Routers) ---
# ========================
app.include_router(auth.router)
app.include_router(livros.router)
app.include_router(usuarios.router)
app.include_router(health.router)
_mount_static_files(app, settings)

# ========================
# --- Endpoint Raiz ---
# ========================
@app.get("/", tags=["Root"])
async def read_root():
    """Endpoint raiz para verificar se a API está online."""
    return {"message": f"Bem-vindo à {settings.PROJECT_NAME}!"}

# ========================
# --- Execução (Uvicorn) ---
# ========================
if __name__ == "__main__": # pragma: no cover
    import uvicorn # pragma: no cover
    logger.info("Iniciando servidor Uvicorn para desenvolvimento...") # pragma: no cover
    uvicorn.run( # pragma: no cover
        "acervo.main:app", # pragma: no cover
        host="0.0.0.0", # pragma: no cover
        port=8000, # pragma: no cover
        reload=True, # pragma: no cover
        log_level=settings.LOG_LEVEL.lower() # pragma: no cover
    )
