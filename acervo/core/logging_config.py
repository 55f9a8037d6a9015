# acervo/core/logging_config.py
"""
Configuração de logging do Acervo sobre o Loguru.

Os módulos continuam usando `logging.getLogger(__name__)`; o InterceptHandler
encaminha esses registros para o Loguru, que é o único destino de saída.
"""

# ========================
# --- Importações ---
# ========================
import logging
import sys
from loguru import logger as loguru_logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)

# Bibliotecas que só precisam reportar avisos.
QUIET_LOGGERS = ("pymongo", "passlib")

# ========================
# --- Handler de Intercepção ---
# ========================
class InterceptHandler(logging.Handler):
    """Redireciona registros do `logging` padrão para o Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Sobe a pilha até sair do módulo logging para reportar a origem real.
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back # pragma: no cover
            depth += 1 # pragma: no cover

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

# ========================
# --- Função de Setup ---
# ========================
def setup_logging(log_level: str = "INFO") -> None:
    """
    Instala o Loguru como destino global de logs.

    Args:
        log_level: Nível mínimo exibido (ex: "INFO", "DEBUG").
    """
    log_level = log_level.upper()

    loguru_logger.remove()
    loguru_logger.add(
        sys.stderr,
        level=log_level,
        format=LOG_FORMAT,
        enqueue=True,
        diagnose=False
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("uvicorn.error").propagate = False
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
