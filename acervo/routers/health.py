# acervo/routers/health.py

# ========================
# --- Importações ---
# ========================
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from acervo.db.mongodb_utils import check_mongo_connection


# ========================
# --- Configuração do Router ---
# ========================
router = APIRouter()


# ========================
# --- Rotas da API ---
# ========================
@router.get("/health", tags=["Health"])
async def health_check():
    if not await check_mongo_connection():
        return JSONResponse(content={"status": "error", "message": "MongoDB não está disponível"}, status_code=503)

    return JSONResponse(content={"status": "ok"})
