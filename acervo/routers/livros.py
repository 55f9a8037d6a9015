# acervo/routers/livros.py
"""
Rotas do acervo de livros: cadastro e manutenção (restritos a ADMIN),
consulta, busca, catálogo e as operações de empréstimo, devolução e
reserva (qualquer usuário autenticado). A exigência de papel é aplicada
pela política de autorização antes de chegar aqui.

Cadastro e atualização recebem multipart: a parte `livroDto` traz o
JSON do livro e a parte opcional `imagem`, a capa.
"""

# ========================
# --- Importações ---
# ========================
import logging
import uuid
from typing import Annotated, List, Optional, Type, TypeVar

from fastapi import APIRouter, File, Form, HTTPException, Path, Query, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

# --- Módulos da Aplicação ---
from acervo.core.dependencies import CurrentUser, DbDep
from acervo.core.exceptions import (
    DuplicateIsbn,
    LivroNotFound,
    NoCopiesAvailable,
    NoLoanOutstanding,
    QuantityExceedsTotal,
)
from acervo.models.livro import Livro, LivroCatalogo, LivroCreate, LivroUpdate
from acervo.services import livro_service

# ========================
# --- Configurações e Constantes ---
# ========================
logger = logging.getLogger(__name__)
ModelT = TypeVar("ModelT", bound=BaseModel)

LivroIdPath = Annotated[uuid.UUID, Path(description="ID do livro")]
LivroDtoForm = Annotated[str, Form(description="JSON com os dados do livro.")]
ImagemFile = Annotated[Optional[UploadFile], File(description="Imagem de capa (opcional).")]

# ========================
# --- Configuração do Router ---
# ========================
router = APIRouter(
    prefix="/livro",
    tags=["Livros"],
    responses={
        status.HTTP_404_NOT_FOUND: {"description": "Livro não encontrado."},
        status.HTTP_401_UNAUTHORIZED: {"description": "Não autenticado (token ausente, inválido ou expirado)."},
        status.HTTP_403_FORBIDDEN: {"description": "Papel do usuário não permite a operação."}
    },
)

# ========================
# --- Funções Auxiliares ---
# ========================
def _parse_dto(model: Type[ModelT], livro_dto: str) -> ModelT:
    """Valida a parte JSON do multipart; erros viram o 422 padrão do FastAPI."""
    try:
        return model.model_validate_json(livro_dto)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))

def _not_found(livro_id: uuid.UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Livro com ID {livro_id} não encontrado."
    )

def _db_failure(action: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Falha ao {action} o livro no banco de dados."
    )

# ========================
# --- Endpoint: Cadastrar Livro ---
# ========================
@router.post(
    "",
    response_model=Livro,
    status_code=status.HTTP_201_CREATED,
    summary="Cadastra um novo livro",
    response_description="O livro cadastrado. O header Location aponta para o recurso.",
)
async def create_livro(
    db: DbDep,
    response: Response,
    livroDto: LivroDtoForm,
    imagem: ImagemFile = None,
):
    livro_in = _parse_dto(LivroCreate, livroDto)
    try:
        created = await livro_service.create_livro(db, livro_in, imagem)
    except DuplicateIsbn as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if created is None:
        raise _db_failure("salvar")
    response.headers["Location"] = f"/livro/{created.id}"
    return created

# ========================
# --- Endpoints: Listagem, Busca e Catálogo ---
# ========================
@router.get("", response_model=List[Livro], summary="Lista todos os livros em ordem de cadastro")
async def list_livros(db: DbDep):
    return await livro_service.list_livros(db)

@router.get(
    "/buscar",
    response_model=List[Livro],
    summary="Busca livros por título, autor, gênero ou tags",
    description="Busca por substring, sem diferenciar maiúsculas/minúsculas. Termo vazio lista todos.",
)
async def search_livros(
    db: DbDep,
    termo: Annotated[Optional[str], Query(description="Texto procurado.")] = None,
):
    return await livro_service.search_livros(db, termo)

@router.get(
    "/buscar-por-tag",
    response_model=List[Livro],
    summary="Busca livros pelas tags",
)
async def search_by_tag(
    db: DbDep,
    tag: Annotated[Optional[str], Query(description="Tag procurada.")] = None,
):
    return await livro_service.search_by_tag(db, tag)

@router.get(
    "/catalogo",
    response_model=List[LivroCatalogo],
    summary="Catálogo de livros (visão resumida)",
)
async def catalogo(db: DbDep):
    return await livro_service.list_for_catalog(db)

# ========================
# --- Endpoint: Obter Livro ---
# ========================
@router.get("/{livro_id}", response_model=Livro, summary="Obtém um livro pelo ID")
async def get_livro(db: DbDep, livro_id: LivroIdPath):
    try:
        return await livro_service.get_livro(db, livro_id)
    except LivroNotFound:
        raise _not_found(livro_id)

# ========================
# --- Endpoint: Atualizar Livro ---
# ========================
@router.put(
    "/{livro_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Atualiza parcialmente um livro",
    description=(
        "Campos ausentes no `livroDto` mantêm o valor armazenado. "
        "A quantidade total não é alterada; uma nova imagem substitui a capa anterior."
    ),
)
async def update_livro(
    db: DbDep,
    livro_id: LivroIdPath,
    livroDto: LivroDtoForm,
    imagem: ImagemFile = None,
):
    livro_in = _parse_dto(LivroUpdate, livroDto)
    try:
        updated = await livro_service.update_livro(db, livro_id, livro_in, imagem)
    except LivroNotFound:
        raise _not_found(livro_id)
    except QuantityExceedsTotal as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except DuplicateIsbn as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if updated is None:
        raise _db_failure("atualizar")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# ========================
# --- Endpoint: Deletar Livro ---
# ========================
@router.delete("/{livro_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove um livro e a sua capa")
async def delete_livro(db: DbDep, livro_id: LivroIdPath):
    try:
        deleted = await livro_service.delete_livro(db, livro_id)
    except LivroNotFound:
        raise _not_found(livro_id)

    if not deleted:
        raise _db_failure("deletar")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# ========================
# --- Endpoints: Empréstimo, Devolução e Reserva ---
# ========================
@router.post("/{livro_id}/emprestimo", response_model=Livro, summary="Empresta um exemplar do livro")
async def emprestar_livro(db: DbDep, livro_id: LivroIdPath, current_user: CurrentUser):
    try:
        livro = await livro_service.request_loan(db, livro_id)
    except LivroNotFound:
        raise _not_found(livro_id)
    except NoCopiesAvailable as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info(f"Usuário '{current_user.login}' emprestou o livro {livro_id}.")
    return livro

@router.post("/{livro_id}/devolucao", response_model=Livro, summary="Devolve um exemplar do livro")
async def devolver_livro(db: DbDep, livro_id: LivroIdPath, current_user: CurrentUser):
    try:
        livro = await livro_service.return_livro(db, livro_id)
    except LivroNotFound:
        raise _not_found(livro_id)
    except NoLoanOutstanding as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    logger.info(f"Usuário '{current_user.login}' devolveu o livro {livro_id}.")
    return livro

@router.post("/{livro_id}/reserva", response_model=Livro, summary="Reserva o livro")
async def reservar_livro(db: DbDep, livro_id: LivroIdPath, current_user: CurrentUser):
    try:
        livro = await livro_service.reserve_livro(db, livro_id)
    except LivroNotFound:
        raise _not_found(livro_id)

    logger.info(f"Usuário '{current_user.login}' reservou o livro {livro_id}.")
    return livro
