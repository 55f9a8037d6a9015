# acervo/routers/usuarios.py
"""
Administração de usuários (restrita a ADMIN): cadastro com papel
escolhido, listagem, consulta, atualização e remoção. `/usuario/me`
devolve o próprio usuário autenticado.
"""

# ========================
# --- Importações ---
# ========================
import uuid
from typing import Annotated, List

from fastapi import APIRouter, Body, HTTPException, Path, Response, status

# --- Módulos da Aplicação ---
from acervo.core.dependencies import CurrentUser, DbDep
from acervo.core.exceptions import DuplicateEmail, DuplicateLogin, UserNotFound
from acervo.models.user import User, UserAdminCreate, UserUpdate
from acervo.services import user_service

UserIdPath = Annotated[uuid.UUID, Path(description="ID do usuário")]

# ========================
# --- Configuração do Router ---
# ========================
router = APIRouter(
    prefix="/usuario",
    tags=["Usuários"],
    responses={
        status.HTTP_401_UNAUTHORIZED: {"description": "Não autenticado."},
        status.HTTP_403_FORBIDDEN: {"description": "Apenas administradores."}
    },
)

def _not_found(user_id: uuid.UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Usuário com ID {user_id} não encontrado."
    )

# ========================
# --- Rotas da API ---
# ========================
@router.get("/me", response_model=User, summary="Obtém dados do usuário autenticado")
async def read_users_me(current_user: CurrentUser):
    return current_user

@router.get("", response_model=List[User], summary="Lista os usuários")
async def list_users(db: DbDep):
    return await user_service.list_users(db)

@router.post(
    "",
    response_model=User,
    status_code=status.HTTP_201_CREATED,
    summary="Cadastra um usuário com o papel informado",
    response_description="O usuário cadastrado. O header Location aponta para o recurso.",
)
async def create_user(
    db: DbDep,
    response: Response,
    user_in: Annotated[UserAdminCreate, Body(description="Login, e-mail, senha e papel da nova conta.")]
):
    try:
        created = await user_service.create_user(db, user_in)
    except (DuplicateLogin, DuplicateEmail) as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if created is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Não foi possível cadastrar o usuário."
        )
    response.headers["Location"] = f"/usuario/{created.id}"
    return created

@router.get("/{user_id}", response_model=User, summary="Obtém um usuário pelo ID")
async def get_user(db: DbDep, user_id: UserIdPath):
    try:
        return await user_service.get_user(db, user_id)
    except UserNotFound:
        raise _not_found(user_id)

@router.put("/{user_id}", response_model=User, summary="Atualiza e-mail, senha ou papel de um usuário")
async def update_user(
    db: DbDep,
    user_id: UserIdPath,
    user_in: Annotated[UserUpdate, Body(description="Campos a atualizar. Campos omitidos não são alterados.")]
):
    try:
        updated = await user_service.update_user(db, user_id, user_in)
    except UserNotFound:
        raise _not_found(user_id)
    except DuplicateEmail as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Não foi possível atualizar o usuário."
        )
    return updated

@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Remove um usuário")
async def delete_user(db: DbDep, user_id: UserIdPath):
    try:
        deleted = await user_service.delete_user(db, user_id)
    except UserNotFound:
        raise _not_found(user_id)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Não foi possível deletar o usuário."
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
