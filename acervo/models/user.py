# acervo/models/user.py
"""
Modelos Pydantic do usuário (principal) do Acervo.

O papel (`role`) determina as autoridades: ADMIN recebe ROLE_ADMIN e
ROLE_USER; USER recebe apenas ROLE_USER.
"""

# ========================
# --- Importações ---
# ========================
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, ConfigDict

# ========================
# --- Papéis e Autoridades ---
# ========================
ROLE_ADMIN = "ROLE_ADMIN"
ROLE_USER = "ROLE_USER"


class UserRole(str, Enum):
    """Papéis possíveis de um usuário."""
    ADMIN = "ADMIN"
    USER = "USER"

    @property
    def authorities(self) -> List[str]:
        if self is UserRole.ADMIN:
            return [ROLE_ADMIN, ROLE_USER]
        return [ROLE_USER]

# ========================
# --- Modelos Pydantic de User ---
# ========================

# --- Modelo Base ---
class UserBase(BaseModel):
    """Atributos comuns a todas as representações de usuário."""
    login: str = Field(..., title="Login", min_length=3, max_length=100)
    email: EmailStr = Field(..., title="Endereço de E-mail")
    role: UserRole = Field(default=UserRole.USER, title="Papel")

# --- Modelo para Registro ---
class UserCreate(BaseModel):
    """Dados recebidos no registro de um novo usuário."""
    login: str = Field(..., title="Login", min_length=3, max_length=100)
    email: EmailStr = Field(..., title="Endereço de E-mail")
    password: str = Field(..., title="Senha", min_length=1, max_length=72, description="Senha (será hasheada antes de salvar).")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "login": "ana",
                    "email": "ana@example.com",
                    "password": "secret"
                }
            ]
        }
    }

# --- Modelo para Cadastro pelo Administrador ---
class UserAdminCreate(UserCreate):
    """Cadastro feito por um ADMIN, que pode escolher o papel da nova conta."""
    role: UserRole = Field(default=UserRole.USER, title="Papel")

# --- Modelo para Atualização ---
class UserUpdate(BaseModel):
    """
    Campos atualizáveis de um usuário. Todos opcionais: campo ausente
    mantém o valor armazenado.
    """
    email: Optional[EmailStr] = Field(None, title="Endereço de E-mail")
    password: Optional[str] = Field(None, title="Nova Senha", min_length=1, max_length=72)
    role: Optional[UserRole] = Field(None, title="Papel")

# --- Representação no Banco ---
class UserInDB(UserBase):
    """Usuário como armazenado, incluindo o hash da senha. Uso interno."""
    id: uuid.UUID = Field(..., title="ID Único do Usuário")
    hashed_password: str = Field(..., title="Senha Hasheada")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), title="Data de Criação")
    updated_at: Optional[datetime] = Field(None, title="Data da Última Atualização")

    model_config = ConfigDict(from_attributes=True)

    @property
    def authorities(self) -> List[str]:
        return self.role.authorities

# --- Representação Pública ---
class User(UserBase):
    """Usuário exposto pela API, sem o hash da senha."""
    id: uuid.UUID = Field(..., title="ID Único do Usuário")
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
