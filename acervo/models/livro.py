# acervo/models/livro.py
"""
Este módulo define os modelos Pydantic que representam Livros no acervo:
criação, atualização parcial, representação armazenada e a projeção
enxuta usada no catálogo. Também concentra a derivação do status de
disponibilidade, que depende apenas da quantidade disponível.
"""

# ========================
# --- Importações ---
# ========================
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator

ANO_MINIMO = 1800

# ========================
# --- Status de Disponibilidade ---
# ========================
class LivroStatus(str, Enum):
    """Status derivado da quantidade disponível."""
    DISPONIVEL = "Disponível"
    EMPRESTADO = "Emprestado"


def status_for(quantidade_disponivel: int) -> LivroStatus:
    """Disponível quando há ao menos um exemplar, Emprestado caso contrário."""
    return LivroStatus.DISPONIVEL if quantidade_disponivel > 0 else LivroStatus.EMPRESTADO


def _check_ano(value: Optional[int]) -> Optional[int]:
    if value is None:
        return value
    if value < ANO_MINIMO:
        raise ValueError(f"O ano de publicação deve ser igual ou superior a {ANO_MINIMO}.")
    if value > date.today().year:
        raise ValueError("O ano de publicação não pode ser no futuro.")
    return value

# ========================
# --- Modelos Pydantic de Livro ---
# ========================

# --- Modelo para Criação ---
class LivroCreate(BaseModel):
    """
    Dados para cadastrar um livro. `quantidade_disponivel` é a quantidade
    inicial e também define `quantidade_total`.
    """
    titulo: str = Field(..., title="Título", min_length=2, max_length=100)
    autor: str = Field(..., title="Autor", min_length=2, max_length=100)
    genero: Optional[str] = Field(None, title="Gênero")
    ano_publicacao: int = Field(..., title="Ano de Publicação")
    quantidade_disponivel: int = Field(..., ge=0, title="Quantidade Disponível")
    isbn: Optional[str] = Field(None, title="ISBN")
    tags: Optional[str] = Field(None, title="Tags (separadas por vírgula)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "titulo": "Dom Casmurro",
                    "autor": "Machado de Assis",
                    "genero": "Romance",
                    "ano_publicacao": 1899,
                    "quantidade_disponivel": 3,
                    "isbn": "978-8535910663",
                    "tags": "clássico,literatura brasileira"
                }
            ]
        }
    }

    @field_validator("ano_publicacao")
    @classmethod
    def valida_ano(cls, value: Optional[int]) -> Optional[int]:
        return _check_ano(value)

# --- Modelo para Atualização Parcial ---
class LivroUpdate(BaseModel):
    """
    Atualização parcial. Campo ausente (ou nulo) mantém o valor armazenado;
    `quantidade_total` não pode ser alterada por aqui.
    """
    titulo: Optional[str] = Field(None, title="Título", min_length=2, max_length=100)
    autor: Optional[str] = Field(None, title="Autor", min_length=2, max_length=100)
    genero: Optional[str] = Field(None, title="Gênero")
    ano_publicacao: Optional[int] = Field(None, title="Ano de Publicação")
    quantidade_disponivel: Optional[int] = Field(None, ge=0, title="Quantidade Disponível")
    isbn: Optional[str] = Field(None, title="ISBN")
    tags: Optional[str] = Field(None, title="Tags (separadas por vírgula)")

    @field_validator("ano_publicacao")
    @classmethod
    def valida_ano(cls, value: Optional[int]) -> Optional[int]:
        return _check_ano(value)

    def changes(self) -> dict:
        """Somente os campos efetivamente informados e não nulos."""
        return {k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None}

# --- Representação no Banco e nas Respostas ---
class Livro(BaseModel):
    """Livro completo como armazenado no banco de dados."""
    id: uuid.UUID = Field(..., title="ID Único do Livro")
    titulo: str
    autor: str
    genero: Optional[str] = None
    ano_publicacao: int
    quantidade_disponivel: int = Field(..., ge=0)
    quantidade_total: int = Field(..., ge=0)
    isbn: Optional[str] = None
    caminho_imagem_capa: Optional[str] = None
    tags: Optional[str] = None
    status: LivroStatus
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), title="Data de Criação")
    updated_at: Optional[datetime] = Field(None, title="Data da Última Atualização")

    model_config = ConfigDict(from_attributes=True)

# --- Projeção do Catálogo ---
class LivroCatalogo(BaseModel):
    """Visão somente-leitura do catálogo, sem campos internos (isbn, tags, timestamps)."""
    id: uuid.UUID
    titulo: str
    autor: str
    caminho_imagem_capa: Optional[str] = None
    status: LivroStatus
    quantidade_disponivel: int
    quantidade_total: int

    model_config = ConfigDict(from_attributes=True)
