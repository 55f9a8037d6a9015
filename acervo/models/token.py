# acervo/models/token.py
"""
Modelos do token de acesso: a resposta entregue ao cliente no login e
o payload (claims) carregado dentro do JWT.
"""

# ========================
# --- Importações ---
# ========================
from pydantic import BaseModel, Field

# ========================
# --- Modelos Pydantic Token ---
# ========================
class Token(BaseModel):
    """Resposta de login bem-sucedido."""
    access_token: str = Field(..., title="Token de Acesso JWT")
    token_type: str = Field(default="bearer", title="Tipo do Token")

class TokenPayload(BaseModel):
    """Claims do token: emissor, login do usuário e expiração absoluta."""
    iss: str = Field(..., title="Emissor")
    sub: str = Field(..., min_length=1, title="Login do Usuário (Subject)")
    exp: int = Field(..., title="Timestamp de Expiração")
