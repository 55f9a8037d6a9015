# acervo/core/exceptions.py
"""
Exceções de domínio do Acervo.

As regras de negócio levantam estas exceções; os routers as convertem
em respostas HTTP. Falhas de verificação de token NÃO aparecem aqui:
um token inválido é um resultado normal (None), nunca uma exceção.
"""

import uuid
from typing import Optional


class AcervoError(Exception):
    """Base comum das exceções de domínio."""


# ========================
# --- Autenticação ---
# ========================
class SigningError(AcervoError):
    """A chave de assinatura de tokens não está disponível."""


class InvalidCredentials(AcervoError):
    """Login ou senha incorretos. Não informa qual dos dois falhou."""

    def __init__(self):
        super().__init__("Credenciais inválidas")


class DuplicateLogin(AcervoError):
    """Já existe um usuário com o login informado."""

    def __init__(self, login: str):
        self.login = login
        super().__init__(f"Login '{login}' já existe")


class UserNotFound(AcervoError):
    def __init__(self, user_id: uuid.UUID):
        self.user_id = user_id
        super().__init__(f"Usuário '{user_id}' não encontrado")


# ========================
# --- Inventário ---
# ========================
class LivroNotFound(AcervoError):
    def __init__(self, livro_id: uuid.UUID):
        self.livro_id = livro_id
        super().__init__(f"Livro '{livro_id}' não encontrado")


class NoCopiesAvailable(AcervoError):
    """Empréstimo pedido para um livro sem exemplares disponíveis."""

    def __init__(self, livro_id: uuid.UUID):
        self.livro_id = livro_id
        super().__init__(f"Não há exemplares disponíveis do livro '{livro_id}'")


class NoLoanOutstanding(AcervoError):
    """Devolução pedida quando todos os exemplares já estão no acervo."""

    def __init__(self, livro_id: uuid.UUID):
        self.livro_id = livro_id
        super().__init__(f"Todos os exemplares do livro '{livro_id}' já estão disponíveis")


class QuantityExceedsTotal(AcervoError):
    """A quantidade disponível informada ultrapassa a quantidade total do livro."""

    def __init__(self, livro_id: uuid.UUID, quantidade: int, total: int):
        self.livro_id = livro_id
        self.quantidade = quantidade
        self.total = total
        super().__init__(
            f"Quantidade disponível ({quantidade}) maior que a quantidade total ({total}) do livro '{livro_id}'"
        )


class DuplicateIsbn(AcervoError):
    def __init__(self, isbn: Optional[str]):
        self.isbn = isbn
        super().__init__(f"ISBN '{isbn}' já cadastrado")


class DuplicateEmail(AcervoError):
    def __init__(self, email: str):
        self.email = email
        super().__init__(f"E-mail '{email}' já registrado")
