"""
Infrastructure adapter: shared-secret JWT → ITokenValidator.

Valida tokens firmados (HS256 por defecto) con el secreto de settings.
El claim `sub` es el identificador del dueño del historial.
"""

from __future__ import annotations

from typing import Optional

from jose import JWTError, jwt

from chartsage.application.ports.token_validator import ITokenValidator
from chartsage.domain.exceptions.domain_errors import Unauthenticated


class JwtTokenValidator(ITokenValidator):
    """Valida JWT bearer firmados con un secreto compartido."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        audience: Optional[str] = None,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    def validate(self, token: str) -> dict:
        """Decodifica y valida un token.

        Raises:
            Unauthenticated: firma inválida, expirado, audiencia incorrecta o sin `sub`.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options={"verify_aud": self._audience is not None},
            )
        except JWTError as exc:
            raise Unauthenticated(f"Token inválido: {exc}") from exc
        if not claims.get("sub"):
            raise Unauthenticated("Token sin claim 'sub'")
        return claims
