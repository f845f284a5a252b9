"""
Port (interface) for bearer token validators.
Infrastructure adapters (e.g. JwtTokenValidator) must implement this interface.
"""

from abc import ABC, abstractmethod


class ITokenValidator(ABC):
    @abstractmethod
    def validate(self, token: str) -> dict:
        """Validate a bearer token and return its decoded claims.

        Raises:
            Unauthenticated: if the token is invalid, expired, or fails audience checks.
        """
        ...
