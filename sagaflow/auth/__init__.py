from .tokens import ServiceTokenIssuer, TokenConfig

__all__ = ["ServiceTokenIssuer", "TokenConfig"]
