import os
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence

import jwt

from ..constants import DEFAULT_TOKEN_TTL

ALGORITHM = "HS256"


class TokenConfig:
    def __init__(
        self,
        secret: str,
        subject: str = "orchestrator-service",
        scopes: Optional[List[str]] = None,
        ttl_seconds: int = DEFAULT_TOKEN_TTL,
        leeway: int = 0,
    ) -> None:
        self.secret = secret
        self.subject = subject
        self.scopes = scopes or ["read", "write"]
        self.ttl_seconds = ttl_seconds
        self.leeway = leeway

    @classmethod
    def from_env(cls) -> "TokenConfig":
        return cls(
            secret=os.getenv("JWT_SECRET", "change-me"),
            subject=os.getenv("SAGAFLOW_TOKEN_SUBJECT", "orchestrator-service"),
            ttl_seconds=int(os.getenv("SAGAFLOW_TOKEN_TTL", str(DEFAULT_TOKEN_TTL))),
            leeway=int(os.getenv("SAGAFLOW_TOKEN_LEEWAY", "0")),
        )


class ServiceTokenIssuer:
    """Mints and verifies short-lived bearer tokens for service-to-service calls."""

    def __init__(self, config: Optional[TokenConfig] = None) -> None:
        self.config = config or TokenConfig.from_env()

    def issue_service_token(
        self, subject: Optional[str] = None, scopes: Optional[Sequence[str]] = None
    ) -> str:
        """Return a signed token for ``subject`` carrying ``scopes``."""
        now = int(time.time())
        claims: Dict[str, Any] = {
            "sub": subject or self.config.subject,
            "scope": " ".join(scopes if scopes is not None else self.config.scopes),
            "type": "service",
            "iat": now,
            "exp": now + self.config.ttl_seconds,
        }
        return jwt.encode(claims, self.config.secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> Mapping:
        """Validate signature and expiry; return the claims."""
        return jwt.decode(
            token,
            self.config.secret,
            algorithms=[ALGORITHM],
            leeway=self.config.leeway,
        )
