"""Pydantic models describing registered services."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _default_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=24)


class ServiceMethod(BaseModel):
    """A named operation exposed by an interface."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    http_method: Optional[str] = Field(default=None, alias="httpMethod")
    path: str = ""
    description: Optional[str] = None


class ServiceInterface(BaseModel):
    """One addressable interface (REST/SOAP/GraphQL) of a service."""

    type: Literal["REST", "SOAP", "GraphQL"] = "REST"
    endpoint: str
    version: str = "1.0.0"
    operations: List[str] = Field(default_factory=list)
    methods: List[ServiceMethod] = Field(default_factory=list)

    @field_validator("endpoint")
    @classmethod
    def _ensure_endpoint(cls, v: str) -> str:
        if not v:
            raise ValueError("endpoint must be a non-empty string")
        return v.rstrip("/")

    def method(self, name: str) -> Optional[ServiceMethod]:
        return next((m for m in self.methods if m.name == name), None)


class ServiceDescriptor(BaseModel):
    """Registry entry for a service, as returned by the discovery registry."""

    model_config = ConfigDict(populate_by_name=True)

    service_id: str = Field(alias="serviceId")
    name: Optional[str] = None
    version: str = "1.0.0"
    status: Literal["ACTIVE", "INACTIVE", "MAINTENANCE", "DEPRECATED"] = "ACTIVE"
    category: Optional[str] = None
    interfaces: List[ServiceInterface] = Field(default_factory=list)
    expires_at: datetime = Field(default_factory=_default_expiry, alias="expiresAt")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now > expires_at

    def interface(self, interface_type: str = "REST") -> Optional[ServiceInterface]:
        """Return the interface of ``interface_type``, else the first one."""
        match = next((i for i in self.interfaces if i.type == interface_type), None)
        if match is None and self.interfaces:
            return self.interfaces[0]
        return match
