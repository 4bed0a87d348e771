"""Site-server data models."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SiteDescriptor(BaseModel):
    """Validated configuration for one served directory."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Site name, unique within a run")
    root: Path = Field(..., description="Directory served as the site root")
    port: int = Field(..., ge=0, le=65535, description="Listening port (0 = OS-assigned)")
    tls_enabled: bool = Field(False, description="Terminate TLS with a self-signed certificate")
    backend_port: Optional[int] = Field(None, ge=1, le=65535, description="Loopback port API requests are forwarded to")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Site name cannot be empty')
        return v

    @field_validator('root')
    @classmethod
    def validate_root(cls, v: Path) -> Path:
        v = Path(v).expanduser()
        if not v.exists():
            raise ValueError(f"Root directory does not exist: {v}")
        if not v.is_dir():
            raise ValueError(f"Root path is not a directory: {v}")
        return v.resolve()

    @property
    def scheme(self) -> str:
        return "https" if self.tls_enabled else "http"

    @property
    def has_backend(self) -> bool:
        return self.backend_port is not None


class SiteState(str, Enum):
    """Lifecycle of a site server."""
    CREATED = "created"
    BOUND = "bound"
    SERVING = "serving"
    STOPPED = "stopped"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SiteState.STOPPED, SiteState.FAILED)


@dataclass(frozen=True)
class SiteOutcome:
    """How one site server finished."""
    site: SiteDescriptor
    state: SiteState
    error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class SupervisorResult:
    """Outcome of a run: the first site server to terminate decides it."""
    first: SiteOutcome
    site_count: int

    @property
    def ok(self) -> bool:
        return not self.first.failed

    def raise_for_failure(self) -> None:
        """Re-raise the error of the site that ended the run, if any."""
        if self.first.error is not None:
            raise self.first.error
