"""Pydantic models for harness configuration."""

from pydantic import BaseModel, Field

from xdb_harness.adapters.base import BackendKind


# ============================================================================
# Configuration Models
# ============================================================================


class EngineSettings(BaseModel):
    """Query engine endpoint from harness.toml."""

    url: str = "http://127.0.0.1:8080"
    admin_secret: str | None = None
    timeout: float = 60.0


class BackendProfile(BaseModel):
    """Connection profile for one backend kind."""

    url: str
    engine_url: str | None = None  # URL as seen by the engine, if different
    description: str = ""


class HarnessConfig(BaseModel):
    """Complete harness configuration from harness.toml."""

    engine: EngineSettings = Field(default_factory=EngineSettings)
    backends: dict[BackendKind, BackendProfile] = Field(default_factory=dict)
    schema_name: str = "hasura"
    max_teardown_failures: int = Field(default=2, ge=1)
    lhs: list[BackendKind] = Field(default_factory=lambda: [BackendKind.POSTGRES])
    rhs: list[BackendKind] = Field(default_factory=lambda: [BackendKind.POSTGRES])

    def missing_backends(self) -> list[BackendKind]:
        """Kinds selected for a side but without a connection profile."""
        wanted = dict.fromkeys([*self.lhs, *self.rhs])
        return [kind for kind in wanted if kind not in self.backends]
