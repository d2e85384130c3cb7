"""Configuration models for Artifact Wagon."""

from pathlib import Path

import yaml
from pydantic import BaseModel, field_validator

DEFAULT_HOST = "maven.pkg.dev"
CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class TransportConfig(BaseModel):
    """HTTP transport configuration."""

    connect_timeout: float = 20.0
    read_timeout: float = 60.0
    chunk_size: int = 32 * 1024  # bytes held in memory per streamed block

    @field_validator("chunk_size")
    @classmethod
    def validate_chunk_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("transport.chunk_size must be positive")
        return v

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


class CredentialsConfig(BaseModel):
    """Ambient credential configuration."""

    enabled: bool = True  # false forces unauthenticated requests
    scopes: list[str] = [CLOUD_PLATFORM_SCOPE]


class WagonConfig(BaseModel):
    """Main Artifact Wagon configuration."""

    repository: str  # locator, e.g. artifactregistry://projects/p/repositories/r
    host: str = DEFAULT_HOST
    transport: TransportConfig = TransportConfig()
    credentials: CredentialsConfig = CredentialsConfig()


def load_config(path: Path) -> WagonConfig:
    """Load configuration from YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return WagonConfig(**(data or {}))


def get_config_template() -> str:
    """Get the default configuration template."""
    return f"""# Artifact Wagon Configuration

# Remote repository, always in this exact shape:
#   <scheme>://projects/<project_id>/repositories/<repository_id>
repository: artifactregistry://projects/my-project/repositories/my-repo

# Remote host serving the repository
host: {DEFAULT_HOST}

transport:
  connect_timeout: 20
  read_timeout: 60
  chunk_size: 32768  # bytes per streamed block

# Application default credentials are picked up from the environment
# (GOOGLE_APPLICATION_CREDENTIALS, gcloud auth, metadata server).
# When none are found requests are sent without credentials.
credentials:
  enabled: true
  scopes:
    - {CLOUD_PLATFORM_SCOPE}
"""
