"""Artifact Wagon: HTTPS transport for cloud-hosted package repositories."""

from artifactwagon.config import WagonConfig, load_config
from artifactwagon.errors import (
    AuthorizationError,
    ConfigurationError,
    ResourceNotFoundError,
    TransferError,
    TransferFailedError,
    WagonConnectionError,
    WagonError,
)
from artifactwagon.repository import build_url, parse_locator
from artifactwagon.types import RepositoryIdentity, Resource, TransferTarget
from artifactwagon.wagon import ArtifactWagon

__all__ = [
    "ArtifactWagon",
    "AuthorizationError",
    "ConfigurationError",
    "RepositoryIdentity",
    "Resource",
    "ResourceNotFoundError",
    "TransferError",
    "TransferFailedError",
    "TransferTarget",
    "WagonConfig",
    "WagonConnectionError",
    "WagonError",
    "build_url",
    "load_config",
    "parse_locator",
]
