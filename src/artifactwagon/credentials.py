"""Ambient credential discovery and request signing."""

import logging
from typing import Callable

import google.auth
import requests
from google.auth.credentials import Credentials
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession

from artifactwagon.config import CredentialsConfig

logger = logging.getLogger(__name__)

CredentialsProvider = Callable[[], Credentials]
SessionFactory = Callable[[Credentials | None], requests.Session]


def application_default_provider(config: CredentialsConfig) -> CredentialsProvider:
    """Return a provider that looks up application default credentials."""

    def provide() -> Credentials:
        credentials, project = google.auth.default(scopes=config.scopes)
        logger.debug(f"Found application default credentials (project: {project})")
        return credentials

    return provide


def acquire_credentials(provider: CredentialsProvider) -> Credentials | None:
    """Run the provider, returning None when no credentials can be obtained.

    A failing provider is not an error: the caller continues without
    credentials and the remote server decides whether that is enough.
    """
    try:
        return provider()
    except (GoogleAuthError, OSError, ValueError) as e:
        logger.info(f"No application default credentials, requests will be unauthenticated: {e}")
        return None


def open_session(credentials: Credentials | None) -> requests.Session:
    """Create an HTTP session that signs requests when credentials are present."""
    if credentials is None:
        return requests.Session()
    return AuthorizedSession(credentials)
