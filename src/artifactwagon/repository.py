"""Repository locator parsing and target URL construction."""

from urllib.parse import urlsplit

from artifactwagon.errors import ConfigurationError
from artifactwagon.types import RepositoryIdentity, TransferTarget

LOCATOR_HOST = "projects"
REPOSITORIES_SEGMENT = "repositories"
LOCATOR_FORMAT_MESSAGE = (
    "The repository locator must be formatted as "
    "<scheme>://projects/<project_id>/repositories/<repository_id>"
)
# urlsplit strips these silently
STRIPPED_CHARS = ("\t", "\r", "\n")


def parse_locator(locator: str) -> RepositoryIdentity:
    """Parse a repository locator into a project/repository identity.

    Accepts exactly ``<scheme>://projects/<project_id>/repositories/<repository_id>``.
    This is a structural check, not a general URI parser: nothing is
    normalized, case-folded or percent-decoded.

    Raises:
        ConfigurationError: If the locator has any other shape
    """
    if any(c in locator for c in STRIPPED_CHARS):
        raise ConfigurationError(LOCATOR_FORMAT_MESSAGE)

    try:
        parts = urlsplit(locator)
    except ValueError as e:
        raise ConfigurationError(LOCATOR_FORMAT_MESSAGE) from e

    if not parts.scheme or parts.netloc != LOCATOR_HOST:
        raise ConfigurationError(LOCATOR_FORMAT_MESSAGE)
    if parts.query or parts.fragment:
        raise ConfigurationError(LOCATOR_FORMAT_MESSAGE)

    # "/<project>/repositories/<repository>" -> ["", project, "repositories", repository]
    segments = parts.path.split("/")
    if len(segments) != 4:
        raise ConfigurationError(LOCATOR_FORMAT_MESSAGE)
    if segments[0] or segments[2] != REPOSITORIES_SEGMENT:
        raise ConfigurationError(LOCATOR_FORMAT_MESSAGE)
    if not segments[1] or not segments[3]:
        raise ConfigurationError(LOCATOR_FORMAT_MESSAGE)

    return RepositoryIdentity(project_id=segments[1], repository_id=segments[3])


def build_url(identity: RepositoryIdentity, artifact_path: str, host: str) -> TransferTarget:
    """Build the HTTPS target for an artifact within a repository."""
    segments = [identity.project_id, identity.repository_id]
    segments.extend(artifact_path.split("/"))
    return TransferTarget(host=host, segments=segments)
