"""Core type definitions for Artifact Wagon."""

from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

UNKNOWN_LENGTH = -1

# Characters a default URL path builder leaves unescaped in a segment
PATH_SEGMENT_SAFE = "!$&'()*+,;=:@"


class RequestType(str, Enum):
    """Direction of a transfer."""

    GET = "get"
    PUT = "put"


class RepositoryIdentity(BaseModel):
    """A project/repository pair parsed from a locator."""

    model_config = ConfigDict(frozen=True)

    project_id: str
    repository_id: str


class TransferTarget(BaseModel):
    """Absolute location of one artifact on the remote host."""

    model_config = ConfigDict(frozen=True)

    host: str
    segments: list[str]

    @property
    def url(self) -> str:
        path = "/".join(quote(s, safe=PATH_SEGMENT_SAFE) for s in self.segments)
        return f"https://{self.host}/{path}"

    def __str__(self) -> str:
        return self.url


class Resource(BaseModel):
    """Caller-visible handle for a single artifact transfer."""

    name: str
    content_length: int = UNKNOWN_LENGTH
    last_modified: int = 0  # epoch milliseconds, 0 when unknown
