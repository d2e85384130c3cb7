"""Transfer adapter for a cloud-hosted package repository."""

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

import requests
from google.auth.exceptions import GoogleAuthError

from artifactwagon.config import WagonConfig
from artifactwagon.credentials import (
    CredentialsProvider,
    SessionFactory,
    acquire_credentials,
    application_default_provider,
    open_session,
)
from artifactwagon.errors import (
    ConfigurationError,
    TransferError,
    TransferFailedError,
    WagonConnectionError,
    error_for_status,
)
from artifactwagon.events import (
    EventDispatcher,
    SessionEventType,
    SessionListener,
    TransferEvent,
    TransferEventType,
    TransferListener,
)
from artifactwagon.repository import build_url, parse_locator
from artifactwagon.types import RepositoryIdentity, RequestType, Resource, TransferTarget

logger = logging.getLogger(__name__)

# Failures that happen before or without an HTTP response
SEND_ERRORS = (requests.RequestException, GoogleAuthError)


class SourceBody:
    """PUT request body read lazily from a file or stream.

    Iterating restarts from the beginning of the source, so the transport may
    resend the body. A read failure is kept in ``error`` so it can be
    re-raised as-is however the transport wraps it.
    """

    def __init__(
        self,
        source: Path | BinaryIO,
        length: int,
        chunk_size: int,
        on_chunk: Callable[[int], None],
    ):
        self.source = source
        self.length = length
        self.chunk_size = chunk_size
        self.on_chunk = on_chunk
        self.error: TransferError | None = None
        self._start: int | None = None
        if not isinstance(source, Path) and source.seekable():
            self._start = source.tell()

    def __len__(self) -> int:
        return self.length

    def __iter__(self) -> Iterator[bytes]:
        self.error = None
        try:
            stream = self._open()
        except OSError as e:
            raise self._fail(e) from e

        with stream as f:
            while True:
                try:
                    chunk = f.read(self.chunk_size)
                except OSError as e:
                    raise self._fail(e) from e
                if not chunk:
                    return
                self.on_chunk(len(chunk))
                yield chunk

    def _open(self):
        if isinstance(self.source, Path):
            return open(self.source, "rb")
        if self._start is not None:
            self.source.seek(self._start)
        # Caller owns the stream; do not close it
        return contextlib.nullcontext(self.source)

    def _fail(self, cause: OSError) -> TransferError:
        self.error = TransferFailedError(f"Error uploading file: {cause}")
        return self.error


class ArtifactWagon:
    """Fetches and publishes artifacts in one remote repository.

    One wagon handles one transfer at a time. Callers must not share an
    instance across threads without their own locking.
    """

    def __init__(
        self,
        config: WagonConfig,
        credentials_provider: CredentialsProvider | None = None,
        session_factory: SessionFactory = open_session,
    ):
        self.config = config
        self.events = EventDispatcher()
        self.identity: RepositoryIdentity | None = None
        self.has_credentials = False
        self._credentials_provider = credentials_provider or application_default_provider(
            config.credentials
        )
        self._session_factory = session_factory
        self._session: requests.Session | None = None

    def __enter__(self) -> "ArtifactWagon":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # Listeners

    def add_transfer_listener(self, listener: TransferListener) -> None:
        self.events.add_transfer_listener(listener)

    def remove_transfer_listener(self, listener: TransferListener) -> None:
        self.events.remove_transfer_listener(listener)

    def has_transfer_listener(self, listener: TransferListener) -> bool:
        return self.events.has_transfer_listener(listener)

    def add_session_listener(self, listener: SessionListener) -> None:
        self.events.add_session_listener(listener)

    def remove_session_listener(self, listener: SessionListener) -> None:
        self.events.remove_session_listener(listener)

    # Connection lifecycle

    @property
    def connected(self) -> bool:
        return self._session is not None and self.identity is not None

    def connect(self) -> None:
        """Open the connection: pick up credentials, then parse the locator.

        Missing credentials are not an error; requests are then sent
        unauthenticated.

        Raises:
            ConfigurationError: If the repository locator is malformed
        """
        locator = self.config.repository
        self.events.fire_session(SessionEventType.OPENING, locator)

        credentials = None
        if self.config.credentials.enabled:
            credentials = acquire_credentials(self._credentials_provider)
        self.has_credentials = credentials is not None
        self._release()
        self._session = self._session_factory(credentials)

        try:
            self.identity = parse_locator(locator)
        except ConfigurationError as e:
            self.events.fire_session(SessionEventType.CONNECTION_REFUSED, locator, e)
            self._release()
            raise

        self.events.fire_session(SessionEventType.OPENED, locator)
        logger.info(
            f"Connected to {self.identity.project_id}/{self.identity.repository_id} "
            f"on {self.config.host} ({'authenticated' if self.has_credentials else 'anonymous'})"
        )

    def disconnect(self) -> None:
        """Release the HTTP session. Safe to call when never connected."""
        locator = self.config.repository
        self.events.fire_session(SessionEventType.DISCONNECTING, locator)
        self._release()
        self.events.fire_session(SessionEventType.DISCONNECTED, locator)

    def _release(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
        self.identity = None

    def _require_session(self) -> requests.Session:
        if self._session is None or self.identity is None:
            raise WagonConnectionError("Not connected; call connect() first")
        return self._session

    def build_url(self, artifact_path: str) -> TransferTarget:
        """Resolve an artifact path against the connected repository."""
        self._require_session()
        return build_url(self.identity, artifact_path, self.config.host)

    def _error(self, status_code: int | None, target: TransferTarget) -> TransferError:
        return error_for_status(status_code, self.has_credentials, url=target.url)

    # Downloads

    def get(self, artifact_path: str, destination: Path | BinaryIO) -> None:
        """Download an artifact into a file path or writable binary stream."""
        self.get_if_newer(artifact_path, destination, 0)

    def get_if_newer(
        self,
        artifact_path: str,
        destination: Path | BinaryIO,
        timestamp: int,
    ) -> bool:
        """Download an artifact unconditionally.

        The remote protocol has no conditional get, so ``timestamp`` is
        ignored and the artifact is always transferred.

        Returns:
            True once the artifact has been written
        """
        resource = Resource(name=artifact_path)
        local_file = destination if isinstance(destination, Path) else None
        self.events.fire_transfer(TransferEventType.INITIATED, RequestType.GET, resource, local_file)
        try:
            self.events.fire_transfer(
                TransferEventType.STARTED, RequestType.GET, resource, local_file
            )
            target = self.build_url(artifact_path)
            response = self._open_download(target)
            progress = TransferEvent(
                event_type=TransferEventType.PROGRESS,
                request_type=RequestType.GET,
                resource=resource,
                local_file=local_file,
            )
            with response:
                self._receive(response, destination, target, progress)
            self.events.fire_transfer(
                TransferEventType.COMPLETED, RequestType.GET, resource, local_file
            )
        except Exception as e:
            self.events.fire_transfer(
                TransferEventType.ERROR, RequestType.GET, resource, local_file, error=e
            )
            raise
        return True

    def _open_download(self, target: TransferTarget) -> requests.Response:
        session = self._require_session()
        logger.debug(f"GET {target.url}")
        try:
            response = session.get(
                target.url, stream=True, timeout=self.config.transport.timeout
            )
        except SEND_ERRORS as e:
            raise self._error(None, target) from e

        if not _is_success(response.status_code):
            response.close()
            logger.debug(f"GET {target.url} returned {response.status_code}")
            raise self._error(response.status_code, target)
        return response

    def _receive(
        self,
        response: requests.Response,
        destination: Path | BinaryIO,
        target: TransferTarget,
        progress: TransferEvent,
    ) -> None:
        if not isinstance(destination, Path):
            try:
                self._copy_body(response, destination, target, progress)
            except OSError as e:
                raise TransferFailedError(f"Cannot write downloaded artifact: {e}") from e
            return

        # Write beside the destination and swap in only a complete file
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent
            )
        except OSError as e:
            raise TransferFailedError(f"Cannot write to {destination}: {e}") from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                self._copy_body(response, out, target, progress)
            os.replace(tmp_path, destination)
        except OSError as e:
            raise TransferFailedError(f"Cannot write to {destination}: {e}") from e
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    def _copy_body(
        self,
        response: requests.Response,
        out: BinaryIO,
        target: TransferTarget,
        progress: TransferEvent,
    ) -> None:
        try:
            for chunk in response.iter_content(chunk_size=self.config.transport.chunk_size):
                if not chunk:
                    continue
                out.write(chunk)
                self.events.fire_progress(progress, len(chunk))
        except SEND_ERRORS as e:
            raise self._error(None, target) from e

    # Uploads

    def put(
        self,
        source: Path | BinaryIO,
        artifact_path: str,
        content_length: int | None = None,
        last_modified: int | None = None,
    ) -> None:
        """Upload a file path or readable binary stream as an artifact.

        Args:
            source: File to upload, or a binary stream positioned at the start
                of the content
            artifact_path: Slash-delimited path within the repository
            content_length: Byte length of a stream source; worked out from the
                stream when omitted. Ignored for paths.
            last_modified: Modification time of a stream source in epoch
                milliseconds. Ignored for paths.
        """
        resource = Resource(name=artifact_path)
        local_file = source if isinstance(source, Path) else None
        self.events.fire_transfer(TransferEventType.INITIATED, RequestType.PUT, resource, local_file)
        try:
            self._describe_source(resource, source, content_length, last_modified)
            target = self.build_url(artifact_path)
            self.events.fire_transfer(
                TransferEventType.STARTED, RequestType.PUT, resource, local_file
            )
            self._send_upload(resource, source, target, local_file)
            self.events.fire_transfer(
                TransferEventType.COMPLETED, RequestType.PUT, resource, local_file
            )
        except Exception as e:
            self.events.fire_transfer(
                TransferEventType.ERROR, RequestType.PUT, resource, local_file, error=e
            )
            raise

    def _describe_source(
        self,
        resource: Resource,
        source: Path | BinaryIO,
        content_length: int | None,
        last_modified: int | None,
    ) -> None:
        if isinstance(source, Path):
            try:
                stat = source.stat()
            except OSError as e:
                raise TransferFailedError(f"Cannot read upload source {source}: {e}") from e
            resource.content_length = stat.st_size
            resource.last_modified = int(stat.st_mtime * 1000)
            return

        if content_length is None:
            content_length = _remaining_length(source)
        resource.content_length = content_length
        resource.last_modified = last_modified or 0

    def _send_upload(
        self,
        resource: Resource,
        source: Path | BinaryIO,
        target: TransferTarget,
        local_file: Path | None,
    ) -> None:
        session = self._require_session()
        progress = TransferEvent(
            event_type=TransferEventType.PROGRESS,
            request_type=RequestType.PUT,
            resource=resource,
            local_file=local_file,
        )
        body = SourceBody(
            source,
            resource.content_length,
            self.config.transport.chunk_size,
            on_chunk=lambda length: self.events.fire_progress(progress, length),
        )

        logger.debug(f"PUT {target.url} ({resource.content_length} bytes)")
        try:
            response = session.put(target.url, data=body, timeout=self.config.transport.timeout)
        except SEND_ERRORS as e:
            if body.error is not None:
                raise body.error
            raise self._error(None, target) from e

        if body.error is not None:
            raise body.error
        with response:
            if not _is_success(response.status_code):
                logger.debug(f"PUT {target.url} returned {response.status_code}")
                raise self._error(response.status_code, target)


def _is_success(status_code: int) -> bool:
    # Redirects requests did not follow (304, 300, no Location) are failures too
    return 200 <= status_code < 300


def _remaining_length(stream: BinaryIO) -> int:
    """Bytes left in a stream from its current position."""
    try:
        start = stream.tell()
        end = stream.seek(0, os.SEEK_END)
        stream.seek(start)
    except (OSError, AttributeError, ValueError) as e:
        raise TransferFailedError(
            "Cannot determine the length of the upload stream; pass content_length"
        ) from e
    return end - start
