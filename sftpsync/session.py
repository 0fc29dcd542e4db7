"""SFTP session capability interface and its paramiko implementation."""

from __future__ import annotations

import logging
import posixpath
import socket
import stat
from typing import IO, Any, Callable, Optional, Protocol, TypeVar, Union

import paramiko

from .exceptions import SftpConnectionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Local side of a transfer: a filesystem path or an open binary file object
LocalSource = Union[str, IO[bytes]]

DEFAULT_PORT: int = 22
DEFAULT_TIMEOUT: float = 30.0


class SftpSession(Protocol):
    """Operations :class:`~sftpsync.client.DirectorySync` needs from a session.

    Leaf operations report failure through their return value (``False`` or
    ``None``). Only a broken connection is raised, as
    :class:`~sftpsync.exceptions.SftpConnectionError`.
    """

    def authenticate(self, user: str, password: str) -> bool: ...

    def list_entries(self, path: str) -> Optional[list[str]]: ...

    def is_directory(self, path: str) -> bool: ...

    def is_regular_file(self, path: str) -> bool: ...

    def is_symlink(self, path: str) -> bool: ...

    def delete_file(self, path: str) -> bool: ...

    def make_directory(self, path: str, recursive: bool = False) -> bool: ...

    def remove_directory(self, path: str) -> bool: ...

    def rename_path(self, old_path: str, new_path: str) -> bool: ...

    def transfer_to_remote(
        self, remote_path: str, local_source: LocalSource
    ) -> bool: ...

    def transfer_from_remote(
        self, remote_path: str, local_dest: LocalSource
    ) -> bool: ...

    def current_working_directory(self) -> Optional[str]: ...

    def close(self) -> None: ...


class ParamikoSession:
    """SFTP session backed by a paramiko transport."""

    def __init__(self, transport: paramiko.Transport, host: str = ""):
        """Wrap an already started SSH transport.

        Args:
            transport: Started (but not yet authenticated) paramiko transport
            host: Host name, used in log and error messages
        """
        self.host = host
        self._transport = transport
        self._sftp: Optional[paramiko.SFTPClient] = None

    @classmethod
    def connect(
        cls,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> ParamikoSession:
        """Open a TCP connection and start the SSH transport.

        Args:
            host: SFTP server host name
            port: SFTP server port
            timeout: Socket and handshake timeout in seconds

        Returns:
            Unauthenticated session

        Raises:
            SftpConnectionError: If the host cannot be reached or the SSH
                handshake fails
        """
        logger.info("Connecting to SFTP server %s:%s", host, port)
        try:
            sock = socket.create_connection((host, port), timeout=timeout)
        except OSError as e:
            raise SftpConnectionError(f"Cannot reach {host}:{port}: {e}") from e

        transport = paramiko.Transport(sock)
        transport.banner_timeout = timeout
        transport.auth_timeout = timeout
        try:
            transport.start_client(timeout=timeout)
        except (paramiko.SSHException, EOFError, OSError) as e:
            transport.close()
            raise SftpConnectionError(
                f"SSH handshake with {host}:{port} failed: {e}"
            ) from e

        return cls(transport, host=host)

    @property
    def is_authenticated(self) -> bool:
        return self._sftp is not None and self._transport.is_authenticated()

    def authenticate(self, user: str, password: str) -> bool:
        """Authenticate with a password and open the SFTP channel.

        Returns:
            True if the server accepted the credentials

        Raises:
            SftpConnectionError: If the connection breaks during authentication
        """
        try:
            self._transport.auth_password(user, password)
        except paramiko.AuthenticationException as e:
            logger.warning("Authentication rejected for %s@%s: %s", user, self.host, e)
            return False
        except (paramiko.SSHException, EOFError) as e:
            raise SftpConnectionError(f"Authentication failed: {e}") from e

        if not self._transport.is_authenticated():
            return False

        try:
            self._sftp = paramiko.SFTPClient.from_transport(self._transport)
        except (paramiko.SSHException, EOFError) as e:
            raise SftpConnectionError(f"Cannot open SFTP channel: {e}") from e
        if self._sftp is None:
            raise SftpConnectionError("Server refused the SFTP subsystem")

        logger.info("SFTP session established with %s as %s", self.host, user)
        return True

    def close(self) -> None:
        """Close the SFTP channel and the transport."""
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        self._transport.close()
        logger.info("SFTP connection to %s closed", self.host)

    def _client(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise SftpConnectionError("SFTP channel is not open")
        return self._sftp

    def _run(
        self, action: str, func: Callable[..., T], *args: Any, default: Any = False
    ) -> Any:
        """Run one SFTP call, mapping leaf failures to ``default``.

        Args:
            action: Description used in log messages
            func: SFTP client method to call
            *args: Arguments for ``func``
            default: Value returned when the server reports a failure

        Returns:
            Result of ``func`` or ``default``

        Raises:
            SftpConnectionError: If the connection is lost
        """
        try:
            return func(*args)
        except (paramiko.SSHException, EOFError) as e:
            raise SftpConnectionError(f"Connection lost during {action}: {e}") from e
        except (OSError, paramiko.SFTPError) as e:
            logger.debug("%s failed: %s", action, e)
            return default

    def _stat_mode(self, path: str) -> Optional[int]:
        attrs = self._run(f"stat {path}", self._client().stat, path, default=None)
        if attrs is None or attrs.st_mode is None:
            return None
        return attrs.st_mode

    def list_entries(self, path: str) -> Optional[list[str]]:
        return self._run(f"list {path}", self._client().listdir, path, default=None)

    def is_directory(self, path: str) -> bool:
        mode = self._stat_mode(path)
        return mode is not None and stat.S_ISDIR(mode)

    def is_regular_file(self, path: str) -> bool:
        mode = self._stat_mode(path)
        return mode is not None and stat.S_ISREG(mode)

    def is_symlink(self, path: str) -> bool:
        """Check the link itself, without following it."""
        attrs = self._run(f"lstat {path}", self._client().lstat, path, default=None)
        return (
            attrs is not None
            and attrs.st_mode is not None
            and stat.S_ISLNK(attrs.st_mode)
        )

    def delete_file(self, path: str) -> bool:
        return self._run(f"delete {path}", self._done(self._client().remove), path)

    def make_directory(self, path: str, recursive: bool = False) -> bool:
        """Create a remote directory.

        With ``recursive``, missing parents are created first. Returns True
        only if ``path`` itself was created, so an existing directory gives
        False.
        """
        if recursive:
            parent = posixpath.dirname(path.rstrip("/"))
            if parent and parent not in ("/", ".") and not self.is_directory(parent):
                self.make_directory(parent, recursive=True)
        return self._run(f"mkdir {path}", self._done(self._client().mkdir), path)

    def remove_directory(self, path: str) -> bool:
        return self._run(f"rmdir {path}", self._done(self._client().rmdir), path)

    def rename_path(self, old_path: str, new_path: str) -> bool:
        return self._run(
            f"rename {old_path} -> {new_path}",
            self._done(self._client().rename),
            old_path,
            new_path,
        )

    def transfer_to_remote(self, remote_path: str, local_source: LocalSource) -> bool:
        client = self._client()
        func = client.put if isinstance(local_source, str) else client.putfo
        return self._run(
            f"put {remote_path}", self._done(func), local_source, remote_path
        )

    def transfer_from_remote(self, remote_path: str, local_dest: LocalSource) -> bool:
        client = self._client()
        func = client.get if isinstance(local_dest, str) else client.getfo
        return self._run(
            f"get {remote_path}", self._done(func), remote_path, local_dest
        )

    def current_working_directory(self) -> Optional[str]:
        return self._run("pwd", self._client().normalize, ".", default=None)

    @staticmethod
    def _done(func: Callable[..., Any]) -> Callable[..., bool]:
        """Wrap a paramiko call that signals failure by raising."""

        def wrapper(*args: Any) -> bool:
            func(*args)
            return True

        return wrapper
