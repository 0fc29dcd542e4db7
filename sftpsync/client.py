"""Directory-level SFTP client."""

from __future__ import annotations

import io
import logging
import os
import tempfile
from typing import TYPE_CHECKING, Callable, Optional, TypeVar, Union

from .exceptions import (
    SftpConnectionError,
    SftpDeleteError,
    SftpDownloadDirError,
    SftpFileError,
    SftpLocalDirectoryError,
    SftpLoginError,
    SftpNotConnectedError,
    SftpRemoveDirError,
    SftpSubtreeDownloadError,
    SftpSyncError,
    SftpUploadDirError,
)
from .paths import (
    has_trailing_separator,
    is_dot_entry,
    local_basename,
    remote_basename,
    remote_join,
    strip_trailing_separator,
)
from .session import DEFAULT_PORT, DEFAULT_TIMEOUT, ParamikoSession, SftpSession
from .sync.modes import ErrorPolicy
from .sync.tree import (
    ProgressCallback,
    TransferOutcome,
    clean_dir,
    download_all,
    list_all_files,
    upload_all,
)

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")
SessionFactory = Callable[[str, int, float], SftpSession]


class DirectorySync:
    """SFTP client with recursive directory upload, download and removal.

    Owns at most one authenticated session. Every operation except
    :meth:`login` and :meth:`test` needs one and raises
    :class:`~sftpsync.exceptions.SftpNotConnectedError` without it.

    Failures follow the configured :class:`~sftpsync.sync.modes.ErrorPolicy`:
    STRICT raises an operation-specific exception, LENIENT logs and returns
    ``False``, ``[]`` or ``None``. A missing or unwritable local directory is
    always raised.

    Example:
        with DirectorySync().login("sftp.example.com", "deploy", "secret") as sync:
            sync.upload_dir("build", "/var/www/")
            sync.rmdir("/var/www/old")

    A single instance must not be used from several threads at once.
    """

    def __init__(
        self,
        policy: ErrorPolicy = ErrorPolicy.STRICT,
        session_factory: Optional[SessionFactory] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            policy: How failures are reported
            session_factory: Callable ``(host, port, timeout)`` returning an
                unauthenticated session (default: ParamikoSession.connect)
            timeout: Connection timeout in seconds passed to the factory
        """
        self.policy = policy
        self.timeout = timeout
        self._session_factory: SessionFactory = (
            session_factory or ParamikoSession.connect
        )
        self._session: Optional[SftpSession] = None
        self.last_outcome: Optional[TransferOutcome] = None

    @classmethod
    def from_config(cls, cfg: Config) -> DirectorySync:
        """Create a client using the policy and timeout from a config."""
        return cls(policy=cfg.error_policy, timeout=cfg.timeout)

    def __enter__(self) -> DirectorySync:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def close(self) -> None:
        """Close the current session, if any."""
        if self._session is not None:
            session, self._session = self._session, None
            session.close()

    def _require_session(self) -> SftpSession:
        if self._session is None:
            raise SftpNotConnectedError("Not logged in. Call login() first.")
        return self._session

    def _fail(
        self,
        error_class: type[SftpSyncError],
        message: str,
        cause: Optional[BaseException],
        default: T,
    ) -> T:
        """Report a failure according to the error policy.

        Raises ``error_class`` under STRICT, otherwise logs and returns
        ``default``. A lost connection also drops the session.
        """
        if isinstance(cause, SftpConnectionError):
            self.close()
        if self.policy.raises:
            raise error_class(message) from cause
        if cause is not None:
            logger.error("%s: %s", message, cause)
        else:
            logger.error(message)
        return default

    # =========================
    # Session lifecycle
    # =========================

    def login(
        self, server: str, user: str, password: str, port: int = DEFAULT_PORT
    ) -> DirectorySync:
        """Connect and authenticate, replacing any current session.

        Args:
            server: SFTP host name
            user: User name
            password: Password
            port: SSH port

        Returns:
            This client, for chaining

        Raises:
            SftpLoginError: Under STRICT, if the host cannot be reached or
                the credentials are rejected
        """
        self.close()

        try:
            session = self._session_factory(server, port, self.timeout)
        except SftpSyncError as e:
            return self._fail(
                SftpLoginError, f"Cannot connect to {server}:{port}", e, self
            )

        try:
            authenticated = session.authenticate(user, password)
        except SftpSyncError as e:
            session.close()
            return self._fail(
                SftpLoginError, f"Login to {server}:{port} failed", e, self
            )

        if not authenticated:
            session.close()
            return self._fail(
                SftpLoginError,
                f"Credentials rejected for {user}@{server}:{port}",
                None,
                self,
            )

        self._session = session
        return self

    def test(
        self, server: str, user: str, password: str, port: int = DEFAULT_PORT
    ) -> bool:
        """Log in, report whether a session was established, and log out."""
        self.login(server, user, password, port)
        ok = self.is_authenticated
        self.close()
        return ok

    # =========================
    # Single-entry operations
    # =========================

    def is_file(self, path: str) -> bool:
        """Check if a remote path is an existing regular file."""
        session = self._require_session()
        try:
            return session.is_regular_file(path)
        except SftpSyncError as e:
            return self._fail(SftpFileError, f"Cannot stat {path}", e, False)

    def delete(self, path: str) -> bool:
        """Delete a remote file.

        Returns:
            True if ``path`` was a regular file and is now deleted; False for
            missing paths and directories
        """
        session = self._require_session()
        try:
            if not session.is_regular_file(path):
                return False
            return session.delete_file(path)
        except SftpSyncError as e:
            return self._fail(SftpDeleteError, f"Cannot delete {path}", e, False)

    def rename(self, old_path: str, new_path: str) -> bool:
        session = self._require_session()
        try:
            return session.rename_path(old_path, new_path)
        except SftpSyncError as e:
            return self._fail(
                SftpFileError, f"Cannot rename {old_path} to {new_path}", e, False
            )

    def mkdir(self, path: str) -> bool:
        """Create a remote directory and any missing parents."""
        session = self._require_session()
        try:
            return session.make_directory(path, recursive=True)
        except SftpSyncError as e:
            return self._fail(SftpFileError, f"Cannot create {path}", e, False)

    def touch(self, path: str, content: Union[str, bytes] = "") -> bool:
        """Create a remote file with the given content.

        The content goes through a temporary local file, which is removed
        whether or not the transfer succeeds.
        """
        session = self._require_session()
        data = content.encode("utf-8") if isinstance(content, str) else content
        try:
            with tempfile.TemporaryFile() as scratch:
                scratch.write(data)
                scratch.seek(0)
                return session.transfer_to_remote(path, scratch)
        except (SftpSyncError, OSError) as e:
            return self._fail(SftpFileError, f"Cannot create {path}", e, False)

    def upload(self, local_file: str, remote_file: str) -> bool:
        session = self._require_session()
        try:
            return session.transfer_to_remote(remote_file, os.fspath(local_file))
        except SftpSyncError as e:
            return self._fail(
                SftpFileError, f"Cannot upload {local_file} to {remote_file}", e, False
            )

    def download(
        self,
        remote_file: str,
        local_file: Optional[str] = None,
        encoding: Optional[str] = "utf-8",
    ) -> Union[bool, str, bytes, None]:
        """Download a remote file.

        Args:
            remote_file: Remote file path
            local_file: Local destination; if omitted the content is returned
            encoding: Encoding used to decode returned content, or None for bytes

        Returns:
            With ``local_file``: True if the transfer succeeded.
            Without: the file content, or None if the transfer failed.
        """
        session = self._require_session()
        if local_file is not None:
            try:
                return session.transfer_from_remote(remote_file, os.fspath(local_file))
            except SftpSyncError as e:
                return self._fail(
                    SftpFileError, f"Cannot download {remote_file}", e, False
                )

        buffer = io.BytesIO()
        try:
            if not session.transfer_from_remote(remote_file, buffer):
                return None
        except SftpSyncError as e:
            return self._fail(SftpFileError, f"Cannot download {remote_file}", e, None)

        data = buffer.getvalue()
        if encoding is None:
            return data
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            return self._fail(
                SftpFileError, f"Cannot decode {remote_file} as {encoding}", e, None
            )

    def scan_dir(self, path: str) -> list[str]:
        """List entry names in a remote directory.

        Returns:
            Names without ``.`` and ``..``; empty if the directory is empty
            or cannot be listed
        """
        session = self._require_session()
        try:
            entries = session.list_entries(path)
        except SftpSyncError as e:
            return self._fail(SftpFileError, f"Cannot list {path}", e, [])
        if entries is None:
            return []
        return [name for name in entries if not is_dot_entry(name)]

    def pwd(self) -> Optional[str]:
        """Return the session's working directory."""
        session = self._require_session()
        try:
            return session.current_working_directory()
        except SftpSyncError as e:
            return self._fail(SftpFileError, "Cannot get working directory", e, None)

    # =========================
    # Tree operations
    # =========================

    def rmdir(
        self, remote_path: str, progress_callback: Optional[ProgressCallback] = None
    ) -> bool:
        """Recursively delete a remote directory.

        With a trailing ``/`` only the contents are removed and the directory
        itself is kept. Without it the directory is removed too, once its
        contents are gone.

        Args:
            remote_path: Remote directory
            progress_callback: Called with each path before it is removed

        Returns:
            True if everything requested was removed
        """
        session = self._require_session()
        root = strip_trailing_separator(remote_path)
        self.last_outcome = TransferOutcome()

        try:
            outcome = clean_dir(session, root, progress_callback)
            self.last_outcome = outcome
            if not outcome.complete:
                logger.info(
                    "Could not empty %s: %d/%d entries removed",
                    root,
                    outcome.succeeded,
                    outcome.attempted,
                )
                return False
            if has_trailing_separator(remote_path):
                return True
            removed = session.remove_directory(root)
        except SftpSyncError as e:
            return self._fail(
                SftpRemoveDirError, f"Cannot remove {remote_path}", e, False
            )

        if not removed:
            outcome.failed.append(root)
        return removed

    def upload_dir(
        self,
        local_path: str,
        remote_path: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        """Recursively upload a local directory.

        Without a trailing separator on ``local_path`` the directory itself
        is mirrored as ``remote_path/<basename>``; with one, only its contents
        are uploaded into ``remote_path``.

        Args:
            local_path: Local source directory
            remote_path: Remote parent directory
            progress_callback: Called with each local file before it is sent

        Returns:
            True if every file and subdirectory was uploaded

        Raises:
            SftpLocalDirectoryError: If ``local_path`` is not a directory
        """
        session = self._require_session()
        local_path = os.fspath(local_path)
        self.last_outcome = TransferOutcome()
        local_root = strip_trailing_separator(local_path, local=True)
        if not os.path.isdir(local_root):
            raise SftpLocalDirectoryError(
                f"Local directory does not exist: {local_path}"
            )

        remote_root = strip_trailing_separator(remote_path)

        try:
            if not has_trailing_separator(local_path, local=True):
                remote_root = remote_join(remote_root, local_basename(local_root))
                # upload_all raises if the directory still does not exist
                session.make_directory(remote_root)
            outcome = upload_all(session, local_root, remote_root, progress_callback)
        except SftpSyncError as e:
            return self._fail(
                SftpUploadDirError,
                f"Cannot upload {local_path} to {remote_path}",
                e,
                False,
            )

        self.last_outcome = outcome
        logger.info(
            "Uploaded %s to %s: %d/%d entries",
            local_path,
            remote_root,
            outcome.succeeded,
            outcome.attempted,
        )
        return outcome.complete

    def download_dir(
        self,
        remote_dir: str,
        local_dir: str,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> bool:
        """Recursively download a remote directory.

        Without a trailing ``/`` on ``remote_dir`` the directory itself is
        mirrored as ``local_dir/<basename>``; with one, only its contents are
        downloaded into ``local_dir``.

        Args:
            remote_dir: Remote source directory
            local_dir: Existing, writable local directory
            progress_callback: Called with each remote file before it is fetched

        Returns:
            True if every file and subdirectory was downloaded

        Raises:
            SftpLocalDirectoryError: If ``local_dir`` does not exist or is not
                writable; nothing is transferred in that case
        """
        session = self._require_session()
        local_root = strip_trailing_separator(os.fspath(local_dir), local=True)
        self.last_outcome = TransferOutcome()
        if not (os.path.isdir(local_root) and os.access(local_root, os.W_OK)):
            raise SftpLocalDirectoryError(
                f"Local directory does not exist or is not writable: {local_dir}"
            )

        remote_root = strip_trailing_separator(remote_dir)

        try:
            if not has_trailing_separator(remote_dir):
                local_root = os.path.join(local_root, remote_basename(remote_root))
                try:
                    os.makedirs(local_root, exist_ok=True)
                except OSError as e:
                    raise SftpSubtreeDownloadError(
                        f"Cannot create local directory {local_root}: {e}"
                    ) from e
            outcome = download_all(session, remote_root, local_root, progress_callback)
        except SftpSyncError as e:
            return self._fail(
                SftpDownloadDirError,
                f"Cannot download {remote_dir} to {local_dir}",
                e,
                False,
            )

        self.last_outcome = outcome
        logger.info(
            "Downloaded %s to %s: %d/%d entries",
            remote_dir,
            local_root,
            outcome.succeeded,
            outcome.attempted,
        )
        return outcome.complete

    def get_all_files(self, remote_path: str) -> list[str]:
        """Recursively list all regular files below a remote directory."""
        session = self._require_session()
        try:
            return list_all_files(session, strip_trailing_separator(remote_path))
        except SftpSyncError as e:
            return self._fail(SftpFileError, f"Cannot list {remote_path}", e, [])
