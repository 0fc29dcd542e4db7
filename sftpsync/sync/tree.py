"""Recursive directory walks over an SFTP session.

All walks are depth-first and single-threaded. Each directory level keeps an
attempted/succeeded count; a level is complete when both are equal. A failed
leaf operation only lowers that ratio, the walk carries on. Conditions that
make the rest of a subtree meaningless (a target directory that cannot be
created) raise and abort the whole walk.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..exceptions import SftpSubtreeDownloadError, SftpSubtreeUploadError
from ..paths import is_dot_entry, remote_basename, remote_join
from ..session import SftpSession

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class TransferOutcome:
    """Attempted/succeeded counts for one directory level."""

    attempted: int = 0
    """Entries processed at this level"""

    succeeded: int = 0
    """Entries whose operation (or whole subtree) succeeded"""

    failed: list[str] = field(default_factory=list)
    """Paths that failed anywhere below this level"""

    @property
    def complete(self) -> bool:
        """True if every entry succeeded (vacuously true when empty)."""
        return self.attempted == self.succeeded

    def record(self, path: str, ok: bool) -> None:
        """Count one entry and remember it if it failed."""
        self.attempted += 1
        if ok:
            self.succeeded += 1
        else:
            self.failed.append(path)

    def merge_failures(self, child: "TransferOutcome") -> None:
        self.failed.extend(child.failed)


def _notify(callback: Optional[ProgressCallback], path: str) -> None:
    if callback is not None:
        callback(path)


def clean_dir(
    session: SftpSession,
    remote_dir: str,
    progress_callback: Optional[ProgressCallback] = None,
) -> TransferOutcome:
    """Delete everything inside a remote directory, keeping the directory.

    Subdirectories are emptied first and then removed. Removal is attempted
    even if emptying was incomplete; it then fails and counts against the
    ratio.

    Args:
        session: Authenticated session
        remote_dir: Remote directory without trailing separator
        progress_callback: Called with each path before it is removed

    Returns:
        Outcome for ``remote_dir``'s direct entries
    """
    outcome = TransferOutcome()

    entries = session.list_entries(remote_dir)
    if not entries:
        return outcome

    for name in entries:
        if is_dot_entry(name):
            continue
        path = remote_join(remote_dir, name)

        # a link to a directory is removed as a link, its target is left alone
        if session.is_directory(path) and not session.is_symlink(path):
            child = clean_dir(session, path, progress_callback)
            outcome.merge_failures(child)
            _notify(progress_callback, path)
            outcome.record(path, session.remove_directory(path))
        else:
            _notify(progress_callback, path)
            outcome.record(path, session.delete_file(path))

    logger.debug(
        "Cleaned %s: %d/%d entries removed",
        remote_dir,
        outcome.succeeded,
        outcome.attempted,
    )
    return outcome


def upload_all(
    session: SftpSession,
    local_dir: str,
    remote_dir: str,
    progress_callback: Optional[ProgressCallback] = None,
) -> TransferOutcome:
    """Upload the contents of a local directory into a remote directory.

    Args:
        session: Authenticated session
        local_dir: Local source directory
        remote_dir: Remote target directory, created if missing
        progress_callback: Called with each local file before it is sent

    Returns:
        Outcome for ``local_dir``'s direct entries

    Raises:
        SftpSubtreeUploadError: If the remote directory cannot be created or
            the local directory cannot be read
    """
    if not session.is_directory(remote_dir):
        if not session.make_directory(remote_dir):
            raise SftpSubtreeUploadError(
                f"Cannot create remote directory: {remote_dir}"
            )

    try:
        names = sorted(os.listdir(local_dir))
    except OSError as e:
        raise SftpSubtreeUploadError(
            f"Cannot read local directory {local_dir}: {e}"
        ) from e

    outcome = TransferOutcome()
    for name in names:
        if is_dot_entry(name):
            continue
        local_path = os.path.join(local_dir, name)
        remote_path = remote_join(remote_dir, name)

        if os.path.isdir(local_path):
            # Earlier releases recursed with the local path as the remote
            # target too; the remote subdirectory is the correct target.
            child = upload_all(session, local_path, remote_path, progress_callback)
            outcome.merge_failures(child)
            outcome.record(remote_path, child.complete)
        else:
            _notify(progress_callback, local_path)
            outcome.record(
                remote_path, session.transfer_to_remote(remote_path, local_path)
            )

    logger.debug(
        "Uploaded %s -> %s: %d/%d entries",
        local_dir,
        remote_dir,
        outcome.succeeded,
        outcome.attempted,
    )
    return outcome


def download_all(
    session: SftpSession,
    remote_dir: str,
    local_dir: str,
    progress_callback: Optional[ProgressCallback] = None,
) -> TransferOutcome:
    """Download the contents of a remote directory into a local directory.

    A remote path that is not a directory, or whose listing fails, has
    nothing to download and yields an empty (complete) outcome.

    Args:
        session: Authenticated session
        remote_dir: Remote source directory without trailing separator
        local_dir: Existing local target directory
        progress_callback: Called with each remote file before it is fetched

    Returns:
        Outcome for ``remote_dir``'s direct entries

    Raises:
        SftpSubtreeDownloadError: If a local subdirectory cannot be created
    """
    outcome = TransferOutcome()

    if not session.is_directory(remote_dir):
        return outcome

    entries = session.list_entries(remote_dir)
    if entries is None:
        return outcome

    for name in entries:
        if is_dot_entry(name):
            continue
        remote_path = remote_join(remote_dir, name)
        local_path = os.path.join(local_dir, remote_basename(name))

        if session.is_directory(remote_path):
            try:
                os.makedirs(local_path, exist_ok=True)
            except OSError as e:
                raise SftpSubtreeDownloadError(
                    f"Cannot create local directory {local_path}: {e}"
                ) from e
            child = download_all(session, remote_path, local_path, progress_callback)
            outcome.merge_failures(child)
            outcome.record(remote_path, child.complete)
        else:
            _notify(progress_callback, remote_path)
            outcome.record(
                remote_path, session.transfer_from_remote(remote_path, local_path)
            )

    logger.debug(
        "Downloaded %s -> %s: %d/%d entries",
        remote_dir,
        local_dir,
        outcome.succeeded,
        outcome.attempted,
    )
    return outcome


def list_all_files(session: SftpSession, remote_dir: str) -> list[str]:
    """Recursively list regular files below a remote directory.

    Returns:
        Full remote paths, depth-first in listing order
    """
    files: list[str] = []

    entries = session.list_entries(remote_dir)
    if not entries:
        return files

    for name in entries:
        if is_dot_entry(name):
            continue
        path = remote_join(remote_dir, name)
        if session.is_directory(path):
            files.extend(list_all_files(session, path))
        else:
            files.append(path)

    return files
