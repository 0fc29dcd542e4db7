"""Exceptions raised by sftpsync."""


class SftpSyncError(Exception):
    """Base exception for all sftpsync errors."""


class SftpConfigError(SftpSyncError):
    """Invalid or missing configuration."""


class SftpConnectionError(SftpSyncError):
    """Transport failure or lost connection to the SFTP server."""


class SftpNotConnectedError(SftpConnectionError):
    """An operation was attempted without an authenticated session."""


class SftpLoginError(SftpSyncError):
    """Connecting or authenticating to the SFTP server failed."""


class SftpFileError(SftpSyncError):
    """A single-file operation failed."""


class SftpDeleteError(SftpFileError):
    """Deleting a remote file failed."""


class SftpRemoveDirError(SftpSyncError):
    """Recursive removal of a remote directory failed."""


class SftpUploadDirError(SftpSyncError):
    """Recursive upload of a local directory failed."""


class SftpDownloadDirError(SftpSyncError):
    """Recursive download of a remote directory failed."""


class SftpSubtreeUploadError(SftpSyncError):
    """A subtree could not be uploaded (e.g. remote directory not creatable)."""


class SftpSubtreeDownloadError(SftpSyncError):
    """A subtree could not be downloaded (e.g. local directory not creatable)."""


class SftpLocalDirectoryError(SftpSyncError):
    """Local directory does not exist or is not writable."""
