"""sftpsync - Recursive directory upload, download and removal over SFTP."""

from .client import DirectorySync
from .exceptions import (
    SftpConfigError,
    SftpConnectionError,
    SftpDeleteError,
    SftpDownloadDirError,
    SftpFileError,
    SftpLocalDirectoryError,
    SftpLoginError,
    SftpNotConnectedError,
    SftpRemoveDirError,
    SftpSubtreeDownloadError,
    SftpSubtreeUploadError,
    SftpSyncError,
    SftpUploadDirError,
)
from .session import ParamikoSession, SftpSession
from .sync import ErrorPolicy, TransferOutcome

__all__ = [
    "DirectorySync",
    "ErrorPolicy",
    "ParamikoSession",
    "SftpSession",
    "TransferOutcome",
    "SftpConfigError",
    "SftpConnectionError",
    "SftpDeleteError",
    "SftpDownloadDirError",
    "SftpFileError",
    "SftpLocalDirectoryError",
    "SftpLoginError",
    "SftpNotConnectedError",
    "SftpRemoveDirError",
    "SftpSubtreeDownloadError",
    "SftpSubtreeUploadError",
    "SftpSyncError",
    "SftpUploadDirError",
]
