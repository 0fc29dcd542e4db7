"""Shared fixtures: a fake SFTP session backed by a local directory."""

import shutil
from pathlib import Path
from typing import Optional

import pytest

from sftpsync import DirectorySync, ErrorPolicy
from sftpsync.exceptions import SftpConnectionError


class FakeSession:
    """SFTP session stand-in that stores the remote tree under ``root``.

    Remote path ``/a/b`` maps to ``root/a/b``. Paths listed in ``fail_paths``
    make their leaf operation report failure; paths in ``broken_paths`` raise
    SftpConnectionError.
    """

    def __init__(self, root: Path, password: str = "secret"):
        self.root = root
        self.password = password
        self.fail_paths: set[str] = set()
        self.broken_paths: set[str] = set()
        self.unlistable: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def _local(self, path: str) -> Path:
        return self.root / path.lstrip("/")

    def _check(self, op: str, path: str) -> bool:
        self.calls.append((op, path))
        if path in self.broken_paths:
            raise SftpConnectionError(f"Connection lost during {op} {path}")
        return path not in self.fail_paths

    def authenticate(self, user: str, password: str) -> bool:
        return password == self.password

    def list_entries(self, path: str) -> Optional[list[str]]:
        self.calls.append(("list", path))
        local = self._local(path)
        if path in self.unlistable or not local.is_dir():
            return None
        return [".", ".."] + sorted(p.name for p in local.iterdir())

    def is_directory(self, path: str) -> bool:
        return self._local(path).is_dir()

    def is_regular_file(self, path: str) -> bool:
        return self._local(path).is_file()

    def is_symlink(self, path: str) -> bool:
        return self._local(path).is_symlink()

    def delete_file(self, path: str) -> bool:
        if not self._check("delete", path):
            return False
        local = self._local(path)
        if not (local.is_file() or local.is_symlink()):
            return False
        local.unlink()
        return True

    def make_directory(self, path: str, recursive: bool = False) -> bool:
        if not self._check("mkdir", path):
            return False
        local = self._local(path)
        if local.exists():
            return False
        try:
            local.mkdir(parents=recursive)
        except OSError:
            return False
        return True

    def remove_directory(self, path: str) -> bool:
        if not self._check("rmdir", path):
            return False
        try:
            self._local(path).rmdir()
        except OSError:
            return False
        return True

    def rename_path(self, old_path: str, new_path: str) -> bool:
        if not self._check("rename", old_path):
            return False
        try:
            self._local(old_path).rename(self._local(new_path))
        except OSError:
            return False
        return True

    def transfer_to_remote(self, remote_path, local_source) -> bool:
        if not self._check("put", remote_path):
            return False
        target = self._local(remote_path)
        if not target.parent.is_dir():
            return False
        if isinstance(local_source, str):
            shutil.copyfile(local_source, target)
        else:
            target.write_bytes(local_source.read())
        return True

    def transfer_from_remote(self, remote_path, local_dest) -> bool:
        if not self._check("get", remote_path):
            return False
        source = self._local(remote_path)
        if not source.is_file():
            return False
        if isinstance(local_dest, str):
            shutil.copyfile(source, local_dest)
        else:
            local_dest.write(source.read_bytes())
        return True

    def current_working_directory(self) -> Optional[str]:
        return "/home/tester"

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def remote_root(tmp_path):
    """Directory holding the fake remote filesystem."""
    root = tmp_path / "remote"
    root.mkdir()
    return root


@pytest.fixture
def local_root(tmp_path):
    """Directory for local files."""
    root = tmp_path / "local"
    root.mkdir()
    return root


@pytest.fixture
def session(remote_root):
    """Provide a fake session rooted at remote_root."""
    return FakeSession(remote_root)


@pytest.fixture
def make_client(session):
    """Create a logged-in DirectorySync using the fake session."""

    def factory(policy: ErrorPolicy = ErrorPolicy.STRICT) -> DirectorySync:
        client = DirectorySync(
            policy=policy, session_factory=lambda host, port, timeout: session
        )
        return client.login("sftp.example.com", "tester", "secret")

    return factory


@pytest.fixture
def client(make_client):
    """Provide a logged-in client with the STRICT policy."""
    return make_client()


@pytest.fixture
def lenient_client(make_client):
    """Provide a logged-in client with the LENIENT policy."""
    return make_client(ErrorPolicy.LENIENT)


@pytest.fixture
def make_session(remote_root):
    """Create additional fake sessions sharing the same remote tree."""

    def factory() -> FakeSession:
        return FakeSession(remote_root)

    return factory
