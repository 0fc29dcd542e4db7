"""CLI interface for sftpsync."""

import logging
from typing import Any, Callable, Optional

import click
from rich.progress import Progress, SpinnerColumn, TextColumn

from .client import DirectorySync
from .config import config
from .exceptions import SftpSyncError
from .output import OutputFormatter
from .sync.modes import ErrorPolicy
from .sync.tree import ProgressCallback

logger = logging.getLogger(__name__)


@click.group()
@click.option("--host", "-H", envvar="SFTPSYNC_HOST", help="SFTP server host")
@click.option("--port", "-p", type=int, default=None, help="SFTP server port")
@click.option("--user", "-u", envvar="SFTPSYNC_USER", help="User name")
@click.option(
    "--password",
    envvar="SFTPSYNC_PASSWORD",
    help="Password (prompted for when not given)",
)
@click.option(
    "--lenient",
    is_flag=True,
    help="Log failures and continue instead of aborting with an error",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="sftpsync")
@click.pass_context
def main(
    ctx: Any,
    host: Optional[str],
    port: Optional[int],
    user: Optional[str],
    password: Optional[str],
    lenient: bool,
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """sftpsync - Upload, download and remove directory trees over SFTP."""
    ctx.ensure_object(dict)
    ctx.obj["host"] = host
    ctx.obj["port"] = port
    ctx.obj["user"] = user
    ctx.obj["password"] = password
    ctx.obj["lenient"] = lenient
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("sftpsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _connect(ctx: Any) -> DirectorySync:
    """Build a client from options and config, and log in.

    Exits with status 1 if settings are missing or the login fails.
    """
    out: OutputFormatter = ctx.obj["out"]

    host = ctx.obj.get("host") or config.host
    user = ctx.obj.get("user") or config.user
    if not host or not user:
        out.error("SFTP host and user not configured.")
        out.info("Run 'sftpsync init' or pass --host and --user")
        ctx.exit(1)

    try:
        port = ctx.obj.get("port") or config.port
        policy = ErrorPolicy.LENIENT if ctx.obj.get("lenient") else config.error_policy
        timeout = config.timeout
    except SftpSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    password = ctx.obj.get("password") or config.password
    if password is None:
        password = click.prompt(f"Password for {user}@{host}", hide_input=True)

    client = DirectorySync(policy=policy, timeout=timeout)
    try:
        client.login(host, user, password, port)
    except SftpSyncError as e:
        out.error(f"{e} ({e.__cause__})" if e.__cause__ else str(e))
        ctx.exit(1)

    if not client.is_authenticated:
        out.error(f"Login to {host}:{port} failed")
        ctx.exit(1)

    logger.debug("Logged in to %s:%s as %s", host, port, user)
    return client


def _run_with_progress(
    out: OutputFormatter,
    description: str,
    operation: Callable[[ProgressCallback], bool],
) -> bool:
    """Run a tree operation behind a spinner showing the current path."""
    with Progress(
        SpinnerColumn(),
        TextColumn("{task.description}", markup=False),
        transient=True,
        disable=out.quiet or out.json_output,
    ) as progress:
        task = progress.add_task(description, total=None)

        def on_entry(path: str) -> None:
            progress.update(task, description=f"{description} {path}")

        return operation(on_entry)


def _report_tree_result(
    ctx: Any, client: DirectorySync, ok: bool, done_message: str
) -> None:
    out: OutputFormatter = ctx.obj["out"]
    outcome = client.last_outcome

    if out.json_output:
        out.output_json(
            {
                "success": ok,
                "attempted": outcome.attempted if outcome else 0,
                "succeeded": outcome.succeeded if outcome else 0,
                "failed": outcome.failed if outcome else [],
            }
        )
    elif ok:
        out.success(done_message)
    else:
        out.error("Operation incomplete")
        for path in outcome.failed if outcome else []:
            out.warning(f"  failed: {path}")

    if not ok:
        ctx.exit(1)


def _report_result(ctx: Any, ok: bool, done_message: str, failed_message: str) -> None:
    out: OutputFormatter = ctx.obj["out"]
    if out.json_output:
        out.output_json({"success": ok})
    elif ok:
        out.success(done_message)
    else:
        out.error(failed_message)
    if not ok:
        ctx.exit(1)


@main.command()
@click.option("--host", "-H", prompt="SFTP host", help="SFTP server host")
@click.option("--user", "-u", prompt="User name", help="User name")
@click.option("--port", "-p", type=int, default=22, show_default=True)
@click.pass_context
def init(ctx: Any, host: str, user: str, port: int) -> None:
    """Save the SFTP host, user and port for future use.

    Stores them in ~/.config/sftpsync/config. The password is never saved.
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        config.save_connection(host, user, port)
    except OSError as e:
        out.error(f"Cannot save configuration: {e}")
        ctx.exit(1)

    out.print_summary(
        "Initialization Complete",
        [
            ("Host", f"{host}:{port}"),
            ("User", user),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command()
@click.pass_context
def test(ctx: Any) -> None:
    """Check that the server accepts the configured credentials."""
    out: OutputFormatter = ctx.obj["out"]
    with _connect(ctx):
        if out.json_output:
            out.output_json({"success": True})
        else:
            out.success("Connection OK")


@main.command()
@click.argument("path", default=".")
@click.option("--recursive", "-r", is_flag=True, help="List all files below PATH")
@click.pass_context
def ls(ctx: Any, path: str, recursive: bool) -> None:
    """List a remote directory.

    PATH: Remote directory (default: working directory)
    """
    out: OutputFormatter = ctx.obj["out"]

    with _connect(ctx) as client:
        try:
            names = client.get_all_files(path) if recursive else client.scan_dir(path)
        except SftpSyncError as e:
            out.error(str(e))
            ctx.exit(1)

        if out.json_output:
            out.output_json(names)
            return
        for name in names:
            out.print(name)


@main.command()
@click.pass_context
def pwd(ctx: Any) -> None:
    """Print the remote working directory."""
    out: OutputFormatter = ctx.obj["out"]

    with _connect(ctx) as client:
        try:
            cwd = client.pwd()
        except SftpSyncError as e:
            out.error(str(e))
            ctx.exit(1)

        if cwd is None:
            out.error("Cannot determine working directory")
            ctx.exit(1)
        if out.json_output:
            out.output_json({"pwd": cwd})
        else:
            out.print(cwd)


@main.command()
@click.argument("path")
@click.pass_context
def mkdir(ctx: Any, path: str) -> None:
    """Create a remote directory, including missing parents."""
    with _connect(ctx) as client:
        try:
            ok = client.mkdir(path)
        except SftpSyncError as e:
            ctx.obj["out"].error(str(e))
            ctx.exit(1)
        _report_result(
            ctx, ok, f"Directory created: {path}", f"Cannot create directory {path}"
        )


@main.command()
@click.argument("path")
@click.pass_context
def rm(ctx: Any, path: str) -> None:
    """Delete a remote file."""
    with _connect(ctx) as client:
        try:
            ok = client.delete(path)
        except SftpSyncError as e:
            ctx.obj["out"].error(str(e))
            ctx.exit(1)
        _report_result(
            ctx, ok, f"Deleted: {path}", f"Not a file or cannot be deleted: {path}"
        )


@main.command()
@click.argument("old")
@click.argument("new")
@click.pass_context
def mv(ctx: Any, old: str, new: str) -> None:
    """Rename a remote file or directory."""
    with _connect(ctx) as client:
        try:
            ok = client.rename(old, new)
        except SftpSyncError as e:
            ctx.obj["out"].error(str(e))
            ctx.exit(1)
        _report_result(ctx, ok, f"Renamed {old} -> {new}", f"Cannot rename {old}")


@main.command()
@click.argument("path")
@click.option("--content", "-c", default="", help="File content")
@click.pass_context
def touch(ctx: Any, path: str, content: str) -> None:
    """Create a remote file, optionally with content."""
    with _connect(ctx) as client:
        try:
            ok = client.touch(path, content)
        except SftpSyncError as e:
            ctx.obj["out"].error(str(e))
            ctx.exit(1)
        _report_result(ctx, ok, f"Created: {path}", f"Cannot create {path}")


@main.command()
@click.argument("local", type=click.Path(exists=True, dir_okay=False))
@click.argument("remote")
@click.pass_context
def put(ctx: Any, local: str, remote: str) -> None:
    """Upload a single file."""
    with _connect(ctx) as client:
        try:
            ok = client.upload(local, remote)
        except SftpSyncError as e:
            ctx.obj["out"].error(str(e))
            ctx.exit(1)
        _report_result(
            ctx, ok, f"Uploaded {local} -> {remote}", f"Cannot upload {local}"
        )


@main.command()
@click.argument("remote")
@click.argument("local", required=False)
@click.pass_context
def get(ctx: Any, remote: str, local: Optional[str]) -> None:
    """Download a single file.

    Without LOCAL the file content is printed.
    """
    out: OutputFormatter = ctx.obj["out"]

    with _connect(ctx) as client:
        try:
            result = client.download(remote, local)
        except SftpSyncError as e:
            out.error(str(e))
            ctx.exit(1)

        if local is not None:
            _report_result(
                ctx,
                bool(result),
                f"Downloaded {remote} -> {local}",
                f"Cannot download {remote}",
            )
            return

        if result is None:
            out.error(f"Cannot download {remote}")
            ctx.exit(1)
        out.print(str(result))


@main.command()
@click.argument("path")
@click.pass_context
def rmdir(ctx: Any, path: str) -> None:
    """Recursively delete a remote directory.

    PATH: Remote directory. With a trailing slash only its contents are
    deleted and the directory itself is kept.
    """
    out: OutputFormatter = ctx.obj["out"]

    with _connect(ctx) as client:
        try:
            ok = _run_with_progress(
                out, "Removing", lambda cb: client.rmdir(path, progress_callback=cb)
            )
        except SftpSyncError as e:
            out.error(str(e))
            ctx.exit(1)
        _report_tree_result(ctx, client, ok, f"Removed {path}")


@main.command("upload-dir")
@click.argument("local", type=click.Path(exists=True, file_okay=False))
@click.argument("remote")
@click.pass_context
def upload_dir(ctx: Any, local: str, remote: str) -> None:
    """Recursively upload a local directory.

    LOCAL: Local directory. Without a trailing slash the directory itself is
    created under REMOTE; with one only its contents are uploaded.

    REMOTE: Remote parent directory
    """
    out: OutputFormatter = ctx.obj["out"]

    with _connect(ctx) as client:
        try:
            ok = _run_with_progress(
                out,
                "Uploading",
                lambda cb: client.upload_dir(local, remote, progress_callback=cb),
            )
        except SftpSyncError as e:
            out.error(str(e))
            ctx.exit(1)
        _report_tree_result(ctx, client, ok, f"Uploaded {local} -> {remote}")


@main.command("download-dir")
@click.argument("remote")
@click.argument("local", type=click.Path(file_okay=False))
@click.pass_context
def download_dir(ctx: Any, remote: str, local: str) -> None:
    """Recursively download a remote directory.

    REMOTE: Remote directory. Without a trailing slash the directory itself
    is created under LOCAL; with one only its contents are downloaded.

    LOCAL: Existing, writable local directory
    """
    out: OutputFormatter = ctx.obj["out"]

    with _connect(ctx) as client:
        try:
            ok = _run_with_progress(
                out,
                "Downloading",
                lambda cb: client.download_dir(remote, local, progress_callback=cb),
            )
        except SftpSyncError as e:
            out.error(str(e))
            ctx.exit(1)
        _report_tree_result(ctx, client, ok, f"Downloaded {remote} -> {local}")


if __name__ == "__main__":
    main()
