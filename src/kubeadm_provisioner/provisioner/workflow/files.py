"""Remote files: temporary names, transfers, deletion and leftovers.

Temporary remote files follow a recognizable naming scheme so that they can be
told apart from any other file, and every action creating one makes sure it is
removed, whatever the outcome of the step that used it.
"""

from __future__ import annotations

import io
import logging
import posixpath
import re
import secrets
from pathlib import Path
from typing import BinaryIO

from kubeadm_provisioner.provisioner.transport.base import TransportError

from .actions import NO_OP, Action, ActionError, ActionFunc, apply, is_error, sequence
from .combinators import do_try, do_with_cleanup
from .context import Context, OutputSink, StreamOutput
from .exec import do_exec, do_sending_exec_output_to

logger = logging.getLogger(__name__)

TEMP_DIR = "/tmp"
TEMP_PREFIX = "kubeadm-provisioner-"
TEMP_SUFFIX = ".tmp"

_TEMP_RANDOM_BYTES = 8
_TEMP_RE = re.compile(
    rf"^{re.escape(TEMP_DIR)}/{re.escape(TEMP_PREFIX)}"
    rf"[0-9a-f]{{{_TEMP_RANDOM_BYTES * 2}}}{re.escape(TEMP_SUFFIX)}$"
)


def get_temp_filename() -> str:
    """Return a new, random remote temporary path."""

    return f"{TEMP_DIR}/{TEMP_PREFIX}{secrets.token_hex(_TEMP_RANDOM_BYTES)}{TEMP_SUFFIX}"


def is_temp_filename(path: str) -> bool:
    """True iff `path` was produced by `get_temp_filename`."""

    return _TEMP_RE.match(path) is not None


def do_delete_file(path: str) -> Action:
    return do_exec(f"rm -f '{path}'")


def do_delete_local_file(path: str | Path) -> Action:
    def run(_ctx: Context) -> Action | None:
        try:
            Path(path).unlink()
        except OSError as e:
            return ActionError(f"Could not remove local file {str(path)!r}: {e}", cause=e)
        return None

    return ActionFunc(run)


def do_mkdir(path: str) -> Action:
    return do_exec(f"mkdir -p '{path}'")


def do_move_file(src: str, dst: str) -> Action:
    return do_exec(f"mv -f '{src}' '{dst}'")


def _do_raw_upload(data: BinaryIO, remote_path: str) -> Action:
    """Upload straight to `remote_path` with the transport's own permissions."""

    def run(ctx: Context) -> Action | None:
        logger.debug("Uploading file", extra={"path": remote_path})
        try:
            ctx.transport.upload(data, remote_path)
        except TransportError as e:
            return ActionError(f"Error uploading to {remote_path!r}: {e}", cause=e)
        return None

    return ActionFunc(run)


def do_upload_reader_to_file(data: BinaryIO, dst: str) -> Action:
    """Upload a stream to `dst` on the target.

    The data goes to a temporary file first and is then moved into place with
    a regular command, so sudo applies to the final write.
    """

    def run(_ctx: Context) -> Action | None:
        tmp = get_temp_filename()
        dst_dir = posixpath.dirname(dst)
        return do_with_cleanup(
            do_try(do_delete_file(tmp)),
            sequence(
                _do_raw_upload(data, tmp),
                do_mkdir(dst_dir) if dst_dir else None,
                do_move_file(tmp, dst),
            ),
        )

    return ActionFunc(run)


def do_upload_bytes_to_file(contents: bytes | str, dst: str) -> Action:
    if isinstance(contents, str):
        contents = contents.encode("utf-8")
    data = contents

    return ActionFunc(lambda _ctx: do_upload_reader_to_file(io.BytesIO(data), dst))


def do_upload_file_to_file(local_path: str | Path, dst: str) -> Action:
    """Upload a local file to `dst` on the target."""

    def run(_ctx: Context) -> Action | None:
        path = Path(local_path)
        if not path.is_file():
            return ActionError(f"Local file {str(local_path)!r} does not exist")
        try:
            contents = path.read_bytes()
        except OSError as e:
            return ActionError(f"Could not read local file {str(local_path)!r}: {e}", cause=e)
        return do_upload_reader_to_file(io.BytesIO(contents), dst)

    return ActionFunc(run)


def do_download_file_to_sink(path: str, sink: OutputSink) -> Action:
    """Send the lines of a remote file to `sink`."""

    return do_sending_exec_output_to(sink, do_exec(f"cat '{path}'"))


def do_download_file(path: str, local_path: str | Path) -> Action:
    """Download a remote text file to `local_path`.

    `local_path` is replaced only once the whole file has been received.
    """

    def run(ctx: Context) -> Action | None:
        dest = Path(local_path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        partial = dest.with_name(f"{dest.name}.part")
        try:
            with partial.open("w", encoding="utf-8") as f:
                res = apply(do_download_file_to_sink(path, StreamOutput(f)), ctx)
            if is_error(res):
                return res
            partial.replace(dest)
        finally:
            partial.unlink(missing_ok=True)
        return None

    return ActionFunc(run)


def do_exec_script(contents: bytes | str, interpreter: str = "sh") -> Action:
    """Upload a script to a temporary file, run it and remove it."""

    if isinstance(contents, str):
        contents = contents.encode("utf-8")
    data = contents

    def run(_ctx: Context) -> Action | None:
        path = get_temp_filename()
        return do_with_cleanup(
            do_try(do_delete_file(path)),
            sequence(
                _do_raw_upload(io.BytesIO(data), path),
                do_exec(f"{interpreter} {path}"),
            ),
        )

    return ActionFunc(run)


def do_add_leftover(path: str) -> Action:
    """Register a remote file for deletion by `do_cleanup_leftovers`."""

    def run(ctx: Context) -> Action | None:
        ctx.add_leftover(path)
        return None

    return ActionFunc(run)


def do_cleanup_leftovers() -> Action:
    """Remove every registered leftover, ignoring failures."""

    def run(ctx: Context) -> Action | None:
        leftovers = ctx.drain_leftovers()
        if not leftovers:
            return NO_OP
        logger.debug("Removing leftovers", extra={"count": len(leftovers)})
        return sequence(*(do_try(do_delete_file(p)) for p in leftovers))

    return ActionFunc(run)
