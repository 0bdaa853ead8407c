"""Unit tests for remote file actions."""

from __future__ import annotations

from pathlib import Path

import pytest

from kubeadm_provisioner.provisioner.transport.base import TransportError
from kubeadm_provisioner.provisioner.workflow.actions import (
    NO_OP,
    ActionError,
    apply,
    sequence,
)
from kubeadm_provisioner.provisioner.workflow.context import BufferOutput, Context
from kubeadm_provisioner.provisioner.workflow.files import (
    do_add_leftover,
    do_cleanup_leftovers,
    do_delete_local_file,
    do_download_file,
    do_download_file_to_sink,
    do_exec_script,
    do_upload_bytes_to_file,
    do_upload_file_to_file,
    get_temp_filename,
    is_temp_filename,
)


def test_temp_filenames_are_distinct_and_recognized() -> None:
    first = get_temp_filename()
    second = get_temp_filename()

    assert first != second
    assert is_temp_filename(first)
    assert is_temp_filename(second)


@pytest.mark.parametrize(
    "path",
    [
        "/tmp/something.tmp",
        "/etc/kubernetes/admin.conf",
        "/var/tmp/kubeadm-provisioner-0123456789abcdef.tmp",
        "/tmp/kubeadm-provisioner-0123456789abcdef.tmp.bak",
        "",
    ],
)
def test_foreign_paths_are_not_temp_filenames(path: str) -> None:
    assert not is_temp_filename(path)


def test_upload_bytes_goes_through_a_temporary_file(ctx: Context, transport) -> None:
    res = apply(do_upload_bytes_to_file("key: value\n", "/etc/kubeadm/config.yaml"), ctx)

    assert res is NO_OP
    [(tmp, data)] = transport.uploads.items()
    assert is_temp_filename(tmp)
    assert data == b"key: value\n"
    assert transport.commands == [
        "mkdir -p '/etc/kubeadm' 2>&1",
        f"mv -f '{tmp}' '/etc/kubeadm/config.yaml' 2>&1",
        f"rm -f '{tmp}' 2>&1",
    ]


def test_upload_bytes_can_be_applied_twice(ctx: Context, transport) -> None:
    action = do_upload_bytes_to_file(b"payload", "/etc/x.conf")

    apply(action, ctx)
    apply(action, ctx)

    assert list(transport.uploads.values()) == [b"payload", b"payload"]


def test_upload_removes_the_temporary_file_when_the_move_fails(
    ctx: Context, transport
) -> None:
    transport.respond().respond(exit_status=1)

    res = apply(do_upload_bytes_to_file(b"x", "/etc/x.conf"), ctx)

    assert isinstance(res, ActionError)
    assert transport.commands[-1].startswith("rm -f '/tmp/kubeadm-provisioner-")


def test_upload_failure_is_reported(ctx: Context, transport) -> None:
    transport.upload_error = TransportError("disk full")

    res = apply(do_upload_bytes_to_file(b"x", "/etc/x.conf"), ctx)

    assert isinstance(res, ActionError)
    assert "disk full" in res.message
    assert len(transport.commands) == 1
    assert transport.commands[0].startswith("rm -f ")


def test_upload_missing_local_file(ctx: Context, transport, tmp_path: Path) -> None:
    res = apply(do_upload_file_to_file(tmp_path / "missing.yaml", "/etc/x.yaml"), ctx)

    assert isinstance(res, ActionError)
    assert "does not exist" in res.message
    assert transport.commands == []
    assert transport.uploads == {}


def test_upload_local_file(ctx: Context, transport, tmp_path: Path) -> None:
    local = tmp_path / "kubeconfig"
    local.write_bytes(b"apiVersion: v1\n")

    assert apply(do_upload_file_to_file(local, "/root/.kube/config"), ctx) is NO_OP
    assert list(transport.uploads.values()) == [b"apiVersion: v1\n"]


def test_exec_script_uploads_runs_and_removes(
    ctx: Context, transport, output: BufferOutput
) -> None:
    transport.respond("script ran\n")

    res = apply(do_exec_script("echo 'script ran'\n"), ctx)

    assert res is NO_OP
    [(path, data)] = transport.uploads.items()
    assert is_temp_filename(path)
    assert data == b"echo 'script ran'\n"
    assert transport.commands == [f"sh {path} 2>&1", f"rm -f '{path}' 2>&1"]
    assert output.lines == ["script ran"]


def test_exec_script_uses_a_new_path_per_application(ctx: Context, transport) -> None:
    action = do_exec_script("true", interpreter="bash")

    apply(action, ctx)
    apply(action, ctx)

    assert len(transport.uploads) == 2
    assert transport.commands[0].startswith("bash /tmp/kubeadm-provisioner-")


def test_exec_script_failure_still_removes_script(ctx: Context, transport) -> None:
    transport.respond(exit_status=4)

    res = apply(do_exec_script("exit 4"), ctx)

    assert isinstance(res, ActionError)
    assert transport.commands[1].startswith("rm -f ")


def test_download_file_to_sink(ctx: Context, transport, output: BufferOutput) -> None:
    transport.respond("line 1\nline 2\n")
    buf = BufferOutput()

    assert apply(do_download_file_to_sink("/etc/hosts", buf), ctx) is NO_OP

    assert transport.commands == ["cat '/etc/hosts' 2>&1"]
    assert buf.lines == ["line 1", "line 2"]
    assert output.lines == []


def test_download_file(ctx: Context, transport, tmp_path: Path) -> None:
    transport.respond("apiVersion: v1\nkind: Config\n")
    dest = tmp_path / "out" / "admin.conf"

    assert apply(do_download_file("/etc/kubernetes/admin.conf", dest), ctx) is NO_OP

    assert dest.read_text(encoding="utf-8") == "apiVersion: v1\nkind: Config\n"


def test_failed_download_leaves_no_local_file(ctx: Context, transport, tmp_path: Path) -> None:
    transport.respond("partial content\n", exit_status=1)
    dest = tmp_path / "admin.conf"

    res = apply(do_download_file("/etc/kubernetes/admin.conf", dest), ctx)

    assert isinstance(res, ActionError)
    assert list(tmp_path.iterdir()) == []


def test_failed_download_keeps_the_previous_file(
    ctx: Context, transport, tmp_path: Path
) -> None:
    transport.respond(exit_status=1)
    dest = tmp_path / "admin.conf"
    dest.write_text("previous\n", encoding="utf-8")

    apply(do_download_file("/etc/kubernetes/admin.conf", dest), ctx)

    assert dest.read_text(encoding="utf-8") == "previous\n"
    assert list(tmp_path.iterdir()) == [dest]


def test_delete_local_file(ctx: Context, tmp_path: Path) -> None:
    target = tmp_path / "leftover"
    target.write_text("x", encoding="utf-8")

    assert apply(do_delete_local_file(target), ctx) is NO_OP
    assert not target.exists()
    assert isinstance(apply(do_delete_local_file(target), ctx), ActionError)


def test_cleanup_leftovers_removes_each_once_and_ignores_failures(
    ctx: Context, transport
) -> None:
    transport.respond(exit_status=1)
    registration = sequence(
        do_add_leftover("/tmp/a"),
        do_add_leftover("/tmp/b"),
        do_add_leftover("/tmp/a"),
    )

    apply(registration, ctx)
    res = apply(do_cleanup_leftovers(), ctx)

    assert res is NO_OP
    assert transport.commands == ["rm -f '/tmp/a' 2>&1", "rm -f '/tmp/b' 2>&1"]
    assert ctx.leftovers == []

    assert apply(do_cleanup_leftovers(), ctx) is NO_OP
    assert len(transport.commands) == 2
