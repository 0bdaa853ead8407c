"""Action-orchestration engine.

This package provides first-class types for:
- Actions (no-op, error, ordered list, deferred function) and `apply`
- Checkers, optionally memoized per context
- Combinators: conditionals, try, retry, guaranteed cleanup
- Remote and local command execution with streamed output
- Temporary remote files and leftover tracking

Workflows are strictly sequential: actions in a list run one after the other,
left to right, and the first error stops the list.
"""

from kubeadm_provisioner.provisioner.workflow.actions import (
    NO_OP,
    Action,
    ActionError,
    ActionFunc,
    ActionList,
    NoOp,
    apply,
    fatal_error,
    is_error,
    is_fatal,
    sequence,
)
from kubeadm_provisioner.provisioner.workflow.checkers import (
    CheckError,
    Checker,
    CheckerFunc,
    check_and,
    check_binary_exists,
    check_exec,
    check_file_exists,
    check_file_exists_once,
    check_local_file_exists,
    check_not,
    check_once,
    check_or,
)
from kubeadm_provisioner.provisioner.workflow.combinators import (
    Retry,
    do_if,
    do_if_else,
    do_retry,
    do_try,
    do_with_cleanup,
)
from kubeadm_provisioner.provisioner.workflow.context import (
    BufferOutput,
    Context,
    LoggerOutput,
    OutputSink,
    StreamOutput,
)
from kubeadm_provisioner.provisioner.workflow.exec import (
    do_exec,
    do_local_exec,
    do_sending_exec_output_to,
)
from kubeadm_provisioner.provisioner.workflow.files import (
    do_add_leftover,
    do_cleanup_leftovers,
    do_delete_file,
    do_delete_local_file,
    do_download_file,
    do_download_file_to_sink,
    do_exec_script,
    do_mkdir,
    do_move_file,
    do_upload_bytes_to_file,
    do_upload_file_to_file,
    do_upload_reader_to_file,
    get_temp_filename,
    is_temp_filename,
)
from kubeadm_provisioner.provisioner.workflow.messages import (
    do_message,
    do_message_debug,
    do_message_info,
    do_message_warn,
)

__all__ = [
    "NO_OP",
    "Action",
    "ActionError",
    "ActionFunc",
    "ActionList",
    "BufferOutput",
    "CheckError",
    "Checker",
    "CheckerFunc",
    "Context",
    "LoggerOutput",
    "NoOp",
    "OutputSink",
    "Retry",
    "StreamOutput",
    "apply",
    "check_and",
    "check_binary_exists",
    "check_exec",
    "check_file_exists",
    "check_file_exists_once",
    "check_local_file_exists",
    "check_not",
    "check_once",
    "check_or",
    "do_add_leftover",
    "do_cleanup_leftovers",
    "do_delete_file",
    "do_delete_local_file",
    "do_download_file",
    "do_download_file_to_sink",
    "do_exec",
    "do_exec_script",
    "do_if",
    "do_if_else",
    "do_local_exec",
    "do_message",
    "do_message_debug",
    "do_message_info",
    "do_message_warn",
    "do_mkdir",
    "do_move_file",
    "do_retry",
    "do_sending_exec_output_to",
    "do_try",
    "do_upload_bytes_to_file",
    "do_upload_file_to_file",
    "do_upload_reader_to_file",
    "do_with_cleanup",
    "fatal_error",
    "get_temp_filename",
    "is_error",
    "is_fatal",
    "is_temp_filename",
    "sequence",
]
