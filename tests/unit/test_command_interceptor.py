import io
import os
import sys
import pytest
from unittest.mock import MagicMock, patch

# Add repo root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from p4wrapper.command_interceptor import CommandInterceptor
from p4wrapper.errors import LogDirectoryError, LogWriteError, SpawnError, WorkingDirectoryError
from p4wrapper.preferences import Preferences
from p4wrapper.utils.constants import DEBUG_LOG_NAME
from p4wrapper.utils.platforms import PosixPlatform

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="stub client is a POSIX script")

# Mock logger for all tests
mock_logger = MagicMock()

@pytest.fixture(autouse=True)
def mock_logger_fixture():
    with patch('p4wrapper.command_interceptor.logger', mock_logger):
        yield mock_logger

def make_interceptor(executable, log_dir, max_lines=-1, verbose=False, env=None, stdin=b""):
    prefs = Preferences(
        executable_path=executable,
        log_directory=str(log_dir),
        max_output_lines=max_lines,
        verbose=verbose
    )
    environ = dict(os.environ)
    environ.update(env or {})
    return CommandInterceptor(
        prefs=prefs,
        platform=PosixPlatform(),
        environ=environ,
        stdin=io.BytesIO(stdin),
        stdout=io.BytesIO()
    )

def read_log(log_dir):
    with open(os.path.join(str(log_dir), DEBUG_LOG_NAME), 'r', newline='') as f:
        return f.read()

@pytest.mark.parametrize("code", [0, 1, 2, 42])
def test_exit_code_propagated(stub_p4, log_dir, code):
    interceptor = make_interceptor(stub_p4, log_dir, env={"STUB_EXIT": str(code)})
    assert interceptor.intercept_command(["p4", "info"]) == code
    assert f"Exit Status: {code}" in read_log(log_dir)

def test_full_output_relayed_with_trailing_newline(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir)
    interceptor.intercept_command(["p4", "--lines", "foo", "bar", "baz"])
    assert interceptor.stdout.getvalue() == b"foo\nbar\nbaz\n"

def test_output_truncated_to_max_lines(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir, max_lines=2)
    code = interceptor.intercept_command(["p4", "--lines", "foo", "bar", "baz"])

    assert code == 0
    assert interceptor.stdout.getvalue() == b"foo\nbar\n"

    record = read_log(log_dir)
    assert "Full Output:\n\nfoo\nbar\nbaz\n" in record
    assert "Executing: p4 --lines foo bar baz" in record
    duration = int(record.split("Exec Time: ")[1].split(" ms")[0])
    assert duration >= 0

def test_limit_larger_than_output(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir, max_lines=10)
    interceptor.intercept_command(["p4", "--lines", "foo", "bar"])
    assert interceptor.stdout.getvalue() == b"foo\nbar\n"

def test_stderr_merged_into_output(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir)
    interceptor.intercept_command(["p4", "--stderr"])
    assert interceptor.stdout.getvalue() == b"out\nerr\n\n"
    assert "out\nerr\n" in read_log(log_dir)

def test_stdin_relayed_to_child(stub_p4, log_dir):
    change_form = b"Change: new\nDescription:\n\tfix build\n"
    interceptor = make_interceptor(stub_p4, log_dir, stdin=change_form)
    interceptor.intercept_command(["p4", "--stdin"])
    assert interceptor.stdout.getvalue() == change_form + b"\n"

def test_verbose_prefix_passed_but_not_logged(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir, verbose=True)
    interceptor.intercept_command(["p4", "sync", "//depot/main/..."])

    assert interceptor.stdout.getvalue() == b"-v 4 sync //depot/main/...\n"
    assert "Executing: p4 sync //depot/main/...\n" in read_log(log_dir)

def test_only_p4_environment_logged(stub_p4, log_dir):
    env = {"P4PORT": "ssl:perforce:1666", "P4USER": "alice", "NOT_P4": "hidden", "XP4CLIENT": "nope"}
    interceptor = make_interceptor(stub_p4, log_dir, env=env)
    interceptor.intercept_command(["p4", "info"])

    record = read_log(log_dir)
    environment = record.split("P4 Environment:\n\n")[1].split("\n\nFull Output:")[0]
    entries = environment.split("\n")
    assert "P4PORT=ssl:perforce:1666" in entries
    assert "P4USER=alice" in entries
    assert all(entry.startswith("P4") for entry in entries)
    assert "hidden" not in record
    assert "XP4CLIENT" not in record

def test_one_record_per_invocation(stub_p4, log_dir):
    for _ in range(3):
        make_interceptor(stub_p4, log_dir).intercept_command(["p4", "info"])
    assert read_log(log_dir).count("\n----------\n") == 3

def test_record_contains_cwd(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir)
    interceptor.intercept_command(["p4", "info"])
    assert f"CWD: {os.getcwd()}\n" in read_log(log_dir)

def test_signal_exit_code(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir)
    assert interceptor.intercept_command(["p4", "--signal"]) == -1
    assert "Exit Status: -1\n" in read_log(log_dir)

def test_missing_executable_is_fatal(tmp_path, log_dir):
    interceptor = make_interceptor(str(tmp_path / "missing" / "p4"), log_dir)
    with pytest.raises(SpawnError):
        interceptor.intercept_command(["p4", "info"])
    assert not os.path.exists(os.path.join(str(log_dir), DEBUG_LOG_NAME))
    assert interceptor.stdout.getvalue() == b""

def test_log_directory_failure_is_fatal(stub_p4, tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    interceptor = make_interceptor(stub_p4, blocker)
    with pytest.raises(LogDirectoryError):
        interceptor.intercept_command(["p4", "info"])

def test_log_write_failure_skips_relay(stub_p4, log_dir):
    (log_dir / DEBUG_LOG_NAME).mkdir(parents=True)
    interceptor = make_interceptor(stub_p4, log_dir)
    with pytest.raises(LogWriteError):
        interceptor.intercept_command(["p4", "info"])
    assert interceptor.stdout.getvalue() == b""

def test_working_directory_failure_is_fatal(stub_p4, log_dir):
    interceptor = make_interceptor(stub_p4, log_dir)
    with patch('p4wrapper.command_interceptor.os.getcwd', side_effect=FileNotFoundError("gone")):
        with pytest.raises(WorkingDirectoryError):
            interceptor.intercept_command(["p4", "info"])

def test_truncate_output_unlimited(log_dir):
    interceptor = make_interceptor("/usr/local/bin/p4", log_dir, max_lines=0)
    assert interceptor.truncate_output(b"a\nb\nc") == b"a\nb\nc"

def test_resolve_args():
    prefs = Preferences(executable_path="/usr/local/bin/p4", log_directory="/tmp", verbose=True)
    interceptor = CommandInterceptor(prefs=prefs, platform=PosixPlatform(), environ={},
                                     stdin=io.BytesIO(), stdout=io.BytesIO())
    args = ["opened", "-c", "default"]
    assert interceptor.resolve_args(args) == ["-v", "4", "opened", "-c", "default"]
    assert args == ["opened", "-c", "default"]
