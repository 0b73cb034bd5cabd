import os
import stat
import sys
import pytest

# Add repo root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

STUB_SOURCE = '''#!{python}
import os
import signal
import sys

args = sys.argv[1:]
if args and args[0] == "--lines":
    sys.stdout.write("\\n".join(args[1:]))
elif args and args[0] == "--stdin":
    sys.stdout.write(sys.stdin.read())
elif args and args[0] == "--stderr":
    sys.stdout.write("out\\n")
    sys.stdout.flush()
    sys.stderr.write("err\\n")
elif args and args[0] == "--signal":
    sys.stdout.flush()
    os.kill(os.getpid(), signal.SIGTERM)
else:
    sys.stdout.write(" ".join(args))
sys.exit(int(os.environ.get("STUB_EXIT", "0")))
'''

@pytest.fixture
def stub_p4(tmp_path):
    """Create an executable stand-in for p4 that echoes its arguments."""
    path = tmp_path / "bin" / "p4"
    path.parent.mkdir()
    path.write_text(STUB_SOURCE.format(python=sys.executable))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)

@pytest.fixture
def log_dir(tmp_path):
    """Directory the debug log is written to."""
    return tmp_path / "logs"
