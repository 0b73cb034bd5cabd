import os
import re
from typing import List, Mapping, Optional
from p4wrapper.utils.constants import P4_ENV_PATTERN

_P4_ENV_RE = re.compile(P4_ENV_PATTERN)

def p4_environment(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Return the NAME=VALUE entries of every P4-prefixed environment variable.

    Entries keep the order in which the environment mapping exposes them.

    Args:
        environ: Mapping to read. Defaults to os.environ.
    """
    if environ is None:
        environ = os.environ

    entries = [f"{name}={value}" for name, value in environ.items()]
    return [entry for entry in entries if _P4_ENV_RE.match(entry)]
