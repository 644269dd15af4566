"""Tagged diagnostic output.

Lines look like ``[ENGINE] Execution order: ['a', 'b']`` and always go to
stderr, which keeps stdout free for CLI output and the RPC protocol.
"""

from __future__ import annotations

import sys


def trace(tag: str, message: str, *, enabled: bool = True) -> None:
    if not enabled:
        return
    sys.stderr.write(f"[{tag}] {message}\n")
    sys.stderr.flush()
