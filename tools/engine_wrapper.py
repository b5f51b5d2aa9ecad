#!/usr/bin/env python3
"""Launch a UCI engine behind a thin wrapper.

Usage: engine_wrapper.py [--filter] /absolute/path/to/engine [engine args]

The wrapper echoes stdin → child stdin unchanged. With ``--filter`` it only
forwards stdout lines that look like UCI output (id, option, info,
bestmove, ...), which keeps engines with noisy debug prints usable.

If the engine cannot be started the wrapper prints the reason followed by
the ``kill`` control line and exits with status 127, so a driver waiting
for ``uciok`` gives up at once instead of running out its timeout.
"""
from __future__ import annotations

import re
import subprocess
import sys
import threading

UCI_RE = re.compile(
    r"^(id|option|uciok|readyok|bestmove|info|copyprotection|registration|Stockfish)", re.I
)
CONTROL_LINE = "kill"
EXEC_FAILED = 127


def start_child(cmd: list[str]) -> subprocess.Popen:
    return subprocess.Popen(
        cmd,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
        close_fds=True,
    )


def pump_stdin(child: subprocess.Popen) -> None:
    try:
        for line in sys.stdin:
            if child.poll() is not None:
                break
            child.stdin.write(line)
            child.stdin.flush()
    except BrokenPipeError:
        pass
    finally:
        try:
            child.stdin.close()
        except OSError:
            pass


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    only_uci = bool(args) and args[0] == "--filter"
    if only_uci:
        args = args[1:]
    if not args:
        print("Usage: engine_wrapper.py [--filter] /path/to/engine [args]", file=sys.stderr)
        return 2

    try:
        child = start_child(args)
    except OSError as exc:
        sys.stdout.write(f"exec({args[0]}) failed: {exc.strerror or exc}\n")
        sys.stdout.write(CONTROL_LINE + "\n")
        sys.stdout.flush()
        return EXEC_FAILED

    threading.Thread(target=pump_stdin, args=(child,), daemon=True).start()

    try:
        for line in child.stdout:
            if only_uci and not UCI_RE.match(line.lstrip()):
                continue
            sys.stdout.write(line)
            sys.stdout.flush()
    except KeyboardInterrupt:
        child.terminate()
    return child.wait(timeout=5)


if __name__ == "__main__":
    sys.exit(main())
