from __future__ import annotations

import os
import re
import subprocess

from interactive.paging import PAGE_MAX_CHARS


NO_MAN_PAGE = "No man page available!"
MAN_ARG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.+:@-]*$")


def parse_man_args(text: str) -> list[str]:
    """Section and page names only; options could make man run arbitrary commands."""
    args = str(text or "").split()
    if not args or len(args) > 3:
        raise ValueError("Usage: man [section] <page>")
    for arg in args:
        if not MAN_ARG_RE.match(arg):
            raise ValueError(f"Not a man page name: {arg!r}")
    return args


def split_man_pages(text: str, max_chars: int = PAGE_MAX_CHARS) -> list[str]:
    """Drop the header and footer lines of man output and pack the rest into pages."""
    lines = (text or "").splitlines()
    if len(lines) <= 2:
        return [NO_MAN_PAGE]

    pages: list[str] = []
    buf = ""
    for line in lines[1:-1]:
        if buf and len(buf) + len(line) + 1 > max_chars:
            pages.append(buf)
            buf = ""
        buf += line[:max_chars - 1] + "\n"
    pages.append(buf)
    return pages


def read_man_page(args: list[str], timeout_seconds: float = 15.0) -> str:
    """Blocking; call through asyncio.to_thread."""
    env = dict(os.environ)
    env.setdefault("MANWIDTH", "80")
    env["MANPAGER"] = "cat"
    try:
        proc = subprocess.run(
            ["man", *args],
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout_seconds,
            env=env,
            check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        print(f"[Man] failed running man {' '.join(args)}: {e}")
        return ""
    return proc.stdout or ""
