"""
Acquire the raw payload for one collection cycle.

LOCAL locations are executed with no arguments and their stdout is the
payload. Files the kernel won't execute as programs (plain text dumps)
are read as-is instead. REMOTE locations are fetched with a plain GET.

Every call re-runs the script or re-fetches the URL; nothing is cached
between cycles.
"""

from __future__ import annotations

import errno
import logging
import os
import subprocess
from typing import Optional

import httpx

from svr_exporter.errors import SourceExecutionFailed, SourceFetchFailed

log = logging.getLogger(__name__)


def read_local(path: str, timeout: Optional[float] = None) -> bytes:
    _make_executable(path)

    # A bare name would be looked up on $PATH instead of the file we found
    program = path if os.sep in path else os.path.join(os.curdir, path)

    try:
        completed = subprocess.run(
            [program],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        stderr = (e.stderr or b"").decode("utf-8", errors="replace")
        raise SourceExecutionFailed(path, f"timed out after {timeout}s", stderr=stderr) from e
    except OSError as e:
        if e.errno == errno.ENOEXEC:
            log.debug("%s is not executable as a program, reading it as a file", path)
            return _read_file(path)
        raise SourceExecutionFailed(path, e.strerror or str(e)) from e

    if completed.returncode != 0:
        raise SourceExecutionFailed(
            path,
            f"exit status {completed.returncode}",
            stderr=completed.stderr.decode("utf-8", errors="replace"),
            returncode=completed.returncode,
        )

    return completed.stdout


def read_remote(url: str, timeout: Optional[float] = None) -> bytes:
    """GET the url and return the fully buffered body.

    timeout=None means no bound at all, not httpx's 5s default.
    """
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise SourceFetchFailed(url, str(e) or type(e).__name__) from e

    if not response.is_success:
        raise SourceFetchFailed(
            url,
            f"unexpected status {response.status_code}",
            status_code=response.status_code,
        )

    return response.content


def _make_executable(path: str) -> None:
    try:
        os.chmod(path, 0o777)
    except OSError as e:
        log.debug("Could not chmod %s: %s", path, e)


def _read_file(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise SourceExecutionFailed(path, e.strerror or str(e)) from e
