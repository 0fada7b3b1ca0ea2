"""
Git Command Runner

Thin wrapper around the git executable for the operations the web UI mirror
needs: clone, fetch, ancestry checks, ref updates and tree export.
"""

import io
import os
import logging
import subprocess
import tarfile
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class GitCommandError(Exception):
    """Raised when a git command exits non-zero or times out"""

    def __init__(self, args: List[str], returncode: Optional[int], output: str,
                 timed_out: bool = False):
        self.args_list = list(args)
        self.returncode = returncode
        self.output = output
        self.timed_out = timed_out
        if timed_out:
            message = f"Git command timed out: {' '.join(args)}"
        else:
            message = f"Git command failed ({returncode}): {' '.join(args)}\n{output}"
        super().__init__(message)


def _git_env() -> dict:
    env = dict(os.environ)
    # Never block on a credential prompt
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def run_git(args: List[str], cwd: Optional[Path] = None,
            timeout: Optional[float] = None,
            ok_codes: tuple = (0,)) -> subprocess.CompletedProcess:
    """
    Run `git <args>` and return the completed process (stdout as bytes).

    Raises:
        GitCommandError: exit code not in ok_codes, or timeout
    """
    cmd = ["git"] + list(args)
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            timeout=timeout,
            env=_git_env(),
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(cmd, None, "", timed_out=True) from e

    if result.returncode not in ok_codes:
        stderr = result.stderr.decode("utf-8", "replace").strip()
        stdout = result.stdout.decode("utf-8", "replace").strip()
        raise GitCommandError(cmd, result.returncode, stderr or stdout)
    return result


class GitRepository:
    """
    A local clone.

    `timeout` bounds the commands that talk to the network (clone, fetch);
    local plumbing commands run unbounded.
    """

    def __init__(self, path: Path, timeout: Optional[float] = None):
        self.path = Path(path)
        self.timeout = timeout

    @classmethod
    def clone(cls, url: str, destination: Path, branch: Optional[str] = None,
              timeout: Optional[float] = None) -> 'GitRepository':
        """
        Clone without checking out a working tree; trees are exported on
        demand with export().
        """
        args = ["clone", "--quiet", "--no-checkout"]
        if branch:
            args += ["--branch", branch]
        args += [url, str(destination)]
        run_git(args, timeout=timeout)
        return cls(destination, timeout=timeout)

    def _run(self, args: List[str], network: bool = False, ok_codes: tuple = (0,)):
        return run_git(
            args,
            cwd=self.path,
            timeout=self.timeout if network else None,
            ok_codes=ok_codes,
        )

    def set_remote_url(self, remote: str, url: str) -> None:
        self._run(["remote", "set-url", remote, url])

    def fetch(self, remote: str, branch: str) -> None:
        """Fetch a single branch; the result is left in FETCH_HEAD"""
        self._run(["fetch", "--quiet", "--no-tags", remote, branch], network=True)

    def rev_parse(self, ref: str) -> str:
        """Commit id a ref points to"""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        return result.stdout.decode("ascii").strip()

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._run(["merge-base", "--is-ancestor", ancestor, descendant], ok_codes=(0, 1))
        return result.returncode == 0

    def update_ref(self, ref: str, new: str, old: Optional[str] = None,
                   message: str = "") -> None:
        """
        Point a ref at a new commit. With `old`, the update only happens if
        the ref still points there.
        """
        args = ["update-ref"]
        if message:
            args += ["-m", message]
        args += [ref, new]
        if old:
            args.append(old)
        self._run(args)

    def archive(self, commit: str) -> bytes:
        """Tar archive of a commit's tree"""
        return self._run(["archive", "--format=tar", commit]).stdout

    def export(self, commit: str, destination: Path) -> None:
        """
        Write a commit's tree into a directory.

        Raises:
            GitCommandError: if the archive cannot be produced
            tarfile.TarError, OSError: if the tree cannot be written
        """
        data = self.archive(commit)
        destination.mkdir(parents=True, exist_ok=True)
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tar:
            # Keeps symlinks as committed, absolute targets included
            tar.extractall(destination, filter="tar")
