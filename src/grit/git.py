from __future__ import annotations

import datetime as dt
import logging
import subprocess
from pathlib import Path

from .errors import DataSourceUnreadable, InvalidRef
from .identity import AuthorResolver
from .models import Author, CommitRecord, FileChange, utc_day

logger = logging.getLogger(__name__)

COMMIT_MARKER = "@@@"
PATHSPEC_BATCH = 500


def run_git(args: list[str], cwd: Path, timeout_s: int | None = None, input_text: str | None = None) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", "-c", "core.quotepath=off", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        encoding="utf-8",
        errors="replace",
        input=input_text,
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def parse_iso_timestamp(value: str) -> dt.datetime:
    s = (value or "").strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    d = dt.datetime.fromisoformat(s)
    if d.tzinfo is None:
        d = d.replace(tzinfo=dt.timezone.utc)
    return d


def parse_log_stream(text: str, resolver: AuthorResolver) -> list[CommitRecord]:
    """
    Parse `git log --name-only` output written with a `@@@%H\\t%aN\\t%aE\\t%aI` header
    per commit followed by one touched path per line.
    """
    commits: list[CommitRecord] = []
    sha = ""
    author = Author()
    timestamp: dt.datetime | None = None
    paths: list[str] = []

    def flush() -> None:
        if not sha or timestamp is None:
            return
        commits.append(
            CommitRecord(
                sha=sha,
                author=author,
                author_key=resolver.key(author),
                timestamp=timestamp,
                paths=tuple(dict.fromkeys(paths)),
            )
        )

    for raw_line in text.splitlines():
        line = raw_line.rstrip("\n")
        if not line:
            continue
        if line.startswith(COMMIT_MARKER):
            flush()
            parts = line[len(COMMIT_MARKER) :].split("\t", 3)
            if len(parts) != 4:
                raise DataSourceUnreadable("malformed git log header", {"line": line[:200]})
            sha = parts[0]
            author = Author(name=parts[1], email=parts[2])
            try:
                timestamp = parse_iso_timestamp(parts[3])
            except ValueError:
                raise DataSourceUnreadable("unreadable commit timestamp", {"commit": sha, "value": parts[3]}) from None
            paths = []
            continue
        paths.append(line.strip())
    flush()
    return commits


def parse_numstat(text: str) -> list[FileChange]:
    changes: list[FileChange] = []
    for raw_line in text.splitlines():
        line = raw_line.rstrip("\n")
        if not line:
            continue
        parts = line.split("\t", 2)
        if len(parts) < 3:
            continue
        added_s, deleted_s, path = parts
        if added_s == "-" or deleted_s == "-":
            changes.append(FileChange(path=path, binary=True))
            continue
        try:
            added = int(added_s)
            deleted = int(deleted_s)
        except ValueError:
            continue
        changes.append(FileChange(path=path, lines_added=added, lines_removed=deleted))
    return changes


def parse_blame_porcelain(text: str) -> list[tuple[Author, int]]:
    """Summarize `git blame --line-porcelain` output as (author, lines) pairs in first-seen order."""
    counts: dict[Author, int] = {}
    name = ""
    email = ""
    for line in text.splitlines():
        if line.startswith("\t"):
            a = Author(name=name, email=email.strip("<>"))
            counts[a] = counts.get(a, 0) + 1
            continue
        if line.startswith("author "):
            name = line[len("author ") :]
        elif line.startswith("author-mail "):
            email = line[len("author-mail ") :]
    return list(counts.items())


class GitDataSource:
    """
    Read-only access to a repository through the git CLI.

    Each call runs its own git process, so every method may be called from
    several worker threads at once.
    """

    def __init__(self, repo: Path, *, resolver: AuthorResolver | None = None, include_merges: bool = False) -> None:
        self.repo = Path(repo)
        self.resolver = resolver or AuthorResolver()
        self.include_merges = include_merges

    def _git(self, args: list[str], *, context: dict[str, str] | None = None, input_text: str | None = None) -> str:
        logger.debug("git %s", " ".join(args))
        try:
            code, out, err = run_git(args, cwd=self.repo, input_text=input_text)
        except OSError as e:
            raise DataSourceUnreadable(f"failed to run git: {e}", dict(context or {})) from e
        if code != 0:
            details = dict(context or {})
            details["exit"] = str(code)
            raise DataSourceUnreadable(f"git {args[0]} failed: {err.strip()[:500]}", details)
        return out

    def resolve_ref(self, ref: str) -> str:
        try:
            code, out, err = run_git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd=self.repo)
        except OSError as e:
            raise InvalidRef(f"failed to run git: {e}", {"ref": ref}) from e
        if code != 0 or not out.strip():
            raise InvalidRef(f"ref not found: {ref!r}", {"repo": str(self.repo), "stderr": err.strip()[:200]})
        return out.strip()

    def list_commits(self, ref: str, since: dt.date | None = None, until: dt.date | None = None) -> list[CommitRecord]:
        cmd = [
            "log",
            "--no-renames",
            "--name-only",
            "--no-color",
            f"--format={COMMIT_MARKER}%H%x09%aN%x09%aE%x09%aI",
            ref,
            "--",
        ]
        if self.include_merges:
            cmd.insert(1, "--diff-merges=first-parent")
        else:
            cmd.insert(1, "--no-merges")
        out = self._git(cmd, context={"ref": ref})
        commits = parse_log_stream(out, self.resolver)
        selected = [
            c
            for c in commits
            if (since is None or utc_day(c.timestamp) >= since) and (until is None or utc_day(c.timestamp) <= until)
        ]
        logger.info("listed %d commits on %s (%d in range)", len(commits), ref, len(selected))
        return selected

    def diff_stats(self, commit: CommitRecord) -> list[FileChange]:
        cmd = ["show", "--no-renames", "--numstat", "--no-color", "--format=", commit.sha]
        if self.include_merges:
            # merges diff against their first parent
            cmd.insert(1, "--diff-merges=first-parent")
        out = self._git(cmd, context={"commit": commit.sha})
        return parse_numstat(out)

    def blame(self, path: str, ref: str) -> list[tuple[Author, int]]:
        out = self._git(["blame", "--line-porcelain", ref, "--", path], context={"path": path, "ref": ref})
        return parse_blame_porcelain(out)

    def tree_files(self, ref: str, paths: list[str] | None = None) -> dict[str, bool]:
        """
        Map regular files at `ref` to whether git treats them as binary.

        With `paths`, the result is limited to those files and only they are
        diffed (in batches of `PATHSPEC_BATCH`), so blob reads follow the
        touched files rather than the size of the tree.
        """
        listing = self._git(["ls-tree", "-r", "-z", "--full-tree", ref], context={"ref": ref})
        files: dict[str, bool] = {}
        for entry in listing.split("\0"):
            if not entry or "\t" not in entry:
                continue
            meta, path = entry.split("\t", 1)
            fields = meta.split()
            if len(fields) < 2 or fields[1] != "blob":
                continue
            files[path] = False

        if paths is None:
            batches: list[list[str]] = [[]]
        else:
            wanted = set(paths)
            files = {p: b for p, b in files.items() if p in wanted}
            present = sorted(files)
            if not present:
                return files
            batches = [present[i : i + PATHSPEC_BATCH] for i in range(0, len(present), PATHSPEC_BATCH)]

        empty_tree = self._git(["hash-object", "-t", "tree", "--stdin"], input_text="").strip()
        for batch in batches:
            cmd = ["diff", "--no-renames", "--numstat", "--no-color", empty_tree, ref]
            if batch:
                cmd += ["--", *(f":(literal){p}" for p in batch)]
            for change in parse_numstat(self._git(cmd, context={"ref": ref})):
                if change.binary and change.path in files:
                    files[change.path] = True
        return files
