from __future__ import annotations

import datetime as dt
import os
import subprocess
from pathlib import Path

import pytest

from grit import git as git_module
from grit.analysis_run import run_bydate, run_effort, run_fame
from grit.config import RunConfig
from grit.errors import DataSourceUnreadable, InvalidRef
from grit.git import GitDataSource, parse_blame_porcelain, parse_log_stream, parse_numstat
from grit.identity import AuthorResolver
from grit.models import Author

ALICE = ("Alice", "alice@example.com")
BOB = ("Bob", "bob@example.com")


def _run(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=True, capture_output=True, text=True)
    return proc.stdout


def _env(author: tuple[str, str], date: str) -> dict[str, str]:
    env = os.environ.copy()
    env["GIT_AUTHOR_NAME"], env["GIT_AUTHOR_EMAIL"] = author
    env["GIT_COMMITTER_NAME"], env["GIT_COMMITTER_EMAIL"] = author
    env["GIT_AUTHOR_DATE"] = date
    env["GIT_COMMITTER_DATE"] = date
    return env


def _commit_file(*, repo: Path, filename: str, content: str | bytes, author: tuple[str, str], author_date: str) -> None:
    p = repo / filename
    p.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        p.write_bytes(content)
    else:
        p.write_text(content, encoding="utf-8")
    _run(["git", "add", filename], cwd=repo)
    _run(["git", "commit", "-q", "-m", f"update {filename}"], cwd=repo, env=_env(author, author_date))


def _init(repo: Path) -> None:
    repo.mkdir()
    _run(["git", "init", "-q"], cwd=repo)
    _run(["git", "config", "user.name", "Test User"], cwd=repo)
    _run(["git", "config", "user.email", "test@example.com"], cwd=repo)
    _run(["git", "config", "commit.gpgsign", "false"], cwd=repo)


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    r = tmp_path / "r"
    _init(r)
    _commit_file(repo=r, filename="x.txt", content="1\n2\n3\n", author=ALICE, author_date="2023-01-02T10:00:00+0000")
    _commit_file(repo=r, filename="y.txt", content="a\nb\n", author=BOB, author_date="2023-01-03T10:00:00+0000")
    _commit_file(repo=r, filename="x.txt", content="1\n2\nthree\n", author=ALICE, author_date="2023-01-05T10:00:00+0000")
    return r


def test_list_commits_reads_authors_days_and_paths(repo: Path) -> None:
    src = GitDataSource(repo)
    commits = src.list_commits("HEAD")
    assert [c.author_key for c in commits] == ["Alice", "Bob", "Alice"]
    assert [c.day for c in commits] == [dt.date(2023, 1, 5), dt.date(2023, 1, 3), dt.date(2023, 1, 2)]
    assert [c.paths for c in commits] == [("x.txt",), ("y.txt",), ("x.txt",)]
    assert commits[0].author == Author(name="Alice", email="alice@example.com")


def test_list_commits_respects_inclusive_day_bounds(repo: Path) -> None:
    src = GitDataSource(repo)
    commits = src.list_commits("HEAD", dt.date(2023, 1, 3), dt.date(2023, 1, 5))
    assert [c.day for c in commits] == [dt.date(2023, 1, 5), dt.date(2023, 1, 3)]


def test_resolve_ref(repo: Path) -> None:
    src = GitDataSource(repo)
    sha = src.resolve_ref("HEAD")
    assert len(sha) == 40
    with pytest.raises(InvalidRef):
        src.resolve_ref("does-not-exist")


def test_diff_stats_and_blame(repo: Path) -> None:
    src = GitDataSource(repo)
    latest = src.list_commits("HEAD")[0]
    assert [(c.path, c.lines_added, c.lines_removed, c.binary) for c in src.diff_stats(latest)] == [("x.txt", 1, 1, False)]
    assert src.blame("x.txt", "HEAD") == [(Author("Alice", "alice@example.com"), 3)]


def test_tree_files_marks_binaries(repo: Path) -> None:
    _commit_file(repo=repo, filename="img/logo.bin", content=b"\x00\x01\x02\x00", author=BOB, author_date="2023-01-06T10:00:00+0000")
    src = GitDataSource(repo)
    assert src.tree_files("HEAD") == {"x.txt": False, "y.txt": False, "img/logo.bin": True}
    latest = src.list_commits("HEAD")[0]
    assert [(c.path, c.binary) for c in src.diff_stats(latest)] == [("img/logo.bin", True)]


def test_tree_files_only_diffs_requested_paths(repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _commit_file(repo=repo, filename="img/logo.bin", content=b"\x00\x01\x02\x00", author=BOB, author_date="2023-01-06T10:00:00+0000")
    calls: list[list[str]] = []
    real_run_git = git_module.run_git

    def recording_run_git(args, cwd, timeout_s=None, input_text=None):
        calls.append(list(args))
        return real_run_git(args, cwd, timeout_s=timeout_s, input_text=input_text)

    monkeypatch.setattr(git_module, "run_git", recording_run_git)
    monkeypatch.setattr(git_module, "PATHSPEC_BATCH", 1)

    src = GitDataSource(repo)
    assert src.tree_files("HEAD", ["x.txt", "img/logo.bin", "gone.txt"]) == {"x.txt": False, "img/logo.bin": True}
    diffs = [c for c in calls if c[0] == "diff"]
    assert len(diffs) == 2
    named = {arg for c in diffs for arg in c[c.index("--") + 1 :]}
    assert named == {":(literal)x.txt", ":(literal)img/logo.bin"}

    calls.clear()
    assert src.tree_files("HEAD", ["gone.txt"]) == {}
    assert [c[0] for c in calls] == ["ls-tree"]


def test_blame_of_missing_path_is_unreadable(repo: Path) -> None:
    with pytest.raises(DataSourceUnreadable):
        GitDataSource(repo).blame("missing.txt", "HEAD")


def test_commit_day_uses_utc(tmp_path: Path) -> None:
    r = tmp_path / "tz"
    _init(r)
    # Thursday evening in -0800 is Friday in UTC.
    _commit_file(repo=r, filename="a.txt", content="a\n", author=ALICE, author_date="2023-01-05T23:30:00-0800")
    [c] = GitDataSource(r).list_commits("HEAD")
    assert c.day == dt.date(2023, 1, 6)


def test_merge_commits_are_opt_in(repo: Path) -> None:
    base = _run(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=repo).strip()
    _run(["git", "checkout", "-q", "-b", "feature"], cwd=repo)
    _commit_file(repo=repo, filename="z.txt", content="z\n", author=BOB, author_date="2023-01-06T10:00:00+0000")
    _run(["git", "checkout", "-q", base], cwd=repo)
    _commit_file(repo=repo, filename="w.txt", content="w\n", author=ALICE, author_date="2023-01-06T11:00:00+0000")
    _run(["git", "merge", "-q", "--no-ff", "-m", "merge feature", "feature"], cwd=repo, env=_env(ALICE, "2023-01-07T10:00:00+0000"))

    assert len(GitDataSource(repo).list_commits("HEAD")) == 5
    with_merges = GitDataSource(repo, include_merges=True).list_commits("HEAD")
    assert len(with_merges) == 6
    merge = with_merges[0]
    assert merge.paths == ("z.txt",)


def test_aliases_apply_to_log_and_blame(repo: Path) -> None:
    resolver = AuthorResolver.from_aliases({"alice@example.com": "A. Person"})
    src = GitDataSource(repo, resolver=resolver)
    report = run_fame(src, RunConfig(repo=repo, threads=2, author_aliases=(("alice@example.com", "A. Person"),)))
    assert [r.author for r in report.rows] == ["A. Person", "Bob"]
    assert report.rows[0].loc == 3


def test_engine_end_to_end_on_real_repo(repo: Path) -> None:
    src = GitDataSource(repo)
    cfg = RunConfig(repo=repo, threads=3, start_date=dt.date(2023, 1, 2), end_date=dt.date(2023, 1, 5))

    points = run_bydate(src, cfg)
    assert [(p.date_iso, p.count) for p in points] == [
        ("2023-01-02", 1),
        ("2023-01-03", 1),
        ("2023-01-04", 0),
        ("2023-01-05", 1),
    ]

    report = run_fame(src, cfg)
    assert [(r.author, r.files, r.commits, r.loc) for r in report.rows] == [("Alice", 1, 2, 3), ("Bob", 1, 1, 2)]
    assert (report.totals.files, report.totals.commits, report.totals.loc) == (2, 3, 5)

    rows = run_effort(src, cfg)
    assert [(r.path, r.commits, r.active_days) for r in rows] == [("x.txt", 2, 2), ("y.txt", 1, 1)]


def test_parse_log_stream_rejects_malformed_headers() -> None:
    with pytest.raises(DataSourceUnreadable):
        parse_log_stream("@@@abc\tonly-two-fields\n", AuthorResolver())
    with pytest.raises(DataSourceUnreadable):
        parse_log_stream("@@@abc\tA\ta@example.com\tnot-a-date\n", AuthorResolver())


def test_parse_log_stream_deduplicates_paths() -> None:
    text = "@@@s1\tA\ta@example.com\t2023-01-02T10:00:00+00:00\n\nx.txt\nx.txt\ny.txt\n@@@s2\t\tb@example.com\t2023-01-03T10:00:00Z\n"
    commits = parse_log_stream(text, AuthorResolver())
    assert [(c.sha, c.author_key, c.paths) for c in commits] == [("s1", "A", ("x.txt", "y.txt")), ("s2", "b@example.com", ())]


def test_parse_numstat() -> None:
    changes = parse_numstat("3\t1\tsrc/a.py\n-\t-\timg.png\nbogus line\n")
    assert [(c.path, c.lines_added, c.lines_removed, c.binary) for c in changes] == [
        ("src/a.py", 3, 1, False),
        ("img.png", 0, 0, True),
    ]


def test_parse_blame_porcelain() -> None:
    text = "\n".join(
        [
            "aaaa 1 1 1",
            "author Alice",
            "author-mail <alice@example.com>",
            "filename x.txt",
            "\tfirst line",
            "bbbb 2 2 1",
            "author Bob",
            "author-mail <bob@example.com>",
            "filename x.txt",
            "\tsecond line",
            "aaaa 3 3 1",
            "author Alice",
            "author-mail <alice@example.com>",
            "filename x.txt",
            "\tthird line",
        ]
    )
    assert parse_blame_porcelain(text) == [(Author("Alice", "alice@example.com"), 2), (Author("Bob", "bob@example.com"), 1)]
