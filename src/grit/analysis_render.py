from __future__ import annotations

from collections.abc import Sequence

from .models import EffortRow, FameReport


def fmt_int(n: int) -> str:
    return f"{int(n):,}"


def fmt_pct(p: float) -> str:
    return f"{float(p):.1f}"


def trunc(s: str, max_len: int) -> str:
    if len(s) <= max_len:
        return s
    if max_len <= 1:
        return s[:max_len]
    return s[: max_len - 1] + "…"


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]], *, align_right: Sequence[bool] | None = None) -> str:
    """Plain ASCII table: title row, rule, then one line per row."""
    if align_right is None:
        align_right = [False] * len(headers)
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def line(cells: Sequence[str]) -> str:
        parts = []
        for i, cell in enumerate(cells):
            parts.append(cell.rjust(widths[i]) if align_right[i] else cell.ljust(widths[i]))
        return " | ".join(parts).rstrip()

    rule = "-+-".join("-" * w for w in widths)
    out = [line(headers), rule]
    out.extend(line(r) for r in rows)
    return "\n".join(out) + "\n"


def render_fame_table(report: FameReport, *, author_width: int = 40) -> str:
    headers = ["Author", "Files", "Commits", "LOC", "Distribution (%)"]
    rows = []
    for r in report.rows:
        dist = f"{fmt_pct(r.files_pct):<5} / {fmt_pct(r.commits_pct):<5} / {fmt_pct(r.loc_pct):<5}"
        rows.append([trunc(r.author, author_width), fmt_int(r.files), fmt_int(r.commits), fmt_int(r.loc), dist])
    table = render_table(headers, rows, align_right=[False, True, True, True, False])
    t = report.totals
    footer = f"Total: {fmt_int(t.files)} files, {fmt_int(t.commits)} commits, {fmt_int(t.loc)} LOC\n"
    return table + footer


def render_effort_table(rows: Sequence[EffortRow], *, path_width: int = 80) -> str:
    headers = ["Path", "Commits", "Active days"]
    body = [[trunc(r.path, path_width), fmt_int(r.commits), fmt_int(r.active_days)] for r in rows]
    return render_table(headers, body, align_right=[False, True, True])
