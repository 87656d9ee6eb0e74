from __future__ import annotations

import csv
import html
import io
import sys
from collections.abc import Sequence
from itertools import groupby
from pathlib import Path

from .models import DatePoint, EffortRow, FameReport, FileDatePoint

SVG_BAR_WIDTH = 12
SVG_BAR_GAP = 2
SVG_CHART_HEIGHT = 160
SVG_MARGIN = 40
SVG_LABEL_HEIGHT = 20


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _csv_text(header: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    for r in rows:
        writer.writerow(r)
    return buf.getvalue()


def fame_csv(report: FameReport) -> str:
    return _csv_text(
        ["author", "files", "commits", "loc", "lines_added", "lines_removed", "files_pct", "commits_pct", "loc_pct"],
        [
            [r.author, r.files, r.commits, r.loc, r.lines_added, r.lines_removed, r.files_pct, r.commits_pct, r.loc_pct]
            for r in report.rows
        ],
    )


def bydate_csv(points: Sequence[DatePoint]) -> str:
    return _csv_text(["date", "count"], [[p.date_iso, p.count] for p in points])


def byfile_csv(points: Sequence[FileDatePoint]) -> str:
    return _csv_text(["path", "date", "count"], [[p.path, p.date_iso, p.count] for p in points])


def effort_csv(rows: Sequence[EffortRow]) -> str:
    return _csv_text(["path", "commits", "active_days"], [[r.path, r.commits, r.active_days] for r in rows])


def _bars(points: Sequence[DatePoint], *, x0: int, y0: int, max_count: int) -> list[str]:
    parts: list[str] = []
    for i, p in enumerate(points):
        h = 0 if max_count <= 0 else int(round(SVG_CHART_HEIGHT * p.count / max_count))
        x = x0 + i * (SVG_BAR_WIDTH + SVG_BAR_GAP)
        parts.append(
            f'<rect x="{x}" y="{y0 + SVG_CHART_HEIGHT - h}" width="{SVG_BAR_WIDTH}" height="{h}" fill="#4a7ebb">'
            f"<title>{html.escape(p.date_iso)}: {p.count}</title></rect>"
        )
    if points:
        parts.append(f'<text x="{x0}" y="{y0 + SVG_CHART_HEIGHT + 14}" font-size="10">{html.escape(points[0].date_iso)}</text>')
        last_x = x0 + (len(points) - 1) * (SVG_BAR_WIDTH + SVG_BAR_GAP)
        parts.append(
            f'<text x="{last_x + SVG_BAR_WIDTH}" y="{y0 + SVG_CHART_HEIGHT + 14}" font-size="10" text-anchor="end">'
            f"{html.escape(points[-1].date_iso)}</text>"
        )
    return parts


def _svg_document(width: int, height: int, body: list[str]) -> str:
    return "\n".join(
        [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}" viewBox="0 0 {width} {height}">',
            '<rect x="0" y="0" width="100%" height="100%" fill="white"/>',
            *body,
            "</svg>",
            "",
        ]
    )


def bydate_svg(points: Sequence[DatePoint], *, title: str = "Commits by date") -> str:
    n = max(1, len(points))
    width = 2 * SVG_MARGIN + n * (SVG_BAR_WIDTH + SVG_BAR_GAP)
    height = 2 * SVG_MARGIN + SVG_CHART_HEIGHT + SVG_LABEL_HEIGHT
    max_count = max((p.count for p in points), default=0)
    body = [f'<text x="{SVG_MARGIN}" y="{SVG_MARGIN - 12}" font-size="14">{html.escape(title)} (max {max_count})</text>']
    body.extend(_bars(points, x0=SVG_MARGIN, y0=SVG_MARGIN, max_count=max_count))
    return _svg_document(width, height, body)


def byfile_svg(points: Sequence[FileDatePoint], *, title: str = "Commits by file and date") -> str:
    """One bar row per path, all rows sharing the same date axis and scale."""
    groups = [
        (path, [DatePoint(date=p.date, count=p.count) for p in grp])
        for path, grp in groupby(points, key=lambda p: p.path)
    ]
    longest = max((len(g) for _, g in groups), default=1)
    max_count = max((p.count for p in points), default=0)
    row_height = SVG_CHART_HEIGHT + SVG_LABEL_HEIGHT + SVG_MARGIN
    width = 2 * SVG_MARGIN + max(1, longest) * (SVG_BAR_WIDTH + SVG_BAR_GAP)
    height = SVG_MARGIN + max(1, len(groups)) * row_height
    body = [f'<text x="{SVG_MARGIN}" y="{SVG_MARGIN - 12}" font-size="14">{html.escape(title)} (max {max_count})</text>']
    for i, (path, series) in enumerate(groups):
        y0 = SVG_MARGIN + i * row_height + SVG_LABEL_HEIGHT
        body.append(f'<text x="{SVG_MARGIN}" y="{y0 - 4}" font-size="12">{html.escape(path)}</text>')
        body.extend(_bars(series, x0=SVG_MARGIN, y0=y0, max_count=max_count))
    return _svg_document(width, height, body)


def html_wrapper(svg_path: Path) -> str:
    return f'<html><head></head><body><img src="{html.escape(svg_path.name)}"/></body></html>\n'


def html_path_for(svg_path: Path) -> Path:
    return svg_path.with_suffix(".html")


def write_text(path: Path, text: str) -> None:
    if path.parent and str(path.parent) not in ("", "."):
        ensure_dir(path.parent)
    path.write_text(text, encoding="utf-8")


def emit(text: str, output_file: Path | None) -> Path | None:
    """Write to `output_file` when given, otherwise to stdout."""
    if output_file is None:
        sys.stdout.write(text)
        sys.stdout.flush()
        return None
    write_text(output_file, text)
    return output_file


def emit_svg(svg: str, output_file: Path, *, with_html: bool) -> list[Path]:
    written = [output_file]
    write_text(output_file, svg)
    if with_html:
        html_file = html_path_for(output_file)
        write_text(html_file, html_wrapper(output_file))
        written.append(html_file)
    return written
