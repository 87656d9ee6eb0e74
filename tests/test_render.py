from __future__ import annotations

import datetime as dt
from pathlib import Path

from grit.analysis_render import fmt_int, render_effort_table, render_fame_table, trunc
from grit.analysis_write import bydate_csv, bydate_svg, byfile_csv, byfile_svg, effort_csv, emit, emit_svg, fame_csv, html_wrapper
from grit.models import DatePoint, EffortRow, FameReport, FameRow, FameTotals, FileDatePoint

D = dt.date


def _report() -> FameReport:
    rows = (
        FameRow("Alice", 1, 2, 3, 4, 1, 50.0, 66.7, 60.0),
        FameRow("Bob, Jr.", 1, 1, 2, 2, 0, 50.0, 33.3, 40.0),
    )
    return FameReport(rows=rows, totals=FameTotals(files=2, commits=3, loc=5))


def test_fmt_int_and_trunc() -> None:
    assert fmt_int(1234567) == "1,234,567"
    assert trunc("abcdef", 4) == "abc…"
    assert trunc("abc", 4) == "abc"
    assert trunc("abc", 1) == "a"


def test_fame_table_layout() -> None:
    lines = render_fame_table(_report()).splitlines()
    assert lines[0].split(" | ") == ["Author  ", "Files", "Commits", "LOC", "Distribution (%)"]
    assert set(lines[1]) <= {"-", "+"}
    assert lines[2].startswith("Alice")
    assert "50.0  / 66.7  / 60.0" in lines[2]
    assert lines[-1] == "Total: 2 files, 3 commits, 5 LOC"


def test_fame_csv_quotes_awkward_names() -> None:
    lines = fame_csv(_report()).splitlines()
    assert lines[2] == '"Bob, Jr.",1,1,2,2,0,50.0,33.3,40.0'


def test_effort_table_and_csv() -> None:
    rows = [EffortRow("a/b.py", 12, 4), EffortRow("c.txt", 1, 1)]
    table = render_effort_table(rows).splitlines()
    assert table[0].split(" | ")[0] == "Path  "
    assert table[2].endswith("12 |           4")
    assert effort_csv(rows).splitlines() == ["path,commits,active_days", "a/b.py,12,4", "c.txt,1,1"]


def test_date_csvs() -> None:
    assert bydate_csv([DatePoint(D(2023, 1, 2), 1), DatePoint(D(2023, 1, 3), 0)]) == "date,count\n2023-01-02,1\n2023-01-03,0\n"
    assert byfile_csv([FileDatePoint("x.txt", D(2023, 1, 2), 2)]) == "path,date,count\nx.txt,2023-01-02,2\n"


def test_bydate_svg_has_one_bar_per_day() -> None:
    points = [DatePoint(D(2023, 1, 2), 1), DatePoint(D(2023, 1, 3), 0), DatePoint(D(2023, 1, 4), 4)]
    svg = bydate_svg(points)
    assert svg.startswith('<svg xmlns="http://www.w3.org/2000/svg"')
    assert svg.count("<title>") == 3
    assert "2023-01-04: 4" in svg
    assert svg.rstrip().endswith("</svg>")


def test_byfile_svg_labels_paths() -> None:
    points = [
        FileDatePoint("a<b>.txt", D(2023, 1, 2), 1),
        FileDatePoint("a<b>.txt", D(2023, 1, 3), 0),
        FileDatePoint("z.txt", D(2023, 1, 2), 2),
        FileDatePoint("z.txt", D(2023, 1, 3), 1),
    ]
    svg = byfile_svg(points)
    assert "a&lt;b&gt;.txt" in svg
    assert "z.txt" in svg
    assert svg.count("<title>") == 4


def test_empty_svg_is_still_a_document() -> None:
    svg = bydate_svg([])
    assert svg.startswith("<svg")
    assert "<title>" not in svg


def test_html_wrapper_embeds_svg_by_name() -> None:
    assert html_wrapper(Path("/tmp/out/chart.svg")) == '<html><head></head><body><img src="chart.svg"/></body></html>\n'


def test_emit_to_file_and_stdout(tmp_path: Path, capsys) -> None:
    target = tmp_path / "nested" / "out.csv"
    assert emit("a,b\n", target) == target
    assert target.read_text(encoding="utf-8") == "a,b\n"
    assert emit("x\n", None) is None
    assert capsys.readouterr().out == "x\n"


def test_emit_svg_with_html(tmp_path: Path) -> None:
    written = emit_svg("<svg/>", tmp_path / "c.svg", with_html=True)
    assert written == [tmp_path / "c.svg", tmp_path / "c.html"]
    assert (tmp_path / "c.html").exists()
    assert emit_svg("<svg/>", tmp_path / "d.svg", with_html=False) == [tmp_path / "d.svg"]
