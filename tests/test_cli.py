import json

import pytest

from school_timetable_export.cli import main


@pytest.fixture
def batch_file(tmp_path, raw_monday_batch):
    path = tmp_path / "extraction.json"
    path.write_text("```json\n" + json.dumps(raw_monday_batch) + "\n```", encoding="utf-8")
    return path


def test_export_ics(tmp_path, batch_file, capsys):
    out = tmp_path / "liu"
    rc = main([str(batch_file), "-o", str(out), "--start-date", "2025-01-13"])
    assert rc == 0
    content = (tmp_path / "liu.ics").read_text(encoding="utf-8")
    assert content.count("BEGIN:VEVENT") == 1
    assert "DTSTART;TZID=Asia/Singapore:20250113T080000" in content
    captured = capsys.readouterr()
    assert "Exported 1 entry to" in captured.out
    assert "Warning: Too few entries extracted (6)" in captured.err


def test_export_json_format(tmp_path, batch_file):
    rc = main([str(batch_file), "-o", str(tmp_path / "out.json"), "-f", "json", "--merge", "naive"])
    assert rc == 0
    payload = json.loads((tmp_path / "out.json").read_text(encoding="utf-8"))
    assert payload["entries"][0]["weekType"] == "both"
    assert payload["entries"][0]["timeEnd"] == "09:00"


def test_list_entries(batch_file, capsys):
    assert main([str(batch_file), "--list-entries"]) == 0
    out = capsys.readouterr().out
    assert "08:00-09:00" in out
    assert "MATH/S2-06" in out


def test_validate_only(batch_file, capsys):
    assert main([str(batch_file), "--validate-only"]) == 1
    assert "Too few entries" in capsys.readouterr().out


def test_grid_input(tmp_path, capsys):
    points = [
        {"day": "Friday", "weekSection": "odd", "timeColumn": c, "content": "PT\nFIELD"}
        for c in (8, 9, 10)
    ]
    path = tmp_path / "grid.json"
    path.write_text(json.dumps(points), encoding="utf-8")
    assert main([str(path), "--grid", "--list-entries"]) == 0
    out = capsys.readouterr().out
    assert "Friday" in out
    assert "08:00-09:00 | odd  | PT/FIELD" in out


def test_pinned_date_gives_identical_files(tmp_path, batch_file):
    a, b = tmp_path / "a.ics", tmp_path / "b.ics"
    assert main([str(batch_file), "-o", str(a), "--today", "2025-01-08"]) == 0
    assert main([str(batch_file), "-o", str(b), "--today", "2025-01-08"]) == 0
    assert a.read_bytes() == b.read_bytes()
    content = a.read_text(encoding="utf-8")
    assert "DTSTAMP:20250108T000000Z" in content
    assert "BEGIN:VTIMEZONE" in content


def test_explicit_dtstamp(tmp_path, batch_file):
    out = tmp_path / "s.ics"
    rc = main([str(batch_file), "-o", str(out), "--start-date", "2025-01-13",
               "--dtstamp", "2025-02-01T17:30:00+08:00"])
    assert rc == 0
    assert "DTSTAMP:20250201T093000Z" in out.read_text(encoding="utf-8")


def test_merge_options(batch_file, capsys):
    assert main([str(batch_file), "--list-entries", "--max-session-minutes", "40"]) == 0
    out = capsys.readouterr().out
    assert "08:00-08:40" in out
    assert "08:40-09:00" in out

    assert main([str(batch_file), "--list-entries", "--lunch-boundaries", "08:20, 12:00"]) == 0
    out = capsys.readouterr().out
    assert "08:00-08:20" in out
    assert "08:20-09:00" in out


def test_min_entries(batch_file, capsys):
    assert main([str(batch_file), "--validate-only", "--min-entries", "6"]) == 0
    assert "Extraction looks complete." in capsys.readouterr().out


@pytest.mark.parametrize("extra, message", [
    (["--start-date", "13/01/2025"], "--start-date must be YYYY-MM-DD"),
    (["--timezone", "Mars/Olympus"], "unknown timezone"),
    (["--dtstamp", "yesterday"], "--dtstamp must be an ISO datetime"),
    (["--lunch-boundaries", "noon"], "--lunch-boundaries expects HH:MM"),
    (["--max-session-minutes", "0"], "--max-session-minutes must be positive"),
    (["--merge", "naive", "--max-session-minutes", "40"], "only apply to --merge smart"),
])
def test_bad_options(batch_file, capsys, extra, message):
    assert main([str(batch_file)] + extra) == 1
    assert message in capsys.readouterr().err


def test_unreadable_input(tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text("The image is too blurry.", encoding="utf-8")
    assert main([str(bad)]) == 1
    assert "Error reading extraction" in capsys.readouterr().err
    assert main([str(tmp_path / "missing.json")]) == 1


def test_batch_without_entries(tmp_path, capsys):
    path = tmp_path / "empty.json"
    path.write_text('{"studentName": "Liu"}', encoding="utf-8")
    assert main([str(path)]) == 1
    assert "no entries list" in capsys.readouterr().err
