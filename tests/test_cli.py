"""Tests for the fill_gaps command line entry point."""

import json
import sys

import fill_gaps

TRIP = {
    "id": "itin_1",
    "title": "LA weekend",
    "segments": [
        {
            "id": "seg_flight",
            "type": "FLIGHT",
            "startDatetime": "2025-03-01T08:00:00",
            "endDatetime": "2025-03-01T14:00:00",
            "airline": {"name": "JetBlue", "code": "B6"},
            "flightNumber": "B6123",
            "origin": {"name": "John F. Kennedy International", "code": "JFK"},
            "destination": {"name": "Los Angeles International", "code": "LAX"},
        },
        {
            "id": "seg_dinner",
            "type": "ACTIVITY",
            "startDatetime": "2025-03-01T14:30:00",
            "endDatetime": "2025-03-01T14:30:00",
            "name": "Dinner",
            "location": {"name": "Bestia", "address": {"city": "Los Angeles", "country": "US"}},
        },
    ],
}


def _write_trip(tmp_path):
    path = tmp_path / "trip.json"
    path.write_text(json.dumps(TRIP), encoding="utf-8")
    return path


def test_fill_writes_transfer_back(tmp_path, monkeypatch, capsys):
    path = _write_trip(tmp_path)
    monkeypatch.setattr(fill_gaps, "SERPAPI_API_KEY", "")
    monkeypatch.setattr(sys, "argv", ["fill_gaps.py", "--input", str(path), "--fill", "--report"])

    fill_gaps.main()

    out = capsys.readouterr().out
    assert "1 gaps, 1 filled" in out
    assert "GAP: LOCAL_TRANSFER" in out
    written = json.loads(path.read_text(encoding="utf-8"))
    assert [s["type"] for s in written["segments"]] == ["FLIGHT", "TRANSFER", "ACTIVITY"]
    assert written["segments"][1]["source"] == "agent"
    assert written["title"] == "LA weekend"


def test_dry_run_leaves_file_alone(tmp_path, monkeypatch, capsys):
    path = _write_trip(tmp_path)
    before = path.read_text(encoding="utf-8")
    monkeypatch.setattr(fill_gaps, "SERPAPI_API_KEY", "")
    monkeypatch.setattr(sys, "argv", ["fill_gaps.py", "--input", str(path), "--fill", "--dry-run"])

    fill_gaps.main()

    assert "1 filled" in capsys.readouterr().out
    assert path.read_text(encoding="utf-8") == before


def test_detect_only_does_not_write(tmp_path, monkeypatch, capsys):
    path = _write_trip(tmp_path)
    before = path.read_text(encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["fill_gaps.py", "--input", str(path)])

    fill_gaps.main()

    assert "1 gaps, 0 filled" in capsys.readouterr().out
    assert path.read_text(encoding="utf-8") == before


def test_second_fill_run_leaves_file_alone(tmp_path, monkeypatch, capsys):
    path = _write_trip(tmp_path)
    monkeypatch.setattr(fill_gaps, "SERPAPI_API_KEY", "")
    monkeypatch.setattr(sys, "argv", ["fill_gaps.py", "--input", str(path), "--fill"])

    fill_gaps.main()
    assert "Written to" in capsys.readouterr().out
    after_first = path.read_text(encoding="utf-8")

    fill_gaps.main()

    out = capsys.readouterr().out
    assert "0 new segments, 0 redundant transfers removed" in out
    assert "Written to" not in out
    assert path.read_text(encoding="utf-8") == after_first
