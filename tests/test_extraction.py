import pytest

from school_timetable_export.extraction import (
    ExtractionError,
    apply_corrections,
    clean_json_response,
    column_to_slot,
    grid_points_to_entries,
    parse_extraction_response,
    split_cell_content,
)


def test_clean_json_response():
    assert clean_json_response('```json\n{"entries": []}\n```') == '{"entries": []}'
    assert clean_json_response('```\n[1, 2]\n```') == "[1, 2]"
    assert clean_json_response('  {"a": 1}  ') == '{"a": 1}'


def test_parse_extraction_response():
    assert parse_extraction_response('```json\n{"entries": []}\n```') == {"entries": []}
    with pytest.raises(ExtractionError, match="Failed to parse"):
        parse_extraction_response("Sorry, I cannot read this image.")


def test_extraction_error_is_value_error():
    assert issubclass(ExtractionError, ValueError)


def test_column_to_slot():
    assert column_to_slot(8) == ("08:00", "08:20")
    assert column_to_slot(9) == ("08:20", "08:40")
    assert column_to_slot(10) == ("08:40", "09:00")
    assert column_to_slot(31) == ("15:40", "16:00")


def test_split_cell_content():
    assert split_cell_content("MATH\nS2-06") == ("MATH", "S2-06")
    assert split_cell_content("MTG/PD") == ("MTG", "PD")
    assert split_cell_content(" ASSEMBLY ") == ("ASSEMBLY", "")
    assert split_cell_content("\nEL\n\nR1\n") == ("EL", "R1")


def test_grid_points_to_entries():
    points = [
        {"day": "Monday", "weekSection": "odd", "timeColumn": 8,
         "timeSlot": "08:00-08:20", "content": "MTG/PD", "confidence": 0.95},
        {"day": "Monday", "weekSection": "even", "timeColumn": 9,
         "content": "MATH\nS2-06", "confidence": 0.9},
        {"day": "Tuesday", "weekSection": "odd", "timeColumn": 8, "content": None},
        {"day": "Tuesday", "weekSection": "odd", "content": "EL/R1"},
        "noise",
    ]
    assert grid_points_to_entries(points) == [
        {"day": "Monday", "timeStart": "08:00", "timeEnd": "08:20", "subject": "MTG",
         "location": "PD", "weekType": "odd", "title": "MTG/PD"},
        {"day": "Monday", "timeStart": "08:20", "timeEnd": "08:40", "subject": "MATH",
         "location": "S2-06", "weekType": "even", "title": "MATH/S2-06"},
    ]


def test_apply_corrections():
    entries = [
        {"day": "Monday", "timeStart": "12:40", "timeEnd": "13:00", "subject": "MATH", "weekType": "odd"},
        {"day": "Monday", "timeStart": "12:40", "timeEnd": "13:00", "subject": "MATH", "weekType": "odd"},
    ]
    corrections = [
        {
            "originalEntry": {"day": "Monday", "timeStart": "12:40", "subject": "MATH", "weekType": "odd"},
            "correctedEntry": {"day": "Monday", "timeStart": "11:40", "timeEnd": "12:00",
                               "subject": "MATH", "weekType": "odd"},
            "reason": "Time misaligned by one hour",
        },
        {"originalEntry": {"day": "Friday"}, "correctedEntry": {"day": "Friday"}},
        "noise",
    ]
    out = apply_corrections(entries, corrections)
    assert out[0]["timeStart"] == "11:40"
    assert out[1] == entries[1]
    assert entries[0]["timeStart"] == "12:40"
