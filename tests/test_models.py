import dataclasses

import pytest

from school_timetable_export.models import TimetableData, TimetableEntry


def test_title_is_subject_slash_location():
    e = TimetableEntry("Monday", "08:00", "08:20", "MATH", "S2-06", "odd")
    assert e.title == "MATH/S2-06"
    assert TimetableEntry("Friday", "08:00", "08:20", "ASSEMBLY", "", "both").title == "ASSEMBLY/"


def test_from_raw_trims_and_tolerates_missing_fields():
    e = TimetableEntry.from_raw({
        "day": "Tuesday",
        "timeStart": "09:00",
        "subject": "  EL  ",
        "location": None,
        "weekType": "even",
        "title": "ignored",
    })
    assert e.subject == "EL"
    assert e.location == ""
    assert e.time_end == ""
    assert e.title == "EL/"


def test_from_raw_keeps_malformed_values_as_text():
    e = TimetableEntry.from_raw({"day": "Mon", "timeStart": 800, "weekType": "weekly"})
    assert e.day == "Mon"
    assert e.time_start == "800"
    assert e.week_type == "weekly"


def test_edit_rederives_title():
    e = TimetableEntry("Monday", "08:00", "09:00", "MATH", "S2-06", "both")
    edited = e.edit(location=" LAB1 ")
    assert edited.location == "LAB1"
    assert edited.title == "MATH/LAB1"
    assert e.title == "MATH/S2-06"
    assert e.edit(time_end="09:20").time_end == "09:20"


def test_entries_are_immutable():
    e = TimetableEntry("Monday", "08:00", "09:00", "MATH", "S2-06", "both")
    with pytest.raises(dataclasses.FrozenInstanceError):
        e.subject = "EL"


def test_day_index():
    assert TimetableEntry("Monday", "", "", "X").day_index == 0
    assert TimetableEntry("Friday", "", "", "X").day_index == 4
    assert TimetableEntry("Saturday", "", "", "X").day_index == 5


def test_timetable_data_dict_round_trip():
    data = TimetableData(
        entries=[TimetableEntry("Monday", "08:00", "09:00", "MATH", "S2-06", "odd")],
        student_name="Liu",
        term="2025 Term 1",
    )
    d = data.to_dict()
    assert d["studentName"] == "Liu"
    assert d["entries"][0] == {
        "day": "Monday",
        "timeStart": "08:00",
        "timeEnd": "09:00",
        "subject": "MATH",
        "location": "S2-06",
        "weekType": "odd",
        "title": "MATH/S2-06",
    }
    assert TimetableData.from_dict(d) == data
