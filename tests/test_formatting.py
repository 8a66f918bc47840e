from datetime import timezone

from cosmofy.data.formatting import NA, clean_note, first_present, format_number, parse_timestamp, to_float


def test_missing_values_render_as_na():
    assert format_number(None) == NA
    assert format_number("not a number") == NA
    assert format_number(float('nan')) == NA


def test_zero_is_not_missing():
    assert format_number(0, 2) == "0.00"


def test_format_number_units_and_grouping():
    assert format_number("1234567.8", 0, " km", thousands=True) == "1,234,568 km"
    assert format_number(12.345, 1, "°") == "12.3°"


def test_to_float_ignores_booleans():
    assert to_float(True) is None
    assert to_float("3.5") == 3.5


def test_first_present_skips_empty_values():
    assert first_present({'a': '', 'b': None, 'c': 'x'}, 'a', 'b', 'c') == 'x'
    assert first_present({}, 'a') is None


def test_clean_note_strips_markup():
    assert clean_note("## Summary:<br>Storm expected") == "Summary:\nStorm expected"
    assert clean_note(None) == ""


def test_parse_timestamp_shapes():
    donki = parse_timestamp("2024-12-13T10:00Z")
    assert (donki.hour, donki.tzinfo) == (10, timezone.utc)

    neo = parse_timestamp("2024-Dec-13 04:21")
    assert (neo.month, neo.day, neo.hour, neo.minute) == (12, 13, 4, 21)

    catalog = parse_timestamp("2024/12/13")
    assert catalog.tzinfo is not None and catalog.day == 13

    unix = parse_timestamp(0)
    assert unix.year == 1970


def test_parse_timestamp_unparseable_is_none():
    assert parse_timestamp("sometime soon") is None
    assert parse_timestamp("") is None
    assert parse_timestamp(None) is None
