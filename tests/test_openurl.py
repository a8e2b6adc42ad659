import re

import pytest

from errors import InvalidGenreError, MissingGenreError, NoRecognizedFieldsError
from openurl import filter_openurl_params, parse_openurl_params, rfc3339_nano_timestamp

_MOCK_TIMESTAMP = "2017-10-27T10:49:40-04:00"


def test_bare_genre_without_rft_fields_is_rejected() -> None:
    with pytest.raises(NoRecognizedFieldsError, match="no valid querystring values to parse"):
        parse_openurl_params({"genre": ["book"]})


def test_rft_fields_are_stripped_and_genre_resolved() -> None:
    params = parse_openurl_params(
        {"rft.genre": ["book"], "rft.btitle": ["dune"], "url_ver": ["Z39.88-2004"]},
        timestamp=_MOCK_TIMESTAMP,
    )

    assert params.genre == "book"
    assert params.fields == {"genre": ["book"], "btitle": ["dune"]}
    assert params.timestamp == _MOCK_TIMESTAMP


def test_multiple_values_are_preserved_in_order() -> None:
    params = parse_openurl_params({"rft.genre": ["journal", "book"], "rft.au": ["Herbert", "Anderson"]})

    assert params.genre == "journal"
    assert params.fields["au"] == ["Herbert", "Anderson"]
    assert params.fields["genre"] == ["journal", "book"]


def test_invalid_genre_message_names_candidates() -> None:
    with pytest.raises(InvalidGenreError) as excinfo:
        parse_openurl_params({"rft.genre": ["podcast"]})

    assert str(excinfo.value) == "genre is not valid: genre not in list of allowed genres: ['podcast']"
    assert excinfo.value.candidates == ["podcast"]
    assert isinstance(excinfo.value.__cause__, InvalidGenreError)


def test_missing_genre_is_rejected() -> None:
    with pytest.raises(MissingGenreError, match="genre is not valid"):
        parse_openurl_params({"rft.btitle": ["dune"]})


def test_blank_genre_counts_as_missing() -> None:
    with pytest.raises(MissingGenreError, match="no genre supplied"):
        parse_openurl_params({"rft.genre": [""], "rft.btitle": ["dune"]})


def test_bare_genre_is_used_when_rft_genre_absent() -> None:
    params = parse_openurl_params({"genre": ["journal"], "rft.jtitle": ["Nature"]})

    assert params.genre == "journal"
    assert params.fields["genre"] == ["journal"]


def test_rft_genre_supersedes_bare_genre() -> None:
    params = parse_openurl_params({"genre": ["book"], "rft.genre": ["journal"]})

    assert params.genre == "journal"
    assert params.fields == {"genre": ["journal"]}


def test_keys_that_are_not_field_names_are_discarded() -> None:
    params = parse_openurl_params({"rft.genre": ["book"], "rft.a b": ["x"], "rft.": ["y"], "rft.a.b": ["z"]})
    assert params.fields == {"genre": ["book"]}

    with pytest.raises(NoRecognizedFieldsError):
        parse_openurl_params({"rft.<rft:": ["book"]})


def test_default_timestamp_is_rfc3339() -> None:
    params = parse_openurl_params({"rft.genre": ["book"]})
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,9})?Z", params.timestamp)


@pytest.mark.parametrize("ns, expected", [
    (1509115780123456789, "2017-10-27T14:49:40.123456789Z"),
    (1509115780500000000, "2017-10-27T14:49:40.5Z"),
    (1509115780000000000, "2017-10-27T14:49:40Z"),
])
def test_rfc3339_nano_timestamp(ns: int, expected: str) -> None:
    assert rfc3339_nano_timestamp(ns) == expected


def test_filter_renames_sid_to_rfr_id() -> None:
    assert filter_openurl_params({"sid": ["X"]}) == {"rfr_id": ["X"]}


def test_filter_passes_other_keys_through() -> None:
    assert filter_openurl_params({"id": ["X"]}) == {"id": ["X"]}
    assert filter_openurl_params({"sid": ["A", "B"], "rft.genre": ["book"]}) == {
        "rfr_id": ["A", "B"],
        "rft.genre": ["book"],
    }


def test_filter_keeps_explicit_rfr_id() -> None:
    assert filter_openurl_params({"sid": ["X"], "rfr_id": ["Y"]}) == {"rfr_id": ["Y"]}


def test_filter_does_not_mutate_input() -> None:
    raw = {"sid": ["X"]}
    filter_openurl_params(raw)
    assert raw == {"sid": ["X"]}
