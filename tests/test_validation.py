import pytest

from wishingwell.errors import ValidationError
from wishingwell.utils.validation import (
    ValidationResult,
    coerce_int,
    contains_banned_word,
    validate_description,
    validate_duration,
    validate_funding_target,
    validate_location,
    validate_message,
    validate_title,
)


def _codes(errs):
    return [e.error for e in errs]


class TestTitle:
    def test_length_bounds(self):
        assert _codes(validate_title("abc")) == ["TITLE_INVALID_LENGTH"]
        assert validate_title("abcd") == []
        assert validate_title("x" * 50) == []
        assert _codes(validate_title("x" * 51)) == ["TITLE_INVALID_LENGTH"]

    def test_reports_acceptable_range(self):
        (err,) = validate_title("ab")
        assert err.to_dict()["acceptable_range"] == [4, 50]

    def test_banned_words_match_whole_words(self):
        assert _codes(validate_title("what the hell", banned=["hell"])) == [
            "TITLE_FORBIDDEN_WORD"
        ]
        assert validate_title("Hello village", banned=["hell"]) == []

    def test_non_string(self):
        assert _codes(validate_title(None)) == ["TITLE_INVALID_LENGTH"]


def test_description_may_be_empty_but_bounded():
    assert validate_description("") == []
    assert _codes(validate_description("x" * 1001)) == ["DESCRIPTION_INVALID_LENGTH"]


@pytest.mark.parametrize(
    "location",
    ["40.7128,-74.0060", "-90,180", "0, 0", "89.999,-179.5", "+12.5,+33"],
)
def test_location_accepts_lat_lon_pairs(location):
    assert validate_location(location) == []


@pytest.mark.parametrize(
    "location,code",
    [
        ("91,0", "LOCATION_INVALID_STRING_FORMAT"),
        ("40.7,181", "LOCATION_INVALID_STRING_FORMAT"),
        ("downtown", "LOCATION_INVALID_STRING_FORMAT"),
        ("40.7,-74.0 extra", "LOCATION_INVALID_STRING_FORMAT"),
        ("", "LOCATION_INVALID_LENGTH"),
        ("1," + "1" * 100, "LOCATION_INVALID_LENGTH"),
    ],
)
def test_location_rejects(location, code):
    assert _codes(validate_location(location)) == [code]


def test_funding_target():
    assert validate_funding_target(500, max_cents=1000) == []
    assert validate_funding_target(1000, max_cents=1000) == []
    assert _codes(validate_funding_target(1001, max_cents=1000)) == [
        "FUNDINGTARGET_INVALID_VALUE"
    ]
    assert _codes(validate_funding_target(0)) == ["FUNDINGTARGET_INVALID_VALUE"]
    assert _codes(validate_funding_target("lots")) == ["FUNDINGTARGET_INVALID_NUMBER"]
    assert _codes(validate_funding_target(True)) == ["FUNDINGTARGET_INVALID_NUMBER"]


def test_duration_is_one_to_thirty_days():
    assert validate_duration(1) == []
    assert validate_duration(30) == []
    assert _codes(validate_duration(0)) == ["EXPIRATION_INVALID_LENGTH"]
    assert _codes(validate_duration(31)) == ["EXPIRATION_INVALID_LENGTH"]
    assert _codes(validate_duration(2.5)) == ["EXPIRATION_INVALID_LENGTH"]


def test_message():
    assert validate_message(None) == []
    assert validate_message("thanks!") == []
    assert _codes(validate_message("x" * 501)) == ["MESSAGE_INVALID_LENGTH"]
    assert _codes(validate_message("crap", banned=["crap"])) == ["MESSAGE_FORBIDDEN_WORD"]


def test_contains_banned_word_is_case_insensitive():
    assert contains_banned_word("Oh DAMN", banned=["damn"])
    assert not contains_banned_word("", banned=["damn"])


class TestValidationResult:
    def test_aggregates_every_field(self):
        result = (
            ValidationResult()
            .add(validate_title("no"))
            .add(validate_location("nowhere"))
            .add(validate_duration(5))
        )
        assert not result.ok
        with pytest.raises(ValidationError) as exc:
            result.raise_for_errors()
        fields = {e["field"] for e in exc.value.details["errors"]}
        assert fields == {"title", "location"}
        assert exc.value.to_dict()["error"] == "INVALID_FIELD"

    def test_ok_result_does_not_raise(self):
        ValidationResult().add(validate_title("Fine title")).raise_for_errors()


@pytest.mark.parametrize(
    "raw,expected",
    [("500", 500), (" 42 ", 42), (7.0, 7), (9, 9), ("4.5", "4.5"), (None, None)],
)
def test_coerce_int(raw, expected):
    assert coerce_int(raw) == expected
