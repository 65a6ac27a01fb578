from itertools import product

import pytest

from rxprint.core.errors import ParseError, ValidationError
from rxprint.services.dosage import (
    DOSAGE_PATTERNS,
    DoseTriple,
    decode_pattern,
    describe,
    encode_pattern,
    parse_pattern_input,
    pattern_for_frequency,
)


def test_encode_pattern():
    assert encode_pattern(DoseTriple(1, 0, 2)) == "1+0+2"
    assert encode_pattern((0, 0, 0)) == "0+0+0"


def test_decode_pattern():
    assert decode_pattern("1+0+2") == DoseTriple(1, 0, 2)
    assert decode_pattern(" 2 + 2 + 2 ") == DoseTriple(2, 2, 2)
    assert decode_pattern("10+0+0").morning == 10


@pytest.mark.parametrize("text", ["", "   ", "1+0", "1+0+1+1", "1+x+0",
                                  "1++0", "-1+0+0", "1.5+0+0", "١+٠+٠"])
def test_decode_rejects_malformed(text):
    with pytest.raises(ParseError):
        decode_pattern(text)


def test_decode_none():
    with pytest.raises(ParseError):
        decode_pattern(None)


@pytest.mark.parametrize("triple", list(product([0, 1, 2, 9, 10, 123], repeat=3)))
def test_decode_inverts_encode(triple):
    assert decode_pattern(encode_pattern(triple)) == DoseTriple(*triple)


def test_round_trip_of_presets():
    for p in DOSAGE_PATTERNS:
        assert encode_pattern(decode_pattern(p["value"])) == p["value"]


def test_describe():
    assert describe(DoseTriple(1, 0, 2)) == "1 morning, 2 evening"
    assert describe(DoseTriple(0, 1, 0)) == "1 afternoon"
    assert describe(DoseTriple(1, 1, 1)) == "1 morning, 1 afternoon, 1 evening"
    assert describe(DoseTriple(0, 0, 0)) == ""


def test_parse_pattern_input_wraps_parse_error():
    with pytest.raises(ValidationError) as exc:
        parse_pattern_input("1+a+0")
    assert exc.value.errors
    assert "afternoon" in exc.value.errors[0]


def test_frequency_codes():
    assert pattern_for_frequency("bd") == "1+0+1"
    assert pattern_for_frequency("TDS") == "1+1+1"
    assert pattern_for_frequency(" hs ") == "0+0+1"
    with pytest.raises(ParseError):
        pattern_for_frequency("QID")


def test_presets_have_descriptions():
    values = [p["value"] for p in DOSAGE_PATTERNS]
    assert len(values) == len(set(values))
    twice = next(p for p in DOSAGE_PATTERNS if p["value"] == "1+0+1")
    assert twice["description"] == "1 morning, 1 evening"
