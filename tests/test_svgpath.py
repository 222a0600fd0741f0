"""Test module for the pathedit.svgpath module.

The tests check parsing of SVG path strings into commands and the
serialization of commands back into path strings.
"""

import pytest

from pathedit.geom import Point
from pathedit.path import ClosePath, CurveTo, LineTo, MoveTo
from pathedit.svgpath import SvgPathData


def test_parse_absolute():
    """Absolute commands map one to one onto command objects."""
    commands = SvgPathData.parse("M 0 0 L 10 0 C 10 5 5 10 0 10 Z")
    assert commands == [
        MoveTo(Point(0, 0)),
        LineTo(Point(10, 0)),
        CurveTo(Point(10, 5), Point(5, 10), Point(0, 10)),
        ClosePath(),
    ]


def test_parse_compact_syntax():
    """Commands without separating spaces and with comma separators parse."""
    assert SvgPathData.parse("M0,0L10,0L10,10z") == SvgPathData.parse("M 0 0 L 10 0 L 10 10 Z")


def test_parse_relative():
    """Relative coordinates are converted to absolute ones."""
    assert SvgPathData.parse("m 5 5 l 10 0 c 0 5 -5 10 -10 10") == [
        MoveTo(Point(5, 5)),
        LineTo(Point(15, 5)),
        CurveTo(Point(15, 10), Point(10, 15), Point(5, 15)),
    ]


def test_parse_horizontal_vertical():
    """H and V become LineTo commands."""
    assert SvgPathData.parse("M 1 2 H 10 V 20 h -5 v -4") == [
        MoveTo(Point(1, 2)),
        LineTo(Point(10, 2)),
        LineTo(Point(10, 20)),
        LineTo(Point(5, 20)),
        LineTo(Point(5, 16)),
    ]


def test_parse_implicit_lineto_after_moveto():
    """Additional coordinate pairs after M are LineTo commands."""
    assert SvgPathData.parse("M 0 0 10 0 10 10") == SvgPathData.parse("M 0 0 L 10 0 L 10 10")


def test_parse_relative_after_close():
    """After Z the current point is the start of the closed subpath."""
    commands = SvgPathData.parse("M 10 10 l 5 0 z m 1 1 l 1 0")
    assert commands[3] == MoveTo(Point(11, 11))
    assert commands[4] == LineTo(Point(12, 11))


def test_parse_exponent_numbers():
    """Numbers in exponent notation are understood."""
    assert SvgPathData.parse("M 1e1 -2.5E-1") == [MoveTo(Point(10, -0.25))]


def test_parse_empty():
    """An empty string yields no commands."""
    assert SvgPathData.parse("") == []


@pytest.mark.parametrize("path_string", ["M 0 0 Q 1 1 2 2", "M 0 0 A 1 1 0 0 1 5 5", "M 0 0 L 1", "0 0 L 1 1", "M 0 0 Z 1"])
def test_parse_rejects_invalid(path_string):
    """Unsupported commands and wrong argument counts raise ValueError."""
    with pytest.raises(ValueError):
        SvgPathData.parse(path_string)


def test_format():
    """Commands serialize with absolute coordinates."""
    commands = SvgPathData.parse("M 0 0 L 10.5 0 C 1 2 3 4 5 6 Z")
    assert SvgPathData.format(commands) == "M 0 0 L 10.5 0 C 1 2 3 4 5 6 Z"


def test_format_with_round_func():
    """A round function is applied to every coordinate."""
    commands = [MoveTo(Point(0.123, 4.567))]
    assert SvgPathData.format(commands, lambda v: round(v, 1)) == "M 0.1 4.6"


def test_format_keeps_decimals_of_large_values():
    """Large coordinates keep their decimals and parse back unchanged."""
    commands = SvgPathData.parse("M 1234.56 0 L 100000.25 7 L 12345.67 -98765.43")
    text = SvgPathData.format(commands)
    assert text == "M 1234.56 0 L 100000.25 7 L 12345.67 -98765.43"
    assert SvgPathData.parse(text) == commands


@pytest.mark.parametrize(
    "value, expected",
    [(0.0, "0"), (-0.0, "0"), (-1e-12, "0"), (3.0, "3"), (-2.5, "-2.5"), (1e-05, "0.00001"), (2e6, "2000000")],
)
def test_format_number(value, expected):
    """Numbers are written without exponent, trailing zeros or negative zero."""
    assert SvgPathData.format_number(value) == expected
