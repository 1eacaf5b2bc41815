"""Tests for default export file names."""

from datetime import datetime

import pytest

from manuscript_export.core.filename import build_export_base_name, export_timestamp, sanitize_base_name


def test_timestamp_format():
    assert export_timestamp(datetime(2024, 3, 5, 14, 7)) == "24-03-05_14-07"


@pytest.mark.parametrize(
    "name,expected",
    [
        ("My Book", "My_Book"),
        ("  The End?! ", "The_End"),
        ("Part 2: Rising", "Part_2_Rising"),
        ("???", "book"),
        ("", "book"),
    ],
)
def test_sanitize(name, expected):
    assert sanitize_base_name(name) == expected


def test_base_name():
    assert build_export_base_name("My Book", datetime(2024, 12, 31, 9, 0)) == "My_Book_24-12-31_09-00"
