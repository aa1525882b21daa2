"""Gazetteer lookups for well-known Malaysian places."""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from models.geo import LocationSource
from services.gazetteer import Gazetteer, MALAYSIA_LOCATIONS


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Penang", "Penang, Malaysia"),
        ("  KUALA LUMPUR ", "Kuala Lumpur, Malaysia"),
        ("George Town, Penang", "Penang, Malaysia"),
        ("Johor Bahru", "Johor Bahru, Malaysia"),
        ("Malacca", "Malacca, Malaysia"),
        ("malaysia", "Malaysia"),
    ],
)
def test_known_places_match(text, expected):
    location = Gazetteer().match(text)
    assert location is not None
    assert location.formatted_name == expected
    assert location.source is LocationSource.GAZETTEER


@pytest.mark.parametrize("text", ["Kota Kinabalu, Malaysia", "Paris", "", None])
def test_unknown_places_do_not_match(text):
    assert Gazetteer().match(text) is None


def test_first_entry_wins():
    gazetteer = Gazetteer(entries=[("penang", 1.0, 2.0, "First"), ("george town", 3.0, 4.0, "Second")])
    assert gazetteer.match("George Town, Penang").formatted_name == "First"


def test_country_centroid_and_size():
    gazetteer = Gazetteer()
    assert gazetteer.country_centroid.point.lat == pytest.approx(4.2105)
    assert len(gazetteer) == len(MALAYSIA_LOCATIONS)
