from __future__ import annotations

from openhaus.utils import full_name, split_tags, utcnow


def test_split_tags_trims_and_deduplicates():
    assert split_tags(" Music,Food ,  music, ,Outdoor") == ["Music", "Food", "Outdoor"]


def test_split_tags_handles_empty_input():
    assert split_tags("") == []
    assert split_tags(None) == []
    assert split_tags(" , ") == []


def test_full_name_joins_and_trims():
    assert full_name("A", "B") == "A B"
    assert full_name("A", None) == "A"
    assert full_name(None, "B") == "B"
    assert full_name(None, None) == ""


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None
