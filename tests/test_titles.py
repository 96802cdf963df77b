"""Tests for unique title generation."""
from notewell.services.titles import unique_new_note_title, unique_note_title


def test_new_note_title_starts_at_one():
    assert unique_new_note_title("New note", []) == "New note 1"


def test_new_note_title_skips_taken():
    assert unique_new_note_title("New note", ["New note 1", "New note 2"]) == "New note 3"


def test_new_note_title_compares_exactly():
    assert unique_new_note_title("Note", ["note 1"]) == "Note 1"


def test_rename_title_keeps_free_base():
    assert unique_note_title("Plan", ["Plan B"]) == "Plan"


def test_rename_title_appends_counter():
    assert unique_note_title("Plan", ["Plan", "Plan (1)"]) == "Plan (2)"
