"""Tests for date buckets, relative date texts and listing counts."""
from datetime import datetime, timedelta

import pytest

from notewell.i18n import Translator
from notewell.models.schema import ALL_NOTES_NOTEBOOK_ID, Category, NotesCountResult
from notewell.services.categorization import (
    days_between,
    format_exact_date,
    format_note_date,
)
from tests.fakes import SignalRecorder, local_days_ago

NOW = datetime(2024, 6, 15, 12, 0).astimezone()


def _ago(days):
    return NOW - timedelta(days=days)


@pytest.mark.parametrize(
    "days, text, today, yesterday, this_week",
    [
        (0, "Today", True, False, True),
        (1, "Yesterday", False, True, True),
        (2, "2 days ago", False, False, True),
        (7, "7 days ago", False, False, True),
        (8, "Last week", False, False, False),
        (14, "2 weeks ago", False, False, False),
        (21, "3 weeks ago", False, False, False),
        (30, "3 weeks ago", False, False, False),
        (31, "1 months ago", False, False, False),
        (200, "6 months ago", False, False, False),
        (400, "Long ago", False, False, False),
    ],
)
def test_thresholds(days, text, today, yesterday, this_week):
    result = format_note_date(_ago(days), now=NOW)
    assert result.date_text == text
    assert (result.is_today_note, result.is_yesterday_note, result.is_this_week_note) == (
        today,
        yesterday,
        this_week,
    )


def test_seven_days_is_this_week_and_eight_is_not():
    assert format_note_date(_ago(7), now=NOW).is_this_week_note
    eight = format_note_date(_ago(8), now=NOW)
    assert not eight.is_this_week_note
    assert eight.date_text == "Last week"


def test_calendar_days_not_elapsed_hours():
    late_yesterday = NOW.replace(hour=0, minute=5) - timedelta(minutes=10)
    assert days_between(late_yesterday, NOW) == 1


def test_exact_dates_keep_bucket_flags():
    result = format_note_date(_ago(1), use_exact_dates=True, now=NOW)
    assert result.date_text == "June 14, 2024"
    assert result.is_yesterday_note
    assert result.is_this_week_note


def test_future_date_has_no_bucket():
    result = format_note_date(NOW + timedelta(days=2), now=NOW)
    assert result.date_text == format_exact_date(NOW + timedelta(days=2))
    assert not (result.is_today_note or result.is_yesterday_note or result.is_this_week_note)


def test_translated_texts():
    translator = Translator({"NoteDates.DaysAgo": "{count} jours"})
    assert format_note_date(_ago(3), now=NOW, translator=translator).date_text == "3 jours"


class TestListingCounts:
    def _add(self, service, title, days, marked=False, notebook_id=""):
        note_id = service.data_store.add_note(title, notebook_id)
        service.content_store.create_empty(note_id)
        note = service.data_store.get_note_by_id(note_id)
        note.modification_date = local_days_ago(days)
        note.is_marked = marked
        service.data_store.update_note_without_date(note)
        return note_id

    def test_counts_and_category_filter(self, collection_service):
        collection_service.add_notebook("Work")
        work = collection_service.data_store.get_notebook_by_name("Work")
        today = self._add(collection_service, "today", 0)
        yesterday = self._add(collection_service, "yesterday", 1, marked=True)
        self._add(collection_service, "three", 3, notebook_id=work.id)
        self._add(collection_service, "ten", 10)
        counts = SignalRecorder(collection_service.notes_count_changed)

        notes = collection_service.get_notes(ALL_NOTES_NOTEBOOK_ID, Category.TODAY)

        assert [n.id for n in notes] == [today]
        (result,) = counts.last
        assert result == NotesCountResult(
            all_notes_count=4,
            today_notes_count=1,
            yesterday_notes_count=1,
            this_week_notes_count=3,
            marked_notes_count=1,
            unfiled_notes_count=3,
        )
        marked = collection_service.get_notes(ALL_NOTES_NOTEBOOK_ID, Category.MARKED)
        assert [n.id for n in marked] == [yesterday]

    def test_display_dates_are_filled(self, collection_service):
        self._add(collection_service, "old", 10)
        (note,) = collection_service.get_notes(ALL_NOTES_NOTEBOOK_ID, Category.ALL, use_exact_dates=False)
        assert note.display_modification_date == "Last week"
        assert note.display_exact_modification_date == format_exact_date(note.modification_date)

    def test_exact_dates_default_to_setting(self, collection_service):
        self._add(collection_service, "old", 10)
        collection_service.settings.use_exact_dates = True
        (note,) = collection_service.get_notes(ALL_NOTES_NOTEBOOK_ID, Category.ALL)
        assert note.display_modification_date == format_exact_date(note.modification_date)

    def test_notebook_filter(self, collection_service):
        collection_service.add_notebook("Work")
        work = collection_service.data_store.get_notebook_by_name("Work")
        filed = self._add(collection_service, "filed", 0, notebook_id=work.id)
        loose = self._add(collection_service, "loose", 0)

        assert [n.id for n in collection_service.get_notes(work.id, Category.ALL)] == [filed]
        unfiled = collection_service.get_notes("unfiled-notes-notebook", Category.ALL)
        assert [n.id for n in unfiled] == [loose]
