"""Tests for the Kindle clippings importer."""

from pathlib import Path

from readtrack.imports.kindle_clippings import (
    BookHighlights,
    KindleClippingsImporter,
    find_matching_book,
    group_highlights_by_book,
    merge_highlights,
    parse_kindle_clippings,
)


class TestParseKindleClippings:
    """Tests for entry parsing."""

    def test_entries(self, clippings_text: str):
        entries = parse_kindle_clippings(clippings_text)

        # Bookmark dropped; duplicate highlight still parsed here
        assert len(entries) == 4
        first = entries[0]
        assert first.book_title == "Atomic Habits"
        assert first.author == "James Clear"
        assert first.kind == "highlight"
        assert first.page == 27
        assert first.location == "409-410"
        assert first.added_on == "2024-01-01"
        assert first.content == "Habits are the compound interest of self-improvement."

    def test_note_kind(self, clippings_text: str):
        entries = parse_kindle_clippings(clippings_text)
        assert entries[1].kind == "note"

    def test_title_without_author(self, clippings_text: str):
        entry = parse_kindle_clippings(clippings_text)[-1]

        assert entry.book_title == "Unknown Pamphlet"
        assert entry.author == ""
        assert entry.page is None
        assert entry.location == "12-13"

    def test_multiline_content(self):
        text = "Dune (Frank Herbert)\n- Your Highlight on Location 5\n\nFear is\nthe mind-killer.\n=========="
        assert parse_kindle_clippings(text)[0].content == "Fear is\nthe mind-killer."

    def test_empty(self):
        assert parse_kindle_clippings("") == []


class TestGroupHighlights:
    """Tests for per-book grouping."""

    def test_grouping_and_duplicate_suppression(self, clippings_text: str):
        bundles = group_highlights_by_book(parse_kindle_clippings(clippings_text))

        assert [b.book_title for b in bundles] == ["Atomic Habits", "Unknown Pamphlet"]
        habits = bundles[0]
        assert habits.highlights == ["Habits are the compound interest of self-improvement."]
        assert habits.notes == ["Compare with Deep Work."]
        assert habits.total == 2

    def test_case_insensitive_titles(self):
        text = (
            "Dune (Frank Herbert)\n- Your Highlight on Location 5\n\nOne\n==========\n"
            "dune \n- Your Highlight on Location 6\n\nTwo\n==========\n"
        )
        bundles = group_highlights_by_book(parse_kindle_clippings(text))

        assert len(bundles) == 1
        assert bundles[0].highlights == ["One", "Two"]
        assert bundles[0].author == "Frank Herbert"

    def test_bom_before_later_entries(self):
        """Kindle repeats the byte-order mark in front of each entry."""
        text = (
            "Sapiens (Yuval Noah Harari)\n- Your Highlight on Location 5\n\nOne\n==========\n"
            "\ufeffSapiens (Yuval Noah Harari)\n- Your Highlight on Location 9\n\nTwo\n==========\n"
        )
        bundles = group_highlights_by_book(parse_kindle_clippings(text))

        assert len(bundles) == 1
        assert bundles[0].book_title == "Sapiens"
        assert bundles[0].highlights == ["One", "Two"]


class TestFindMatchingBook:
    """Tests for matching bundles to library titles."""

    def test_exact_normalized_match_wins(self):
        titles = ["Atomic Habits: Tiny Changes", "Atomic Habits!"]
        assert find_matching_book("atomic habits", titles) == "Atomic Habits!"

    def test_containment_either_direction(self):
        assert find_matching_book("Sapiens", ["Sapiens: A Brief History"]) == "Sapiens: A Brief History"
        assert find_matching_book("Dune: Deluxe Edition", ["Dune"]) == "Dune"

    def test_no_match(self):
        assert find_matching_book("Emma", ["Dune"]) is None

    def test_empty_title(self):
        assert find_matching_book("!!!", ["Dune"]) is None


class TestMergeHighlights:
    """Tests for merge_highlights."""

    def test_new_only_order_preserved(self):
        assert merge_highlights(["a", "b"], ["b", "c", "a", "d"]) == ["a", "b", "c", "d"]

    def test_existing_not_modified(self):
        existing = ["a"]
        merge_highlights(existing, ["b"])
        assert existing == ["a"]


class TestKindleClippingsImporter:
    """Tests for KindleClippingsImporter class."""

    def test_parse_file(self, tmp_path: Path, clippings_text: str):
        path = tmp_path / "My Clippings.txt"
        path.write_text("\ufeff" + clippings_text, encoding="utf-8")

        bundles = KindleClippingsImporter().parse_file(path)

        assert all(isinstance(b, BookHighlights) for b in bundles)
        assert bundles[0].book_title == "Atomic Habits"
