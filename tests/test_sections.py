"""
Section Detector Tests
======================
Heuristic boundary detection over plain text.
"""

import pytest
from hypothesis import given, strategies as st, settings

from docingest.concurrency import CancellationToken
from docingest.errors import ParseCancelledError
from docingest.ingestion.sections import SectionDetector, heading_level


def assert_ordered_and_disjoint(sections, text):
    for section in sections:
        assert 0 <= section.start_offset <= section.end_offset <= len(text)
        assert section.content in text[section.start_offset:section.end_offset]
    for earlier, later in zip(sections, sections[1:]):
        assert earlier.order < later.order
        assert earlier.end_offset <= later.start_offset


class TestHeadingLevel:
    """Tests for boundary candidate classification."""

    @pytest.mark.parametrize("line", [
        "Chapter 1",
        "CHAPTER 12: The Storm",
        "chapter iv",
        "Part 2",
        "Section 3.1",
        "Unit 7",
        "1. Introduction",
        "12 Rivers",
        "Prologue",
        "EPILOGUE",
        "Appendix A",
        "Conclusion",
    ])
    def test_pattern_lines_are_level_zero(self, line):
        assert heading_level(line) == 0

    def test_all_caps_line_is_level_one(self):
        assert heading_level("THE LONG WINTER") == 1

    @pytest.mark.parametrize("line", [
        "",
        "   ",
        "An ordinary sentence of prose.",
        "12345",
        "1. lowercase start",
        "A" * 100,
    ])
    def test_non_candidates(self, line):
        assert heading_level(line) is None


class TestSectionDetector:
    """Tests for SectionDetector.detect."""

    def test_chapter_scenario(self):
        sections = SectionDetector().detect("Chapter 1\n\nBody text. More body.")
        assert len(sections) == 1
        section = sections[0]
        assert section.title == "Chapter 1"
        assert section.level == 0
        assert section.word_count == 4
        assert section.content == "Body text. More body."

    def test_word_count_ignores_blank_lines(self):
        sections = SectionDetector().detect("CHAPTER ONE\n\n\nCHAPTER TWO\nbody")
        assert sections[0].content == ""
        assert sections[0].word_count == 0
        sections = SectionDetector().detect("Chapter 1\nalpha\n\nChapter 2\nbeta\n\n")
        assert [s.content for s in sections] == ["alpha", "beta"]
        assert [s.word_count for s in sections] == [1, 1]

    def test_all_caps_scenario(self):
        sections = SectionDetector().detect("SHORT ALLCAPS LINE\n\nSome content.")
        assert len(sections) == 1
        assert sections[0].title == "SHORT ALLCAPS LINE"
        assert sections[0].level == 1

    def test_no_boundaries_yields_main_content(self):
        text = "just some prose\nwith two lines."
        sections = SectionDetector().detect(text)
        assert len(sections) == 1
        section = sections[0]
        assert section.id == "section-1"
        assert section.title == "Main Content"
        assert section.order == 1
        assert section.level == 0
        assert (section.start_offset, section.end_offset) == (0, len(text))
        assert section.word_count == 6

    def test_empty_input(self):
        assert SectionDetector().detect("") == []

    def test_offsets_follow_boundaries(self):
        text = "Chapter 1\nalpha beta\nChapter 2\ngamma"
        sections = SectionDetector().detect(text)
        assert [s.title for s in sections] == ["Chapter 1", "Chapter 2"]
        assert sections[0].start_offset == 0
        assert sections[0].end_offset == text.index("Chapter 2")
        assert sections[1].start_offset == text.index("Chapter 2")
        assert sections[1].end_offset == len(text)
        assert [s.order for s in sections] == [1, 2]
        assert [s.id for s in sections] == ["section-1", "section-2"]

    def test_lines_before_first_boundary_are_not_sectioned(self):
        text = "front matter\nChapter 1\nbody"
        sections = SectionDetector().detect(text)
        assert len(sections) == 1
        assert sections[0].start_offset == text.index("Chapter 1")

    def test_cancellation(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ParseCancelledError):
            SectionDetector().detect("Chapter 1\nbody", token)

    @pytest.mark.property
    @given(lines=st.lists(
        st.one_of(
            st.sampled_from(["Chapter 1", "PART II", "Preface", "", "THE END", "2. Rivers"]),
            st.text(alphabet=st.characters(blacklist_characters="\n\r"), max_size=60),
        ),
        max_size=40,
    ))
    @settings(max_examples=200, deadline=None)
    def test_sections_are_ordered_and_disjoint(self, lines):
        text = "\n".join(lines)
        sections = SectionDetector().detect(text)
        assert_ordered_and_disjoint(sections, text)
        if text:
            assert sections
