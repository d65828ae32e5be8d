"""
Text Normalizer Tests
=====================
HTML stripping, word counts, reading time and content hashing.
"""

import pytest
from hypothesis import given, strategies as st, settings

from docingest.ingestion.normalizer import TextNormalizer


@pytest.fixture
def normalizer():
    return TextNormalizer()


class TestStripHtmlTags:
    """Tests for strip_html_tags."""

    def test_removes_tags(self, normalizer):
        assert normalizer.strip_html_tags("<p>Hello <b>world</b></p>") == "Hello world"

    def test_removes_script_and_style_content(self, normalizer):
        html = "<style>p { color: red; }</style><p>Visible</p><script>alert('x')</script>"
        assert normalizer.strip_html_tags(html) == "Visible"

    def test_script_blocks_are_case_insensitive_and_multiline(self, normalizer):
        html = "<SCRIPT type='text/javascript'>\nvar a = 1;\n</SCRIPT>Text"
        assert normalizer.strip_html_tags(html) == "Text"

    def test_decodes_entities(self, normalizer):
        html = "Tom&nbsp;&amp;&nbsp;Jerry &quot;say&quot; &#039;hi&#039; &apos;there&apos;"
        assert normalizer.strip_html_tags(html) == "Tom & Jerry \"say\" 'hi' 'there'"

    def test_collapses_whitespace(self, normalizer):
        assert normalizer.strip_html_tags("  a\n\n\tb   c  ") == "a b c"

    def test_adjacent_blocks_stay_separate(self, normalizer):
        assert normalizer.strip_html_tags("<p>Hello</p><p>World</p>") == "Hello World"
        assert normalizer.strip_html_tags("one<br/>two") == "one two"
        assert normalizer.strip_html_tags("a<script>x</script>b") == "a b"

    def test_empty_input(self, normalizer):
        assert normalizer.strip_html_tags("") == ""

    def test_encoded_tags_do_not_survive_second_pass(self, normalizer):
        once = normalizer.strip_html_tags("a &lt;b&gt; c")
        assert normalizer.strip_html_tags(once) == once

    @pytest.mark.property
    @given(html=st.text(alphabet=st.sampled_from(list("ab <>/&;ltgmp#039nbsqu\n\t")), max_size=200))
    @settings(max_examples=300, deadline=None)
    def test_idempotent_on_markup_like_text(self, html):
        normalizer = TextNormalizer()
        once = normalizer.strip_html_tags(html)
        assert normalizer.strip_html_tags(once) == once

    @pytest.mark.property
    @given(html=st.text(max_size=300))
    @settings(max_examples=200, deadline=None)
    def test_idempotent_on_arbitrary_text(self, html):
        normalizer = TextNormalizer()
        once = normalizer.strip_html_tags(html)
        assert normalizer.strip_html_tags(once) == once


class TestCleanMetadataString:
    """Tests for clean_metadata_string."""

    def test_strips_nul_and_whitespace(self, normalizer):
        assert normalizer.clean_metadata_string(" \x00A\x00b\x00c\x00 ") == "Abc"

    @pytest.mark.parametrize("value", [None, "", 42, ["x"]])
    def test_non_strings_are_empty(self, normalizer, value):
        assert normalizer.clean_metadata_string(value) == ""


class TestCountWords:
    """Tests for count_words."""

    def test_counts_plain_words(self, normalizer):
        assert normalizer.count_words("one two  three") == 3

    def test_ignores_markup(self, normalizer):
        assert normalizer.count_words("<p>one</p> <p>two</p><script>three four</script>") == 2

    def test_adjacent_blocks_are_separate_words(self, normalizer):
        assert normalizer.count_words("<p>Hello</p><p>World</p>") == 2
        assert normalizer.count_words("<h1>Title</h1><p>First line<br/>second line</p>") == 5

    def test_empty(self, normalizer):
        assert normalizer.count_words("") == 0
        assert normalizer.count_words("   \n ") == 0


class TestReadingTime:
    """Tests for calculate_reading_time."""

    def test_rounds_up(self, normalizer):
        assert normalizer.calculate_reading_time(251) == 2
        assert normalizer.calculate_reading_time(250) == 1

    def test_custom_wpm(self, normalizer):
        assert normalizer.calculate_reading_time(1000, wpm=100) == 10

    def test_non_positive_inputs(self, normalizer):
        assert normalizer.calculate_reading_time(0) == 0
        assert normalizer.calculate_reading_time(-5) == 0
        assert normalizer.calculate_reading_time(100, wpm=0) == 0
        assert normalizer.calculate_reading_time(100, wpm=-1) == 0

    @pytest.mark.property
    @given(wpm=st.integers(min_value=1, max_value=10_000))
    def test_zero_words_is_zero_minutes(self, wpm):
        assert TextNormalizer().calculate_reading_time(0, wpm) == 0

    @pytest.mark.property
    @given(
        words=st.integers(min_value=1, max_value=1_000_000),
        wpm=st.integers(min_value=1, max_value=5_000),
    )
    def test_doubling_wpm_roughly_halves(self, words, wpm):
        normalizer = TextNormalizer()
        single = normalizer.calculate_reading_time(words, wpm)
        double = normalizer.calculate_reading_time(words, wpm * 2)
        assert double <= single
        assert abs(single - 2 * double) <= 2


class TestContentHash:
    """Tests for generate_content_hash."""

    def test_sha256_hex(self, normalizer):
        digest = normalizer.generate_content_hash("abc")
        assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_str_and_bytes_agree(self, normalizer):
        assert normalizer.generate_content_hash("héllo") == normalizer.generate_content_hash("héllo".encode("utf-8"))

    def test_different_content_differs(self, normalizer):
        assert normalizer.generate_content_hash("a") != normalizer.generate_content_hash("b")

    @pytest.mark.property
    @given(data=st.binary(max_size=2048))
    def test_deterministic(self, data):
        assert TextNormalizer().generate_content_hash(data) == TextNormalizer().generate_content_hash(bytes(data))
