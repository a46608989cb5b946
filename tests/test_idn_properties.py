"""
Property-based tests for the IDN helpers.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from tld_reconciler.enums import IdnFormat
from tld_reconciler.idn import (
    alternate_form,
    get_idn_format,
    idn_pair,
    is_idn,
    is_punycode,
    to_ascii,
    to_unicode,
)
from tld_reconciler.models import IdnPair


# Known pairs published in the Root Zone Database
KNOWN_PAIRS = [
    ("xn--kpry57d", "台灣"),
    ("xn--flw351e", "谷歌"),
    ("xn--0zwm56d", "测试"),
    ("xn--mgbaam7a8h", "امارات"),
    ("xn--p1ai", "рф"),
]

ascii_label = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=1,
    max_size=20,
)


class TestIdnConversionProperty:
    """Tests for to_ascii / to_unicode."""

    @given(pair=st.sampled_from(KNOWN_PAIRS))
    @settings(max_examples=20)
    def test_known_pairs_convert_both_ways(self, pair: tuple[str, str]) -> None:
        """
        *For any* published IDN, encoding the Unicode form SHALL give the
        ASCII form and decoding the ASCII form SHALL give the Unicode form.
        """
        ascii_form, unicode_form = pair
        assert to_ascii(unicode_form) == ascii_form
        assert to_unicode(ascii_form) == unicode_form

    def test_invalid_punycode_raises_unicode_error(self) -> None:
        try:
            to_unicode("xn--ab_c")
            assert False, "Should have raised UnicodeError"
        except UnicodeError:
            pass


class TestIdnClassificationProperty:
    """Tests for is_idn, is_punycode and get_idn_format."""

    @given(label=ascii_label.filter(lambda s: not s.startswith("xn--")))
    @settings(max_examples=100)
    def test_plain_ascii_is_not_idn(self, label: str) -> None:
        """
        *For any* plain ASCII label, the label SHALL NOT be an IDN and SHALL
        have no IDN format.
        """
        assert is_idn(label) is False
        assert get_idn_format(label) is None
        assert idn_pair(label) is None

    @given(pair=st.sampled_from(KNOWN_PAIRS))
    @settings(max_examples=20)
    def test_format_follows_encoding(self, pair: tuple[str, str]) -> None:
        ascii_form, unicode_form = pair
        assert get_idn_format(ascii_form) is IdnFormat.ASCII
        assert get_idn_format(unicode_form) is IdnFormat.UNICODE
        assert is_idn(ascii_form) and is_idn(unicode_form)

    def test_prefix_check_is_case_insensitive(self) -> None:
        assert is_punycode("XN--KPRY57D") is True
        assert is_punycode("xnkpry57d") is False


class TestIdnPairProperty:
    """Tests for idn_pair and alternate_form."""

    @given(pair=st.sampled_from(KNOWN_PAIRS))
    @settings(max_examples=20)
    def test_pair_is_the_same_from_either_side(self, pair: tuple[str, str]) -> None:
        """
        *For any* IDN, the pair computed from the ASCII form SHALL equal the
        pair computed from the Unicode form.
        """
        ascii_form, unicode_form = pair
        expected = IdnPair(ascii=ascii_form, unicode=unicode_form)
        assert idn_pair(ascii_form) == expected
        assert idn_pair(unicode_form) == expected
        assert alternate_form(ascii_form) == unicode_form
        assert alternate_form(unicode_form) == ascii_form

    def test_failed_conversion_falls_back_to_identity(self) -> None:
        assert idn_pair("xn--ab_c") == IdnPair(ascii="xn--ab_c", unicode="xn--ab_c")
        assert alternate_form("xn--ab_c") is None

    def test_pair_serialization(self) -> None:
        assert idn_pair("xn--kpry57d").to_dict() == {"ascii": "xn--kpry57d", "unicode": "台灣"}
