"""
Unit tests for review card extraction.

Tests the pure extraction functions without requiring network access.
"""

import unittest

from bs4 import BeautifulSoup

from extractors.review_card import (
    absolute_url,
    apply_locator,
    collapse_whitespace,
    extract_review,
    parse_rating,
    split_part
)
from recipe_loader import FieldRule, Locator, load_recipe

BASE = "https://www.tripadvisor.com"


def parse_card(html, css='div[data-automation="reviewCard"]'):
    return BeautifulSoup(html, 'lxml').select_one(css)


class TestAbsoluteUrl(unittest.TestCase):
    """Test link normalization."""

    def test_site_relative_href(self):
        """Hrefs starting with / get the site origin prefixed."""
        self.assertEqual(absolute_url("/Profile/janedoe", BASE),
                         "https://www.tripadvisor.com/Profile/janedoe")

    def test_absolute_href_unchanged(self):
        href = "https://www.tripadvisor.com/Profile/bob"
        self.assertEqual(absolute_url(href, BASE), href)

    def test_only_leading_slash_is_rewritten(self):
        """Only a leading slash triggers rewriting."""
        self.assertEqual(absolute_url("Profile/x", BASE), "Profile/x")
        self.assertEqual(absolute_url("//cdn.example.com/a", BASE), f"{BASE}//cdn.example.com/a")

    def test_missing_href(self):
        self.assertIsNone(absolute_url(None, BASE))
        self.assertIsNone(absolute_url("", BASE))


class TestTextHelpers(unittest.TestCase):
    """Test whitespace collapsing and splitting."""

    def test_collapse_whitespace(self):
        self.assertEqual(collapse_whitespace("  a \n\t b   c "), "a b c")

    def test_collapse_blank(self):
        self.assertIsNone(collapse_whitespace("   \n "))
        self.assertIsNone(collapse_whitespace(None))

    def test_split_part(self):
        self.assertEqual(split_part("Jun 2024 • Family", "•", 0), "Jun 2024")
        self.assertEqual(split_part("Jun 2024 • Family", "•", 1), "Family")

    def test_split_part_missing_segment(self):
        self.assertEqual(split_part("Jun 2024", "•", 0), "Jun 2024")
        self.assertIsNone(split_part("Jun 2024", "•", 1))
        self.assertIsNone(split_part("Jun 2024 • ", "•", 1))


class TestParseRating(unittest.TestCase):
    """Test rating parsing."""

    def test_parse_rating(self):
        self.assertEqual(parse_rating("5.0 of 5 bubbles"), 5.0)
        self.assertEqual(parse_rating("4.5 of 5 bubbles"), 4.5)

    def test_no_match(self):
        """Unparseable titles yield None instead of raising."""
        self.assertIsNone(parse_rating("five stars"))
        self.assertIsNone(parse_rating(""))
        self.assertIsNone(parse_rating(None))

    def test_bad_number(self):
        self.assertIsNone(parse_rating("4..5 of 5 bubbles"))

    def test_out_of_range(self):
        self.assertIsNone(parse_rating("7.0 of 5 bubbles"))


class TestApplyLocator(unittest.TestCase):
    """Test candidate locator semantics."""

    def test_text_and_attribute(self):
        card = parse_card('<div data-automation="reviewCard"><a href="/x"> Name </a></div>')

        self.assertEqual(apply_locator(card, Locator(css="a")), (True, "Name"))
        self.assertEqual(apply_locator(card, Locator(css="a", attr="href")), (True, "/x"))

    def test_miss_is_not_final(self):
        card = parse_card('<div data-automation="reviewCard"><span>x</span></div>')
        self.assertEqual(apply_locator(card, Locator(css="a")), (False, None))

    def test_within_scope_present_is_final(self):
        """A present scope decides the field even when nothing matches inside it."""
        card = parse_card('<div data-automation="reviewCard"><div class="TreSq"></div></div>')
        locator = Locator(css="div.item", within="div.TreSq")
        self.assertEqual(apply_locator(card, locator), (True, None))

    def test_within_scope_absent(self):
        card = parse_card('<div data-automation="reviewCard"><div class="item">x</div></div>')
        locator = Locator(css="div.item", within="div.TreSq")
        self.assertEqual(apply_locator(card, locator), (False, None))

    def test_index(self):
        card = parse_card(
            '<div data-automation="reviewCard"><p class="i">one</p><p class="i">two</p></div>'
        )
        self.assertEqual(apply_locator(card, Locator(css="p.i", index=1)), (True, "two"))
        self.assertEqual(apply_locator(card, Locator(css="p.i", index=2)), (False, None))

    def test_marker_is_required_and_removed(self):
        card = parse_card('<div data-automation="reviewCard"><span>reviewed June 2024</span></div>')
        locator = Locator(css="span", marker="(Reviewed|Written) ")
        self.assertEqual(apply_locator(card, locator), (True, "June 2024"))

        card = parse_card('<div data-automation="reviewCard"><span>June 2024</span></div>')
        self.assertEqual(apply_locator(card, locator), (False, None))


class TestExtractReview(unittest.TestCase):
    """Test full card extraction with the bundled recipe."""

    @classmethod
    def setUpClass(cls):
        cls.recipe = load_recipe()

    def extract(self, html):
        return extract_review(parse_card(html), self.recipe.fields, self.recipe.base_origin)

    def test_happy_path(self):
        fields = self.extract("""
        <div data-automation="reviewCard">
            <div class="QIHsu Zb"><a href="/Profile/janedoe">Jane Doe</a></div>
            <div><svg class="UctUV d H0"><title>5.0 of 5 bubbles</title></svg></div>
            <span class="teHYY _R Me Z bToff">Reviewed June 2024</span>
        </div>
        """)

        self.assertEqual(fields['reviewer_name'], "Jane Doe")
        self.assertEqual(fields['reviewer_profile'], "https://www.tripadvisor.com/Profile/janedoe")
        self.assertEqual(fields['rating'], 5.0)
        self.assertEqual(fields['written_date'], "June 2024")
        self.assertIsNone(fields['disclaimer'])

    def test_missing_rating(self):
        """No rating element: rating is None, other fields still populate."""
        fields = self.extract("""
        <div data-automation="reviewCard">
            <div class="QIHsu Zb"><a href="/Profile/janedoe">Jane Doe</a></div>
            <div class="QZdOXhEy"><span>Lovely</span></div>
            <span class="teHYY _R Me Z bToff">Written June 2024</span>
        </div>
        """)

        self.assertIsNone(fields['rating'])
        self.assertEqual(fields['reviewer_name'], "Jane Doe")
        self.assertEqual(fields['review_title'], "Lovely")
        self.assertEqual(fields['written_date'], "June 2024")

    def test_fallback_name_has_no_profile(self):
        fields = self.extract("""
        <div data-automation="reviewCard">
            <span class="ui_header_name_abc">Old Timer</span>
        </div>
        """)

        self.assertEqual(fields['reviewer_name'], "Old Timer")
        self.assertIsNone(fields['reviewer_profile'])

    def test_empty_card(self):
        """A card missing every field yields all None and does not raise."""
        fields = self.extract('<div data-automation="reviewCard"><p>nothing here</p></div>')

        self.assertEqual(set(fields), set(self.recipe.field_names()))
        self.assertTrue(all(value is None for value in fields.values()))

    def test_helpful_votes_only_inside_button(self):
        fields = self.extract("""
        <div data-automation="reviewCard">
            <span class="biGQs">7</span>
        </div>
        """)
        self.assertIsNone(fields['helpful_votes'])

        fields = self.extract("""
        <div data-automation="reviewCard">
            <button aria-label="2 helpful votes"><span class="biGQs _P">2</span></button>
        </div>
        """)
        self.assertEqual(fields['helpful_votes'], "2")

    def test_trip_info_split(self):
        fields = self.extract('<div data-automation="reviewCard"><div class="RpeCd">Oct 2023 • Couples</div></div>')
        self.assertEqual(fields['review_date'], "Oct 2023")
        self.assertEqual(fields['trip_type'], "Couples")

        fields = self.extract('<div data-automation="reviewCard"><div class="RpeCd">Oct 2023</div></div>')
        self.assertEqual(fields['review_date'], "Oct 2023")
        self.assertIsNone(fields['trip_type'])

    def test_structured_written_date_wins(self):
        """When the structured container exists the fallback span is ignored."""
        fields = self.extract("""
        <div data-automation="reviewCard">
            <div class="TreSq">
                <div class="biGQs _P pZUbB">March 1, 2024</div>
                <div class="biGQs _P pZUbB">Disclaimer text</div>
            </div>
            <span class="teHYY _R Me Z bToff">Written February 2, 2024</span>
        </div>
        """)

        self.assertEqual(fields['written_date'], "March 1, 2024")
        self.assertEqual(fields['disclaimer'], "Disclaimer text")

    def test_profile_comes_from_the_name_element(self):
        """A name link without href never borrows another anchor's href."""
        fields = self.extract("""
        <div data-automation="reviewCard">
            <div class="QIHsu Zb"><a>Jane Doe</a></div>
            <span class="JAZVu sVnOO"><a href="/Profile/someone_else">Someone Else</a></span>
        </div>
        """)

        self.assertEqual(fields['reviewer_name'], "Jane Doe")
        self.assertIsNone(fields['reviewer_profile'])

    def test_blank_name_link_moves_name_and_profile_together(self):
        """When the first name link is blank both values come from the next candidate."""
        fields = self.extract("""
        <div data-automation="reviewCard">
            <div class="QIHsu Zb"><a href="/Profile/blank">  </a></div>
            <span class="JAZVu sVnOO"><a href="/Profile/bobsmith">Bob Smith</a></span>
        </div>
        """)

        self.assertEqual(fields['reviewer_name'], "Bob Smith")
        self.assertEqual(fields['reviewer_profile'], "https://www.tripadvisor.com/Profile/bobsmith")

    def test_review_of_link_comes_from_the_same_anchor(self):
        fields = self.extract("""
        <div data-automation="reviewCard">
            <div class="biGQs _P pZUbB xUqsL mowmC KxBGd"><a>Manhattan Mark Tours</a></div>
            <div class="yPOCb"><div><div><a href="/Attraction_Review-other">Other Tour</a></div></div></div>
        </div>
        """)

        self.assertEqual(fields['review_of'], "Manhattan Mark Tours")
        self.assertIsNone(fields['review_of_link'])

    def test_bad_rule_does_not_stop_others(self):
        """A rule with an invalid selector yields None for itself only."""
        broken = Locator(css="div[[[")
        rules = list(self.recipe.fields)
        rules[0] = FieldRule(name="reviewer_name", candidates=[broken], paired=rules[0].paired)

        card = parse_card("""
        <div data-automation="reviewCard">
            <div class="QZdOXhEy"><span>Still here</span></div>
        </div>
        """)
        fields = extract_review(card, rules, self.recipe.base_origin)

        self.assertIsNone(fields['reviewer_name'])
        self.assertIsNone(fields['reviewer_profile'])
        self.assertEqual(fields['review_title'], "Still here")


if __name__ == '__main__':
    unittest.main()
