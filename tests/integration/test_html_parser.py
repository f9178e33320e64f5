import pytest

from core.html_parser import HtmlParser, SimpleSelector

CHART_ROWS = """
<table>
  <tr class="lst50" data-song-no="111">
    <td><span class="rank ">1</span></td>
    <td><div class="ellipsis rank01"><a href="#">First Song</a></div></td>
    <td><div class="ellipsis rank02"><a href="#">First Artist</a></div></td>
  </tr>
  <tr class="lst50" data-song-no="222">
    <td><span class="rank ">2</span></td>
    <td><div class="ellipsis rank01"><a href="#">Second Song</a></div></td>
    <td><div class="ellipsis rank02"><a href="#">Second Artist</a></div></td>
  </tr>
  <tr class="header"><td>Header row</td></tr>
</table>
"""


def test_select_all_by_class_returns_trimmed_text():
    """A class selector over a single row yields its stripped cell text."""
    parser = HtmlParser('<tr><td class="rank">3</td></tr>')

    matches = parser.select_all(".rank")

    assert len(matches) == 1
    assert matches[0].text == "3"


def test_attribute_presence_selector_matches_rows_in_document_order():
    parser = HtmlParser(CHART_ROWS)

    rows = parser.select_all("tr[data-song-no]")

    assert [row.get_attribute("data-song-no") for row in rows] == ["111", "222"]


def test_attribute_value_selector_uses_contains_semantics():
    parser = HtmlParser(CHART_ROWS)

    rows = parser.select_all('tr[data-song-no="22"]')

    assert len(rows) == 1
    assert rows[0].get_attribute("data-song-no") == "222"


def test_compound_class_and_descendant_selectors_are_scoped_to_row():
    parser = HtmlParser(CHART_ROWS)
    second_row = parser.select_all("tr[data-song-no]")[1]

    title = second_row.select_one(".ellipsis.rank01 a")
    artist = second_row.select_one(".ellipsis.rank02 a")

    assert title.text == "Second Song"
    assert artist.text == "Second Artist"


def test_class_selector_matches_class_substrings():
    """Class matching is contains-based, so `.rank` also hits rank01/rank02 cells."""
    parser = HtmlParser(CHART_ROWS)

    matches = parser.select_all(".rank")

    assert matches[0].text == "1"
    assert len(matches) > 2


def test_select_one_returns_none_when_nothing_matches():
    parser = HtmlParser(CHART_ROWS)

    assert parser.select_one(".does-not-exist") is None
    assert parser.select_all("section.chart") == []


@pytest.mark.parametrize("markup", [None, "", "<tr><td class='rank'>1", "<<<>>>", "<div><span></div>"])
def test_parser_never_raises_on_bad_markup(markup):
    parser = HtmlParser(markup)

    assert isinstance(parser.select_all("td"), list)


@pytest.mark.parametrize("selector", ["", "   ", "tr > td", "a:hover", "#main", "tr[data-x"])
def test_unsupported_selectors_give_empty_results(selector):
    parser = HtmlParser(CHART_ROWS)

    assert parser.select_all(selector) == []
    assert parser.select_one(selector) is None


def test_simple_selector_parse():
    step = SimpleSelector.parse('img[src="cdnimg"]')

    assert step.tag == "img"
    assert step.attr == "src"
    assert step.value == "cdnimg"
    assert SimpleSelector.parse(".ellipsis.rank01").classes == ("ellipsis", "rank01")
    assert SimpleSelector.parse("#id") is None


def test_get_attribute_missing_returns_none():
    parser = HtmlParser('<img class="cover" src="//cdn.example/a.jpg">')
    image = parser.select_one("img")

    assert image.get_attribute("src") == "//cdn.example/a.jpg"
    assert image.get_attribute("alt") is None
    assert image.get_attribute("class") == "cover"
