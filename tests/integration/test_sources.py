import asyncio
import logging

import pytest

from core.exceptions import ErrorKind
from core.fetcher import FetchFailure
from core.models.run import RunStatus
from core.sources import SourceRegistry, get_registry
from core.sources.charts import BugsSource, FloSource, GenieSource, MelonSource, VibeSource, MELON_CHART_TYPES
from core.sources.charts.genie import GENIE_CHART_URL


def melon_row(song_no, rank, title, artist, album="Album", change="순위 동일"):
    return f"""
    <tr class="lst50" data-song-no="{song_no}">
      <td><div class="wrap t_center"><span class="rank ">{rank}</span><span class="none">위</span></div></td>
      <td><div class="wrap"><span title="{change}" class="rank_wrap"><span class="up">2</span></span></div></td>
      <td><div class="wrap"><a href="#" class="image_typeAll">
        <img src="//cdnimg.melon.co.kr/cm2/album/{song_no}.jpg" alt="{album}"></a></div></td>
      <td><div class="wrap"><div class="wrap_song_info">
        <div class="ellipsis rank01"><span><a href="#">{title}</a></span></div><br>
        <div class="ellipsis rank02"><a href="#">{artist}</a></div>
      </div></div></td>
      <td><div class="wrap"><div class="wrap_song_info">
        <div class="ellipsis rank03"><a href="#">{album}</a></div>
      </div></div></td>
    </tr>
    """


def melon_page(*rows):
    return "<html><body><table><tbody>" + "".join(rows) + "</tbody></table></body></html>"


def genie_row(rank, title, artist, album, movement=""):
    return f"""
    <tr class="list" songid="{rank}00">
      <td class="number">{rank}
        <span class="rank">{movement}</span>
      </td>
      <td><a href="#" class="cover"><img src="//image.genie.co.kr/Y/IMAGE/{rank}.jpg" alt="{album}"></a></td>
      <td class="info">
        <a href="#" class="title ellipsis">{title}</a>
        <a href="#" class="artist ellipsis">{artist}</a>
        <a href="#" class="albumtitle ellipsis">{album}</a>
      </td>
    </tr>
    """


def genie_page(*rows):
    return "<table class='list-wrap'><tbody>" + "".join(rows) + "</tbody></table>"


def crawl(source, fetcher):
    return asyncio.run(source.crawl(fetcher))


def test_melon_parses_every_chart_type(fake_fetcher_factory):
    """Each Melon chart page contributes entries tagged with its chart label."""
    pages = {
        chart_type.url: melon_page(
            melon_row(1, 1, f"{chart_type.key} one", "DAY6", change="2단계 상승"),
            melon_row(2, 2, f"{chart_type.key} two", "IU", change="1단계 하락"),
        )
        for chart_type in MELON_CHART_TYPES
    }
    fetcher = fake_fetcher_factory(pages)

    result = crawl(MelonSource(), fetcher)

    assert result.status == RunStatus.SUCCESS
    assert len(result.entries) == 10
    first = result.entries[0]
    assert first.rank == 1
    assert first.title == "top100 one"
    assert first.artist == "DAY6"
    assert first.album == "Album"
    assert first.art_url == "https://cdnimg.melon.co.kr/cm2/album/1.jpg"
    assert first.rank_change == 2
    assert first.chart_type == "TOP100"
    assert result.entries[1].rank_change == -1
    assert {entry.chart_type for entry in result.entries} == {"TOP100", "HOT100", "일간", "주간", "월간"}
    assert fetcher.fetched == [chart_type.url for chart_type in MELON_CHART_TYPES]


def test_melon_failed_chart_type_is_skipped(fake_fetcher_factory):
    pages = {MELON_CHART_TYPES[0].url: melon_page(melon_row(1, 1, "Only", "Artist"))}
    fetcher = fake_fetcher_factory(pages)

    result = crawl(MelonSource(), fetcher)

    assert result.is_success
    assert [entry.title for entry in result.entries] == ["Only"]
    assert len(fetcher.fetched) == len(MELON_CHART_TYPES)


def test_melon_drops_invalid_rows_and_keeps_order(fake_fetcher_factory):
    page = melon_page(
        melon_row(1, 1, "Kept First", "A"),
        melon_row(2, 2, "   ", "No Title"),
        melon_row(3, 999, "Out Of Range", "B"),
        melon_row(4, 3, "Kept Second", "C"),
    )
    source = MelonSource({'chart_types': MELON_CHART_TYPES[:1]})

    result = crawl(source, fake_fetcher_factory({MELON_CHART_TYPES[0].url: page}))

    assert [entry.title for entry in result.entries] == ["Kept First", "Kept Second"]


def test_row_that_raises_is_skipped(fake_fetcher_factory, monkeypatch, caplog):
    caplog.set_level(logging.WARNING, logger="core.sources.base")
    page = melon_page(melon_row(1, 1, "Good", "A"), melon_row(2, 2, "Bad", "B"), melon_row(3, 3, "Good Too", "C"))
    source = MelonSource({'chart_types': MELON_CHART_TYPES[:1]})
    original = MelonSource.parse_row

    def flaky_parse_row(self, row, collected_at, chart_type=None):
        if row.get_attribute("data-song-no") == "2":
            raise AttributeError("unexpected markup")
        return original(self, row, collected_at, chart_type)

    monkeypatch.setattr(MelonSource, "parse_row", flaky_parse_row)

    result = crawl(source, fake_fetcher_factory({MELON_CHART_TYPES[0].url: page}))

    assert result.is_success
    assert [entry.title for entry in result.entries] == ["Good", "Good Too"]
    assert "Error parsing melon TOP100 row (parse_row_error): unexpected markup" in caplog.text


def test_melon_entries_use_configured_timezone(fake_fetcher_factory):
    source = MelonSource({'chart_types': MELON_CHART_TYPES[:1]})
    page = melon_page(melon_row(1, 1, "Song", "Artist"))

    result = crawl(source, fake_fetcher_factory({MELON_CHART_TYPES[0].url: page}))

    assert result.entries[0].collected_at.utcoffset().total_seconds() == 9 * 3600


def test_genie_parses_rows(fake_fetcher_factory):
    page = genie_page(
        genie_row(1, "Welcome to the Show", "DAY6", "Fourever", '<span class="rank-up">3<span class="hide">상승</span></span>'),
        genie_row(2, "Supernova", "aespa", "Armageddon", '<span class="rank-down">1<span class="hide">하락</span></span>'),
        genie_row(3, "Magnetic", "ILLIT", "SUPER REAL ME", '<span class="rank-none">유지</span>'),
    )
    fetcher = fake_fetcher_factory({GENIE_CHART_URL: page})

    result = crawl(GenieSource(), fetcher)

    assert result.is_success
    assert [entry.rank for entry in result.entries] == [1, 2, 3]
    first = result.entries[0]
    assert first.title == "Welcome to the Show"
    assert first.artist == "DAY6"
    assert first.album == "Fourever"
    assert first.art_url == "https://image.genie.co.kr/Y/IMAGE/1.jpg"
    assert first.chart_type is None
    assert [entry.rank_change for entry in result.entries] == [3, -1, 0]


def test_genie_fetch_failure_fails_source(fake_fetcher_factory):
    failure = FetchFailure(url=GENIE_CHART_URL, reason=ErrorKind.HTTP_STATUS, status=403)

    result = crawl(GenieSource(), fake_fetcher_factory({GENIE_CHART_URL: failure}))

    assert result.status == RunStatus.FAILED
    assert result.error_kind == "http_status"
    assert "HTTP 403" in result.error_message
    assert result.entries == ()


@pytest.mark.parametrize("source_class", [BugsSource, VibeSource, FloSource])
def test_declared_sources_fail_not_implemented_when_reachable(fake_fetcher_factory, source_class):
    fetcher = fake_fetcher_factory({source_class.CHART_URL: "<html>chart</html>"})

    result = crawl(source_class(), fetcher)

    assert result.status == RunStatus.FAILED
    assert result.error_kind == "not_implemented"
    assert result.entries == ()
    assert fetcher.fetched == [source_class.CHART_URL]


def test_declared_source_reports_fetch_kind_when_unreachable(fake_fetcher_factory):
    failure = FetchFailure(url=BugsSource.CHART_URL, reason=ErrorKind.TRANSPORT, detail="connection reset")

    result = crawl(BugsSource(), fake_fetcher_factory({BugsSource.CHART_URL: failure}))

    assert result.error_kind == "transport"


def test_unexpected_exception_becomes_adapter_error(fake_source_factory, fake_fetcher_factory):
    source = fake_source_factory("broken", error=KeyError("cell"))

    result = crawl(source, fake_fetcher_factory())

    assert result.status == RunStatus.FAILED
    assert result.error_kind == "adapter_error"
    assert result.duration_ms >= 0


def test_global_registry_has_builtin_sources():
    assert get_registry().list_available_sources() == ['melon', 'genie', 'bugs', 'vibe', 'flo']
    assert get_registry().chart_type_suffixes() == {
        'melon': {'TOP100': 'top100', 'HOT100': 'hot100', '일간': 'daily', '주간': 'weekly', '월간': 'monthly'}
    }


def test_registry_returns_fresh_instances_in_requested_order():
    registry = SourceRegistry()
    registry.register_source(GenieSource)
    registry.register_source(BugsSource)

    first = registry.get_sources(['bugs', 'genie'])
    second = registry.get_sources(['bugs', 'genie'])

    assert [source.source_id for source in first] == ['bugs', 'genie']
    assert first[0] is not second[0]
    with pytest.raises(KeyError):
        registry.get_source('spotify')
