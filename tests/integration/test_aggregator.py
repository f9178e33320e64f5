import logging

from core.aggregator import Aggregator
from core.models.run import RunResult

MELON_SUFFIXES = {'melon': {'TOP100': 'top100', 'HOT100': 'hot100', '일간': 'daily'}}


def test_single_chart_sources_map_to_bare_ids_in_order(entry_factory, collected_at):
    """N disjoint successful results give exactly N keys with entries in adapter order."""
    results = [
        RunResult.success("genie", [entry_factory(1, "G1", source_id="genie"), entry_factory(2, "G2", source_id="genie")], 10),
        RunResult.success("bugs", [entry_factory(1, "B1", source_id="bugs")], 12),
        RunResult.success("flo", [entry_factory(1, "F1", source_id="flo")], 8),
    ]

    snapshot = Aggregator().aggregate(results, collected_at)

    assert snapshot.keys == ["genie", "bugs", "flo"]
    assert [item['title'] for item in snapshot.by_source_key["genie"]] == ["G1", "G2"]
    assert snapshot.entry_count() == 4


def test_failed_results_contribute_no_key(entry_factory, collected_at):
    results = [
        RunResult.success("genie", [entry_factory(1, source_id="genie")], 10),
        RunResult.failure("bugs", 5, "Chart extraction for bugs is not implemented", "not_implemented"),
    ]

    snapshot = Aggregator().aggregate(results, collected_at)

    assert snapshot.keys == ["genie"]


def test_multi_chart_source_is_split_by_suffix(entry_factory, collected_at):
    entries = [
        entry_factory(1, "Top One", chart_type="TOP100"),
        entry_factory(1, "Hot One", chart_type="HOT100"),
        entry_factory(2, "Top Two", chart_type="TOP100"),
    ]
    results = [RunResult.success("melon", entries, 20)]

    snapshot = Aggregator(MELON_SUFFIXES).aggregate(results, collected_at)

    assert [item['title'] for item in snapshot.by_source_key["melon_top100"]] == ["Top One", "Top Two"]
    assert [item['title'] for item in snapshot.by_source_key["melon_hot100"]] == ["Hot One"]
    # Declared chart types without entries still get a key
    assert snapshot.by_source_key["melon_daily"] == []
    assert "melon" not in snapshot.by_source_key


def test_unmapped_chart_label_goes_to_default_suffix(entry_factory, collected_at, caplog):
    caplog.set_level(logging.WARNING, logger="core.aggregator")
    entries = [
        entry_factory(1, "Top One", chart_type="TOP100"),
        entry_factory(1, "Mystery", chart_type="연간"),
    ]

    snapshot = Aggregator(MELON_SUFFIXES).aggregate([RunResult.success("melon", entries, 20)], collected_at)

    assert [item['title'] for item in snapshot.by_source_key["melon_top100"]] == ["Top One", "Mystery"]
    assert "Unmapped chart type '연간'" in caplog.text


def test_explicit_default_suffix(entry_factory, collected_at):
    entries = [entry_factory(1, "Mystery", chart_type=None)]
    aggregator = Aggregator(MELON_SUFFIXES, default_suffixes={'melon': 'daily'})

    snapshot = aggregator.aggregate([RunResult.success("melon", entries, 20)], collected_at)

    assert [item['title'] for item in snapshot.by_source_key["melon_daily"]] == ["Mystery"]


def test_snapshot_payload_shape(entry_factory, collected_at):
    results = [RunResult.success("genie", [entry_factory(3, "Song", "DAY6", source_id="genie")], 10)]

    payload = Aggregator(focus_artist="DAY6").aggregate(results, collected_at).to_dict()

    assert payload['collectedAtKST'] == "2024-05-01T15:00:00+09:00"
    assert payload['last_updated'] == payload['collectedAtKST']
    assert payload['artist'] == "DAY6"
    assert payload['genie'] == [{
        'rank': 3,
        'title': "Song",
        'artist': "DAY6",
        'album': '',
        'albumArt': '',
        'change': 0,
        'timestamp': "2024-05-01T15:00:00+09:00",
    }]


def test_all_failed_gives_empty_snapshot(collected_at):
    results = [RunResult.failure("genie", 5, "HTTP 500", "http_status")]

    snapshot = Aggregator(focus_artist=None).aggregate(results, collected_at)

    assert snapshot.keys == []
    assert snapshot.to_dict()['artist'] == ''
