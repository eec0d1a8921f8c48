"""Unit tests for the settlement run."""

import pytest

from safescore.models import DailyRecord, HistoryItem, Market, MatchResult, MatchStatus, SettlementResult
from safescore.results import ResultSource
from safescore.settlement import settle_pending
from safescore.storage import HistoryStorage


class FakeResultSource(ResultSource):
    name = "fake"

    def __init__(self, results_by_date):
        self.results_by_date = results_by_date
        self.calls = []

    def fetch_results_for_date(self, match_date):
        self.calls.append(match_date)
        return self.results_by_date.get(match_date, [])


class FakeIdResultSource(FakeResultSource):
    name = "fake-api"
    supports_id_lookup = True

    def __init__(self, results_by_date, results_by_id):
        super().__init__(results_by_date)
        self.results_by_id = results_by_id
        self.id_calls = []

    def fetch_result_by_id(self, match_id):
        self.id_calls.append(match_id)
        return self.results_by_id.get(match_id)


def _item(item_id, home, away, market, result=SettlementResult.PENDING) -> HistoryItem:
    return HistoryItem(id=item_id, home_team=home, away_team=away, prediction=market.value, result=result)


def _result(match_id, home, away, home_goals, away_goals, status=MatchStatus.FINISHED) -> MatchResult:
    return MatchResult(
        match_id=match_id,
        home_team=home,
        away_team=away,
        status=status,
        date="2026-01-10",
        home_goals=home_goals,
        away_goals=away_goals,
    )


@pytest.fixture
def storage(tmp_path):
    storage = HistoryStorage(db_path=tmp_path / "history.db", retention_days=30)
    storage.save_record(DailyRecord(date="2026-01-10", items=[
        _item("p1", "Arsenal", "Chelsea", Market.HOME_WIN),
        _item("p2", "Wolverhampton Wanderers", "Manchester City", Market.OVER_2_5),
        _item("p3", "Leeds United", "Burnley", Market.DRAW),
        _item("p4", "Fulham", "Brentford", Market.DRAW, SettlementResult.WON),
    ]))
    return storage


@pytest.fixture
def source():
    return FakeResultSource({
        "2026-01-10": [
            _result(11, "Arsenal", "Chelsea", 2, 1),
            _result(12, "Wolves", "Man City", 1, 1),
            _result(13, "Fulham", "Brentford", 0, 3),
        ],
    })


class TestSettlePending:

    def test_summary_counts(self, storage, source):
        summary = settle_pending(storage, source)

        assert summary.checked == 3
        assert summary.won == 1
        assert summary.lost == 1
        assert summary.pending == 1
        assert summary.unmatched == 1
        assert summary.dates == ["2026-01-10"]

    def test_items_are_persisted(self, storage, source):
        settle_pending(storage, source)

        items = {item.id: item for item in storage.load_record("2026-01-10").items}
        assert items["p1"].result is SettlementResult.WON
        assert items["p1"].score == "2 - 1"
        assert items["p1"].match_id == 11
        assert items["p2"].result is SettlementResult.LOST
        assert items["p2"].score == "1 - 1"
        assert items["p3"].result is SettlementResult.PENDING

    def test_settled_items_are_left_alone(self, storage, source):
        settle_pending(storage, source)

        fulham = next(i for i in storage.load_record("2026-01-10").items if i.id == "p4")
        assert fulham.result is SettlementResult.WON
        assert fulham.score == "-"

    def test_results_fetched_once_per_date(self, storage, source):
        settle_pending(storage, source)
        assert source.calls == ["2026-01-10"]

    def test_rerun_only_checks_remaining_items(self, storage, source):
        settle_pending(storage, source)
        summary = settle_pending(storage, source)

        assert summary.checked == 1
        assert summary.unmatched == 1

    def test_dates_without_pending_items_are_not_fetched(self, storage, source):
        storage.save_record(DailyRecord(date="2026-01-09", items=[
            _item("p9", "Everton", "Fulham", Market.DRAW, SettlementResult.LOST),
        ]))

        settle_pending(storage, source, dates=["2026-01-09"])

        assert source.calls == []

    def test_empty_result_feed_keeps_everything_pending(self, storage):
        summary = settle_pending(storage, FakeResultSource({}))

        assert summary.checked == 3
        assert summary.unmatched == 3
        assert summary.pending == 3
        assert summary.won == summary.lost == 0

    def test_live_match_stays_pending(self, storage):
        source = FakeResultSource({"2026-01-10": [
            _result(11, "Arsenal", "Chelsea", 1, 0, MatchStatus.IN_PLAY),
        ]})

        summary = settle_pending(storage, source)

        arsenal = next(i for i in storage.load_record("2026-01-10").items if i.id == "p1")
        assert arsenal.result is SettlementResult.PENDING
        assert arsenal.score == "1 - 0"
        assert summary.pending == 3
        assert summary.unmatched == 2

    def test_nothing_pending(self, tmp_path):
        storage = HistoryStorage(db_path=tmp_path / "empty.db")
        source = FakeResultSource({})

        summary = settle_pending(storage, source)

        assert summary.checked == 0
        assert source.calls == []

    def test_summary_to_dict(self, storage, source):
        data = settle_pending(storage, source).to_dict()
        assert data["checked"] == 3
        assert data["dates"] == ["2026-01-10"]

    def test_result_listed_with_teams_swapped(self, tmp_path):
        storage = HistoryStorage(db_path=tmp_path / "swapped.db")
        storage.save_record(DailyRecord(date="2026-01-10", items=[
            _item("p1", "Arsenal", "Chelsea", Market.HOME_WIN),
            _item("p2", "Everton", "Fulham", Market.AWAY_WIN_OR_DRAW),
        ]))
        source = FakeResultSource({"2026-01-10": [
            _result(21, "Chelsea", "Arsenal", 0, 3),
            _result(22, "Fulham", "Everton", 2, 0),
        ]})

        summary = settle_pending(storage, source)

        items = {item.id: item for item in storage.load_record("2026-01-10").items}
        assert items["p1"].result is SettlementResult.WON
        assert items["p1"].score == "3 - 0"
        assert items["p2"].result is SettlementResult.WON
        assert items["p2"].score == "0 - 2"
        assert summary.won == 2


class TestSettleById:

    @pytest.fixture
    def storage(self, tmp_path):
        storage = HistoryStorage(db_path=tmp_path / "ids.db")
        storage.save_record(DailyRecord(date="2026-01-10", items=[
            HistoryItem(id="p1", home_team="Arsenal", away_team="Chelsea",
                        prediction=Market.HOME_WIN.value, match_id=501),
            HistoryItem(id="pred-502-1700000000000-1", home_team="Everton", away_team="Fulham",
                        prediction=Market.OVER_1_5.value),
        ]))
        return storage

    def test_items_with_ids_skip_the_date_feed(self, storage):
        source = FakeIdResultSource({}, {
            501: _result(501, "Arsenal FC", "Chelsea FC", 1, 0),
            502: _result(502, "Everton FC", "Fulham FC", 2, 2),
        })

        summary = settle_pending(storage, source)

        assert source.id_calls == [501, 502]
        assert source.calls == []
        assert summary.won == 2
        items = {item.id: item for item in storage.load_record("2026-01-10").items}
        assert items["p1"].score == "1 - 0"
        assert items["pred-502-1700000000000-1"].match_id == 502

    def test_failed_id_lookup_falls_back_to_team_search(self, storage):
        source = FakeIdResultSource(
            {"2026-01-10": [_result(501, "Arsenal", "Chelsea", 0, 1), _result(502, "Everton", "Fulham", 0, 0)]},
            {},
        )

        summary = settle_pending(storage, source)

        assert source.calls == ["2026-01-10"]
        assert summary.lost == 2

    def test_source_without_ids_keeps_existing_match_id(self, storage):
        source = FakeResultSource({"2026-01-10": [
            _result(987654, "Arsenal", "Chelsea", 2, 0),
            _result(123456, "Everton", "Fulham", 3, 1),
        ]})

        settle_pending(storage, source)

        items = {item.id: item for item in storage.load_record("2026-01-10").items}
        assert items["p1"].result is SettlementResult.WON
        assert items["p1"].match_id == 501
        assert items["pred-502-1700000000000-1"].match_id == 123456
