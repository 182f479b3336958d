"""
Tests for the in-process click index
"""

import asyncio
from datetime import timedelta

import pytest

from attribution_worker.domains.attribution.models import MatchingSignals, MatchStrategy
from attribution_worker.domains.attribution.services import (
    ClickEventStore,
    TimeIndexedClickBuffer,
)
from tests.conftest import FIXED_NOW, USER_ID, make_click


class TestTimeIndexedClickBuffer:
    def test_keeps_clicks_in_time_order(self):
        buffer = TimeIndexedClickBuffer()
        buffer.add(make_click("c2", minutes_before=5))
        buffer.add(make_click("c1", minutes_before=30))
        buffer.add(make_click("c3", minutes_before=1))

        assert [c.id for c in buffer] == ["c1", "c2", "c3"]

    def test_bound_evicts_oldest(self):
        buffer = TimeIndexedClickBuffer(max_size=2)
        buffer.add(make_click("old", minutes_before=30))
        buffer.add(make_click("mid", minutes_before=20))
        evicted = buffer.add(make_click("new", minutes_before=10))

        assert evicted.id == "old"
        assert [c.id for c in buffer] == ["mid", "new"]

    def test_within_is_inclusive(self):
        buffer = TimeIndexedClickBuffer()
        edge = make_click("edge", minutes_before=60)
        buffer.add(edge)
        buffer.add(make_click("outside", minutes_before=61))

        found = buffer.within(FIXED_NOW - timedelta(minutes=60), FIXED_NOW)
        assert [c.id for c in found] == ["edge"]


class TestClickEventStore:
    def test_ignores_inferred_and_duplicate_clicks(self, click_store):
        assert click_store.record_click(make_click("c1")) is True
        assert click_store.record_click(make_click("c1")) is False
        assert click_store.record_click(make_click("c2", inferred=True)) is False
        assert click_store.get_click_stats().total_clicks == 1

    def test_strategy_priority_and_scores(self, click_store):
        click_store.record_click(make_click("fp_click", fingerprint="fp_1"))
        click_store.record_click(make_click("ip_click", ip_address="1.2.3.4"))

        matches = click_store.find_matching_clicks(
            USER_ID, FIXED_NOW, MatchingSignals(ip="1.2.3.4", fingerprint="fp_1")
        )

        assert [m.click.id for m in matches] == ["ip_click", "fp_click"]
        assert matches[0].score == 0.95
        assert matches[0].strategy == MatchStrategy.IP_EXACT
        assert matches[1].score == 0.80

    def test_filters_other_users_attributed_and_expired_clicks(self, click_store):
        click_store.record_click(make_click("other", ip_address="1.2.3.4", user_id="someone_else"))
        click_store.record_click(make_click("expired", ip_address="1.2.3.4", minutes_before=1441))
        taken = make_click("taken", ip_address="1.2.3.4")
        click_store.record_click(taken)
        click_store.mark_click_attributed("taken", "sale_0")
        click_store.record_click(make_click("fresh", ip_address="1.2.3.4", minutes_before=3))

        matches = click_store.find_matching_clicks(USER_ID, FIXED_NOW, MatchingSignals(ip="1.2.3.4"))

        assert [m.click.id for m in matches] == ["fresh"]

    def test_tracker_slot_keeps_latest_click(self, click_store):
        click_store.record_click(make_click("first", tracker_id="trk", minutes_before=50))
        click_store.record_click(make_click("second", tracker_id="trk", minutes_before=5))

        matches = click_store.find_matching_clicks(
            USER_ID, FIXED_NOW, MatchingSignals(tracker_id="trk")
        )

        assert [m.click.id for m in matches] == ["second"]
        assert matches[0].score == 0.90

    def test_geo_requires_country_and_city(self, click_store):
        click_store.record_click(make_click("geo", country="US", city="Austin"))

        same_city = click_store.find_matching_clicks(
            USER_ID, FIXED_NOW, MatchingSignals(country="us", city="AUSTIN")
        )
        country_only = click_store.find_matching_clicks(
            USER_ID, FIXED_NOW, MatchingSignals(country="US")
        )

        assert [m.strategy for m in same_city] == [MatchStrategy.GEO]
        assert country_only == []

    def test_per_user_bound_forgets_evicted_click_everywhere(self, clock):
        store = ClickEventStore(max_clicks_per_user=2, clock=clock)
        store.record_click(make_click("c1", ip_address="9.9.9.9", minutes_before=30))
        store.record_click(make_click("c2", minutes_before=20))
        store.record_click(make_click("c3", minutes_before=10))

        assert store.get_click("c1") is None
        assert store.find_matching_clicks(USER_ID, FIXED_NOW, MatchingSignals(ip="9.9.9.9")) == []
        assert store.get_click_stats().total_clicks == 2

    def test_sweep_drops_clicks_older_than_window(self, click_store, clock):
        click_store.record_click(make_click("c1", ip_address="1.1.1.1", minutes_before=10))
        clock.advance(minutes=1440)
        click_store.record_click(make_click("c2", clicked_at=clock.now))

        removed = click_store.sweep()

        assert removed == 1
        assert click_store.get_click("c1") is None
        assert click_store.get_click("c2") is not None
        assert click_store.get_click_stats().unique_ips == 0

    def test_unattributed_clicks_newest_first(self, click_store):
        click_store.record_click(make_click("older", minutes_before=40))
        click_store.record_click(make_click("newer", minutes_before=4))
        click_store.record_click(make_click("done", minutes_before=2))
        click_store.mark_click_attributed("done", "sale_9")

        clicks = click_store.get_unattributed_clicks(USER_ID)

        assert [c.id for c in clicks] == ["newer", "older"]

    def test_mark_attributed_is_idempotent(self, click_store):
        click_store.record_click(make_click("c1"))

        assert click_store.mark_click_attributed("c1", "sale_1") is True
        assert click_store.mark_click_attributed("c1", "sale_1") is False
        assert click_store.get_click("c1").sale_id == "sale_1"

    def test_release_only_undoes_own_claim(self, click_store):
        click_store.record_click(make_click("c1", ip_address="1.2.3.4"))
        click_store.mark_click_attributed("c1", "sale_1")

        assert click_store.release_click("c1", "sale_2") is False
        assert click_store.release_click("c1", "sale_1") is True
        assert click_store.get_click("c1").sale_id is None
        matches = click_store.find_matching_clicks(USER_ID, FIXED_NOW, MatchingSignals(ip="1.2.3.4"))
        assert [m.click.id for m in matches] == ["c1"]

    @pytest.mark.asyncio
    async def test_sweeper_task_starts_and_stops(self, clock):
        store = ClickEventStore(sweep_interval_seconds=0.01, clock=clock)
        store.record_click(make_click("c1", minutes_before=10))
        clock.advance(minutes=1440)

        store.start_sweeper()
        await asyncio.sleep(0.05)
        await store.stop_sweeper()

        assert store.get_click("c1") is None
