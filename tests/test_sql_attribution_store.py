"""
Tests for the SQLAlchemy store: row conversion and guarded writes
"""

from contextlib import asynccontextmanager
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from attribution_worker.core.exceptions import AttributionNotFoundError, AttributionStateError
from attribution_worker.domains.attribution.models import (
    AttributionStatus,
    ExactMatchEvidence,
    MatchStrategy,
    MatchType,
    ProbabilisticMatchEvidence,
    ResolutionTier,
)
from attribution_worker.domains.attribution.services import SqlAlchemyAttributionStore
from attribution_worker.domains.attribution.services.sql_attribution_store import (
    attribution_from_row,
    content_from_row,
)
from tests.conftest import FIXED_NOW, USER_ID


def attribution_row(matched_by: dict) -> SimpleNamespace:
    return SimpleNamespace(
        id="attr_1",
        user_id=USER_ID,
        sale_id="sale_1",
        click_id="c1",
        link_id="link_1",
        content_id=None,
        confidence_score=0.6,
        status="UNCERTAIN",
        time_delta_minutes=10,
        matched_by=matched_by,
        revenue_share=1.0,
        created_at=FIXED_NOW,
    )


def post_row(post_id: str = "post_1", **overrides) -> SimpleNamespace:
    data = {
        "id": post_id,
        "user_id": USER_ID,
        "social_account_id": "twitter_acct_1",
        "platform": "twitter",
        "content": "New drop",
        "url": None,
        "posted_at": FIXED_NOW - timedelta(minutes=5),
        "likes": None,
        "comments": 3,
        "shares": None,
        "views": 40,
        "sentiment_score": None,
        "audience_breakdown": [{"city": "Austin", "percentage": 0.2}],
    }
    data.update(overrides)
    return SimpleNamespace(**data)


@asynccontextmanager
async def fake_session():
    yield "session"


class TestRowConversion:
    def test_exact_evidence_round_trip(self):
        evidence = ExactMatchEvidence(
            match_type=MatchType.IP,
            tier=ResolutionTier.ENGINE,
            strategy=MatchStrategy.IP_EXACT,
            provisional_score=0.95,
            ip_match=True,
            signals=["ip"],
            time_window_minutes=10,
        )

        record = attribution_from_row(attribution_row(evidence.model_dump(mode="json")))

        assert record.status == AttributionStatus.UNCERTAIN
        assert isinstance(record.matched_by, ExactMatchEvidence)
        assert record.match_type == MatchType.IP
        assert record.is_probabilistic is False

    def test_probabilistic_evidence_round_trip(self):
        evidence = ProbabilisticMatchEvidence(
            content_id="post_1",
            platform="twitter",
            time_decay=0.92,
            geo_score=0.0,
            sentiment_score=0.5,
            weights_version="v1.0.0",
        )

        record = attribution_from_row(attribution_row(evidence.model_dump(mode="json")))

        assert record.is_probabilistic is True
        assert record.match_type == MatchType.PROBABILISTIC

    def test_content_row(self):
        content = content_from_row(post_row())

        assert content.likes == 0
        assert content.comments == 3
        assert content.audience_breakdown[0].city == "Austin"


class TestFindRecentContent:
    @pytest.mark.asyncio
    async def test_malformed_posts_are_skipped(self):
        rows = [post_row("good"), post_row("bad", audience_breakdown=[{"city": "X", "percentage": 7}])]
        store = SqlAlchemyAttributionStore(
            session_context=fake_session, transaction_context=fake_session
        )

        with patch(
            "attribution_worker.domains.attribution.services.sql_attribution_store.SocialPostRepository"
        ) as repository:
            repository.return_value.get_recent_by_user = AsyncMock(return_value=rows)
            contents = await store.find_recent_content(
                USER_ID, FIXED_NOW - timedelta(days=1), FIXED_NOW
            )

        assert [c.id for c in contents] == ["good"]
        repository.return_value.get_recent_by_user.assert_awaited_once()


REPOSITORY_PATH = (
    "attribution_worker.domains.attribution.services.sql_attribution_store.AttributionRepository"
)


class TestUpdateAttributionStatus:
    def _store(self) -> SqlAlchemyAttributionStore:
        return SqlAlchemyAttributionStore(
            session_context=fake_session, transaction_context=fake_session
        )

    @pytest.mark.asyncio
    async def test_update_excludes_reviewed_statuses(self):
        evidence = ExactMatchEvidence(
            match_type=MatchType.IP,
            tier=ResolutionTier.ENGINE,
            strategy=MatchStrategy.IP_EXACT,
            provisional_score=0.95,
        )
        row = attribution_row(evidence.model_dump(mode="json"))
        row.status = "CONFIRMED"

        with patch(REPOSITORY_PATH) as repository:
            repository.return_value.update_status = AsyncMock(return_value=True)
            repository.return_value.get_by_id = AsyncMock(return_value=row)
            record = await self._store().update_attribution_status(
                "attr_1", AttributionStatus.CONFIRMED
            )

        assert record.status == AttributionStatus.CONFIRMED
        repository.return_value.update_status.assert_awaited_once_with(
            "attr_1", "CONFIRMED", ["CONFIRMED", "REJECTED"]
        )

    @pytest.mark.asyncio
    async def test_already_reviewed_raises_state_error(self):
        row = attribution_row({})
        row.status = "REJECTED"

        with patch(REPOSITORY_PATH) as repository:
            repository.return_value.update_status = AsyncMock(return_value=False)
            repository.return_value.get_by_id = AsyncMock(return_value=row)
            with pytest.raises(AttributionStateError) as exc_info:
                await self._store().update_attribution_status(
                    "attr_1", AttributionStatus.CONFIRMED
                )

        assert exc_info.value.details["current_status"] == "REJECTED"

    @pytest.mark.asyncio
    async def test_missing_row_raises_not_found(self):
        with patch(REPOSITORY_PATH) as repository:
            repository.return_value.update_status = AsyncMock(return_value=False)
            repository.return_value.get_by_id = AsyncMock(return_value=None)
            with pytest.raises(AttributionNotFoundError):
                await self._store().update_attribution_status(
                    "missing", AttributionStatus.REJECTED
                )
