"""Tests for the channel-notifier CLI."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from channel_notifier.cli import main
from channel_notifier.sources.schemas import ApprovalState
from channel_notifier.sources.store import InMemorySourceStore

CHANNEL_ID = "UC" + "a" * 22
OTHER_CHANNEL_ID = "UC" + "b" * 22


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def invoke(runner):
    """Invoke the CLI against an in-memory store."""

    def _invoke(store, args):
        with patch("channel_notifier.cli._build_store", return_value=(store, None)):
            return runner.invoke(main, args)

    return _invoke


# ── Approval ──────────────────────────────────────────────


class TestApprovalCommands:
    def test_approve_ready_source(self, invoke, make_source):
        store = InMemorySourceStore([make_source(approval_state=ApprovalState.READY)])

        result = invoke(store, ["approve", CHANNEL_ID])

        assert result.exit_code == 0
        assert "Test Channel is now approved" in result.output

    def test_deny_approved_source(self, invoke, make_source):
        store = InMemorySourceStore([make_source(approval_state=ApprovalState.APPROVED)])

        result = invoke(store, ["deny", CHANNEL_ID])

        assert result.exit_code == 0
        assert "is now denied" in result.output

    def test_approve_tracking_source_fails(self, invoke, make_source):
        store = InMemorySourceStore([make_source()])

        result = invoke(store, ["approve", CHANNEL_ID])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_unknown_source(self, invoke):
        result = invoke(InMemorySourceStore(), ["deny", CHANNEL_ID])

        assert result.exit_code == 1


# ── Status / score ────────────────────────────────────────


class TestStatus:
    def test_shows_badge_and_sources(self, invoke, make_source):
        store = InMemorySourceStore([
            make_source(CHANNEL_ID, name="Ready One", approval_state=ApprovalState.READY, count=10),
            make_source(OTHER_CHANNEL_ID, name="Tracked", count=2),
        ])

        result = invoke(store, ["status"])

        assert result.exit_code == 0
        assert "Badge: ready (1)" in result.output
        assert "Ready One" in result.output
        assert "Tracked" in result.output


class TestScore:
    def test_score_is_stored(self, invoke, make_source):
        store = InMemorySourceStore([
            make_source(count=12, first_seen_days_ago=40, last_watch_days_ago=1,
                        average_watch_percentage=75),
        ])

        result = invoke(store, ["score", CHANNEL_ID])

        assert result.exit_code == 0
        assert "Score:" in result.output
        assert "frequency" in result.output

    def test_unknown_source(self, invoke):
        result = invoke(InMemorySourceStore(), ["score", CHANNEL_ID])

        assert result.exit_code == 1


# ── Recommendations ───────────────────────────────────────


class TestRecommendations:
    def test_similar(self, invoke, make_source):
        store = InMemorySourceStore([
            make_source(CHANNEL_ID, count=10, watch_hours={18}, watch_days={3},
                        average_watch_percentage=80, relationship_score=70),
            make_source(OTHER_CHANNEL_ID, name="Twin", count=9, watch_hours={18},
                        watch_days={3}, average_watch_percentage=78, relationship_score=68),
        ])

        result = invoke(store, ["similar", CHANNEL_ID])

        assert result.exit_code == 0
        assert "Twin" in result.output
        assert "% similar" in result.output

    def test_similar_none(self, invoke, make_source):
        result = invoke(InMemorySourceStore([make_source()]), ["similar", CHANNEL_ID])

        assert "No similar sources found." in result.output

    def test_predict(self, invoke, make_source):
        store = InMemorySourceStore([
            make_source(name="Daily Show", count=10, watch_hours=set(range(24)),
                        watch_days=set(range(7)), last_watch_days_ago=1,
                        relationship_score=80, approval_state=ApprovalState.APPROVED),
        ])

        result = invoke(store, ["predict"])

        assert result.exit_code == 0
        assert "Daily Show" in result.output

    def test_predict_empty(self, invoke):
        result = invoke(InMemorySourceStore(), ["predict"])

        assert "No predictions available." in result.output


class TestPollOnce:
    def test_no_approved_sources(self, invoke, make_source):
        result = invoke(InMemorySourceStore([make_source()]), ["poll-once"])

        assert result.exit_code == 0
        assert "No approved sources polled." in result.output
