"""Tests for the rank snapshot store."""

import logging


class TestSnapshotStore:

    def test_first_snapshot_is_recorded(self, snapshots, clock):
        assert snapshots.record_snapshot("p1", "GOLD", "II", 45, 10, 8) is True

        latest = snapshots.latest_snapshot("p1")
        assert (latest.tier, latest.division, latest.lp) == ("GOLD", "II", 45)
        assert latest.recorded_at == int(clock.now)
        assert latest.games_played == 18

    def test_unchanged_record_is_skipped(self, snapshots, clock):
        snapshots.record_snapshot("p1", "GOLD", "II", 45, 10, 8)
        clock.advance(60)

        # LP decay without a game: same wins/losses, nothing written
        assert snapshots.record_snapshot("p1", "GOLD", "II", 30, 10, 8) is False
        assert len(snapshots.get_snapshots("p1")) == 1

    def test_new_game_is_recorded(self, snapshots, clock):
        snapshots.record_snapshot("p1", "GOLD", "II", 45, 10, 8)
        clock.advance(60)

        assert snapshots.record_snapshot("p1", "GOLD", "II", 67, 11, 8) is True
        assert [s.lp for s in snapshots.get_snapshots("p1")] == [45, 67]

    def test_snapshots_are_per_subject(self, snapshots):
        snapshots.record_snapshot("p1", "GOLD", "II", 45, 10, 8, recorded_at=100)
        snapshots.record_snapshot("p2", "SILVER", "I", 10, 3, 3, recorded_at=100)

        assert len(snapshots.get_snapshots("p1")) == 1
        assert snapshots.latest_snapshot("p2").tier == "SILVER"
        assert snapshots.latest_snapshot("p3") is None

    def test_get_snapshots_keeps_most_recent_ascending(self, snapshots):
        for i in range(5):
            snapshots.record_snapshot("p1", "GOLD", "IV", i, i, 0, recorded_at=1000 + i)

        rows = snapshots.get_snapshots("p1", limit=3)

        assert [r.recorded_at for r in rows] == [1002, 1003, 1004]

    def test_games_going_down_is_recorded_with_warning(self, snapshots, caplog):
        snapshots.record_snapshot("p1", "GOLD", "II", 45, 100, 90, recorded_at=100)

        with caplog.at_level(logging.WARNING, logger="riftwatch.db.snapshots"):
            assert snapshots.record_snapshot("p1", "SILVER", "I", 0, 1, 0, recorded_at=200) is True

        assert "went down" in caplog.text
        assert len(snapshots.get_snapshots("p1")) == 2
