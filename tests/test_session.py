"""Tests for scan session state."""

import pytest

from nmcleaner.exceptions import SessionStateError
from nmcleaner.models import NodeModulesMatch, ScanState
from nmcleaner.session import ScanSession


@pytest.fixture
def session():
    return ScanSession(["/r"], include_sizes=True)


class TestLifecycle:
    def test_starts_idle(self, session):
        assert session.state == ScanState.IDLE

    def test_completes(self, session):
        session.start()
        assert session.state == ScanState.RUNNING
        assert session.finish() == ScanState.COMPLETED
        assert session.state == ScanState.COMPLETED

    def test_cancel_aborts(self, session):
        session.start()
        session.cancel("Stop")
        assert session.cancelled
        assert session.finish() == ScanState.ABORTED

    def test_cannot_start_twice(self, session):
        session.start()
        with pytest.raises(SessionStateError):
            session.start()

    def test_cannot_finish_idle(self, session):
        with pytest.raises(SessionStateError):
            session.finish()

    def test_terminal_state_is_final(self, session):
        session.start()
        session.finish()
        with pytest.raises(SessionStateError):
            session.start()


class TestMatches:
    def test_add_match_once(self, session):
        assert session.add_match(NodeModulesMatch.from_path("/r/app/node_modules"))
        assert not session.add_match(NodeModulesMatch.from_path("/r/app/node_modules"))
        assert len(session.matches()) == 1

    def test_set_size(self, session):
        session.add_match(NodeModulesMatch.from_path("/r/app/node_modules"))
        session.set_size("/r/app/node_modules", 1234)
        assert session.matches()[0].size == 1234

    def test_set_size_unknown_path_ignored(self, session):
        session.set_size("/r/other/node_modules", 1)
        assert session.matches() == []

    def test_matches_are_copies(self, session):
        session.add_match(NodeModulesMatch.from_path("/r/app/node_modules"))
        session.matches()[0].size = 5
        assert session.matches()[0].size is None


class TestSnapshot:
    def test_counters(self, session):
        session.enter_folder("/r/app")
        session.record_scanned()
        session.record_scanned()
        session.record_skip()
        session.add_match(NodeModulesMatch.from_path("/r/app/node_modules"))

        snapshot = session.snapshot()
        assert snapshot.current_folder == "/r/app"
        assert snapshot.folders_scanned == 2
        assert snapshot.directories_skipped == 1
        assert snapshot.node_modules_found == 1
        assert not snapshot.is_complete

    def test_estimate_only_grows(self, session):
        session.seed_estimate(10)
        assert session.snapshot().total_folders_estimated == 10
        session.record_discovered(4)
        assert session.snapshot().total_folders_estimated == 10
        session.record_discovered(20)
        assert session.snapshot().total_folders_estimated == 24

    def test_estimate_never_below_scanned(self, session):
        for _ in range(3):
            session.record_scanned()
        assert session.snapshot().total_folders_estimated >= 3


class TestReport:
    def test_completed_report(self, session):
        session.start()
        session.add_match(NodeModulesMatch.from_path("/r/app/node_modules"))
        session.record_root_error("/missing", "Path does not exist")
        session.finish()

        report = session.report()
        assert report.state == ScanState.COMPLETED
        assert len(report.matches) == 1
        assert report.root_errors[0].root == "/missing"
        assert report.progress.is_complete
        assert report.abort_reason is None

    def test_aborted_report_keeps_reason(self, session):
        session.start()
        session.cancel("User asked")
        session.cancel("Second reason")
        session.finish()

        report = session.report()
        assert report.state == ScanState.ABORTED
        assert report.abort_reason == "User asked"
        assert report.progress.is_complete
