"""Tests for the expired-session purge job."""

from unittest.mock import patch

from scripts.purge_expired_sessions import main

MODULE = "scripts.purge_expired_sessions"


class TestPurgeScript:
    def test_purges_with_explicit_cutoff(self):
        with patch(f"{MODULE}.purge_expired_sessions", return_value=3) as mock_purge:
            assert main(["--days", "7"]) == 0
        mock_purge.assert_called_once_with(7)

    def test_defaults_to_session_max_age(self):
        with patch(f"{MODULE}.purge_expired_sessions", return_value=0) as mock_purge:
            assert main([]) == 0
        mock_purge.assert_called_once_with(30)

    def test_dry_run_deletes_nothing(self):
        with (
            patch(f"{MODULE}.list_expired_sessions", return_value=["a", "b"]) as mock_list,
            patch(f"{MODULE}.purge_expired_sessions") as mock_purge,
        ):
            assert main(["--days", "14", "--dry-run"]) == 0
        mock_list.assert_called_once_with(14)
        mock_purge.assert_not_called()

    def test_invalid_cutoff(self):
        with patch(f"{MODULE}.purge_expired_sessions") as mock_purge:
            assert main(["--days", "0"]) == 2
        mock_purge.assert_not_called()

    def test_storage_failure_exits_nonzero(self):
        with patch(f"{MODULE}.purge_expired_sessions", side_effect=RuntimeError("db down")):
            assert main(["--days", "7"]) == 1
