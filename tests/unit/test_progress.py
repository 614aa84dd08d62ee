from __future__ import annotations

from unittest.mock import patch

from sales_ingest.services.progress import ChunkProgress, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_no_bar_without_tty():
    with patch("sales_ingest.services.progress.is_tty_enabled", return_value=False), \
         patch("sales_ingest.services.progress.tqdm") as mock_tqdm:
        with ChunkProgress(3) as progress:
            progress.advance(inserted=1)
        assert progress.enabled is False
        mock_tqdm.assert_not_called()


def test_no_bar_for_zero_chunks():
    with patch("sales_ingest.services.progress.is_tty_enabled", return_value=True), \
         patch("sales_ingest.services.progress.tqdm") as mock_tqdm:
        assert ChunkProgress(0).enabled is False
        mock_tqdm.assert_not_called()


def test_bar_advances_and_closes_on_tty():
    with patch("sales_ingest.services.progress.is_tty_enabled", return_value=True), \
         patch("sales_ingest.services.progress.tqdm") as mock_tqdm:
        bar = mock_tqdm.return_value
        with ChunkProgress(2, description="Online") as progress:
            progress.advance(inserted=5, failed=0)
            progress.advance()
        mock_tqdm.assert_called_once_with(
            total=2, desc="Online", unit="chunk", leave=False, ncols=80, ascii=True
        )
        bar.set_postfix.assert_called_once_with(inserted=5, failed=0)
        assert bar.update.call_count == 2
        bar.close.assert_called_once()
        assert progress.pbar is None
