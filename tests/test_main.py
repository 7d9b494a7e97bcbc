"""Tests for the command-line entry point."""

import sys

import pytest

import main
from peoples_thread.models import IngestionResult


class StubPipeline:
    """Pipeline stand-in returning a fixed result."""

    def __init__(self, result: IngestionResult):
        self.result = result
        self.commits = 0

    async def commit(self) -> IngestionResult:
        self.commits += 1
        return self.result


class TestParser:
    """Tests for build_parser."""

    def test_defaults_to_commit(self):
        assert main.build_parser().parse_args([]).command == "commit"

    def test_accepts_commit(self):
        args = main.build_parser().parse_args(["commit", "-v"])
        assert args.command == "commit"
        assert args.verbose

    def test_rejects_unknown_command(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(["run"])


class TestMain:
    """Tests for main."""

    @pytest.mark.asyncio
    async def test_commit_exit_codes(self, monkeypatch):
        stub = StubPipeline(IngestionResult(articles_processed=1, articles_created=1))
        monkeypatch.setattr(main.IngestionPipeline, "from_settings", lambda cfg: stub)
        monkeypatch.setattr(sys, "argv", ["main.py", "commit"])

        assert await main.main() == 0
        assert stub.commits == 1

        stub.result = IngestionResult(success=False, errors=["Failed to fetch feed: 500"])
        assert await main.main() == 1
