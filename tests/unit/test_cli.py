"""
Unit tests for the command line entry point.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from market_indexer.cli import build_command, build_parser, main
from market_indexer.utils.exceptions import UnsupportedChainError


class TestParser:
    """Test argument parsing."""

    def test_reindex_market(self):
        args = build_parser().parse_args(
            ["reindex-market", "42161", "--start-ts", "100", "--clear-existing"]
        )

        assert args.command == "reindex-market"
        assert args.chain_id == 42161
        assert args.start_ts == 100
        assert args.end_ts is None
        assert args.clear_existing is True

    def test_index_blocks(self):
        args = build_parser().parse_args(["index-blocks", "8453", "10", "12", "11"])

        assert args.blocks == [10, 12, 11]
        assert args.attestations is False

    def test_watch_chains(self):
        args = build_parser().parse_args(
            ["watch", "--chain", "1", "--chain", "8453", "--no-attestations"]
        )

        assert args.chains == [1, 8453]
        assert args.no_attestations is True

    def test_watch_defaults(self):
        args = build_parser().parse_args(["watch"])

        assert args.chains is None
        assert args.health_port is None


class TestBuildCommand:
    """Test dispatch to operations."""

    @pytest.mark.parametrize(
        "argv, operation",
        [
            (["reindex-market", "42161"], "reindex_prediction_market"),
            (["reindex-attestations", "42161", "--overwrite"], "reindex_attestations"),
            (["index-blocks", "42161", "5"], "index_blocks"),
            (["watch"], "watch"),
            (["reconcile", "--lookback-seconds", "60"], "reconcile"),
        ],
    )
    def test_dispatch(self, argv, operation):
        args = build_parser().parse_args(argv)

        with patch(
            f"market_indexer.jobs.operations.{operation}", new_callable=MagicMock
        ) as mocked:
            command = build_command(args)

        mocked.assert_called_once()
        assert command is mocked.return_value

    def test_flags_forwarded(self):
        args = build_parser().parse_args(
            ["reindex-attestations", "10", "--end-ts", "500", "--overwrite"]
        )

        with patch(
            "market_indexer.jobs.operations.reindex_attestations",
            new_callable=MagicMock,
        ) as mocked:
            build_command(args)

        call = mocked.call_args
        assert call.args[1:] == (10, None, 500)
        assert call.kwargs == {"overwrite_existing": True}


class TestMain:
    """Test process exit codes."""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 2
        assert "market-indexer" in capsys.readouterr().out

    def test_success(self):
        operation = AsyncMock(return_value=None)

        with patch("market_indexer.cli.setup_logging") as setup_logging, patch(
            "market_indexer.jobs.operations.reconcile", operation
        ):
            assert main(["reconcile"]) == 0

        operation.assert_awaited_once()
        setup_logging.assert_called_once()

    def test_configuration_error(self):
        operation = AsyncMock(side_effect=UnsupportedChainError("no rpc"))

        with patch("market_indexer.cli.setup_logging", MagicMock()), patch(
            "market_indexer.jobs.operations.index_blocks", operation
        ):
            assert main(["index-blocks", "999", "1"]) == 1
