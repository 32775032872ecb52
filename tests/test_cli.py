"""测试命令行入口."""

from pathlib import Path

from feedloom.cli import build_parser, main


class TestParser:
    """测试参数解析."""

    def test_fetch_all_options(self) -> None:
        """fetch-all 支持批大小与陈旧阈值."""
        args = build_parser().parse_args(
            ["fetch-all", "--batch-size", "5", "--staleness-minutes", "10"]
        )
        assert args.command == "fetch-all"
        assert args.batch_size == 5
        assert args.staleness_minutes == 10

    def test_fetch_one_requires_id(self) -> None:
        """fetch-one 的参数为整数 ID."""
        args = build_parser().parse_args(["fetch-one", "42"])
        assert args.source_id == 42


class TestMain:
    """测试子命令执行."""

    def test_prune_on_empty_database(self, tmp_path: Path, capsys) -> None:
        """空库清理返回 0."""
        url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"

        assert main(["--database-url", url, "prune", "--days", "7"]) == 0
        assert "删除 0 篇文章" in capsys.readouterr().out

    def test_fetch_one_unknown_source(self, tmp_path: Path) -> None:
        """订阅源不存在时返回 2."""
        url = f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}"

        assert main(["--database-url", url, "fetch-one", "1"]) == 2
