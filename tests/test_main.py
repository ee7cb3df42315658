"""Tests for hunk_resolver.__main__ module."""

import sys
from unittest.mock import patch

from conftest import FakeVCS


class TestMainModule:
    """Tests for __main__.py entry point."""

    def test_main_module_runs(self, work_tree, capsys):
        vcs = FakeVCS([("UU", "single.txt")])
        vcs.repo_path = work_tree

        with patch.object(sys, "argv", ["prog", "--repo", str(work_tree), "list"]):
            with patch("hunk_resolver.cli.GitBackend") as mock_backend:
                mock_backend.discover.return_value = vcs
                from hunk_resolver.__main__ import main
                main()

        assert "single.txt (1 hunks)" in capsys.readouterr().out

    def test_main_module_importable(self):
        """Test that __main__ can be imported."""
        import hunk_resolver.__main__ as main_module
        assert hasattr(main_module, "main")
