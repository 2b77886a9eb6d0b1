"""
Unit tests for demo discovery, the registry and the command line.
"""

import logging

import pytest

from pattern_catalog import registry
from pattern_catalog.cli import main
from pattern_catalog.exceptions import UnsupportedTypeException

registry.discover()
ALL_DEMOS = sorted(d.name for d in registry.list_demos())


@pytest.fixture(autouse=True)
def drop_cli_log_handlers():
    """Remove the stderr handler the CLI installs so later tests do not log into a closed capture."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)


class TestRegistry:
    """Tests for discovery and lookup."""

    def test_every_category_has_demos(self):
        """Test discovery finds demos in all four families."""
        for category in registry.Category:
            assert registry.list_demos(category=category), category

    def test_names_are_sorted_and_unique(self):
        """Test listing order."""
        names = [d.name for d in registry.list_demos()]
        assert names == sorted(set(names))

    def test_filter_by_pattern(self):
        """Test pattern filtering matches display name or name prefix."""
        by_display = registry.list_demos(pattern="Singleton")
        by_prefix = registry.list_demos(pattern="chain-of-responsibility")
        assert by_display and all(d.name.startswith("singleton.") for d in by_display)
        assert len(by_prefix) == 5

    def test_get_unknown_demo(self):
        """Test unknown names raise UnsupportedTypeException."""
        with pytest.raises(UnsupportedTypeException):
            registry.get_demo("no-such.demo")

    def test_async_demo_detected(self):
        """Test coroutine entry points are flagged."""
        assert registry.get_demo("command-queue.function-queues").is_async
        assert not registry.get_demo("lens.nested-records").is_async


class TestDemosRun:
    """Smoke tests: every registered demo runs to completion."""

    @pytest.mark.parametrize("name", ALL_DEMOS)
    def test_demo_runs(self, name, capsys):
        """Test the demo runs and prints output."""
        registry.run(registry.get_demo(name))
        assert capsys.readouterr().out.strip()


class TestCli:
    """Tests for the command line interface."""

    def test_list(self, capsys):
        """Test listing a category."""
        assert main(["list", "--category", "functional", "--latency-scale", "0"]) == 0
        out = capsys.readouterr().out
        assert "lens.nested-records" in out
        assert "singleton.cache-manager" not in out

    def test_run(self, capsys):
        """Test running a demo by name."""
        assert main(["run", "maybe.safe-data-processing", "--latency-scale", "0", "--seed", "1234"]) == 0
        assert "maybe.safe-data-processing" in capsys.readouterr().out

    def test_run_unknown(self, capsys):
        """Test unknown demo names exit with status 2."""
        assert main(["run", "missing.demo", "--latency-scale", "0"]) == 2
        assert "missing.demo" in capsys.readouterr().err

    def test_negative_latency_rejected(self):
        """Test invalid overrides stop the CLI."""
        with pytest.raises(SystemExit):
            main(["list", "--latency-scale", "-1"])
