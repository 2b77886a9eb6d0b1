"""
Unit tests for the Composite use cases.
"""

import pytest

from pattern_catalog.structural.composite.filesystem import File, Folder, human_size, sample_tree
from pattern_catalog.structural.composite.menu import MenuItem, SubMenu, build_editor_menu
from pattern_catalog.structural.composite.org_chart import Employee, Manager, sample_company


class TestFileSystemComposite:
    """Tests for files and folders."""

    @pytest.fixture
    def tree(self):
        return sample_tree()

    def test_recursive_size(self, tree):
        """Test folder size sums every descendant."""
        assert tree.get_size() == 2_300 + 4_800_000 + 2_100_000 + 120 + 52_000_000 + 830_000 + 900
        assert tree.count_files() == 7

    def test_file_cannot_have_children(self):
        """Test adding to a file raises TypeError."""
        with pytest.raises(TypeError):
            File("a", 1).add(File("b", 1))

    def test_find_and_path(self, tree):
        """Test predicate search returns full paths."""
        found = tree.find(lambda n: n.name.endswith(".log"))
        assert [n.path() for n in found] == ["/var/log/auth.log"]

    def test_remove(self, tree):
        """Test removing a subtree updates sizes."""
        before = tree.get_size()
        removed = tree.remove("README")
        assert tree.get_size() == before - 900
        assert removed.parent is None

    def test_render_indents(self):
        """Test tree rendering with human readable sizes."""
        folder = Folder("docs", [File("a.txt", 2048)])
        assert folder.render() == "docs/ (2.0 KB)\n  a.txt (2.0 KB)"

    @pytest.mark.parametrize("size,expected", [(0, "0 B"), (1023, "1023 B"), (1536, "1.5 KB"), (5 * 1024**3, "5.0 GB")])
    def test_human_size(self, size, expected):
        """Test unit formatting."""
        assert human_size(size) == expected


class TestMenuComposite:
    """Tests for nested menus."""

    def test_disable_cascades(self):
        """Test disabling a submenu disables every descendant."""
        menu = build_editor_menu()
        file_menu = menu.children[0]
        file_menu.set_enabled(False)

        assert all(not c.enabled for c in file_menu.children)
        assert all(not c.enabled for c in file_menu.children[2].children)
        assert menu.find_by_shortcut("Ctrl+N").click() is None

    def test_render_hides_disabled(self):
        """Test hidden rendering skips disabled entries."""
        menu = SubMenu("Root", [MenuItem("A"), MenuItem("B")])
        menu.children[1].set_enabled(False)

        assert menu.render() == ["Root >", "  A", "  B (disabled)"]
        assert menu.render(hide_disabled=True) == ["Root >", "  A"]

    def test_find_by_shortcut(self):
        """Test shortcut lookup searches nested menus."""
        menu = build_editor_menu()
        assert menu.find_by_shortcut("Ctrl+Y").click() == "redone"
        assert menu.find_by_shortcut("F13") is None


class TestOrgChartComposite:
    """Tests for the organisation chart."""

    def test_head_count_and_salary(self):
        """Test totals over the whole company."""
        ceo = sample_company()
        assert ceo.head_count() == 8
        assert ceo.total_salary() == 1_280_000

    def test_find_nested(self):
        """Test finding someone deep in the tree."""
        assert sample_company().find("Ken").title == "Senior Engineer"

    def test_leaf_and_manager_share_interface(self):
        """Test an individual contributor behaves like a team of one."""
        solo = Employee("Solo", "Engineer", 100)
        team = Manager("Lead", "Manager", 200, [solo])
        assert solo.head_count() == 1
        assert team.total_salary() == 300
        assert team.remove_report("Solo") is solo
        assert team.head_count() == 1
