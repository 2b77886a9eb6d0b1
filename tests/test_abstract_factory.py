"""
Unit tests for the Abstract Factory use cases.
"""

import pytest

from pattern_catalog.creational.abstract_factory.cloud_infrastructure import (
    InfrastructureDeployer,
    estimate_costs,
    get_cloud_factory,
)
from pattern_catalog.creational.abstract_factory.cross_platform_ui import (
    Application,
    LinuxUIFactory,
    MacUIFactory,
    WindowsUIFactory,
    get_ui_factory,
)
from pattern_catalog.creational.abstract_factory.database_ecosystem import (
    find_active_users,
    get_ecosystem,
)
from pattern_catalog.exceptions import InvalidStateTransitionException, UnsupportedTypeException


class TestCrossPlatformUI:
    """Tests for widget families."""

    @pytest.mark.parametrize(
        "platform,expected",
        [("win32", WindowsUIFactory), ("darwin", MacUIFactory), ("Linux", LinuxUIFactory)],
    )
    def test_platform_aliases(self, platform, expected):
        """Test sys.platform style names resolve to families."""
        assert isinstance(get_ui_factory(platform), expected)

    def test_unknown_platform(self):
        """Test unknown platforms are rejected."""
        with pytest.raises(UnsupportedTypeException):
            get_ui_factory("beos")

    def test_dialog_widgets_share_family(self):
        """Test every widget in a dialog comes from one platform."""
        dialog = Application(MacUIFactory()).build_settings_dialog()
        assert {child.platform for child in dialog.children} == {"macos"}
        assert dialog.platform == "macos"

    def test_save_button_triggers_application(self):
        """Test clicking save runs the registered handler."""
        app = Application(WindowsUIFactory())
        dialog = app.build_settings_dialog()

        assert dialog.children[-1].click() == 1
        assert app.saved is True

    def test_render_uses_platform_markup(self):
        """Test rendering differs between families."""
        linux = Application(LinuxUIFactory()).build_settings_dialog().render()
        windows = Application(WindowsUIFactory()).build_settings_dialog().render()

        assert "(*) Enable notifications" in linux
        assert "[X] Enable notifications" in windows


class TestCloudInfrastructure:
    """Tests for provider families."""

    @pytest.mark.asyncio
    async def test_deploy_uses_one_provider(self):
        """Test all deployed resources belong to the chosen provider."""
        summary = await InfrastructureDeployer(get_cloud_factory("azure")).deploy("shop")

        assert {r.provider for r in summary.resources} == {"azure"}
        assert [r.kind for r in summary.resources] == ["compute", "storage", "load_balancer"]
        assert all(r.status == "running" for r in summary.resources)

    @pytest.mark.asyncio
    async def test_aws_monthly_cost(self):
        """Test cost roll-up for the AWS stack."""
        summary = await InfrastructureDeployer(get_cloud_factory("aws")).deploy("shop", storage_gb=100)
        # 0.05*730 + 0.023*100 + 0.0225*730
        assert summary.total_monthly_cost == pytest.approx(55.23, abs=0.01)

    def test_estimate_costs_sorted(self):
        """Test the comparison is cheapest first."""
        estimates = estimate_costs("shop")
        assert list(estimates.values()) == sorted(estimates.values())
        assert set(estimates) == {"aws", "azure", "gcp"}

    def test_unknown_provider(self):
        """Test unknown providers are rejected."""
        with pytest.raises(UnsupportedTypeException):
            get_cloud_factory("digitalocean")


class TestDatabaseEcosystem:
    """Tests for database families."""

    def test_sql_builder(self):
        """Test SQL dialect output with parameters."""
        query = (
            get_ecosystem("sql").create_query_builder()
            .select("name").from_("users").where({"active": True, "role": "admin"}).limit(5).build()
        )
        assert query == {
            "sql": "SELECT name FROM users WHERE active = ? AND role = ? LIMIT 5",
            "params": [True, "admin"],
        }

    def test_document_builder(self):
        """Test Mongo shell style output."""
        query = (
            get_ecosystem("nosql").create_query_builder()
            .select("*").from_("users").where("active", True).order_by("name", "desc").limit(3).build()
        )
        assert query == 'db.users.find({"active": true}).sort({"name": -1}).limit(3)'

    def test_graph_builder(self):
        """Test Cypher output."""
        query = (
            get_ecosystem("graph").create_query_builder()
            .select("f.name").from_("(u:User)").relationship("FOLLOWS", "(f:User)").where("u.name", "Ann").build()
        )
        assert query == 'MATCH (u:User)-[:FOLLOWS]->(f:User) WHERE u.name = "Ann" RETURN f.name'

    @pytest.mark.asyncio
    async def test_transaction_lifecycle(self):
        """Test commit ends a transaction and cannot be repeated."""
        manager = get_ecosystem("graph").create_transaction_manager()
        tx = await manager.begin()
        await manager.savepoint(tx, "before_update")
        await manager.commit(tx)

        assert manager.log == [":begin", "SAVEPOINT before_update", ":commit"]
        assert manager.get_active_transactions() == []
        with pytest.raises(InvalidStateTransitionException):
            await manager.rollback(tx)

    @pytest.mark.asyncio
    async def test_client_code_runs_for_every_family(self):
        """Test the same client code works with each family."""
        for kind in ("sql", "document", "graph"):
            assert await find_active_users(get_ecosystem(kind), "db://local")
