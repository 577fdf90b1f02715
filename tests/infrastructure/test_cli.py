"""End-to-end tests for the click command line."""

import pytest
from click.testing import CliRunner

from farmsales.infrastructure.cli.main import cli


@pytest.fixture
def run(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()
    env = {
        "FARMSALES_DATA_DIR": str(tmp_path / "data"),
        "FARMSALES_LOG_LEVEL": "WARNING",
    }

    def _run(*args):
        return runner.invoke(cli, list(args), env=env)

    return _run


def _add_milk(run, available="50"):
    return run(
        "product", "add",
        "--farm", "farm-1", "--name", "Whole Milk", "--type", "milk",
        "--amount", "100", "--unit", "liters",
        "--cost", "1.00", "--price", "2.50", "--available", available,
    )


class TestProductCommands:

    def test_add_and_show_inventory(self, run):
        result = _add_milk(run)
        assert result.exit_code == 0, result.output
        assert "Product #1 'Whole Milk' added at $2.50" in result.output

        result = run("product", "inventory", "--farm", "farm-1")
        assert result.exit_code == 0
        assert "Whole Milk" in result.output
        assert "healthy" in result.output

    def test_empty_inventory(self, run):
        result = run("product", "inventory", "--farm", "farm-1")
        assert "No products found." in result.output

    def test_invalid_product_reports_error(self, run):
        result = run(
            "product", "add",
            "--farm", "farm-1", "--name", "Milk", "--type", "milk",
            "--amount", "1", "--unit", "liters",
            "--cost", "3", "--price", "2", "--available", "1",
        )
        assert result.exit_code == 1
        assert "Selling price cannot be less than cost price" in result.output


    def test_recall_blocks_sales(self, run):
        _add_milk(run)

        result = run("product", "recall", "--id", "1")
        assert result.exit_code == 0, result.output
        assert "Product #1 'Whole Milk' recalled" in result.output

        result = run(
            "sale", "create", "--farm", "farm-1", "--customer", "Jane", "--items", "1:1",
        )
        assert result.exit_code == 1
        assert "is recalled and cannot be sold" in result.output

        result = run("product", "inventory", "--farm", "farm-1")
        assert "recalled" in result.output

    def test_expired_batch(self, run):
        result = run(
            "product", "add",
            "--farm", "farm-1", "--name", "Raw Milk", "--type", "milk",
            "--amount", "20", "--unit", "liters",
            "--cost", "1.00", "--price", "2.00", "--available", "20",
            "--produced", "2020-01-01", "--expires", "2020-01-05",
        )
        assert result.exit_code == 0, result.output

        result = run(
            "sale", "create", "--farm", "farm-1", "--customer", "Jane", "--items", "1:1",
        )
        assert result.exit_code == 1
        assert "expired on 2020-01-05" in result.output

        result = run("product", "expire", "--farm", "farm-1")
        assert result.exit_code == 0
        assert "Expired products: 1" in result.output

        result = run("product", "expire", "--farm", "farm-1")
        assert "No products expired." in result.output

    def test_future_production_date_reports_error(self, run):
        result = run(
            "product", "add",
            "--farm", "farm-1", "--name", "Raw Milk", "--type", "milk",
            "--amount", "20", "--unit", "liters",
            "--cost", "1.00", "--price", "2.00", "--available", "20",
            "--produced", "2999-01-01",
        )
        assert result.exit_code == 1
        assert "Production date cannot be in the future" in result.output

class TestSaleCommands:

    def test_create_show_and_list(self, run):
        _add_milk(run)

        result = run(
            "sale", "create", "--farm", "farm-1", "--customer", "Jane Doe",
            "--items", "1:10",
        )
        assert result.exit_code == 0, result.output
        assert "created." in result.output
        assert "$25.00" in result.output

        result = run("sale", "show", "--id", "1")
        assert result.exit_code == 0
        assert "Jane Doe" in result.output
        assert "Whole Milk" in result.output

        result = run("sale", "list", "--farm", "farm-1")
        assert result.exit_code == 0
        assert "Page 1 of 1 (1 sales)" in result.output

        result = run("product", "inventory", "--farm", "farm-1")
        assert "40" in result.output

    def test_insufficient_stock(self, run):
        _add_milk(run, available="5")
        result = run(
            "sale", "create", "--farm", "farm-1", "--customer", "Jane Doe",
            "--items", "1:10",
        )
        assert result.exit_code == 1
        assert "Insufficient inventory for Whole Milk" in result.output

        result = run("sale", "list", "--farm", "farm-1")
        assert "No sales found." in result.output

    def test_pay_status_and_cancel(self, run):
        _add_milk(run)
        run("sale", "create", "--farm", "farm-1", "--customer", "Jane", "--items", "1:40")

        result = run("sale", "pay", "--id", "1", "--amount", "60")
        assert result.exit_code == 0
        assert "partial" in result.output
        assert "due $40.00" in result.output

        result = run("sale", "pay", "--id", "1", "--amount", "50")
        assert result.exit_code == 1
        assert "exceeds the amount due" in result.output

        result = run("sale", "status", "--id", "1", "--status", "shipped")
        assert result.exit_code == 1
        assert "Cannot change sale status" in result.output

        result = run("sale", "cancel", "--id", "1", "--reason", "Customer request")
        assert result.exit_code == 0
        assert "cancelled" in result.output

    def test_farm_items_and_analytics(self, run):
        _add_milk(run)
        result = run(
            "sale", "create", "--farm", "farm-1", "--customer", "Jane",
            "--items", "1:2", "--farm-items", "c1:Carrots:5:1.20",
        )
        assert result.exit_code == 0, result.output
        assert "Carrots" in result.output

        result = run("sale", "analytics", "--farm", "farm-1", "--period", "week")
        assert result.exit_code == 0
        assert "Orders:              1" in result.output
        assert "$11.00" in result.output

    def test_bad_item_format(self, run):
        result = run(
            "sale", "create", "--farm", "farm-1", "--customer", "Jane", "--items", "oops",
        )
        assert result.exit_code == 2
        assert "Invalid item format" in result.output

    def test_create_requires_items(self, run):
        result = run("sale", "create", "--farm", "farm-1", "--customer", "Jane")
        assert result.exit_code == 1
        assert "Provide --items" in result.output
