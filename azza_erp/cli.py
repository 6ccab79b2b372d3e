# azza_erp/cli.py
from __future__ import annotations

import click
from flask import Flask

from azza_erp.services.lifecycle import reconcile_invoice_statuses


def register_cli(app: Flask) -> None:
    @app.cli.command("reconcile-invoices")
    @click.option("--fix", is_flag=True, help="Write the recomputed status back.")
    def reconcile_invoices(fix: bool) -> None:
        """Compare every invoice's stored payment status with its payments."""
        result = reconcile_invoice_statuses(fix=fix)

        for number, stored, computed in result.stale:
            click.echo(f"{number}: stored={stored} computed={computed}")

        click.echo(f"Checked {result.checked} invoices, {len(result.stale)} stale, {result.fixed} fixed.")
        if result.stale and not fix:
            raise SystemExit(1)
