# Overview: Flask CLI command groups for pricing inspection, profit recompute and status maintenance.

# backend/brokerage/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Pricing:
# - python -m flask pricing sizes
#   List the partner CPM table (paper cost/sell, print, paper weight).
#
# Profit splits:
# - python -m flask profits recalc
#   Recompute every stale or missing profit split.
# - python -m flask profits recalc --all
#   Recompute every split, stale or not.
# - python -m flask profits recalc --job-id 42
#   Recompute one job and print its split.
#
# Maintenance:
# - python -m flask maintenance check-status
#   List jobs whose lifecycle status disagrees with recorded payments.
# - python -m flask maintenance fix-status [--apply] [--limit 50]
#   Dry-run (default) or repair those jobs; each repair is audited.

import click
from flask.cli import with_appcontext

from .errors import BrokerageError
from .extensions import db
from .services import maintenance_service, profit_service
from .services.cpm_pricing import CPM_TABLE


@click.group('system')
def system_group():
    """Database bootstrap commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


# =============================================================================
# PRICING
# =============================================================================

@click.group('pricing')
def pricing_group():
    """CPM pricing table inspection."""


@pricing_group.command('sizes')
def list_sizes():
    """List CPM table entries."""
    click.echo("\n" + "=" * 78)
    click.echo(f"{'Size':<18} {'Paper cost CPM':>15} {'Paper sell CPM':>15} {'Print CPM':>11} {'Lbs/M':>10}")
    click.echo("=" * 78)
    for rates in CPM_TABLE.values():
        click.echo(
            f"{rates.size:<18} {rates.cost_cpm_paper:>15} {rates.sell_cpm_paper:>15} "
            f"{rates.print_cpm:>11} {rates.paper_lbs_per_m:>10}"
        )
    click.echo("=" * 78 + "\n")


# =============================================================================
# PROFIT SPLITS
# =============================================================================

@click.group('profits')
def profits_group():
    """Cached profit split maintenance."""


@profits_group.command('recalc')
@click.option('--job-id', type=int, default=None, help='Recompute a single job')
@click.option('--all', 'recalc_all', is_flag=True, help='Include splits that are not stale')
@with_appcontext
def recalc_profits(job_id, recalc_all):
    """Recompute cached profit splits (stale ones by default)."""
    if job_id is not None:
        try:
            split, warnings = profit_service.recalculate_profit_split(job_id)
        except BrokerageError as e:
            raise click.ClickException(e.message)
        click.echo(
            f"PASS Job {job_id}: spread {split.spread}, partner {split.partner_share}, "
            f"brokerage {split.brokerage_share} ({split.costing_basis})"
        )
        for warning in warnings:
            click.echo(f"WARN  {warning}")
        return

    outcome = profit_service.recalculate_all(stale_only=not recalc_all)
    click.echo(f"PASS Recomputed {len(outcome['updated'])} profit split(s)")
    for skipped in outcome["skipped"]:
        click.echo(f"WARN  Job {skipped['job_id']} skipped: {skipped['reason']}")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


def _echo_inconsistencies(rows):
    for row in rows:
        state = "override" if row["is_overridden"] else "natural"
        click.echo(
            f"  {row['job_number'] or row['job_id']}: {row['effective_status']} ({state}) "
            f"-> {row['repair_to']}  [{'; '.join(row['issues'])}]"
        )


@maintenance_group.command('check-status')
@click.option('--limit', type=int, default=None)
@with_appcontext
def check_status_cli(limit):
    """List jobs whose lifecycle status is ahead of recorded payments."""
    rows = maintenance_service.find_status_inconsistencies(limit=limit)
    if not rows:
        click.echo("PASS No status/payment inconsistencies found.")
        return
    click.echo(f"WARN  {len(rows)} job(s) inconsistent:")
    _echo_inconsistencies(rows)


@maintenance_group.command('fix-status')
@click.option('--apply', 'apply_changes', is_flag=True, help='Write the repairs (default is a dry run)')
@click.option('--limit', type=int, default=None)
@with_appcontext
def fix_status_cli(apply_changes, limit):
    """Move inconsistent jobs back to the highest status their payments support."""
    outcome = maintenance_service.repair_status_inconsistencies(apply=apply_changes, limit=limit)
    if not outcome["jobs"]:
        click.echo("PASS Nothing to repair.")
        return
    _echo_inconsistencies(outcome["jobs"])
    if outcome["applied"]:
        click.echo(f"PASS Repaired {len(outcome['repaired'])} job(s).")
    else:
        click.echo("DRY RUN  Re-run with --apply to write these repairs.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(pricing_group)
    app.cli.add_command(profits_group)
    app.cli.add_command(maintenance_group)
