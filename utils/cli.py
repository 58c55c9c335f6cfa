import json

import click
from flask.cli import AppGroup

from services.container import get_services
from services.errors import NotFound, StoreUnavailable
from utils.seed_data import run_seed

results_cli = AppGroup("results", help="Result ledger maintenance.")

actor_option = click.option("--actor", default="cli", show_default=True, help="Identity written to the audit trail.")


def _echo_report(report):
    counts = report.counts()
    click.echo(
        f"succeeded={counts['succeeded']} skipped={counts['skipped']} "
        f"failed={counts['failed']} pending={counts['pending']}"
    )
    for key, reason in report.failed.items():
        click.echo(f"  failed {key}: {reason}")
    if report.failed:
        raise SystemExit(1)


@results_cli.command("recalculate")
@click.argument("roll_numbers", nargs=-1, required=True)
@actor_option
def recalculate_command(roll_numbers, actor):
    """Recompute results from current marks."""
    _echo_report(get_services().ledger.recalculate(roll_numbers, actor=actor))


@results_cli.command("refresh-hashes")
@click.argument("exam_name")
@click.argument("session")
@actor_option
def refresh_hashes_command(exam_name, session, actor):
    """Re-fingerprint every result of an exam session."""
    _echo_report(get_services().ledger.refresh_fingerprints(exam_name, session, actor=actor))


@results_cli.command("publish")
@click.argument("result_ids", nargs=-1, required=True)
@actor_option
def publish_command(result_ids, actor):
    _echo_report(get_services().ledger.publish(result_ids, actor=actor))


@results_cli.command("unpublish")
@click.argument("result_ids", nargs=-1, required=True)
@actor_option
def unpublish_command(result_ids, actor):
    _echo_report(get_services().ledger.unpublish(result_ids, actor=actor))


@results_cli.command("verify")
@click.argument("result_id")
@click.option("--strict", is_flag=True, help="Also compare snapshot bytes.")
def verify_command(result_id, strict):
    outcome = get_services().verifier.verify(result_id, strict=strict)
    click.echo(f"{result_id}: {outcome.reason}")
    for item in outcome.mismatches:
        click.echo(f"  mismatch {item}")
    if not outcome.verified:
        raise SystemExit(1)


@results_cli.command("refresh-hash")
@click.argument("result_id")
@actor_option
def refresh_hash_command(result_id, actor):
    try:
        fingerprint_id = get_services().ledger.refresh_fingerprint(result_id, actor=actor)
    except (NotFound, StoreUnavailable) as e:
        raise click.ClickException(str(e))
    click.echo(f"{result_id}: {fingerprint_id}")


@results_cli.command("history")
@click.argument("result_id")
@click.option("--json", "as_json", is_flag=True, help="One JSON object per entry.")
def history_command(result_id, as_json):
    for entry in get_services().ledger.history(result_id):
        if as_json:
            click.echo(json.dumps(entry.to_dict(), sort_keys=True))
            continue
        click.echo(
            f"{entry.timestamp.isoformat()} {entry.modification_type:<20} "
            f"{entry.modified_by or '-':<12} {entry.previous_fingerprint_id or '-'} -> "
            f"{entry.new_fingerprint_id or '-'}"
        )


@results_cli.command("seed-subjects")
def seed_subjects_command():
    run_seed()
