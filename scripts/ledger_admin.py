#!/usr/bin/env python3
"""
Admin CLI for the supply ledger.

Opens the ledger described by the active configuration (migrating or
seeding it on first use) and runs one subcommand.

Usage:
  python -m scripts.ledger_admin [--config PATH] [--db-url URL] migrate --legacy-json PATH
  python -m scripts.ledger_admin totals
  python -m scripts.ledger_admin export-csv --out PATH [--days N]
  python -m scripts.ledger_admin export-history --out PATH
  python -m scripts.ledger_admin alerts

Exit codes: 0 on success, 1 on a ledger or input error.
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Supply ledger administration")
    p.add_argument(
        "--config",
        default=None,
        help="Configuration YAML (default: supply_config/sets/default.yaml)",
    )
    p.add_argument(
        "--db-url",
        default=None,
        help="Database URL, overrides the configuration and SUPPLY_LEDGER_DATABASE_URL",
    )
    sub = p.add_subparsers(dest="command", required=True)

    migrate = sub.add_parser("migrate", help="Migrate legacy flat counters into lots")
    migrate.add_argument(
        "--legacy-json",
        required=True,
        help="JSON object mapping label -> quantity",
    )

    sub.add_parser("totals", help="Print stock totals per item")

    export_csv = sub.add_parser("export-csv", help="Write the consumption export CSV")
    export_csv.add_argument("--out", required=True, help="Output CSV path")
    export_csv.add_argument("--days", type=int, default=None, help="Only the last N days")

    export_history = sub.add_parser("export-history", help="Write the history JSON document")
    export_history.add_argument("--out", required=True, help="Output JSON path")

    sub.add_parser("alerts", help="Print out-of-stock and low-stock alerts")
    return p.parse_args(argv)


def _open_ledger(args: argparse.Namespace, bootstrap: bool):
    from supply_config import get_active_config
    from supply_services.ledger_service import SupplyLedgerService

    config = get_active_config(args.config)
    if args.db_url:
        config = replace(config, storage=replace(config.storage, database_url=args.db_url))
    return SupplyLedgerService.from_config(config, bootstrap=bootstrap)


def _cmd_migrate(ledger, args: argparse.Namespace) -> int:
    legacy = json.loads(Path(args.legacy_json).read_text(encoding="utf-8"))
    if not isinstance(legacy, dict):
        print("  ERROR: legacy JSON must be an object of label -> quantity", file=sys.stderr)
        return 1
    result = ledger.migration.migrate(legacy)
    print(f"  Migration: {result.status.value}")
    for label, lot in sorted(result.lots.items()):
        print(f"    {label}: {lot.quantity} ({lot.lot_id})")
    for label in result.skipped:
        print(f"    skipped: {label}")
    return 0


def _cmd_totals(ledger, args: argparse.Namespace) -> int:
    totals = ledger.totals()
    if not totals:
        print("  (ledger is empty)")
    width = max((len(label) for label in totals), default=0)
    for label, total in totals.items():
        print(f"  {label.ljust(width)}  {total}")
    return 0


def _cmd_export_csv(ledger, args: argparse.Namespace) -> int:
    with open(args.out, "w", newline="", encoding="utf-8") as f:
        count = ledger.exports.write_csv(f, since_days=args.days)
    print(f"  Wrote {count} row(s) to {args.out}")
    return 0


def _cmd_export_history(ledger, args: argparse.Namespace) -> int:
    with open(args.out, "w", encoding="utf-8") as f:
        count = ledger.exports.write_history_json(f)
    print(f"  Wrote {count} entr(ies) to {args.out}")
    return 0


def _cmd_alerts(ledger, args: argparse.Namespace) -> int:
    alerts = ledger.exports.alerts()
    if not alerts:
        print("  No stock alerts.")
    for alert in alerts:
        print(f"  [{alert.severity.value}] {alert.message}")
    return 0


_COMMANDS = {
    "migrate": _cmd_migrate,
    "totals": _cmd_totals,
    "export-csv": _cmd_export_csv,
    "export-history": _cmd_export_history,
    "alerts": _cmd_alerts,
}


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    from supply_kernel.exceptions import SupplyKernelError

    try:
        # migrate must see an uninitialized ledger, so it skips seeding
        ledger = _open_ledger(args, bootstrap=args.command != "migrate")
        return _COMMANDS[args.command](ledger, args)
    except (SupplyKernelError, OSError, ValueError) as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
