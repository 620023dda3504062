"""
Command line entry point: python -m medishop <command> [options]

Commands:
  init-db      create/upgrade the database (and seed the starter catalog)
  low-stock    list products at or below their minimum stock
  expiring     list products expiring within N days
  reconcile    check stock == opening stock + ledger movements
  report       sales | gst | profit | inventory summary as JSON
  export       write a JSON backup of every collection
  import       restore a JSON backup
"""
from __future__ import annotations

import argparse
import json
import sys

from . import config
from .constants import APP_NAME
from .database import get_connection
from .database.snapshots import SnapshotAdapter
from .database.repositories import ProductsRepo, StockLedgerRepo
from .errors import DomainError
from .modules.reporting import ReportingService
from .utils.loggers import get_logger


def _print_products(products) -> None:
    if not products:
        print("(none)")
        return
    for p in products:
        expiry = p.expiry_date or "-"
        print(f"{p.product_id:>5}  {p.name:<30} stock={p.stock_quantity:<6} min={p.min_stock_level:<6} expiry={expiry}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="medishop", description=f"{APP_NAME} data tools")
    parser.add_argument("--db", default=None, help=f"Path to SQLite DB (default: {config.DB_PATH})")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init-db", help="Create the schema and seed defaults")
    p_init.add_argument("--no-seed", action="store_true", help="Do not insert the starter catalog")

    sub.add_parser("low-stock", help="List low-stock products")

    p_exp = sub.add_parser("expiring", help="List products expiring soon")
    p_exp.add_argument("--days", type=int, default=30)
    p_exp.add_argument("--today", default=None, help="Reference date YYYY-MM-DD (default: today)")

    sub.add_parser("reconcile", help="Check catalog stock against the ledger")

    p_rep = sub.add_parser("report", help="Print a report as JSON")
    p_rep.add_argument("kind", choices=("sales", "gst", "profit", "inventory"))
    p_rep.add_argument("--from", dest="date_from", default=None)
    p_rep.add_argument("--to", dest="date_to", default=None)

    p_out = sub.add_parser("export", help="Write a JSON backup")
    p_out.add_argument("path")

    p_in = sub.add_parser("import", help="Restore a JSON backup (replaces current data)")
    p_in.add_argument("path")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    log = get_logger("medishop.cli")

    seed = False if getattr(args, "no_seed", False) else None
    conn = get_connection(args.db, seed=seed)
    try:
        if args.command == "init-db":
            print(f"Database ready at {args.db or config.DB_PATH}")
        elif args.command == "low-stock":
            _print_products(ProductsRepo(conn).list_low_stock())
        elif args.command == "expiring":
            _print_products(ProductsRepo(conn).list_expiring(args.days, today=args.today))
        elif args.command == "reconcile":
            problems = StockLedgerRepo(conn).reconcile()
            if problems:
                for p in problems:
                    print(
                        f"{p['product_id']:>5}  {p['product_name']:<30} "
                        f"stock={p['stock_quantity']} expected={p['expected_stock']}"
                    )
                return 1
            print("Stock and ledger agree.")
        elif args.command == "report":
            svc = ReportingService(conn)
            if args.kind == "sales":
                data = svc.sales_summary(args.date_from, args.date_to)
            elif args.kind == "gst":
                data = svc.gst_report(args.date_from, args.date_to)
            elif args.kind == "profit":
                data = svc.profit_report(args.date_from, args.date_to)
            else:
                data = svc.inventory_status()
            print(json.dumps(data, indent=2))
        elif args.command == "export":
            out = SnapshotAdapter(conn).export_all(args.path)
            print(f"Exported to {out}")
        elif args.command == "import":
            counts = SnapshotAdapter(conn).import_all(args.path)
            print("Imported: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
    except DomainError as e:
        log.error("%s: %s", e.title, e.message)
        return 2
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
