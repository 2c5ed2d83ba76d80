#!/usr/bin/env python3
"""
Work through reconciliation tasks.

Usage:
  python scripts/reconcile.py list
  python scripts/reconcile.py replay [TASK_ID ...]     # all pending when no ids given
  python scripts/reconcile.py resolve TASK_ID --note "refunded in Stripe dashboard"
"""
import argparse
import json
import logging
import os
import sys

# Ensure wishingwell is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wishingwell.models.records import GATEWAY_TIMEOUT
from wishingwell.services.ledger_store import build_ledger_store
from wishingwell.services.reconciliation_service import ReconciliationService


def main(argv=None, service: ReconciliationService | None = None) -> int:
    ap = argparse.ArgumentParser()
    sub = ap.add_subparsers(dest="cmd", required=True)
    sub.add_parser("list")
    p_replay = sub.add_parser("replay")
    p_replay.add_argument("ids", nargs="*")
    p_resolve = sub.add_parser("resolve")
    p_resolve.add_argument("id")
    p_resolve.add_argument("--note", required=True)
    args = ap.parse_args(argv)

    svc = service or ReconciliationService(build_ledger_store())

    if args.cmd == "list":
        for t in svc.pending():
            print(json.dumps(t.to_dict(), default=str))
        return 0

    if args.cmd == "resolve":
        t = svc.resolve(args.id, args.note)
        print(f"{t.id} {t.status}")
        return 0

    ids = args.ids or [t.id for t in svc.pending() if t.kind != GATEWAY_TIMEOUT]
    failed = 0
    for task_id in ids:
        t = svc.replay(task_id)
        print(f"{t.id} {t.kind} {t.status} {t.note or ''}")
        failed += t.status != "resolved"
    return 1 if failed else 0


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    sys.exit(main())
