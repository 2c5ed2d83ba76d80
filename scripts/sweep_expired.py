#!/usr/bin/env python3
"""
Move open wells past their expiration to expired.

Usage: python scripts/sweep_expired.py [--now 2025-01-31T00:00:00+00:00]
Meant to run from cron; safe to run while donations are coming in.
"""
import argparse
import logging
import os
import sys
from datetime import datetime, timezone

# Ensure wishingwell is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wishingwell.services.campaign_service import CampaignManager
from wishingwell.services.ledger_store import build_ledger_store
from wishingwell.services.payment_gateway import build_payment_gateway


def main(argv=None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--now", help="ISO timestamp to sweep as of (default: now, UTC)")
    args = ap.parse_args(argv)

    now = datetime.fromisoformat(args.now) if args.now else datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    manager = CampaignManager(build_ledger_store(), build_payment_gateway())
    n = manager.sweep_expired(now)
    print(f"expired {n} well(s) as of {now.isoformat()}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
    sys.exit(main())
