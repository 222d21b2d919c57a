"""Shopcore management CLI.

Creates and drops database schemas and runs the periodic cart sweeps. The
sweeps are meant to be invoked by an external scheduler (cron, K8s CronJob).

Usage:
    python src/manage.py setup-db      # Create all tables
    python src/manage.py drop-db       # Drop all tables
    python src/manage.py sweep-carts   # Abandon idle carts, purge expired ones
"""

import argparse
import sys


def _domain():
    from commerce.domain import commerce
    from commerce.utils.logging import configure_logging

    configure_logging()
    print("Initializing commerce domain...")
    commerce.init()
    return commerce


def setup_database():
    """Create the database schema for the commerce domain."""
    from commerce.utils.db import setup_db

    domain = _domain()
    print("Creating commerce database schema...")
    setup_db(domain)
    print("Done.")


def drop_database():
    """Drop the database schema for the commerce domain."""
    from commerce.utils.db import drop_db

    domain = _domain()
    print("Dropping commerce database schema...")
    drop_db(domain)
    print("Done.")


def sweep_carts(idle_hours=None, retention_days=None):
    """Flag abandoned carts, then expire and delete stale ones."""
    from commerce.cart.maintenance import DetectAbandonedCarts, PurgeExpiredCarts

    domain = _domain()
    with domain.domain_context():
        abandoned = domain.process(
            DetectAbandonedCarts(idle_threshold_hours=idle_hours),
            asynchronous=False,
        )
        expired = domain.process(
            PurgeExpiredCarts(retention_days=retention_days),
            asynchronous=False,
        )
    print(f"Abandoned {abandoned} cart(s), expired {expired} cart(s).")


def main():
    parser = argparse.ArgumentParser(description="Shopcore management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    sweep_parser = subparsers.add_parser("sweep-carts", help="Run the cart abandonment and expiry sweeps")
    sweep_parser.add_argument(
        "--idle-hours",
        type=int,
        help="Hours of inactivity before a cart is abandoned (default: configured value)",
    )
    sweep_parser.add_argument(
        "--retention-days",
        type=int,
        help="Days an empty or abandoned cart is kept (default: configured value)",
    )

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    elif args.command == "sweep-carts":
        sweep_carts(args.idle_hours, args.retention_days)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
