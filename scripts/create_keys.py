"""
Name: Security Key Bootstrap Script

Responsibilities:
  - Create one-time registration keys from the CLI (no admin session needed)
  - Reuse the Postgres repository and key generator used by the API
  - Print the created key values so they can be handed out

Usage:
  DATABASE_URL=postgresql://... python scripts/create_keys.py --count 5
  DATABASE_URL=postgresql://... python scripts/create_keys.py --tier admin --value MY-FIRST-ADMIN
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from darksphere.application.usecases.admin.manage_keys import generate_key_value
from darksphere.crosscutting.exceptions import DuplicateRecordError
from darksphere.domain.entities import KeyTier, SecurityKey
from darksphere.domain.registration_policy import (
    normalize_key_value,
    validate_custom_key_value,
)
from darksphere.infrastructure.db.pool import close_pool, init_pool
from darksphere.infrastructure.repositories.postgres import (
    PostgresSecurityKeyRepository,
)


def _require_database_url() -> str:
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise SystemExit("DATABASE_URL is required to create keys.")
    return db_url


def _parse_args() -> argparse.Namespace:
    argv = sys.argv[1:]
    if argv and argv[0] == "--":
        argv = argv[1:]
    parser = argparse.ArgumentParser(description="Create one-time security keys.")
    parser.add_argument(
        "--count", type=int, default=1, help="How many keys to create (default: 1)"
    )
    parser.add_argument(
        "--tier",
        default=KeyTier.USER.value,
        choices=[tier.value for tier in KeyTier],
        help="Key tier (default: user)",
    )
    parser.add_argument(
        "--value", help="Custom key value (only with --count 1)"
    )
    parser.add_argument(
        "--validity-days",
        type=int,
        default=5,
        help="Days until the key expires; 0 = never (default: 5)",
    )
    return parser.parse_args(argv)


def _build_keys(args: argparse.Namespace) -> list[SecurityKey]:
    if args.count < 1:
        raise SystemExit("--count must be at least 1.")

    if args.value is not None:
        if args.count != 1:
            raise SystemExit("--value can only be used with --count 1.")
        value = normalize_key_value(args.value)
        message = validate_custom_key_value(value)
        if message:
            raise SystemExit(message)
        values = [value]
    else:
        values = [generate_key_value() for _ in range(args.count)]

    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(days=args.validity_days) if args.validity_days > 0 else None
    return [
        SecurityKey(
            id=uuid4(),
            key_value=value,
            tier=KeyTier(args.tier),
            created_at=now,
            expires_at=expires_at,
        )
        for value in values
    ]


def main() -> None:
    args = _parse_args()
    db_url = _require_database_url()
    keys = _build_keys(args)

    init_pool(db_url, min_size=1, max_size=1)
    try:
        created = PostgresSecurityKeyRepository().add_keys(keys)
    except DuplicateRecordError:
        raise SystemExit("An active key with that value already exists.")
    finally:
        close_pool()

    for key in created:
        expiry = key.expires_at.isoformat() if key.expires_at else "never"
        print(f"{key.key_value}  tier={key.tier.value}  expires={expiry}")


if __name__ == "__main__":
    main()
