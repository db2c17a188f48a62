#!/usr/bin/env python3
"""
Example: Configure PayU settings and test orders.

Writes straight to the service database, standing in for the shop's admin
screens.

Usage:
    # Default scope, sandbox mode with a second key
    python configure_store.py settings 0 --sandbox --sandbox-second-key abc123

    # Store 2 overrides only the production key
    python configure_store.py settings 2 --second-key def456

    # Rotate the sandbox key of the default scope (old key stays valid)
    python configure_store.py rotate 0 sandbox new789

    # Create an order that notifications can update
    python configure_store.py order ORD1

    # Show an order with its refunds
    python configure_store.py show ORD1
"""

import argparse
import asyncio
import json
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database.db import Database
from models.settings import Environment, PayUSettings

SETTING_OPTIONS = (
    'sandbox_client_id', 'sandbox_client_secret', 'sandbox_second_key',
    'client_id', 'client_secret', 'second_key'
)


async def save_settings(db: Database, args: argparse.Namespace) -> None:
    """Update the given fields of a store's settings row."""
    existing = await db.get_payu_settings(args.store)
    settings = PayUSettings.from_dict(existing) if existing else PayUSettings(store_scope=args.store)

    if args.sandbox is not None:
        settings.use_sandbox = args.sandbox
    for name in SETTING_OPTIONS:
        value = getattr(args, name)
        if value is not None:
            setattr(settings, name, value or None)

    saved = await db.save_payu_settings(settings.to_dict())
    print(json.dumps(PayUSettings.from_dict(saved).to_public_dict(), indent=2))


async def rotate_key(db: Database, args: argparse.Namespace) -> None:
    """Replace a second key, keeping the old one as previous key."""
    existing = await db.get_payu_settings(args.store)
    settings = PayUSettings.from_dict(existing) if existing else PayUSettings(store_scope=args.store)

    if Environment(args.environment) == Environment.SANDBOX:
        settings.previous_sandbox_second_key = settings.sandbox_second_key
        settings.sandbox_second_key = args.new_key
    else:
        settings.previous_second_key = settings.second_key
        settings.second_key = args.new_key

    await db.save_payu_settings(settings.to_dict())
    print(f"✅ Rotated {args.environment} key for store {args.store}")


async def create_order(db: Database, args: argparse.Namespace) -> None:
    order = await db.create_order(args.ext_order_id)
    print(json.dumps(order, indent=2, default=str))


async def show_order(db: Database, args: argparse.Namespace) -> None:
    order = await db.get_order(args.ext_order_id)
    if not order:
        print(f"❌ Order {args.ext_order_id} not found")
        sys.exit(1)
    order['refunds'] = await db.get_refunds(args.ext_order_id)
    print(json.dumps(order, indent=2, default=str))


async def main():
    parser = argparse.ArgumentParser(
        description='Configure PayU store settings and test orders'
    )
    parser.add_argument('--database-url', help='Database URL (default: DATABASE_URL)')
    commands = parser.add_subparsers(dest='command', required=True)

    settings_parser = commands.add_parser('settings', help='Save store settings')
    settings_parser.add_argument('store', type=int, help='Store scope (0 = default)')
    mode = settings_parser.add_mutually_exclusive_group()
    mode.add_argument('--sandbox', dest='sandbox', action='store_true', default=None)
    mode.add_argument('--production', dest='sandbox', action='store_false')
    for name in SETTING_OPTIONS:
        settings_parser.add_argument(f"--{name.replace('_', '-')}", dest=name)

    rotate_parser = commands.add_parser('rotate', help='Rotate a second key')
    rotate_parser.add_argument('store', type=int)
    rotate_parser.add_argument('environment', choices=[e.value for e in Environment])
    rotate_parser.add_argument('new_key')

    order_parser = commands.add_parser('order', help='Create a test order')
    order_parser.add_argument('ext_order_id')

    show_parser = commands.add_parser('show', help='Show an order')
    show_parser.add_argument('ext_order_id')

    args = parser.parse_args()

    handlers = {
        'settings': save_settings,
        'rotate': rotate_key,
        'order': create_order,
        'show': show_order
    }

    db = Database(args.database_url)
    await db.connect()
    try:
        await db.init_schema()
        await handlers[args.command](db, args)
    finally:
        await db.disconnect()


if __name__ == '__main__':
    asyncio.run(main())
