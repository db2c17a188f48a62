#!/usr/bin/env python3
"""
Example: Send a signed PayU notification for testing.

This script builds a notification body the way PayU does, signs it with a
second key and posts it to a running service, so the whole pipeline can be
exercised without a PayU sandbox account.

Usage:
    # Order status notification
    python send_notification.py ORD1 COMPLETED --key YOUR_SECOND_KEY

    # Refund notification
    python send_notification.py ORD2 FINALIZED --refund --key YOUR_SECOND_KEY

    # Tampered signature (should be acknowledged and ignored)
    python send_notification.py ORD1 COMPLETED --key YOUR_SECOND_KEY --tamper
"""

import argparse
import asyncio
import json
import os
import secrets
import sys
from datetime import datetime, timezone

import aiohttp

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.signature import DEFAULT_ALGORITHM, sign


def build_order_notification(ext_order_id: str, status: str, amount: int, currency: str) -> dict:
    """Build an order status notification body."""
    return {
        "order": {
            "orderId": secrets.token_hex(10).upper(),
            "extOrderId": ext_order_id,
            "orderCreateDate": datetime.now(timezone.utc).isoformat(),
            "currencyCode": currency,
            "totalAmount": str(amount),
            "status": status
        },
        "localReceiptDateTime": datetime.now(timezone.utc).isoformat(),
        "properties": [
            {"name": "PAYMENT_ID", "value": str(secrets.randbelow(10 ** 9))}
        ]
    }


def build_refund_notification(ext_order_id: str, status: str, amount: int, currency: str) -> dict:
    """Build a refund notification body."""
    return {
        "orderId": secrets.token_hex(10).upper(),
        "extOrderId": ext_order_id,
        "refund": {
            "refundId": str(secrets.randbelow(10 ** 9)),
            "amount": str(amount),
            "currencyCode": currency,
            "status": status,
            "statusDateTime": datetime.now(timezone.utc).isoformat(),
            "reason": "refund",
            "reasonDescription": "Simulated refund"
        }
    }


async def send_notification(
    url: str,
    body: bytes,
    signature_header: str,
    header_name: str
) -> int:
    """Post a notification and return the HTTP status."""
    headers = {
        'Content-Type': 'application/json',
        header_name: signature_header
    }

    async with aiohttp.ClientSession() as session:
        async with session.post(url, data=body, headers=headers) as response:
            return response.status


async def main():
    parser = argparse.ArgumentParser(
        description='Send a signed PayU notification to the service'
    )
    parser.add_argument('ext_order_id', help='External order id')
    parser.add_argument('status', help='Order or refund status (e.g. COMPLETED, FINALIZED)')
    parser.add_argument('--key', required=True, help='Second key used to sign the body')
    parser.add_argument('--refund', action='store_true', help='Send a refund notification')
    parser.add_argument('--amount', type=int, default=1000, help='Amount in minor units')
    parser.add_argument('--currency', default='PLN', help='Currency code (default: PLN)')
    parser.add_argument('--store', type=int, help='Store id (default: default scope)')
    parser.add_argument(
        '--api-url',
        default='http://localhost:8000',
        help='Service URL (default: http://localhost:8000)'
    )
    parser.add_argument(
        '--header',
        default='OpenPayu-Signature',
        help='Signature header name (default: OpenPayu-Signature)'
    )
    parser.add_argument('--algorithm', default=DEFAULT_ALGORITHM, help='Digest algorithm')
    parser.add_argument('--tamper', action='store_true', help='Corrupt the signature')

    args = parser.parse_args()

    builder = build_refund_notification if args.refund else build_order_notification
    payload = builder(args.ext_order_id, args.status.upper(), args.amount, args.currency)
    body = json.dumps(payload).encode('utf-8')

    signature_header = sign(body, args.key.encode('utf-8'), args.algorithm)
    if args.tamper:
        signature_header = signature_header.replace('signature=', 'signature=00', 1)

    url = f"{args.api_url}/api/payu/notify"
    if args.store is not None:
        url += f"/{args.store}"

    print(f"POST {url}")
    print(f"{args.header}: {signature_header}")
    print(json.dumps(payload, indent=2))

    try:
        status = await send_notification(url, body, signature_header, args.header)
    except aiohttp.ClientError as e:
        print(f"\n❌ Error connecting to service: {e}")
        sys.exit(1)

    if status == 200:
        print(f"\n✅ Acknowledged ({status}); check the service log for the outcome")
    else:
        print(f"\n❌ Not acknowledged ({status}); PayU would redeliver")


if __name__ == '__main__':
    asyncio.run(main())
