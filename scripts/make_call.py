"""
CLI tool to start an outbound Vapi phone call.

Usage:
    python scripts/make_call.py --phone +15551234567 --name "Jane Smith"

The call is placed with the assistant and phone number from .env.local;
results arrive later through the webhook like any other call.
"""

import argparse
import asyncio
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from call_logger.config import get_settings
from call_logger.errors import ConfigurationError, UpstreamAPIError
from call_logger.logging_config import setup_logging, get_logger
from call_logger.services.vapi_client import VapiClient

setup_logging()
logger = get_logger(__name__)


async def make_call(phone: str, name: str) -> int:
    """Dispatch a single outbound call. Returns a process exit code."""
    client = VapiClient.from_settings(get_settings())

    try:
        call_id = await client.start_phone_call(name, phone)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 2
    except UpstreamAPIError as e:
        print(f"Vapi rejected the call ({e.status_code}): {e}")
        return 1

    print(f"Call started: {call_id}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Start an outbound Vapi phone call")
    parser.add_argument("--phone", required=True, help="Customer phone number (E.164)")
    parser.add_argument("--name", required=True, help="Customer name passed to the assistant")

    args = parser.parse_args()
    sys.exit(asyncio.run(make_call(phone=args.phone, name=args.name)))


if __name__ == "__main__":
    main()
