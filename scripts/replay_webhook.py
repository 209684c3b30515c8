"""
Replay a saved Vapi webhook body against a running server.

Usage:
    python scripts/replay_webhook.py payload.json [--url http://localhost:3000]

Useful for checking sheet logging and the live panel without placing
a call. The file may hold either ``{"message": {...}}`` or the bare
message.
"""

import argparse
import asyncio
import json
import sys

import httpx


async def replay(path: str, base_url: str) -> int:
    with open(path, "r", encoding="utf-8") as f:
        body = json.load(f)

    if "message" not in body:
        body = {"message": body}

    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.post(f"{base_url.rstrip('/')}/api/webhook/vapi", json=body)

    print(f"{response.status_code} {response.text}")
    return 0 if response.is_success else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="POST a saved webhook payload to the server")
    parser.add_argument("path", help="JSON file with the webhook body")
    parser.add_argument("--url", default="http://localhost:3000", help="Server base URL")

    args = parser.parse_args()
    sys.exit(asyncio.run(replay(args.path, args.url)))


if __name__ == "__main__":
    main()
