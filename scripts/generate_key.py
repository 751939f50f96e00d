#!/usr/bin/env python3
"""
Print a random base64 key, e.g. for ADMIN_TOKEN or the Airnode HTTP gateway key.
"""

import argparse
import base64
import secrets


def generate_key(size: int = 32) -> str:
    """Random key of ``size`` bytes, base64 encoded."""
    if size < 1:
        raise ValueError("size must be >= 1")
    return base64.b64encode(secrets.token_bytes(size)).decode("ascii")


def main():
    parser = argparse.ArgumentParser(description='Generate a random base64 key')
    parser.add_argument('--size', type=int, default=32,
                        help='Key size in bytes (default: 32)')
    args = parser.parse_args()
    print(generate_key(args.size))


if __name__ == "__main__":
    main()
