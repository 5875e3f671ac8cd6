"""Encrypt a GitHub token for use as REVIEWPULSE_GITHUB_TOKEN."""

from __future__ import annotations

import argparse
import getpass
import os

from reviewpulse.core.encryption import TokenEncryption


def main() -> None:
    parser = argparse.ArgumentParser(description="Encrypt a GitHub token for server configuration")
    parser.add_argument("token", nargs="?", help="Token to encrypt (prompted for when omitted)")
    parser.add_argument(
        "--password",
        default=os.environ.get("REVIEWPULSE_ENCRYPTION_PASSWORD"),
        help="Encryption password (default: REVIEWPULSE_ENCRYPTION_PASSWORD)",
    )
    args = parser.parse_args()

    if not args.password:
        parser.error("an encryption password is required (--password or REVIEWPULSE_ENCRYPTION_PASSWORD)")
    token = args.token or getpass.getpass("GitHub token: ")
    encrypted = TokenEncryption(args.password).encrypt(token)
    print(f"REVIEWPULSE_GITHUB_TOKEN={encrypted}")


if __name__ == "__main__":
    main()
