"""Print fresh random secrets for a .env file."""

from __future__ import annotations

import argparse
import secrets


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(description="Generate secrets for the API .env file.")
    parser.add_argument(
        "--bytes",
        type=int,
        default=32,
        help="Entropy per secret in bytes (default: 32).",
    )
    return parser.parse_args()


def generate(nbytes: int) -> dict[str, str]:
    """Return environment variable name -> random hex value."""
    if nbytes < 16:
        raise ValueError("bytes must be >= 16")
    return {"SESSION_SECRET": secrets.token_hex(nbytes)}


def main() -> None:
    """CLI entry point."""
    args = parse_args()
    print("# Paste these into .env")
    for name, value in generate(args.bytes).items():
        print(f"{name}={value}")
    print("# Set EMAIL_USER / EMAIL_PASSWORD / EMAIL_HOST / EMAIL_PORT for your SMTP account.")


if __name__ == "__main__":
    main()
