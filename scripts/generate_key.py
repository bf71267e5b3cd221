#!/usr/bin/env python3
"""
Print a fresh encryption key for secrets at rest.

Usage:
    python scripts/generate_key.py

Add the printed line to your .env file. Secrets stored under one key cannot
be read with another, so keep it somewhere safe.
"""
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from calhub.crypto.encryption import generate_key


def main():
    print(f"ENCRYPTION_KEY={generate_key()}")


if __name__ == "__main__":
    main()
