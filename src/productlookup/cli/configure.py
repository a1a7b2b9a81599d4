#!/usr/bin/env python3
"""
Record store setup script

Tests the connection to a remote record store and saves the URL and key to .env.

Usage:
  python configure.py
  python configure.py --url https://abcd.supabase.co --key <anon key>
"""

import argparse
import getpass
import os
import sys
from pathlib import Path

from dotenv import load_dotenv, set_key

from productlookup.errors import ConnectivityError, StoreError
from productlookup.remote import RemoteCatalogStore

load_dotenv()


def update_env(updates: dict[str, str], env_path: str = ".env"):
    """Write settings to a .env file, replacing existing keys in place"""
    path = Path(env_path)
    path.touch(exist_ok=True)
    for key, value in updates.items():
        set_key(str(path), key, value)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Configure the product record store")
    parser.add_argument("--url", help="Record store URL (e.g. https://abcd.supabase.co)")
    parser.add_argument("--key", help="API key (prompted when omitted)")
    parser.add_argument("--table", default=None, help="Product table name (default: product)")
    parser.add_argument("--env", default=".env", help=".env file path (default: .env)")
    args = parser.parse_args(argv)

    url = args.url or os.getenv("CATALOG_STORE_URL") or input("Record store URL: ").strip()
    key = args.key or os.getenv("CATALOG_STORE_KEY") or getpass.getpass("API key: ")
    table = args.table or os.getenv("CATALOG_STORE_TABLE") or "product"

    if not url or not key:
        print("Error: URL and API key are required.", file=sys.stderr)
        sys.exit(1)

    print("Testing connection...")
    try:
        store = RemoteCatalogStore(url, key, table=table)
        store.ping()
        total = store.count()
        store.close()
    except ConnectivityError as e:
        print(f"Connection failed: {e.hint}\n  {e}", file=sys.stderr)
        sys.exit(1)
    except StoreError as e:
        print(f"Connection failed: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)

    print(f"Connection successful! {total} products in database.")

    updates = {"CATALOG_STORE_URL": url, "CATALOG_STORE_KEY": key}
    if table != "product":
        updates["CATALOG_STORE_TABLE"] = table
    update_env(updates, args.env)
    print(f"Saved {', '.join(updates)} to {args.env}.")


if __name__ == "__main__":
    main()
