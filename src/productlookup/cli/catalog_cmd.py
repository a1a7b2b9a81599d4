#!/usr/bin/env python3
"""
Product lookup CLI

Usage:
    python catalog_cmd.py import products.csv [--batch-size 100]
    python catalog_cmd.py preview products.csv
    python catalog_cmd.py count
    python catalog_cmd.py search [--order CODE] [--supplier S] [--colour C] [--name "words"] [--keep]
    python catalog_cmd.py fav add CODE [--frequency 2 --period week]
    python catalog_cmd.py fav usage CODE --frequency 3 --period day
    python catalog_cmd.py fav remove CODE
    python catalog_cmd.py fav list
    python catalog_cmd.py history list|remove CODE|clear
    python catalog_cmd.py queries
    python catalog_cmd.py show [search options]
"""

import argparse
import logging
import sys

from dotenv import load_dotenv

from productlookup.catalog.costs import format_price, pack_price_label, unit_price_label, yearly_total
from productlookup.catalog.db import CatalogDB
from productlookup.catalog.display import build_display_rows
from productlookup.catalog.importer import import_csv, preview_csv
from productlookup.catalog.models import PERIODS, SearchCriteria, UsageDescriptor
from productlookup.catalog.searcher import QueryCache, SearchSession
from productlookup.catalog.state import FavoritesState, QueryHistory, get_session_id
from productlookup.config import Settings
from productlookup.errors import CatalogError, ConnectivityError, PartialImportFailure
from productlookup.remote import RemoteCatalogStore

load_dotenv()


class Context:
    """Record store plus local session state for one CLI run"""

    def __init__(self, settings: Settings):
        self.settings = settings
        if settings.use_remote:
            settings.validate_remote()
        self.local = CatalogDB(settings.db_path)
        if settings.use_remote:
            self.store = RemoteCatalogStore(
                settings.store_url, settings.store_key, table=settings.store_table
            )
        else:
            self.store = self.local
        self.cache = QueryCache()
        self.session_id = get_session_id(self.local)
        self.state = FavoritesState(self.local, self.session_id)
        self.queries = QueryHistory(self.local)

    def close(self):
        if self.store is not self.local:
            self.store.close()
        self.local.close()


def _criteria(args) -> SearchCriteria:
    return SearchCriteria(
        order_number=args.order,
        supplier=args.supplier,
        colour=args.colour,
        product_name=args.name,
    )


def _query_text(criteria: SearchCriteria) -> str:
    parts = [
        f"{label}:{value.strip()}"
        for label, value in (
            ("order", criteria.order_number),
            ("supplier", criteria.supplier),
            ("colour", criteria.colour),
            ("name", criteria.product_name),
        )
        if value and value.strip()
    ]
    return " ".join(parts)


def _print_product(product, prefix="  "):
    print(f"{prefix}{product.product_name}  [{product.order_number}]")
    print(f"{prefix}  {product.supplier} / {product.colour or '-'} / {product.size_weight or '-'}"
          f"  QTY {product.qty} {product.uom_qty}".rstrip())
    print(f"{prefix}  Pack £{pack_price_label(product)}  Unit £{unit_price_label(product)}")


def _find_one(ctx: Context, code: str):
    """Resolve an order code to exactly one product"""
    results = SearchSession(ctx.store, ctx.cache).submit(SearchCriteria(order_number=code)) or []
    exact = [p for p in results if p.order_number.lower() == code.strip().lower()]
    if len(exact) == 1:
        return exact[0]
    if len(results) == 1:
        return results[0]
    if not results:
        print(f"No product matches order code '{code}'.")
    else:
        print(f"'{code}' matches {len(results)} products, be more specific:")
        for product in results[:10]:
            print(f"  {product.order_number}  {product.product_name}")
    return None


def _match_state(products, ref: str):
    ref = ref.strip().lower()
    for product in products:
        if product.id.lower() == ref or product.order_number.lower() == ref:
            return product
    return None


def cmd_import(ctx: Context, args):
    """Import products from a CSV file"""
    batch_size = args.batch_size or ctx.settings.batch_size

    def report(percent: int):
        print(f"  {percent}%")

    print(f"Importing {args.file} ...")
    try:
        result = import_csv(ctx.store, args.file, batch_size=batch_size,
                            on_progress=report, cache=ctx.cache)
    except PartialImportFailure as e:
        print(f"Upload failed at batch {e.batch_index}/{e.total_batches}: {e.cause}")
        print(f"  {e.rows_committed} rows from earlier batches remain in the database.")
        sys.exit(1)
    print(f"Successfully imported {result.rows_imported} products ({result.batches} batches).")


def cmd_preview(ctx: Context, args):
    """Show the first rows of a CSV file and how its columns map"""
    preview = preview_csv(args.file)
    print(f"Detected columns: {', '.join(preview.headers)}")
    for field_name, header in preview.mapping.items():
        print(f"  {field_name:<14} <- {header}")
    if preview.ignored:
        print(f"Ignored: {', '.join(preview.ignored)}")
    print()
    for row in preview.rows:
        print("  " + " | ".join(str(v or "") for v in row.values()))


def cmd_count(ctx: Context, args):
    total = ctx.store.count()
    if total:
        print(f"Product database is ready with {total} products")
    else:
        print("Database is empty. Import a CSV file to get started.")


def cmd_search(ctx: Context, args):
    """Search the catalog"""
    criteria = _criteria(args)
    if criteria.is_empty():
        print("Enter an order code, supplier, colour or product name.")
        return

    results = SearchSession(ctx.store, ctx.cache).submit(criteria) or []
    ctx.queries.add(_query_text(criteria))
    if not results:
        print("No products found.")
        return

    print(f"=== {len(results)} products ===\n")
    for product in results:
        star = "*" if ctx.state.is_favorite(product.id) else " "
        _print_product(product, prefix=f"{star} ")
    if args.keep:
        added = ctx.state.add_to_search_history(results)
        print(f"\n{added} products added to search history.")


def cmd_fav(ctx: Context, args):
    """Manage favorites"""
    if args.fav_command == "list":
        _print_favorites(ctx)
        return

    if args.fav_command == "add":
        product = _match_state(ctx.state.search_history, args.code) or _find_one(ctx, args.code)
        if product is None:
            sys.exit(1)
        usage = UsageDescriptor(args.frequency, args.period)
        ctx.state.add_favorite(product, usage)
        print(f"Added to favorites: {product.product_name} ({usage.frequency}/{usage.period})")
        return

    product = _match_state(ctx.state.products, args.code)
    if product is None:
        print(f"'{args.code}' is not a favorite.")
        sys.exit(1)

    if args.fav_command == "remove":
        ctx.state.remove_favorite(product.id, keep_in_history=True)
        print(f"Removed from favorites: {product.product_name}")
    elif args.fav_command == "usage":
        ctx.state.update_usage(product.id, UsageDescriptor(args.frequency, args.period))
        print(f"Usage updated: {product.product_name} {args.frequency}/{args.period}")


def _print_favorites(ctx: Context):
    favorites = ctx.state.favorites
    if not favorites:
        print("No favorites yet.")
        return
    print(f"=== Favorites ({len(favorites)}) ===\n")
    rows = build_display_rows(ctx.state, [])
    for row in rows:
        if not row.is_favorite:
            continue
        _print_product(row.product)
        print(f"    Usage {row.usage.frequency}/{row.usage.period}  "
              f"Yearly £{format_price(row.yearly_cost)}")
    total, counted = yearly_total(ctx.state.products, ctx.state.usage_by_id())
    if counted:
        plural = "s" if counted != 1 else ""
        print(f"\nTotal estimated yearly cost: £{format_price(total)} across {counted} product{plural}")


def cmd_history(ctx: Context, args):
    """Manage the product search history"""
    if args.history_command == "clear":
        ctx.state.clear_search_history()
        print("Search history cleared.")
    elif args.history_command == "remove":
        product = _match_state(ctx.state.search_history, args.code)
        if product is None or not ctx.state.remove_from_search_history(product.id):
            print(f"'{args.code}' is not in the search history.")
            sys.exit(1)
        print(f"Removed from search results: {product.product_name}")
    else:
        if not ctx.state.search_history:
            print("Search history is empty.")
        for product in ctx.state.search_history:
            _print_product(product)


def cmd_queries(ctx: Context, args):
    if args.clear:
        ctx.queries.clear()
        print("Recent searches cleared.")
        return
    for query in ctx.queries.queries:
        print(f"  {query}")


def cmd_show(ctx: Context, args):
    """Show search results, history, and favorites as one list"""
    selected = []
    criteria = _criteria(args)
    if not criteria.is_empty():
        selected = SearchSession(ctx.store, ctx.cache).submit(criteria) or []

    rows = build_display_rows(ctx.state, selected)
    if not rows:
        print("Nothing to show. Search for products by order code, name, supplier or colour.")
        return
    for row in rows:
        tag = "*" if row.is_favorite else ("x" if row.deletable else " ")
        _print_product(row.product, prefix=f"{tag} ")
        if row.usage:
            print(f"    Usage {row.usage.frequency}/{row.usage.period}  "
                  f"Yearly £{format_price(row.yearly_cost)}")


def _add_search_options(p):
    p.add_argument("--order", help="Order code (substring, other fields ignored)")
    p.add_argument("--supplier", help="Supplier (exact)")
    p.add_argument("--colour", help="Colour (exact)")
    p.add_argument("--name", help="Product name words (up to 3)")


def _add_usage_options(p, required=False):
    p.add_argument("--frequency", type=int, default=None if required else 1,
                   required=required, help="Uses per period")
    p.add_argument("--period", choices=PERIODS, default=None if required else "month",
                   required=required, help="day / week / month")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Product lookup")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress logs")
    subparsers = parser.add_subparsers(dest="command")

    p_import = subparsers.add_parser("import", help="Import products from CSV")
    p_import.add_argument("file", help="CSV file")
    p_import.add_argument("--batch-size", type=int, default=None, help="Rows per insert (default: 100)")

    p_preview = subparsers.add_parser("preview", help="Preview a CSV file")
    p_preview.add_argument("file", help="CSV file")

    subparsers.add_parser("count", help="Count products in the database")

    p_search = subparsers.add_parser("search", help="Search products")
    _add_search_options(p_search)
    p_search.add_argument("--keep", action="store_true", help="Add results to search history")

    p_fav = subparsers.add_parser("fav", help="Manage favorites")
    fav_sub = p_fav.add_subparsers(dest="fav_command", required=True)
    p_add = fav_sub.add_parser("add", help="Add a favorite by order code")
    p_add.add_argument("code")
    _add_usage_options(p_add)
    p_usage = fav_sub.add_parser("usage", help="Change a favorite's usage")
    p_usage.add_argument("code")
    _add_usage_options(p_usage, required=True)
    p_remove = fav_sub.add_parser("remove", help="Remove a favorite")
    p_remove.add_argument("code")
    fav_sub.add_parser("list", help="List favorites with yearly costs")

    p_history = subparsers.add_parser("history", help="Manage search history")
    hist_sub = p_history.add_subparsers(dest="history_command", required=True)
    hist_sub.add_parser("list")
    p_hremove = hist_sub.add_parser("remove")
    p_hremove.add_argument("code")
    hist_sub.add_parser("clear")

    p_queries = subparsers.add_parser("queries", help="Recent searches")
    p_queries.add_argument("--clear", action="store_true")

    p_show = subparsers.add_parser("show", help="Show results, history and favorites")
    _add_search_options(p_show)

    return parser


COMMANDS = {
    "import": cmd_import,
    "preview": cmd_preview,
    "count": cmd_count,
    "search": cmd_search,
    "fav": cmd_fav,
    "history": cmd_history,
    "queries": cmd_queries,
    "show": cmd_show,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return

    ctx = None
    try:
        ctx = Context(Settings.from_env())
        handler(ctx, args)
    except ConnectivityError as e:
        print(f"Error: {e.hint}\n  {e}", file=sys.stderr)
        sys.exit(1)
    except (CatalogError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if ctx is not None:
            ctx.close()


if __name__ == "__main__":
    main()
