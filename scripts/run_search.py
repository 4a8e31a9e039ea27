"""Manual search runner for testing and debugging supplier adapters.

Runs one part-number search, either across every supplier or against a
single one, and prints what came back.

Usage:
    python scripts/run_search.py 90915-YZZE1
    python scripts/run_search.py 90915-YZZE1 --supplier emex
    python scripts/run_search.py 90915-YZZE1 --limit 5
"""

import argparse
import asyncio
import os
import sys

# Add backend to path so we can import partsearch modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from partsearch.core.exceptions import QueryValidationError
from partsearch.suppliers.factory import get_adapter_factory
from partsearch.suppliers.register_adapters import register_all_adapters
from partsearch.services.search_service import SearchService


async def run_search(query: str, supplier: str = None, limit: int = 10):
    """Run a search and display the results.

    Args:
        query: Part number to search for
        supplier: Restrict the search to one supplier source id
        limit: Maximum number of results to display (default: 10)
    """
    register_all_adapters()
    factory = get_adapter_factory()

    if supplier:
        if not factory.has_adapter(supplier):
            print(f"\n❌ Error: Unknown supplier '{supplier}'")
            print(f"\n📋 Available suppliers:")
            for source_id in factory.get_registered_suppliers():
                print(f"   - {source_id}")
            return
        adapters = [factory.create_adapter(supplier)]
    else:
        adapters = factory.create_all()

    print(f"\n{'='*70}")
    print(f"  Searching for {query}")
    print(f"{'='*70}")
    print(f"  🏭 Suppliers: {', '.join(a.source_id for a in adapters)}")
    print(f"  📊 Display Limit: {limit}")
    print(f"{'='*70}\n")

    service = SearchService(adapters=adapters)
    try:
        outcome = await service.search(query)
    except QueryValidationError as e:
        print(f"❌ {e.message}\n")
        return
    finally:
        await service.close()

    if not outcome.results:
        print("⚠️  No results found.\n")
    for i, result in enumerate(outcome.results[:limit], 1):
        option = f" [{result.option}]" if result.option else ""
        print(f"[{i}] {result.part_number} {result.brand} - {result.description}{option}")
        print(f"    💰 Price: {result.computed_sell_price:,.2f} EUR (base {result.price_in_base_currency:,.2f})")
        print(f"    🚚 Delivery: {result.estimated_delivery_label}, {result.stock_status.value}")
        print(f"    🏢 Supplier: {result.supplier_display_name}")
        print()

    # Summary
    print(f"{'='*70}")
    print(f"  Summary")
    print(f"{'='*70}")
    for source_id, count in outcome.per_supplier_counts.items():
        raw = outcome.raw_counts.get(source_id, 0)
        print(f"  {source_id:<10} {count:>3} results ({raw} raw)")
    print(f"  Total: {outcome.total_count} in {outcome.elapsed_ms} ms")
    rates = outcome.rates
    print(f"  Rates: JPY {rates.jpy_to_eur} / USD {rates.usd_to_eur}{' (fallback)' if rates.is_fallback else ''}")
    print(f"{'='*70}\n")


def main():
    """Parse arguments and run the search."""
    parser = argparse.ArgumentParser(
        description="Run a part search against the configured suppliers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_search.py 90915-YZZE1
  python scripts/run_search.py 90915-YZZE1 --supplier emex
  python scripts/run_search.py 90915-YZZE1 --limit 5
        """,
    )

    parser.add_argument("query", help="Part number to search for")

    parser.add_argument(
        "--supplier",
        help="Only query this supplier (e.g., 'emex', 'thunder')",
    )

    parser.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Maximum number of results to display (default: 10)",
    )

    args = parser.parse_args()

    asyncio.run(run_search(args.query, args.supplier, args.limit))


if __name__ == "__main__":
    main()
