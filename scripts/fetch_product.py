#!/usr/bin/env python3
"""Extract one or more marketplace product pages from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from rich.console import Console
from rich.table import Table

from core.scraper_engine import ProductPipeline
from core.types import ProductRecord
from services.api.config import get_settings
from utils.error_handling import MissingInput, PipelineStageError
from utils.export_writers import write_product_exports
from utils.helpers import extract_item_code
from utils.logger import configure_logging, create_progress_bar

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract marketplace product pages")
    parser.add_argument("urls", nargs="+", help="Product page URL(s)")
    parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Directory to write JSON/CSV exports into",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full record JSON instead of a summary table",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Overall request budget per URL in seconds (default: from settings)",
    )
    parser.add_argument("--log-level", default=None, help="Override log level")
    return parser


def summarize(url: str, record: ProductRecord) -> Table:
    table = Table(title=record.title or url, show_header=False)
    table.add_column("field", style="cyan")
    table.add_column("value")
    table.add_row("URL", url)
    table.add_row("Images", str(len(record.images)))
    table.add_row(
        "Price tiers",
        ", ".join(f"{tier.min_quantity}+ @ {tier.price}" for tier in record.price_tiers) or "-",
    )
    table.add_row(
        "Attributes",
        ", ".join(f"{name} ({len(values)})" for name, values in record.attributes.items()) or "-",
    )
    table.add_row("Specifications", str(len(record.specifications)))
    table.add_row("Sold", str(record.sold_count))
    table.add_row("Reviews", str(len(record.reviews)))
    table.add_row(
        "Recommendations",
        "n/a" if record.recommendations is None else str(len(record.recommendations)),
    )
    return table


async def run(urls: List[str], out_dir: Optional[Path], as_json: bool, timeout: Optional[float]) -> int:
    settings = get_settings()
    if timeout is not None:
        settings = settings.model_copy(update={"request_timeout_seconds": timeout})
    pipeline = ProductPipeline.create(settings.to_pipeline_config())

    failures = 0
    async with pipeline.fetcher:
        for url in create_progress_bar(urls, desc="Extracting", unit="page"):
            try:
                record = await pipeline.extract(url)
            except (MissingInput, PipelineStageError) as exc:
                failures += 1
                console.print(f"[red]✗ {url}[/red] {exc.to_dict()['error']}")
                continue

            if as_json:
                console.print_json(json.dumps(record.to_dict(), ensure_ascii=False))
            else:
                console.print(summarize(url, record))

            if out_dir is not None:
                artifacts = write_product_exports(
                    record, out_dir, slug=extract_item_code(url) or f"product-{urls.index(url)}"
                )
                console.print(f"[green]✓[/green] exports written to {artifacts.json_path.parent}")

    metrics = pipeline.fetcher.metrics
    console.print(
        f"[dim]{metrics.total_requests} requests, {metrics.success_rate:.0%} ok, "
        f"avg {metrics.avg_response_time:.2f}s[/dim]"
    )
    return 1 if failures else 0


def main() -> int:
    args = build_parser().parse_args()
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, settings.log_file)
    return asyncio.run(run(args.urls, args.out, args.json, args.timeout))


if __name__ == "__main__":
    sys.exit(main())
