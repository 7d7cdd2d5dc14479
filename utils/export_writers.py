from __future__ import annotations

import csv
import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import product
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from core.types import AttributeValue, ProductRecord, Review
from utils.logger import get_logger

logger = get_logger(__name__)

__all__ = [
    "write_product_exports",
    "catalog_csv",
    "reviews_csv",
    "build_catalog_rows",
    "build_review_rows",
    "generate_variations",
    "specifications_html",
    "ExportArtifacts",
    "CSV_SHEETS",
]

CSV_SHEETS: Dict[str, str] = {
    "catalog": "catalog.csv",
    "reviews": "reviews.csv",
}

BASE_ID = 1000
DEFAULT_STOCK = 100
STOCK_MULTIPLIER = 99
SKU_LENGTH = 20

CATALOG_BASE_COLUMNS: Tuple[str, ...] = (
    "ID",
    "Type",
    "SKU",
    "Name",
    "Published",
    "Is featured?",
    "Visibility in catalog",
    "Description",
    "Tax status",
    "In stock?",
    "Stock",
    "Images",
    "Parent",
    "Position",
    "Regular price",
)

REVIEW_COLUMNS: Tuple[str, ...] = (
    "Review ID",
    "Date",
    "Rating",
    "Reviewer",
    "Country",
    "Content",
    "Images",
    "Purchased Variations",
)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


@dataclass(frozen=True)
class ExportArtifacts:
    json_path: Path
    csv_paths: Dict[str, Path]

    def csv_for(self, sheet: str) -> Path:
        try:
            return self.csv_paths[sheet]
        except KeyError as error:
            raise KeyError(f"Unknown CSV sheet '{sheet}'") from error


def _alnum(value: str) -> str:
    return _NON_ALNUM.sub("", value)


def _format_price(value: Any) -> str:
    if value is None:
        return "0"
    return format(value, "f") if not isinstance(value, str) else value


def specifications_html(specifications: Optional[Mapping[str, str]]) -> str:
    """Render specifications as the bordered table prepended to descriptions."""
    if not specifications:
        return ""

    rows = "".join(
        '<tr><td style="padding: 8px; border: 1px solid #ddd; font-weight: bold; width: 30%;">'
        f"{key}</td>"
        f'<td style="padding: 8px; border: 1px solid #ddd;">{value}</td></tr>'
        for key, value in specifications.items()
    )
    return (
        '<div style="margin-bottom: 20px;">'
        '<h3 style="margin-bottom: 10px;">Specifications</h3>'
        '<table style="width: 100%; border-collapse: collapse; border: 1px solid #ddd;">'
        f"<tbody>{rows}</tbody></table></div>"
    )


def generate_variations(
    attributes: Mapping[str, Sequence[AttributeValue]],
) -> List[Dict[str, AttributeValue]]:
    """Cartesian product of every attribute's values, in attribute order."""
    if not attributes:
        return []
    names = list(attributes.keys())
    return [dict(zip(names, combo)) for combo in product(*(attributes[name] for name in names))]


def _combined_attributes(record: ProductRecord) -> List[Tuple[str, List[str], bool]]:
    """(name, values, is_global) for variant attributes then specifications."""
    combined: Dict[str, Tuple[List[str], bool]] = {
        name: ([value.value for value in values], True)
        for name, values in record.attributes.items()
    }
    for key, value in record.specifications.items():
        if key.lower() == "category":
            continue
        combined[key] = ([value], key in record.attributes)
    return [(name, values, is_global) for name, (values, is_global) in combined.items()]


def build_catalog_rows(record: ProductRecord) -> Tuple[List[str], List[Dict[str, str]]]:
    """Parent row plus one variation row per attribute combination."""
    combined = _combined_attributes(record)
    attribute_columns: List[str] = []
    for index in range(1, len(combined) + 1):
        attribute_columns.extend(
            [
                f"Attribute {index} name",
                f"Attribute {index} value(s)",
                f"Attribute {index} visible",
                f"Attribute {index} global",
            ]
        )
    columns = list(CATALOG_BASE_COLUMNS) + attribute_columns

    is_simple = not record.is_variable
    base_price = _format_price(record.base_price)
    base_sku = _alnum(record.title[:SKU_LENGTH])
    stock = str(record.sold_count * STOCK_MULTIPLIER if record.sold_count else DEFAULT_STOCK)

    parent: Dict[str, str] = {
        "ID": str(BASE_ID),
        "Type": "simple" if is_simple else "variable",
        "SKU": base_sku,
        "Name": record.title,
        "Published": "1",
        "Is featured?": "0",
        "Visibility in catalog": "visible",
        "Description": specifications_html(record.specifications) + record.description,
        "Tax status": "taxable",
        "In stock?": "1",
        "Stock": stock,
        "Images": ", ".join(url.strip() for url in record.images),
        "Parent": "",
        "Position": "0",
        "Regular price": base_price if is_simple else "",
    }
    for index, (name, values, is_global) in enumerate(combined, start=1):
        parent[f"Attribute {index} name"] = name
        parent[f"Attribute {index} value(s)"] = ", ".join(values)
        parent[f"Attribute {index} visible"] = "1"
        parent[f"Attribute {index} global"] = "1" if is_global else "0"

    rows = [parent]
    for combo in generate_variations(record.attributes):
        chosen = list(combo.values())
        row: Dict[str, str] = {
            "ID": str(BASE_ID + len(rows)),
            "Type": "variation",
            "SKU": f"{base_sku}-" + "-".join(_alnum(value.value) for value in chosen),
            "Name": f"{record.title} - " + " ".join(value.value for value in chosen),
            "Published": "1",
            "Is featured?": "0",
            "Visibility in catalog": "visible",
            "Description": "",
            "Tax status": "taxable",
            "In stock?": "1",
            "Stock": stock,
            "Images": chosen[0].image_url or "",
            "Parent": f"id:{BASE_ID}",
            "Position": str(len(rows)),
            "Regular price": base_price,
        }
        for index, (name, value) in enumerate(combo.items(), start=1):
            row[f"Attribute {index} name"] = name
            row[f"Attribute {index} value(s)"] = value.value
            row[f"Attribute {index} visible"] = "1"
            row[f"Attribute {index} global"] = "1"
        rows.append(row)

    return columns, rows


def build_review_rows(reviews: Sequence[Review]) -> List[Dict[str, str]]:
    return [
        {
            "Review ID": review.id,
            "Date": review.date_text,
            "Rating": str(review.rating),
            "Reviewer": review.buyer.nickname,
            "Country": review.buyer.country_name,
            "Content": review.content,
            "Images": "; ".join(image.url for image in review.images),
            "Purchased Variations": "; ".join(
                f"{attr.name}: {attr.value}" for attr in review.purchased_attributes
            ),
        }
        for review in reviews
    ]


def _to_csv(columns: Sequence[str], rows: List[Dict[str, str]]) -> str:
    frame = pd.DataFrame(rows, columns=list(columns)).fillna("")
    return frame.to_csv(
        index=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
    )


def catalog_csv(record: ProductRecord) -> str:
    columns, rows = build_catalog_rows(record)
    return _to_csv(columns, rows)


def reviews_csv(reviews: Sequence[Review]) -> str:
    return _to_csv(REVIEW_COLUMNS, build_review_rows(reviews))


def write_product_exports(
    record: ProductRecord,
    base_dir: Path,
    *,
    slug: str = "product",
) -> ExportArtifacts:
    """Write JSON, catalog CSV and reviews CSV for one record under ``base_dir``."""
    base_dir = Path(base_dir)
    base_dir.mkdir(parents=True, exist_ok=True)

    json_path = base_dir / f"{slug}.json"
    json_path.write_text(
        json.dumps(record.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
    )

    csv_paths: Dict[str, Path] = {}
    for sheet, content in (
        ("catalog", catalog_csv(record)),
        ("reviews", reviews_csv(record.reviews)),
    ):
        target_path = base_dir / f"{slug}.{CSV_SHEETS[sheet]}"
        target_path.write_text(content, encoding="utf-8")
        csv_paths[sheet] = target_path

    manifest_path = base_dir / f"{slug}.export_manifest.json"
    manifest_payload = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "files": {sheet: path.name for sheet, path in csv_paths.items()},
        "json": json_path.name,
    }
    manifest_path.write_text(
        json.dumps(manifest_payload, ensure_ascii=False, indent=2), encoding="utf-8"
    )
    logger.info("Wrote exports for %s to %s", slug, base_dir)

    return ExportArtifacts(json_path=json_path, csv_paths=csv_paths)
