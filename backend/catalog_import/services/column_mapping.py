"""
Column mapping: propose a target field for each header of an uploaded file.

Matching is greedy and order dependent. Source columns are processed in file
order and each one claims its best unclaimed target field. Candidates with equal
scores are ordered by their position in the target schema.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .target_schema import TargetFieldSpec, list_fields

IGNORE = "__ignore__"

EXACT_SCORE = 100.0
CONTAINS_BASE_SCORE = 50.0
CONTAINS_RATIO_WEIGHT = 30.0
CONTAINS_MAX_SCORE = 99.0
MIN_MAPPING_SCORE = 40.0

# ---------------------------------------------------------------------------
# Alias table
# Each target field has a list of header spellings seen in vendor exports
# (bookstore tools, WordPress/WooCommerce dumps, hand-made spreadsheets).
# ---------------------------------------------------------------------------
COLUMN_ALIASES: Dict[str, List[str]] = {
    # ── Bibliographic ──
    "title": [
        "title", "name", "product_name", "book_title", "item_name", "product_title",
    ],
    "author": ["author", "authors", "writer", "by", "creator"],
    "isbn": ["isbn", "isbn10", "isbn_10", "isbn13", "isbn_13"],

    # ── Descriptions ──
    "description": [
        "description", "desc", "details", "full_description",
        "long_description", "product_description", "annotation",
    ],
    "short_description": [
        "short_description", "short_desc", "summary", "brief", "subtitle", "excerpt",
    ],

    # ── Listing ──
    "price": ["price", "retail_price", "list_price", "sale_price", "amount", "unit_price"],
    "quantity": [
        "quantity", "qty", "stock", "inventory", "stock_quantity", "in_stock", "volumes",
    ],
    "condition": [
        "condition", "item_condition", "book_condition", "state", "cond", "jacket_cond",
    ],
    "category": ["category", "categories", "genre", "keywords", "tags", "lists", "subject"],
    "status": ["status", "availability", "listing_status"],
    "sku": ["sku", "product_code", "item_number", "code", "barcode", "book_id"],
    "images": [
        "images", "image", "image_url", "image_urls", "photo", "photos",
        "picture", "pictures", "thumbnail",
    ],

    # ── Edition details ──
    "publisher": ["publisher", "pub", "publishing_house", "imprint", "place_pub"],
    "publication_year": [
        "publication_year", "year", "pub_year", "date_pub",
        "year_published", "date_published", "pub_date",
    ],
    "edition": ["edition", "ed", "printing"],
    "language": ["language", "lang", "languages"],
    "binding": ["binding", "binding_type", "format", "cover_type", "book_format"],
    "is_signed": ["signed", "is_signed", "autographed", "signed_text"],
    "weight": ["weight", "shipping_weight", "item_weight"],

    # ── External identifiers ──
    "wp_post_id": ["wp_post_id", "wordpress_id", "post_id"],
    "sid": ["sid", "internal_id", "external_id", "ref"],
    "keywords": ["keywords", "tags", "keyword", "search_terms"],
}

_SEPARATOR_RUN = re.compile(r"[\s\-.]+")


def normalize_column_name(name: str) -> str:
    """Lowercase, trim, and collapse whitespace/hyphen/period runs into '_'."""
    return _SEPARATOR_RUN.sub("_", str(name or "").strip().lower())


def _build_alias_table(fields: Sequence[TargetFieldSpec]) -> List[tuple]:
    """(field_order, target_key, normalized aliases) in registry order."""
    table = []
    for order, spec in enumerate(fields):
        aliases = COLUMN_ALIASES.get(spec.key, [])
        table.append((order, spec.key, [normalize_column_name(a) for a in aliases]))
    return table


_DEFAULT_ALIAS_TABLE = _build_alias_table(list_fields())


@dataclass(frozen=True)
class MappingCandidate:
    """One target field a source column could map to."""
    target_key: str
    score: float
    field_order: int
    alias: str

    def sort_key(self):
        return (-self.score, self.field_order)


def score_alias(column: str, alias: str) -> float:
    """
    Score a normalized column against a normalized alias.

    100 on equality; 50 + 30 * len(alias) / len(column) (capped at 99) when one
    contains the other; 0 otherwise.
    """
    if not column or not alias:
        return 0.0
    if column == alias:
        return EXACT_SCORE
    if alias in column or column in alias:
        score = CONTAINS_BASE_SCORE + (len(alias) / len(column)) * CONTAINS_RATIO_WEIGHT
        return min(score, CONTAINS_MAX_SCORE)
    return 0.0


def rank_candidates(
    column: str,
    claimed: Optional[Set[str]] = None,
    alias_table: Optional[List[tuple]] = None,
) -> List[MappingCandidate]:
    """
    Candidate target fields for one normalized column, best first.

    An exact alias match ends the search and is returned alone.
    """
    claimed = claimed or set()
    table = alias_table if alias_table is not None else _DEFAULT_ALIAS_TABLE
    candidates: List[MappingCandidate] = []

    for order, target_key, aliases in table:
        if target_key in claimed:
            continue
        best: Optional[MappingCandidate] = None
        for alias in aliases:
            score = score_alias(column, alias)
            if score == EXACT_SCORE:
                return [MappingCandidate(target_key, score, order, alias)]
            if score > 0 and (best is None or score > best.score):
                best = MappingCandidate(target_key, score, order, alias)
        if best is not None:
            candidates.append(best)

    candidates.sort(key=MappingCandidate.sort_key)
    return candidates


def propose_mappings(
    source_columns: Iterable[str],
    fields: Optional[Sequence[TargetFieldSpec]] = None,
) -> Dict[str, Optional[str]]:
    """
    Auto-detect a mapping from file headers to target fields.

    Returns {source_column: target_key or None}. A target key is used at most
    once; the first column to claim it wins.
    """
    table = _build_alias_table(fields) if fields is not None else _DEFAULT_ALIAS_TABLE
    mapping: Dict[str, Optional[str]] = {}
    claimed: Set[str] = set()

    for column in source_columns:
        candidates = rank_candidates(normalize_column_name(column), claimed, table)
        best = candidates[0] if candidates else None
        if best is not None and best.score >= MIN_MAPPING_SCORE:
            mapping[column] = best.target_key
            claimed.add(best.target_key)
        else:
            mapping[column] = None

    return mapping


def mapped_targets(mapping: Dict[str, Optional[str]]) -> Set[str]:
    """Target keys actually in use by a mapping."""
    return {target for target in mapping.values() if target and target != IGNORE}
