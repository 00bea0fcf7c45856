"""
Recommendations with a fallback chain.

Usage:
    from menuman.recommendations import recommend, related_items

    related = related_items(item, catalog_items, max_items=6)
    anything = recommend(package, all_packages)

Fallback chain (each step skips the source and anything already chosen):
    1. Curated links on the source, in stored order
    2. Candidates with a positive relevance score, best first
    3. Remaining candidates by popularity (items) or pool order (packages)

Ties keep candidate pool order. An empty result means "nothing to show";
no function here raises for empty pools or missing matches.
"""

import logging
from typing import Iterable, Mapping, Sequence

from menuman.conf import menuman_settings
from menuman.protocols.catalog import CatalogItem, Package
from menuman.scoring import (
    CATEGORY_COMPLEMENT,
    CATEGORY_COMPLEMENT_SOURCES,
    ITEM_SIMILARITY,
    PACKAGE_COMPLEMENT,
    PACKAGE_SIMILARITY,
    POPULARITY,
    PackageProfile,
    RuleTable,
    score,
)

logger = logging.getLogger(__name__)


def _rank(source, candidates: list, table: RuleTable, positive_only: bool) -> list:
    """Sort by score descending; sorted() is stable, so ties keep pool order."""
    scored = [(score(source, candidate, table), candidate) for candidate in candidates]
    if positive_only:
        scored = [pair for pair in scored if pair[0] > 0]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [candidate for _, candidate in scored]


def _fill_chain(
    source_id: str,
    candidates: Sequence,
    max_items: int,
    explicit_ids: Iterable[str] = (),
    table: RuleTable | None = None,
    table_source=None,
    fallback: RuleTable | None = POPULARITY,
) -> list:
    if max_items <= 0 or not candidates:
        return []

    by_id = {}
    for candidate in candidates:
        by_id.setdefault(candidate.id, candidate)
    pool = list(by_id.values())

    selected = []
    seen = {source_id}

    def take(ordered: Iterable) -> None:
        for candidate in ordered:
            if len(selected) >= max_items:
                return
            if candidate.id not in seen:
                selected.append(candidate)
                seen.add(candidate.id)

    take(by_id[cid] for cid in dict.fromkeys(explicit_ids) if cid in by_id)
    explicit_count = len(selected)

    if table is not None and len(selected) < max_items:
        remaining = [c for c in pool if c.id not in seen]
        take(_rank(table_source, remaining, table, positive_only=True))
    scored_count = len(selected) - explicit_count

    if len(selected) < max_items:
        remaining = [c for c in pool if c.id not in seen]
        if fallback is not None:
            remaining = _rank(None, remaining, fallback, positive_only=False)
        take(remaining)

    logger.debug(
        "Recommendations for %s: %d explicit, %d scored, %d fallback",
        source_id, explicit_count, scored_count,
        len(selected) - explicit_count - scored_count,
    )
    return selected


def _limit(max_items: int | None, default: int) -> int:
    return default if max_items is None else max_items


def _recommendable_items(pool: Iterable) -> list[CatalogItem]:
    return [c for c in pool if isinstance(c, CatalogItem) and c.is_recommendable]


def _active_packages(pool: Iterable) -> list[Package]:
    return [c for c in pool if isinstance(c, Package) and c.is_active]


# ======================================================================
# ENTRY POINTS
# ======================================================================


def related_items(
    item: CatalogItem,
    pool: Iterable[CatalogItem],
    max_items: int | None = None,
) -> list[CatalogItem]:
    """Items related to an item: curated links, then similarity, then popularity."""
    return _fill_chain(
        item.id,
        _recommendable_items(pool),
        _limit(max_items, menuman_settings.MAX_RELATED_ITEMS),
        explicit_ids=item.related_item_ids,
        table=ITEM_SIMILARITY,
        table_source=item,
    )


def related_packages(
    package: Package,
    pool: Iterable[Package],
    max_items: int | None = None,
) -> list[Package]:
    """Packages related to a package: curated links, then similarity, then pool order."""
    return _fill_chain(
        package.id,
        _active_packages(pool),
        _limit(max_items, menuman_settings.MAX_RELATED_PACKAGES),
        explicit_ids=package.related_package_ids,
        table=PACKAGE_SIMILARITY,
        table_source=package,
        fallback=None,
    )


def items_for_package(
    package: Package,
    pool: Iterable[CatalogItem],
    max_items: int | None = None,
    items_by_id: Mapping[str, CatalogItem] | None = None,
) -> list[CatalogItem]:
    """
    Items that complement a package, excluding its own members.

    Member categories are looked up in items_by_id, or in the pool itself
    when items_by_id is not given.
    """
    pool = list(pool)
    if items_by_id is None:
        items_by_id = {c.id: c for c in pool if isinstance(c, CatalogItem)}
    profile = PackageProfile.build(package, items_by_id)
    members = package.member_ids
    return _fill_chain(
        package.id,
        [c for c in _recommendable_items(pool) if c.id not in members],
        _limit(max_items, menuman_settings.MAX_RELATED_ITEMS),
        table=PACKAGE_COMPLEMENT,
        table_source=profile,
    )


def packages_for_item(
    item: CatalogItem,
    pool: Iterable[Package],
    max_items: int | None = None,
) -> list[Package]:
    """Packages containing the item first, then other active packages in pool order."""
    packages = _active_packages(pool)
    return _fill_chain(
        item.id,
        packages,
        _limit(max_items, menuman_settings.MAX_RELATED_PACKAGES),
        explicit_ids=[p.id for p in packages if item.id in p.member_ids],
        fallback=None,
    )


def complementary_items(
    item: CatalogItem,
    pool: Iterable[CatalogItem],
    max_items: int | None = None,
) -> list[CatalogItem]:
    """
    Items that complete a meal with the given item.

    Uses meal-composition pairings for known categories and falls back to
    similarity scoring otherwise.
    """
    table = (
        CATEGORY_COMPLEMENT
        if item.category.name in CATEGORY_COMPLEMENT_SOURCES
        else ITEM_SIMILARITY
    )
    return _fill_chain(
        item.id,
        _recommendable_items(pool),
        _limit(max_items, menuman_settings.MAX_COMPLEMENTARY_ITEMS),
        table=table,
        table_source=item,
    )


def recommend(source, pool: Iterable, max_items: int | None = None) -> list:
    """
    Recommend entities for a source item or package.

    The candidate kind (items or packages) is taken from the first pool
    entry; entries of the other kind are ignored.

    Returns:
        Ordered list, at most max_items long; empty when nothing fits
    """
    pool = list(pool)
    if not pool:
        return []
    wants_items = isinstance(pool[0], CatalogItem)

    if isinstance(source, CatalogItem):
        if wants_items:
            return related_items(source, pool, max_items)
        return packages_for_item(source, pool, max_items)
    if isinstance(source, Package):
        if wants_items:
            return items_for_package(source, pool, max_items)
        return related_packages(source, pool, max_items)

    logger.warning("Cannot recommend for source of type %s", type(source).__name__)
    return []
