"""
Recommendation scoring.

Every scoring heuristic is a table of Rule(name, weight, measure). A single
generic score() sums weight * measure over a table, where measure returns
a bool (0/1) or a count.

Tables:
    ITEM_SIMILARITY      - item vs item
    PACKAGE_COMPLEMENT   - package (with its member categories) vs item
    PACKAGE_SIMILARITY   - package vs package
    POPULARITY           - item alone (source is ignored)
    CATEGORY_COMPLEMENT  - item vs item, meal-composition pairs

Weights can be tuned per table in settings:
    MENUMAN = {"SCORING_WEIGHTS": {"item_similarity": {"same_category": 60}}}
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Mapping

from menuman.protocols.catalog import CatalogItem, Package, PackageType

MAIN_DISHES = "Main Dishes"
SIDES = "Sides"
SOUPS = "Soups"
STARTERS = "Starters"

COMPLEMENTARY_PAIRS = frozenset(
    frozenset(pair)
    for pair in (
        (MAIN_DISHES, SIDES),
        (MAIN_DISHES, SOUPS),
        (SOUPS, SIDES),
        (STARTERS, MAIN_DISHES),
        (STARTERS, SOUPS),
        (STARTERS, SIDES),
    )
)


@dataclass(frozen=True)
class Rule:
    name: str
    weight: int
    measure: Callable[[Any, Any], int | bool]


@dataclass(frozen=True)
class RuleTable:
    name: str
    rules: tuple[Rule, ...]


@dataclass(frozen=True)
class PackageProfile:
    """A package plus the category ids of its member items."""

    package: Package
    category_ids: frozenset[str]

    @classmethod
    def build(cls, package: Package, items_by_id: Mapping[str, CatalogItem]) -> "PackageProfile":
        """Members missing from items_by_id contribute no category."""
        return cls(
            package=package,
            category_ids=frozenset(
                items_by_id[member.menu_item_id].category.id
                for member in package.items
                if member.menu_item_id in items_by_id
            ),
        )


# ======================================================================
# MEASURES
# ======================================================================


def price_variation(a_q: int, b_q: int) -> Decimal:
    """|a - b| relative to the mean of a and b. Two zero prices vary by 0."""
    if a_q + b_q == 0:
        return Decimal(0)
    return Decimal(abs(a_q - b_q) * 2) / Decimal(a_q + b_q)


def _within(lower: str | None, upper: str) -> Callable[[int, int], bool]:
    low = Decimal(lower) if lower is not None else None
    high = Decimal(upper)

    def check(a_q: int, b_q: int) -> bool:
        variation = price_variation(a_q, b_q)
        return variation <= high and (low is None or variation > low)

    return check


_within_25 = _within(None, "0.25")
_within_25_50 = _within("0.25", "0.5")
_within_30 = _within(None, "0.3")
_within_30_50 = _within("0.3", "0.5")


def _prep_diff(source: CatalogItem, candidate: CatalogItem) -> int | None:
    """A zero or missing preparation time counts as unknown."""
    if not source.preparation_time or not candidate.preparation_time:
        return None
    return abs(source.preparation_time - candidate.preparation_time)


def _prep_within(lower: int | None, upper: int) -> Callable[[CatalogItem, CatalogItem], bool]:
    def check(source: CatalogItem, candidate: CatalogItem) -> bool:
        diff = _prep_diff(source, candidate)
        if diff is None:
            return False
        return diff <= upper and (lower is None or diff > lower)

    return check


def _count_within(lower: int | None, upper: int) -> Callable[[Package, Package], bool]:
    def check(source: Package, candidate: Package) -> bool:
        diff = abs(source.total_item_count - candidate.total_item_count)
        return diff <= upper and (lower is None or diff > lower)

    return check


def _complements(source_category: str, targets: tuple[str, ...]):
    def check(source: CatalogItem, candidate: CatalogItem) -> bool:
        return source.category.name == source_category and candidate.category.name in targets

    return check


def _both_tagged(tag: str):
    return lambda source, candidate: tag in source.tags and tag in candidate.tags


def _balanced_nutrition(_source, candidate) -> bool:
    nutrition = candidate.nutrition
    return nutrition is not None and nutrition.protein >= 25 and nutrition.calories <= 700


# ======================================================================
# TABLES
# ======================================================================


ITEM_SIMILARITY = RuleTable(
    "item_similarity",
    (
        Rule("same_category", 50, lambda s, c: s.category.id == c.category.id),
        Rule("price_within_25pct", 20, lambda s, c: _within_25(s.base_price_q, c.base_price_q)),
        Rule("price_within_50pct", 10, lambda s, c: _within_25_50(s.base_price_q, c.base_price_q)),
        Rule("shared_tag", 5, lambda s, c: len(s.tags & c.tags)),
        Rule("prep_time_within_10min", 10, _prep_within(None, 10)),
        Rule("prep_time_within_20min", 5, _prep_within(10, 20)),
        Rule(
            "complementary_category",
            15,
            lambda s, c: frozenset({s.category.name, c.category.name}) in COMPLEMENTARY_PAIRS,
        ),
    ),
)

PACKAGE_COMPLEMENT = RuleTable(
    "package_complement",
    (
        Rule("new_category", 30, lambda s, c: c.category.id not in s.category_ids),
        Rule(
            "daily_starter",
            20,
            lambda s, c: s.package.type == PackageType.DAILY and c.category.name == STARTERS,
        ),
        Rule(
            "weekly_side",
            15,
            lambda s, c: s.package.type == PackageType.WEEKLY and c.category.name == SIDES,
        ),
        Rule("monthly_any", 10, lambda s, c: s.package.type == PackageType.MONTHLY),
        Rule("addon_price_15", 15, lambda s, c: c.base_price_q <= 1500),
        Rule("addon_price_25", 10, lambda s, c: 1500 < c.base_price_q <= 2500),
        Rule("popular", 10, lambda s, c: "popular" in c.tags),
    ),
)

PACKAGE_SIMILARITY = RuleTable(
    "package_similarity",
    (
        Rule("same_type", 20, lambda s, c: s.type == c.type),
        Rule("price_within_30pct", 15, lambda s, c: _within_30(s.price_q, c.price_q)),
        Rule("price_within_50pct", 10, lambda s, c: _within_30_50(s.price_q, c.price_q)),
        Rule("item_count_within_2", 10, _count_within(None, 2)),
        Rule("item_count_within_5", 5, _count_within(2, 5)),
        Rule("adjacent_type", 25, lambda s, c: abs(s.type.rank - c.type.rank) == 1),
    ),
)

POPULARITY = RuleTable(
    "popularity",
    (
        Rule("popular", 50, lambda s, c: "popular" in c.tags),
        Rule("traditional", 20, lambda s, c: "traditional" in c.tags),
        Rule("spicy", 15, lambda s, c: "spicy" in c.tags),
        Rule("affordable", 10, lambda s, c: c.base_price_q <= 2000),
        Rule("balanced_nutrition", 8, _balanced_nutrition),
    ),
)

CATEGORY_COMPLEMENT = RuleTable(
    "category_complement",
    (
        Rule("main_dish_pairing", 30, _complements(MAIN_DISHES, (SIDES, STARTERS))),
        Rule("soup_pairing", 25, _complements(SOUPS, (SIDES, STARTERS))),
        Rule("side_pairing", 20, _complements(SIDES, (MAIN_DISHES, SOUPS))),
        Rule("starter_pairing", 15, _complements(STARTERS, (MAIN_DISHES, SOUPS, SIDES))),
        Rule("popular", 10, lambda s, c: "popular" in c.tags),
        Rule("both_healthy", 8, _both_tagged("healthy")),
        Rule("both_spicy", 5, _both_tagged("spicy")),
        Rule("price_diff_5", 8, lambda s, c: abs(s.base_price_q - c.base_price_q) <= 500),
        Rule(
            "price_diff_10",
            4,
            lambda s, c: 500 < abs(s.base_price_q - c.base_price_q) <= 1000,
        ),
    ),
)

CATEGORY_COMPLEMENT_SOURCES = frozenset({MAIN_DISHES, SOUPS, SIDES, STARTERS})


# ======================================================================
# SCORER
# ======================================================================


def _configured_weights(table: RuleTable) -> Mapping[str, int]:
    from menuman.conf import menuman_settings

    return menuman_settings.SCORING_WEIGHTS.get(table.name, {})


def score(
    source,
    candidate,
    table: RuleTable,
    weights: Mapping[str, int] | None = None,
) -> int:
    """
    Score a candidate against a source with a rule table.

    Args:
        source: Entity recommendations are computed for (ignored by POPULARITY)
        candidate: Entity being ranked
        table: Rule table to evaluate
        weights: Per-rule weight overrides; defaults to MENUMAN["SCORING_WEIGHTS"]

    Returns:
        Non-negative integer score; higher means more relevant
    """
    overrides = _configured_weights(table) if weights is None else weights
    total = 0
    for rule in table.rules:
        total += overrides.get(rule.name, rule.weight) * int(rule.measure(source, candidate))
    return max(total, 0)


def explain(source, candidate, table: RuleTable) -> dict[str, int]:
    """Per-rule contributions (non-zero only), for debugging and tests."""
    overrides = _configured_weights(table)
    contributions = {}
    for rule in table.rules:
        value = overrides.get(rule.name, rule.weight) * int(rule.measure(source, candidate))
        if value:
            contributions[rule.name] = value
    return contributions
