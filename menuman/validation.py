"""
Customization validation.

validate(item, selections) returns a list of Violation; it never raises.
Violations come out in a fixed order (item definitions first, in declared
order, then selections the item does not know about), so identical input
always yields an identical list.
"""

import logging
from collections import Counter
from typing import Iterable

from django.utils.translation import gettext as _

from menuman.protocols.catalog import (
    CatalogItem,
    CustomizationDefinition,
    CustomizationKind,
    SelectedCustomization,
    Violation,
)

logger = logging.getLogger(__name__)


def _check_definition(
    item: CatalogItem,
    definition: CustomizationDefinition,
    selected: SelectedCustomization | None,
) -> list[Violation]:
    violations = []

    def add(code: str, message: str) -> None:
        violations.append(Violation(item.id, definition.id, code, message))

    if selected is None:
        if definition.required:
            add("REQUIRED", _("%(name)s is required") % {"name": definition.name})
        return violations

    option_ids = selected.distinct_option_ids

    if definition.kind == CustomizationKind.TEXT:
        if definition.required and not selected.has_text:
            add("EMPTY_TEXT", _("%(name)s cannot be empty") % {"name": definition.name})
        return violations

    if definition.required and not option_ids:
        add(
            "NO_OPTION",
            _("Please select an option for %(name)s") % {"name": definition.name},
        )

    if definition.kind == CustomizationKind.SINGLE and len(option_ids) > 1:
        add(
            "SINGLE_SELECT",
            _("Only one option can be selected for %(name)s") % {"name": definition.name},
        )

    if (
        definition.kind == CustomizationKind.MULTI
        and definition.max_selections is not None
        and len(option_ids) > definition.max_selections
    ):
        add(
            "MAX_SELECTIONS",
            _("Maximum %(max)d selections allowed for %(name)s")
            % {"max": definition.max_selections, "name": definition.name},
        )

    for option_id in option_ids:
        option = definition.get_option(option_id)
        if option is None:
            logger.warning(
                "Unresolved option %r on customization %s of item %s",
                option_id, definition.id, item.id,
            )
            add(
                "UNKNOWN_OPTION",
                _("%(name)s has no option %(option)s")
                % {"name": definition.name, "option": option_id},
            )
        elif not option.is_available:
            add(
                "UNAVAILABLE_OPTION",
                _("%(option)s is currently unavailable for %(name)s")
                % {"option": option.name, "name": definition.name},
            )

    return violations


def validate(
    item: CatalogItem,
    selections: Iterable[SelectedCustomization],
) -> list[Violation]:
    """
    Check selections against an item's customization rules.

    Args:
        item: Menu item snapshot
        selections: Resolved selections (see menuman.ingestion)

    Returns:
        List of Violation (empty when valid)
    """
    selections = list(selections)
    by_id = {}
    for selected in selections:
        by_id.setdefault(selected.customization_id, selected)

    violations = []
    for definition in item.customizations:
        violations.extend(_check_definition(item, definition, by_id.get(definition.id)))

    counts = Counter(selected.customization_id for selected in selections)
    reported = set()
    for selected in selections:
        customization_id = selected.customization_id
        if customization_id in reported:
            continue
        if item.get_customization(customization_id) is None:
            logger.warning(
                "Unresolved customization %r on item %s", customization_id, item.id
            )
            violations.append(
                Violation(
                    item.id,
                    customization_id,
                    "UNKNOWN_CUSTOMIZATION",
                    _("Unknown customization %(id)s") % {"id": customization_id},
                )
            )
            reported.add(customization_id)
        elif counts[customization_id] > 1:
            violations.append(
                Violation(
                    item.id,
                    customization_id,
                    "DUPLICATE_SELECTION",
                    _("%(name)s was answered more than once")
                    % {"name": item.get_customization(customization_id).name},
                )
            )
            reported.add(customization_id)

    return violations


def is_valid(item: CatalogItem, selections: Iterable[SelectedCustomization]) -> bool:
    return not validate(item, selections)
