"""
Customization reference ingestion.

Selections arrive either by id or, from older data, by name or as
"customizationId:optionId" strings. They are resolved here, once, into
canonical SelectedCustomization values before validation or pricing run.

Usage:
    from menuman.ingestion import ById, ByLegacyName, resolve_references

    selections = resolve_references(item, [
        ById("size", ("large",)),
        ByLegacyName("Spice Level", ("Hot",)),
    ])
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from menuman.exceptions import ConfigurationError
from menuman.protocols.catalog import (
    CatalogItem,
    CustomizationDefinition,
    Package,
    SelectedCustomization,
)

logger = logging.getLogger(__name__)

LEGACY_SEPARATOR = ":"


@dataclass(frozen=True)
class ById:
    """Reference by canonical ids."""

    customization_id: str
    option_ids: tuple[str, ...] = ()
    text_value: str | None = None


@dataclass(frozen=True)
class ByLegacyName:
    """Reference by display names (exact match, case-insensitive)."""

    customization_name: str
    option_names: tuple[str, ...] = ()
    text_value: str | None = None


CustomizationReference = Union[ById, ByLegacyName]


def _normalize(name: str) -> str:
    return name.strip().casefold()


def parse_legacy_reference(raw: str) -> ById:
    """
    Parse a "customizationId:optionId" string.

    A bare "customizationId" yields a reference without options.

    Raises:
        ConfigurationError: If the string is empty or has more than one separator.
    """
    parts = [part.strip() for part in raw.split(LEGACY_SEPARATOR)] if raw else []
    if not parts or not parts[0] or len(parts) > 2 or (len(parts) == 2 and not parts[1]):
        logger.warning("Malformed legacy customization reference: %r", raw)
        raise ConfigurationError("MALFORMED_REFERENCE", reference=raw)
    if len(parts) == 1:
        return ById(parts[0])
    return ById(parts[0], (parts[1],))


def _resolve_by_id(item: CatalogItem, ref: ById) -> tuple[CustomizationDefinition, tuple[str, ...]]:
    definition = item.get_customization(ref.customization_id)
    if definition is None:
        logger.warning(
            "Item %s has no customization %r", item.id, ref.customization_id
        )
        raise ConfigurationError(
            "UNKNOWN_CUSTOMIZATION",
            item_id=item.id,
            customization_id=ref.customization_id,
        )
    for option_id in ref.option_ids:
        if definition.get_option(option_id) is None:
            logger.warning(
                "Customization %s on item %s has no option %r",
                definition.id, item.id, option_id,
            )
            raise ConfigurationError(
                "UNKNOWN_OPTION",
                item_id=item.id,
                customization_id=definition.id,
                option_id=option_id,
            )
    return definition, ref.option_ids


def _resolve_by_name(
    item: CatalogItem, ref: ByLegacyName
) -> tuple[CustomizationDefinition, tuple[str, ...]]:
    wanted = _normalize(ref.customization_name)
    definition = next(
        (d for d in item.customizations if _normalize(d.name) == wanted), None
    )
    if definition is None:
        logger.warning(
            "Item %s has no customization named %r", item.id, ref.customization_name
        )
        raise ConfigurationError(
            "UNKNOWN_CUSTOMIZATION",
            item_id=item.id,
            customization_name=ref.customization_name,
        )

    option_ids = []
    for option_name in ref.option_names:
        wanted_option = _normalize(option_name)
        option = next(
            (o for o in definition.options if _normalize(o.name) == wanted_option),
            None,
        )
        if option is None:
            logger.warning(
                "Customization %s on item %s has no option named %r",
                definition.id, item.id, option_name,
            )
            raise ConfigurationError(
                "UNKNOWN_OPTION",
                item_id=item.id,
                customization_id=definition.id,
                option_name=option_name,
            )
        option_ids.append(option.id)
    return definition, tuple(option_ids)


def resolve_references(
    item: CatalogItem,
    references: Iterable[CustomizationReference | str],
) -> tuple[SelectedCustomization, ...]:
    """
    Resolve references into canonical selections for one item.

    Strings are parsed as legacy "customizationId:optionId" references.
    References to the same customization are merged, keeping the first
    text value and the order in which option ids first appear.

    Raises:
        ConfigurationError: On unknown ids/names or malformed strings.
    """
    merged: dict[str, tuple[list[str], str | None]] = {}

    for ref in references:
        if isinstance(ref, str):
            ref = parse_legacy_reference(ref)
        if isinstance(ref, ById):
            definition, option_ids = _resolve_by_id(item, ref)
        else:
            definition, option_ids = _resolve_by_name(item, ref)

        options, text = merged.setdefault(definition.id, ([], ref.text_value))
        if text is None and ref.text_value is not None:
            merged[definition.id] = (options, ref.text_value)
        for option_id in option_ids:
            if option_id not in options:
                options.append(option_id)

    return tuple(
        SelectedCustomization(customization_id, tuple(options), text)
        for customization_id, (options, text) in merged.items()
    )


def package_member_selections(
    package: Package,
    items_by_id: Mapping[str, CatalogItem],
) -> dict[str, tuple[SelectedCustomization, ...]]:
    """
    Default selections for each package member, from its legacy strings.

    Raises:
        ConfigurationError: If a member item is missing or a reference is unknown.
    """
    result = {}
    for member in package.items:
        item = items_by_id.get(member.menu_item_id)
        if item is None:
            logger.warning(
                "Package %s references missing item %s", package.id, member.menu_item_id
            )
            raise ConfigurationError(
                "MISSING_PACKAGE_ITEM",
                package_id=package.id,
                item_id=member.menu_item_id,
            )
        result[member.menu_item_id] = resolve_references(
            item, member.included_customizations
        )
    return result
