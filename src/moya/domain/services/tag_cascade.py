"""Tag rename and delete, cascaded onto items and settings."""

from dataclasses import replace

from moya.domain.entities.item import Item, categories_or_misc, dedupe
from moya.domain.entities.settings import Settings


def _rename_in(values: list[str], old: str, new: str) -> list[str]:
    return dedupe(new if value == old else value for value in values)


def rename_tag_in_item(item: Item, old: str, new: str) -> Item:
    """Rename a tag on one item, merging when the new name is present."""
    if old not in item.categories:
        return item
    return replace(item, categories=_rename_in(item.categories, old, new))


def delete_tag_from_item(item: Item, tag: str) -> Item:
    """Remove a tag from one item; an emptied list falls back to misc."""
    if tag not in item.categories:
        return item
    return replace(
        item, categories=categories_or_misc(c for c in item.categories if c != tag)
    )


def rename_tag_in_settings(settings: Settings, old: str, new: str) -> Settings:
    """Rename a tag in the category list, color overrides, and manual order.

    An override for the old name replaces any override for the new one.
    """
    tag_colors = dict(settings.tag_colors)
    if old in tag_colors:
        tag_colors[new] = tag_colors.pop(old)
    return replace(
        settings,
        categories=_rename_in(settings.categories, old, new),
        tag_colors=tag_colors,
        custom_tag_order=_rename_in(settings.custom_tag_order, old, new),
    )


def delete_tag_from_settings(settings: Settings, tag: str) -> Settings:
    return replace(
        settings,
        categories=[c for c in settings.categories if c != tag],
        tag_colors={k: v for k, v in settings.tag_colors.items() if k != tag},
        custom_tag_order=[t for t in settings.custom_tag_order if t != tag],
    )


def add_categories(settings: Settings, tags: list[str]) -> Settings:
    """Append unseen tags to the category list."""
    merged = dedupe([*settings.categories, *tags])
    if merged == settings.categories:
        return settings
    return replace(settings, categories=merged)
