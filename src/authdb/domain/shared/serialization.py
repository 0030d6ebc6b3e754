"""Stored form of list and attribute fields.

The store only keeps string values per hash field, so:

- ordered lists are joined with ``,`` (no empty elements, no commas inside
  elements);
- free-form attributes are flattened into ``<prefix>.<name>`` fields so they
  can be merged field by field.
"""

from collections.abc import Iterable, Mapping

LIST_SEPARATOR = ","


def split_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(LIST_SEPARATOR) if part.strip()]


def join_list(items: Iterable[str]) -> str:
    return LIST_SEPARATOR.join(item.strip() for item in items if item.strip())


def pack_fields(prefix: str, attributes: Mapping[str, str]) -> dict[str, str]:
    """Flatten attributes into prefixed hash fields."""
    return {f"{prefix}.{name}": str(value) for name, value in attributes.items()}


def unpack_fields(prefix: str, record: Mapping[str, str]) -> dict[str, str]:
    """Collect prefixed hash fields back into an attribute mapping."""
    marker = f"{prefix}."
    return {
        field[len(marker) :]: value
        for field, value in record.items()
        if field.startswith(marker)
    }
