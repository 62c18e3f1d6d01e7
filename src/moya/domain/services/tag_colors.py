"""Tag color resolution."""

from collections.abc import Mapping

TAG_PALETTE: tuple[str, ...] = (
    "#EF4444",
    "#F97316",
    "#EAB308",
    "#22C55E",
    "#3B82F6",
    "#6366F1",
    "#A855F7",
)


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def tag_hash(tag: str) -> int:
    """32-bit wraparound ``h = h * 31 + unit`` hash over UTF-16 code units.

    Returns:
        Signed 32-bit hash value.
    """
    data = tag.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32(h * 31 + unit)
    return h


def color_for(tag: str, overrides: Mapping[str, str] | None = None) -> str:
    """Resolve the display color of a tag.

    Args:
        tag: Tag name.
        overrides: Explicit per-user color overrides.

    Returns:
        The override when present, otherwise a palette color chosen by hash.
    """
    if overrides and tag in overrides:
        return overrides[tag]
    return TAG_PALETTE[abs(tag_hash(tag)) % len(TAG_PALETTE)]


def colors_for(
    tags: list[str], overrides: Mapping[str, str] | None = None
) -> dict[str, str]:
    return {tag: color_for(tag, overrides) for tag in tags}
