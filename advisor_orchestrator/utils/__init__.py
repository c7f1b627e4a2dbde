"""Small text helpers shared by logging and the CLI."""


def truncate_with_marker(text: str, max_length: int, marker: str = "[...truncated]") -> str:
    """
    Truncate text and add marker if it exceeds max_length.

    Args:
        text: The text to truncate.
        max_length: Maximum length before truncation.
        marker: Marker to append when truncated.

    Returns:
        Original text if within limit, otherwise truncated with marker.
    """
    if len(text) <= max_length:
        return text
    # Reserve space for marker
    truncate_at = max(max_length - len(marker), 0)
    return text[:truncate_at] + marker


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Show only the last few characters of a credential."""
    if not value:
        return "<unset>"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return "*" * 8 + value[-visible:]


__all__ = ["mask_secret", "truncate_with_marker"]
