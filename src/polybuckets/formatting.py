_UNITS = (
    (1 << 40, "TB"),
    (1 << 30, "GB"),
    (1 << 20, "MB"),
    (1 << 10, "KB"),
)


def format_size(size):
    """Render a byte count as e.g. ``1.5 KB`` (1024-based, one decimal)."""
    for threshold, unit in _UNITS:
        if size >= threshold:
            return f"{size / threshold:.1f} {unit}"
    return f"{float(size):.1f} B"
