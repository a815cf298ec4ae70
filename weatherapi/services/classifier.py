"""Temperature classification into coarse bands."""

HOT_THRESHOLD_C = 30.0
COLD_THRESHOLD_C = 10.0


def classify(temp_c: float) -> str:
    """Return ``hot``, ``cold`` or ``moderate``.

    Both thresholds are inclusive and the hot check runs first.
    """
    if temp_c >= HOT_THRESHOLD_C:
        return "hot"
    if temp_c <= COLD_THRESHOLD_C:
        return "cold"
    return "moderate"
