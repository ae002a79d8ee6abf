"""Fixed scoring and number-range rules. Not configurable at runtime."""

RANGE_MAX = 100
WIN_THRESHOLD = 100
POINTS_PER_CORRECT = 20
