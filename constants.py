# constants.py

DEFAULT_HORIZON_YEARS: int = 30
MAX_INCOME_START_YEARS: int = 30
MAX_ROLLUP_YEARS: int = 10
DEFAULT_CLIENT_AGE: int = 65
DEFAULT_NUM_PATHS: int = 500

# Annual returns are always clamped to this band
RETURN_FLOOR: float = -0.25
RETURN_CAP: float = 0.15

# Uniform band used in random mode
RANDOM_RETURN_MEAN: float = 0.07
RANDOM_RETURN_HALF_WIDTH: float = 0.15

# (min_age, rate), descending by min_age
DEFAULT_PAYOUT_SCHEDULE = (
    (80, 0.0665),
    (75, 0.0650),
    (70, 0.0630),
    (65, 0.0610),
    (60, 0.0475),
    (55, 0.0355),
    (45, 0.0355),
)
FALLBACK_PAYOUT_RATE: float = 0.0355

PERCENTILES = [0.05, 0.10, 0.25, 0.50, 0.75, 0.90, 0.95]
MAX_SAMPLE_PATHS: int = 5

# Plotting constants
CLIENT_LINE_COLOR = '#1f77b4'
COMPARISON_LINE_COLOR = '#ff7f0e'
