"""Monitoring configuration for the drill engine."""
from prometheus_client import Counter, Gauge, start_http_server

# Grading metrics
answers_graded = Counter(
    "vocadrill_answers_graded_total",
    "Total number of answers graded",
    ["result", "attempt"],
)

mastery_updates = Counter(
    "vocadrill_mastery_updates_total",
    "Total number of mastery level updates",
    ["outcome"],
)

# Round metrics
rounds_started = Counter(
    "vocadrill_rounds_started_total",
    "Total number of review rounds started",
    ["marathon"],
)

rounds_completed = Counter(
    "vocadrill_rounds_completed_total",
    "Total number of review rounds completed",
    ["marathon"],
)

sessions_resumed = Counter(
    "vocadrill_sessions_resumed_total",
    "Total number of rounds restored from a saved snapshot",
)

current_streak = Gauge(
    "vocadrill_current_streak_days",
    "Current daily practice streak",
)

# Leaderboard metrics
leaderboard_scores = Counter(
    "vocadrill_leaderboard_scores_total",
    "Total number of scores submitted to the leaderboard",
)

# Error metrics
storage_errors = Counter(
    "vocadrill_storage_errors_total",
    "Total number of failed persistence operations",
    ["operation"],
)

corrupt_payloads = Counter(
    "vocadrill_corrupt_payloads_total",
    "Total number of stored payloads that could not be decoded",
    ["key"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
