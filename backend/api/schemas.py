"""Response shapes of the import and stats endpoints, kept next to the views.

The API tests assert against these so the documented shape cannot drift.
"""

IMPORT_RESPONSE_EXAMPLE = {
    "batch_id": "ab12cd34ef56",
    "succeeded": 4,
    "failed": 1,
    "skipped": 0,
    "errors": [{"row": 3, "reason": 'invalid quantity "-5"'}],
}

PREVIEW_RESPONSE_KEYS = ["header", "mapping", "missing_fields", "row_count", "sample_rows"]

STATS_RESPONSE_KEYS = [
    "total_trades",
    "win_rate",
    "profit_factor",
    "setup_adherence_rate",
    "trading_days",
    "current_streak",
    "longest_streak",
    "best_mood",
    "worst_mood",
    "mood_performance",
    "setup_discipline",
    "top_scripts",
    "daily_performance",
    "period",
    "start",
    "end",
]
