"""Application constants."""

USER_AGENT = "eduops-listviews/1.0 (+admin-dashboard)"
FEATURES = (
    "licenses",
    "leads",
    "applicants",
)
PRIMARY_SOURCE = "primary"
DETAIL_SOURCE = "details"
ALL = "all"
PLACEHOLDER = "-"
DEFAULT_PAGE_SIZE = 20
DETAIL_BATCH_SIZE = 10
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "epoch_id",
    "feature",
    "source",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
