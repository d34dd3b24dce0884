"""Application constants."""

USER_AGENT = "nyc311-facts/0.3 (+analytics refresh; contact: configured-email)"
DATASET = "nyc311"
STAGES = (
    "harvest",
    "build",
    "validate",
)
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "dataset",
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
FACT_COLUMNS = (
    "unique_key",
    "created_at",
    "closed_at",
    "resolution_updated_at",
    "agency",
    "complaint_type",
    "descriptor",
    "status",
    "borough",
    "city",
    "incident_zip",
    "location_type",
    "address_type",
    "latitude",
    "longitude",
    "hours_to_close",
)
FIELD_TYPES = ("datetime", "float", "string")
