"""Core application constants."""

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Security and redaction
REDACTED = "[REDACTED]"

# Metrics
DEFAULT_METRICS_NAMESPACE = "exgin"
METRICS_LABELS = ("status_code", "path", "method")

# Diagnostics agent
DEFAULT_DIAGNOSTICS_ADDRESS = "0.0.0.0:32388"
DIAGNOSTICS_READ_LIMIT = 1024
DEFAULT_PROFILE_SECONDS = 5
MAX_PROFILE_SECONDS = 60
PROFILE_SAMPLE_INTERVAL = 0.01
PROFILE_TOP_ENTRIES = 50
HEAP_TOP_ENTRIES = 25
