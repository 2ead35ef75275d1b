"""Shared defaults for agentrelay."""

DEFAULT_GATEWAY_ID = "gateway-agent-01"
DEFAULT_API_PREFIX = "/api/a2a"
DEFAULT_REQUEST_TIMEOUT = 30.0

DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_BACKOFF = 1.5
DEFAULT_MAX_POLL_INTERVAL = 10.0
DEFAULT_MAX_POLL_WAIT = 600.0

DEFAULT_MAX_RECORDS = 10_000
DEFAULT_MAX_CONCURRENT_JOBS = 8

# Remote states that mean "ask again later".
WORKING_STATES = frozenset({"submitted", "working"})
FAILED_STATES = frozenset({"failed", "cancelled", "canceled", "rejected"})

CANCELLED_MESSAGE = "Task cancelled by request"
INTERRUPTED_MESSAGE = "Job interrupted before completion"
