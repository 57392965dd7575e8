"""Constants for pyelementiot library."""

from __future__ import annotations


# API Configuration
DEFAULT_BASE_URL = "https://element-iot.com"
DEFAULT_SOCKET_URL = "wss://element-iot.com"
API_PREFIX = "api/v1"
AUTH_PARAM = "auth"

REST_SCHEMES = ("http", "https")
SOCKET_SCHEMES = ("ws", "wss")

# Pagination
MAX_PAGE_LIMIT = 100

# Rate limiting (vendor header names must match verbatim)
HEADER_RATE_LIMIT_REMAINING = "x-ratelimit-remaining"
HEADER_RATE_LIMIT_RESET = "x-ratelimit-reset"
DEFAULT_RATE_LIMIT_REMAINING = 50
DEFAULT_RATE_LIMIT_RESET_MS = 5000
FALLBACK_RATE_LIMIT_REMAINING = 5  # used when a response carries no headers
FALLBACK_RATE_LIMIT_RESET_MS = 5000
RATE_LIMIT_THRESHOLD = 5
RATE_LIMIT_WAIT_MULTIPLIER = 2

# Event socket
DEFAULT_HEARTBEAT_INTERVAL = 31.0  # seconds
PONG_FRAME = "pong"
