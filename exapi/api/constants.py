"""API-related constants."""

# HTTP Headers
TRACE_ID_HEADER = "X-Trace-Id"
FORWARDED_FOR_HEADER = "X-Forwarded-For"

# Envelope messages
SUCCESS_MESSAGE = "请求成功"
BROKEN_PIPE_MESSAGE = "请求broken"
PANIC_MESSAGE = "请求panic"
INVALID_PARAMS_MESSAGE = "参数不合法"

# Access log
EMPTY_QUERY_PLACEHOLDER = " - "
MAX_USER_AGENT_LENGTH = 200

# Pagination
DEFAULT_PAGE_LIMIT = 10

# CORS
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": (
        "GET, POST, PUT, PATCH, DELETE, UPDATE, HEAD, OPTIONS"
    ),
    "Access-Control-Allow-Headers": (
        "Origin, X-Requested-With, Content-Type, Accept, Authorization"
    ),
    "Access-Control-Expose-Headers": (
        "Content-Length, Access-Control-Allow-Origin, "
        "Access-Control-Allow-Headers, Access-Control-Request-Headers, "
        "Cache-Control, Content-Language, Content-Type"
    ),
    "Access-Control-Max-Age": "3600",
    "Access-Control-Allow-Credentials": "true",
}
JSON_CONTENT_TYPE = "application/json"

# Security
SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "x-api-key",
    "x-auth-token",
    "x-csrf-token",
    "set-cookie",
    "x-secret-key",
    "proxy-authorization",
}
