"""Starlette middleware wrapping every request.

- **CORSMiddleware**: Permissive CORS headers and preflight short-circuit
- **TraceIDMiddleware**: Trace ID propagation through headers, context and logs
- **AccessLogMiddleware**: Structured access log lines and request metrics
- **RecoveryMiddleware**: Turns unhandled failures into envelope responses
- **error_handler**: Envelope rendering for framework validation/HTTP errors

Execution order, outermost first:
1. CORS (answers preflight requests before anything else runs)
2. Trace ID (every later log line carries the ID)
3. Access log (times the full downstream chain)
4. Recovery (innermost, so it sees failures from every handler)
"""
