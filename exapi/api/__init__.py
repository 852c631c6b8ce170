"""HTTP API layer built on FastAPI.

Key components:
- **main**: Application factory wiring middleware and operational endpoints
- **middleware**: Cross-cutting concerns for all requests
  - CORS headers and preflight short-circuit
  - Trace ID propagation
  - Structured access logging with Prometheus metrics
  - Recovery of unhandled failures into envelope responses
- **request**: Trace ID, client IP and host accessors plus parameter helpers
- **schemas**: The response envelope model
- **utils**: Envelope builders and the orjson response class
- **debug**: Profiling endpoints

Envelope responses leave the service with transport status 200, success or
failure is carried in the envelope ``code``. Framework HTTP errors (unknown
routes, wrong methods) keep their real status.
"""
