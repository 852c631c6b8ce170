"""ExAPI - request lifecycle toolkit for FastAPI services.

ExAPI wraps a FastAPI/Starlette application with the cross-cutting pieces
every JSON service ends up rewriting:

- **API Layer**: middleware, response envelopes and request accessors
- **Core Layer**: configuration, logging, metrics and runtime diagnostics

Key Features:
- **Uniform responses**: every payload travels in a data/message/timestamp/code
  envelope, transport status stays 200
- **Resilience**: unhandled failures are recovered into a safe JSON body
- **Observability**: trace IDs, structured access logs and Prometheus metrics
- **Operations**: optional profiling endpoints and a diagnostics TCP agent
"""
