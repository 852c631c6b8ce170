"""Utility modules for API-specific functionality.

- **responses**: Envelope builders, response helpers and the orjson
  response class
"""
