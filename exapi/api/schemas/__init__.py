"""Pydantic schema models for API responses.

- **Envelope**: the uniform data/message/timestamp/code response body
"""
