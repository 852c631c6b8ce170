"""Core infrastructure package for shared application functionality.

This package provides the foundational components used by the API layer:

- **config**: Centralized configuration management with environment support
- **context**: Request context and trace ID management
- **exceptions**: Application error hierarchy rendered as envelope failures
- **logging**: Structured logging with Loguru
- **metrics**: Explicit Prometheus metrics registry for request accounting
- **diagnostics**: Runtime introspection (stacks, heap, gc, CPU sampling)
- **agent**: Background TCP listener serving diagnostics commands
- **types**: Type aliases for better code clarity
"""
