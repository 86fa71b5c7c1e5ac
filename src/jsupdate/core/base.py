"""Base classes for configuration and state models.

Kept apart from config.py so that log.py can build its sink models on
BaseConfig without importing the full configuration module.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class Closeable(Protocol):
    """Anything that owns a resource released by close()."""

    def close(self) -> None:
        ...


class BaseCloseable(BaseModel):
    """Pydantic model that closes its Closeable fields on exit.

    Used as a context manager, close() walks the model fields and
    closes every child that implements Closeable, so shutting down the
    Config shuts down the Logger, which in turn flushes each sink.
    A child that fails to close does not stop the rest.
    """

    def close(self):
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None:
                continue

            if isinstance(child, Closeable):
                try:
                    child.close()
                except Exception as e:
                    print(
                        f"Warning: Error closing {field_name}: {e}",
                        file=sys.stderr,
                    )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Marker base for configuration sections (YAML/env/CLI)."""
    pass


class BaseState(BaseCloseable):
    """Marker base for runtime sections mutated during a run."""
    pass


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]
