import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Value or error of an optional step."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default


def attempt(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Result[T]:
    try:
        return Result(value=fn(*args, **kwargs))
    except Exception as e:
        return Result(error=e)


def best_effort(description: str, fn: Callable[..., T], *args: Any, default: Any = None, **kwargs: Any) -> T:
    """Run an optional step; log and continue with ``default`` if it fails."""
    result = attempt(fn, *args, **kwargs)
    if not result.ok:
        logger.warning("%s skipped: %s", description, result.error)
    return result.unwrap_or(default)
