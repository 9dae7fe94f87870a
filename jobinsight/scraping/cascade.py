"""Ordered fallback strategies: try each in turn, keep the first acceptable result."""

from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

from jobinsight.exceptions import PageError
from jobinsight.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Strategy = tuple[str, Callable[[], Awaitable[T | None]]]


class CascadeResult(Generic[T]):
    """Winning strategy name and its value."""

    __slots__ = ("name", "value")

    def __init__(self, name: str, value: T) -> None:
        self.name = name
        self.value = value

    def __repr__(self) -> str:
        return f"CascadeResult(name={self.name!r})"


async def first_match(
    strategies: Sequence[Strategy[T]],
    accept: Callable[[T], bool] = lambda value: value is not None,
) -> CascadeResult[T] | None:
    """Run strategies lazily in order and return the first accepted result.

    A strategy that returns None or an unaccepted value falls through to the
    next one. A strategy raising ``PageError`` is logged and skipped; any other
    exception propagates.

    Args:
        strategies: Ordered ``(name, strategy)`` pairs.
        accept: Predicate a result must satisfy.

    Returns:
        The winning result, or None when every strategy fell through.
    """
    for name, strategy in strategies:
        try:
            value = await strategy()
        except PageError as e:
            logger.debug(f"Strategy {name} failed: {e.message}")
            continue

        if value is not None and accept(value):
            logger.debug(f"Strategy {name} matched")
            return CascadeResult(name, value)

        logger.debug(f"Strategy {name} yielded nothing usable")

    return None
