"""Ok/Err values returned by parsers, compilers and loaders.

Callers narrow with ``isinstance(result, Err)`` and return early, or use
``match`` when both arms do real work.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E


type Result[T, E] = Ok[T] | Err[E]


def collect[T, E](results: Iterable[Result[T, E]]) -> Result[list[T], E]:
    """Values of every Ok in order, or the first Err.

    Stops consuming ``results`` at the first failure, so a generator of
    file reads does no work past the broken entry.
    """
    values: list[T] = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.value)
    return Ok(values)
