"""Tagged capability values resolved once at startup.

A platform feature is either ``Available(handle)`` or ``Unavailable(reason)``.
Consumers match on the tag instead of probing for optional symbols.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Available(Generic[T]):
    handle: T


@dataclass(frozen=True, slots=True)
class Unavailable:
    reason: str = "not supported"


Capability = Union[Available[T], Unavailable]


def handle_of(capability: "Capability[T]") -> Optional[T]:
    """Return the wrapped handle, or None when the capability is unavailable."""
    if isinstance(capability, Available):
        return capability.handle
    return None


__all__ = ["Available", "Capability", "Unavailable", "handle_of"]
