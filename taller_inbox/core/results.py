"""Tagged outcome of an exactly-once create under concurrent writers."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Created(Generic[T]):
    """This call inserted the row."""

    value: T

    @property
    def existing(self) -> bool:
        return False


@dataclass(frozen=True)
class AlreadyExists(Generic[T]):
    """Another call (earlier or concurrent) owns the row; this is it."""

    value: T

    @property
    def existing(self) -> bool:
        return True


UpsertResult = Union[Created[T], AlreadyExists[T]]
