"""The base class for user tasks and their JSON metadata."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from fang.core import Scheduled

if TYPE_CHECKING:
    from typing import Protocol

    class _Queue(Protocol):
        ...

COMMON_TYPE = "common"
RETRIES_NUMBER = 20

_REGISTRY: dict[str, type["Runnable"]] = {}


class Runnable(ABC):
    """Subclass this to define a task.

    Every concrete subclass is registered under its class name, which is stored
    in the ``type`` key of the task's metadata so the task can be rebuilt later.
    The public attributes (or dataclass fields) of a task form its metadata and
    must be JSON serialisable.
    """

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not getattr(cls.run, "__isabstractmethod__", False):
            _REGISTRY[cls.__name__] = cls

    @abstractmethod
    def run(self, queue: Any) -> None:
        """Execute the task; raise :class:`fang.errors.FangError` on failure."""

    def task_type(self) -> str:
        """The type of the task; workers only pick up tasks of their type."""
        return COMMON_TYPE

    def uniq(self) -> bool:
        """If true, no second task with the same metadata is inserted."""
        return False

    def cron(self) -> Optional[Scheduled]:
        """A periodic pattern or a single moment at which the task runs (UTC)."""
        return None

    def max_retries(self) -> int:
        """How many times a failing task is retried."""
        return RETRIES_NUMBER

    def backoff(self, attempt: int) -> int:
        """Seconds to wait before the next attempt; exponential by default."""
        return 2**attempt

    def to_metadata(self) -> dict[str, Any]:
        """The JSON-ready description of this task, tagged with its type."""
        if dataclasses.is_dataclass(self):
            fields = dataclasses.asdict(self)
        else:
            fields = {key: value for key, value in vars(self).items() if not key.startswith("_")}
        if "type" in fields:
            raise ValueError("a task may not have a field named 'type'")
        return {"type": type(self).__name__, **fields}


def runnable_from_metadata(metadata: dict[str, Any]) -> Runnable:
    """Rebuild a task from the metadata produced by :meth:`Runnable.to_metadata`."""
    fields = dict(metadata)
    try:
        type_name = fields.pop("type")
    except KeyError:
        raise ValueError("task metadata has no 'type' key") from None
    cls = _REGISTRY.get(type_name)
    if cls is None:
        raise ValueError(f"unknown task type {type_name!r}")
    try:
        return cls(**fields)
    except TypeError as exc:
        raise ValueError(f"metadata does not fit task type {type_name!r}: {exc}") from exc