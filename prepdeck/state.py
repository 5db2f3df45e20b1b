from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import ClassVar, Optional, Sequence, Tuple

from prepdeck.filters import FilterSelection, revalidate_selection, set_filter
from prepdeck.workbook import Record, parse_workbook


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardState:
    dataset: Tuple[Record, ...] = ()
    selection: FilterSelection = field(default_factory=FilterSelection)
    generation: int = 0


def replace_dataset(state: DashboardState, dataset: Sequence[Record], *, generation: Optional[int] = None) -> DashboardState:
    """Swap in a new dataset wholesale and drop selections it cannot satisfy."""
    rows = tuple(dataset)
    return DashboardState(
        dataset=rows,
        selection=revalidate_selection(state.selection, rows),
        generation=state.generation if generation is None else generation,
    )


def apply_filter(state: DashboardState, dimension: str, value: Optional[str]) -> DashboardState:
    return replace(state, selection=set_filter(state.selection, dimension, value))


class DashboardSession:
    """Single active dashboard state with last-issued-load-wins semantics.

    Every load takes a generation number from ``begin_load``. A completion is
    installed only if no newer load has been started since; older in-flight
    completions are discarded.
    """

    _instance: ClassVar[Optional["DashboardSession"]] = None
    _instance_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = DashboardState()
        self._issued = 0

    @classmethod
    def instance(cls) -> "DashboardSession":
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    @classmethod
    def reset(cls) -> None:
        with cls._instance_lock:
            cls._instance = None

    def snapshot(self) -> DashboardState:
        with self._lock:
            return self._state

    def begin_load(self) -> int:
        with self._lock:
            self._issued += 1
            return self._issued

    def complete_load(self, generation: int, dataset: Sequence[Record]) -> bool:
        with self._lock:
            if generation != self._issued:
                logger.info("discarding stale load generation=%s latest=%s", generation, self._issued)
                return False
            self._state = replace_dataset(self._state, dataset, generation=generation)
            return True

    def load_bytes(self, data: bytes) -> DashboardState:
        generation = self.begin_load()
        rows = parse_workbook(data)
        self.complete_load(generation, rows)
        return self.snapshot()

    def set_filter(self, dimension: str, value: Optional[str]) -> DashboardState:
        with self._lock:
            self._state = apply_filter(self._state, dimension, value)
            return self._state


def get_session() -> DashboardSession:
    return DashboardSession.instance()


def reset_session() -> None:
    DashboardSession.reset()
