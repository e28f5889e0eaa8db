# backend/app/features/scanner/sink.py
"""Append-only result log, flushed to the persistent store after every item."""

from typing import Generic, Iterable, List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from backend.app.core import KeyValueStore, logs

ResultT = TypeVar("ResultT", bound=BaseModel)


class ResultSink(Generic[ResultT]):
    """Running result log for one scan surface.

    ``append`` rewrites the whole stored list. If the store rejects the write
    the result still stays in memory and the scan carries on.
    """

    def __init__(self, store: KeyValueStore, key: str, model: Type[ResultT]) -> None:
        self.store = store
        self.key = key
        self.model = model
        self._results: List[ResultT] = self._load()

    def _load(self) -> List[ResultT]:
        results = []
        for raw in self.store.get(self.key, []) or []:
            try:
                results.append(self.model.model_validate(raw))
            except PydanticValidationError as e:
                logs.warning("Skipping invalid stored result", "sink", {"key": self.key, "error": str(e)})
        return results

    @property
    def results(self) -> List[ResultT]:
        return list(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def append(self, result: ResultT) -> None:
        self._results.append(result)
        self._flush()

    def extend(self, results: Iterable[ResultT]) -> int:
        """Append results whose id is not in the log yet. Returns the count added."""
        known = {getattr(r, "id", None) for r in self._results}
        added = 0
        for result in results:
            result_id = getattr(result, "id", None)
            if result_id is not None and result_id in known:
                continue
            known.add(result_id)
            self._results.append(result)
            added += 1
        if added:
            self._flush()
        return added

    def clear(self) -> None:
        self._results = []
        self._flush()
        logs.info("Result log cleared", "sink", {"key": self.key})

    def _flush(self) -> None:
        saved = self.store.set(self.key, [r.model_dump(mode="json") for r in self._results])
        if not saved:
            logs.warning(
                "Result log not persisted, keeping in memory",
                "sink",
                {"key": self.key, "results": len(self._results)},
            )
