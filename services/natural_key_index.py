"""
In-memory natural-key index.

Built once per import run from every existing record of one entity kind,
so the row loop never queries the store per row.
"""

from typing import Callable, Iterable, Iterator, Optional


class NaturalKeyIndex:
    """
    Normalized key -> record summary.

    Records are plain dicts as returned by the store and must carry "id".
    Writes made during a run are put back so later rows see them.
    """

    def __init__(self, normalize: Callable[[Optional[str]], str]):
        self._normalize = normalize
        self._records: dict[str, dict] = {}

    @classmethod
    def build(
        cls,
        records: Iterable[dict],
        key_field: str,
        normalize: Callable[[Optional[str]], str],
    ) -> "NaturalKeyIndex":
        index = cls(normalize)
        for record in records:
            key = normalize(record.get(key_field))
            # First record wins if the store already holds normalized duplicates
            if key and key not in index._records:
                index._records[key] = record
        return index

    def key(self, raw: Optional[str]) -> str:
        return self._normalize(raw)

    def get(self, raw: Optional[str]) -> Optional[dict]:
        key = self._normalize(raw)
        return self._records.get(key) if key else None

    def put(self, raw: Optional[str], record: dict) -> None:
        key = self._normalize(raw)
        if key:
            self._records[key] = record

    def __contains__(self, raw: Optional[str]) -> bool:
        return self.get(raw) is not None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)
