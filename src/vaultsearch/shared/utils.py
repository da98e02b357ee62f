"""
Shared utility functions.
"""
import time
import uuid as uuidlib
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

INDEX_NAMESPACE = uuidlib.UUID("6f0d2a4e-8a53-4c5e-9d63-1b8f3e0a7c21")


def new_record_uuid() -> str:
    """Random UUID for a new record."""
    return str(uuidlib.uuid4())


def index_id_for(collection: str, index_name: str) -> str:
    """
    Stable identifier for an index.

    Derived from the collection and index names so that the client and
    server agree on it without a lookup.
    """
    return str(uuidlib.uuid5(INDEX_NAMESPACE, f"{collection}/{index_name}"))


def iter_string_fields(
    data: Mapping[str, Any],
    prefix: str = "",
) -> Iterator[Tuple[str, str]]:
    """
    Yield (dotted_path, value) for every string value in a nested mapping.

    Args:
        data: Record data
        prefix: Path of the enclosing mapping

    Yields:
        Pairs such as ("author.name", "Ada")
    """
    for key, value in data.items():
        path = f"{prefix}{key}"
        if isinstance(value, str):
            yield path, value
        elif isinstance(value, Mapping):
            yield from iter_string_fields(value, prefix=f"{path}.")


def collect_string_fields(data: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """All string fields of a record, as (dotted_path, value) pairs."""
    return list(iter_string_fields(data))


def get_path(data: Mapping[str, Any], path: str) -> Optional[Any]:
    """Look up a dotted path; missing keys give None."""
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return None
        value = value[part]
    return value


class Timer:
    """Context manager for timing operations."""

    def __init__(self, name: str = "Operation"):
        self.name = name
        self.start_time: Optional[float] = None
        self.elapsed: Optional[float] = None

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.elapsed = time.perf_counter() - self.start_time

    @property
    def elapsed_ms(self) -> float:
        """Get elapsed time in milliseconds."""
        if self.elapsed is None:
            if self.start_time is not None:
                return (time.perf_counter() - self.start_time) * 1000
            return 0.0
        return self.elapsed * 1000


def summarize_timing(timing: Dict[str, float]) -> str:
    """One-line rendering of a timing dict, e.g. 'analyze=0.12ms put=3.40ms'."""
    return " ".join(f"{k.removesuffix('_ms')}={v:.2f}ms" for k, v in timing.items())
