"""Pure helpers that turn grouped query rows into chart-ready series."""

from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

T = TypeVar("T")

TOP_N_DEFAULT = 12


def fill_year_series(
    start: int,
    end: int,
    rows: Mapping[int, Any],
    mapper: Callable[[int, Optional[Any]], T],
) -> List[T]:
    """One entry per year in [start, end], ascending; years missing from `rows` get mapper(year, None)."""
    if start > end:
        start, end = end, start
    return [mapper(year, rows.get(year)) for year in range(start, end + 1)]


def percentage(part: float, total: float) -> float:
    if not total:
        return 0.0
    return round(part / total * 100, 1)


def top_n(
    items: List[Dict[str, Any]],
    count_key: str,
    name_key: str,
    n: Optional[int] = TOP_N_DEFAULT,
) -> List[Dict[str, Any]]:
    """Sort by count descending, then name ascending; keep the first n (all when n is None)."""
    ranked = sorted(items, key=lambda item: (-item[count_key], str(item[name_key])))
    return ranked if n is None else ranked[:n]
