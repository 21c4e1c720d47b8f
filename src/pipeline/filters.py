"""Set-based year / month / category filtering and the filter-state transitions."""

from __future__ import annotations

from dataclasses import replace
from typing import AbstractSet, Iterable, List, Optional, Sequence, TypeVar

from src.common.models import FilterState, IncidentPoint

ALL_MONTHS = frozenset(range(12))

P = TypeVar("P", bound=IncidentPoint)


def filter_points(
    points: Iterable[P],
    years: AbstractSet[int],
    months: AbstractSet[int],
    categories: AbstractSet[str],
) -> List[P]:
    """Keep points whose year, 0-based month and category are all selected.

    An empty selection in any dimension yields no points at all. Points
    without a parsable timestamp never match.
    """

    if not years or not months or not categories:
        return []

    kept: List[P] = []
    for point in points:
        occurred = point.occurred_at
        if occurred is None:
            continue
        if occurred.year not in years:
            continue
        if occurred.month - 1 not in months:
            continue
        if point.category_label not in categories:
            continue
        kept.append(point)
    return kept


def apply_filters(points: Iterable[P], state: FilterState) -> List[P]:
    return filter_points(points, state.years, state.months, state.categories)


def available_years(points: Iterable[IncidentPoint]) -> List[int]:
    """Distinct incident years, newest first."""

    years = {point.occurred_at.year for point in points if point.occurred_at is not None}
    return sorted(years, reverse=True)


def available_categories(points: Iterable[IncidentPoint]) -> List[str]:
    return sorted({point.category_label for point in points})


def is_all_selected(selected: AbstractSet, vocabulary: Iterable) -> bool:
    vocab = set(vocabulary)
    if not vocab:
        return False
    return set(selected) == vocab


def initial_filters(
    saved: Optional[FilterState], years: Sequence[int], categories: Sequence[str]
) -> Optional[FilterState]:
    """Return the saved state, or select everything once the vocabularies hold data.

    Returns None while there is nothing to select, so an empty first load
    does not get stored as the user's choice.
    """

    if saved is not None:
        return saved
    if not years and not categories:
        return None
    return FilterState.everything(years, categories)


def with_years(state: FilterState, years: Iterable[int]) -> FilterState:
    return replace(state, years=frozenset(years))


def with_months(state: FilterState, months: Iterable[int]) -> FilterState:
    return replace(state, months=frozenset(months))


def with_categories(state: FilterState, categories: Iterable[str]) -> FilterState:
    return replace(state, categories=frozenset(categories))


def toggle_all_years(state: FilterState, vocabulary: Sequence[int]) -> FilterState:
    if is_all_selected(state.years, vocabulary):
        return with_years(state, ())
    return with_years(state, vocabulary)


def toggle_all_months(state: FilterState) -> FilterState:
    if is_all_selected(state.months, ALL_MONTHS):
        return with_months(state, ())
    return with_months(state, ALL_MONTHS)


def toggle_all_categories(state: FilterState, vocabulary: Sequence[str]) -> FilterState:
    if is_all_selected(state.categories, vocabulary):
        return with_categories(state, ())
    return with_categories(state, vocabulary)
