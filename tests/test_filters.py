from src.common.models import FilterState, IncidentPoint
from src.pipeline import filters


def _incident(idx, timestamp, category="Vol") -> IncidentPoint:
    return IncidentPoint(id=idx, latitude=45.5, longitude=-73.6, category=category, timestamp=timestamp)


SAMPLE = [
    _incident(1, "2024-03-02T10:00:00", "Vol"),
    _incident(2, "2024-12-24", "Méfait"),
    _incident(3, "2023-01-15T08:00:00Z", None),
    _incident(4, None, "Vol"),
    _incident(5, "not a date", "Vol"),
]


def test_empty_dimension_shows_nothing():
    everything = dict(years={2023, 2024}, months=set(range(12)), categories={"Vol", "Méfait", "Unknown"})

    assert filters.filter_points(SAMPLE, set(), everything["months"], everything["categories"]) == []
    assert filters.filter_points(SAMPLE, everything["years"], set(), everything["categories"]) == []
    assert filters.filter_points(SAMPLE, everything["years"], everything["months"], set()) == []


def test_category_set_empty_yields_empty_result():
    state = FilterState(years=frozenset({2024}), months=filters.ALL_MONTHS, categories=frozenset())

    assert filters.apply_filters(SAMPLE, state) == []


def test_points_match_on_year_zero_based_month_and_category():
    kept = filters.filter_points(SAMPLE, {2024}, {2}, {"Vol"})
    assert [p.id for p in kept] == [1]

    december = filters.filter_points(SAMPLE, {2024}, {11}, {"Vol", "Méfait"})
    assert [p.id for p in december] == [2]


def test_missing_category_counts_as_unknown_and_undated_points_never_match():
    kept = filters.filter_points(SAMPLE, {2023, 2024}, set(range(12)), {"Unknown", "Vol", "Méfait"})

    assert [p.id for p in kept] == [1, 2, 3]


def test_enlarging_a_set_never_shrinks_the_result():
    narrow = filters.filter_points(SAMPLE, {2024}, {2, 11}, {"Vol"})
    wider_years = filters.filter_points(SAMPLE, {2023, 2024}, {2, 11}, {"Vol"})
    wider_categories = filters.filter_points(SAMPLE, {2024}, {2, 11}, {"Vol", "Méfait"})

    assert set(p.id for p in narrow) <= set(p.id for p in wider_years)
    assert set(p.id for p in narrow) <= set(p.id for p in wider_categories)


def test_vocabularies():
    assert filters.available_years(SAMPLE) == [2024, 2023]
    assert filters.available_categories(SAMPLE) == ["Méfait", "Unknown", "Vol"]


def test_toggle_all_switches_between_full_vocabulary_and_nothing():
    years = [2024, 2023]
    state = FilterState.empty()

    state = filters.toggle_all_years(state, years)
    assert state.years == frozenset(years)
    state = filters.toggle_all_years(state, years)
    assert state.years == frozenset()

    partial = filters.with_years(state, [2024])
    assert filters.toggle_all_years(partial, years).years == frozenset(years)

    months = filters.toggle_all_months(FilterState.empty())
    assert months.months == filters.ALL_MONTHS
    assert filters.toggle_all_months(months).months == frozenset()

    categories = filters.toggle_all_categories(FilterState.empty(), ["Vol", "Unknown"])
    assert categories.categories == frozenset({"Vol", "Unknown"})


def test_transitions_replace_whole_sets():
    original = FilterState.everything([2024], ["Vol"])
    updated = filters.with_categories(original, ["Méfait"])

    assert original.categories == frozenset({"Vol"})
    assert updated.categories == frozenset({"Méfait"})
    assert updated is not original
    assert updated.years is original.years


def test_is_all_selected_requires_a_vocabulary():
    assert not filters.is_all_selected(set(), [])
    assert filters.is_all_selected({1, 2}, [2, 1])
    assert not filters.is_all_selected({1}, [1, 2])


def test_initial_filters_waits_for_data_before_seeding():
    assert filters.initial_filters(None, [], []) is None

    seeded = filters.initial_filters(None, [2024, 2023], ["Vol"])
    assert seeded == FilterState.everything([2024, 2023], ["Vol"])
    assert filters.apply_filters(SAMPLE, seeded) == [SAMPLE[0]]


def test_initial_filters_keeps_a_saved_choice():
    saved = FilterState.empty()

    assert filters.initial_filters(saved, [2024], ["Vol"]) is saved
