from __future__ import annotations

from convivir.matching import SearchFilter
from convivir.models import SearchFilters


def _pool(make_profile):
    return [
        make_profile("me", budget=(10000, 20000), locations=("Palermo",)),
        make_profile("barato", budget=(5000, 9000), locations=("Flores",)),
        make_profile("medio", budget=(12000, 18000), locations=("Palermo", "Belgrano"), pets=True),
        make_profile("caro", budget=(25000, 40000), locations=("Recoleta",), smoking=True),
        make_profile("amplio", budget=(8000, 30000), locations=("Belgrano",), drinking=True),
    ]


def _ids(profiles):
    return [p.id for p in profiles]


def test_no_filters_returns_everyone_but_caller(make_profile):
    result = SearchFilter().search(_pool(make_profile), None, exclude_user_id="me")
    assert _ids(result) == ["barato", "medio", "caro", "amplio"]


def test_budget_filters_use_bound_containment(make_profile):
    filters = SearchFilters.model_validate({"budget": {"min": 10000, "max": 30000}})

    result = SearchFilter().search(_pool(make_profile), filters, exclude_user_id="me")

    # "amplio" (8000-30000) se solapa con el filtro pero su mínimo queda afuera
    assert _ids(result) == ["medio"]


def test_budget_min_only(make_profile):
    filters = SearchFilters.model_validate({"budget": {"min": 12000}})
    result = SearchFilter().search(_pool(make_profile), filters, exclude_user_id="me")
    assert _ids(result) == ["medio", "caro"]


def test_locations_keep_any_intersection(make_profile):
    filters = SearchFilters(locations=["Belgrano", "Recoleta"])
    result = SearchFilter().search(_pool(make_profile), filters, exclude_user_id="me")
    assert _ids(result) == ["medio", "caro", "amplio"]


def test_lifestyle_flags_must_match(make_profile):
    filters = SearchFilters.model_validate({"lifestyle": {"smoking": False, "pets": True}})
    result = SearchFilter().search(_pool(make_profile), filters, exclude_user_id="me")
    assert _ids(result) == ["medio"]


def test_filters_combine_with_and(make_profile):
    filters = SearchFilters.model_validate(
        {"budget": {"max": 30000}, "locations": ["Belgrano"], "lifestyle": {"drinking": False}}
    )
    result = SearchFilter().search(_pool(make_profile), filters, exclude_user_id="me")
    assert _ids(result) == ["medio"]


def test_caller_is_excluded_even_when_matching(make_profile):
    filters = SearchFilters(locations=["Palermo"])
    result = SearchFilter().search(_pool(make_profile), filters, exclude_user_id="me")
    assert "me" not in _ids(result)
    assert _ids(result) == ["medio"]
