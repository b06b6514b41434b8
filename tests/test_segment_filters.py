"""Tests for segment filters, search clause rendering and company size helpers."""

from baseplate.services.segment_filters import (
    SegmentFilters,
    build_company_query,
    describe_active_filters,
    employee_clauses,
)
from catalog.company_sizes import (
    format_employees_from_selections,
    parse_company_size_range,
)


def test_full_filter_set_renders_one_clause_per_constraint():
    filters = SegmentFilters(
        country="Germany",
        location="Berlin",
        categories=["Software", "Fintech"],
        technographics=["Salesforce", "HubSpot"],
        employees="1000-5000",
        personas=["CTO"],
    )

    assert build_company_query(filters) == [
        'location.country.name:"Germany"',
        'location.city.name:"Berlin"',
        'categories.name:"Software"',
        'categories.name:"Fintech"',
        'technographics.technology.name:or("Salesforce", "HubSpot")',
        "nbEmployees>=1000 nbEmployees<=5000",
    ]


def test_blank_values_are_ignored():
    filters = SegmentFilters(country="  ", location="", categories=["", " "], technographics=[" "])
    assert build_company_query(filters) == []


def test_employee_clauses_handle_separators_and_open_ranges():
    assert employee_clauses("10,001+") == ["nbEmployees>=10001"]
    assert employee_clauses("5001-10,000 employees") == ["nbEmployees>=5001 nbEmployees<=10000"]
    assert employee_clauses("500") == ["nbEmployees>=500"]
    assert employee_clauses("lots") == []
    assert employee_clauses("1-2-3") == []
    assert employee_clauses(None) == []


def test_size_selections_and_null_lists_are_normalised():
    filters = SegmentFilters.model_validate(
        {"employees": ["51-200 employees"], "categories": None, "technographics": None}
    )
    assert filters.employees == "51-200 employees"
    assert filters.categories == []
    assert filters.technographics == []

    filters = SegmentFilters(employees=["1-10 employees", "11-50 employees"])
    assert filters.employees == "1-50 employees"
    assert build_company_query(filters) == ["nbEmployees>=1 nbEmployees<=50"]
    assert SegmentFilters(employees=[]).employees is None


def test_describe_active_filters_lists_what_was_searched():
    filters = SegmentFilters(country="France", categories=["Retail"], employees="11-50")
    message = describe_active_filters(filters)
    assert message.startswith("No matches found for: ")
    assert 'Country: "France"' in message
    assert 'Company Size: "11-50"' in message
    assert 'Industry: "Retail"' in message


def test_describe_without_filters_asks_for_some():
    assert "Please select some filters" in describe_active_filters(SegmentFilters())


def test_parse_company_size_range():
    assert parse_company_size_range("1-10 employees") == (1, 10)
    assert parse_company_size_range("10,001+ employees") == (10001, None)
    assert parse_company_size_range("250") == (250, 250)
    assert parse_company_size_range("a few") == (0, None)


def test_size_selections_collapse():
    assert format_employees_from_selections(["1-10 employees", "11-50 employees"]) == "1-50 employees"
    assert format_employees_from_selections(["501-1000 employees", "10,001+ employees"]) == "501+ employees"
    assert format_employees_from_selections([]) == ""
