import pytest

from antechamber.extraction.models import (
    Citation,
    ExtractionConfig,
    FieldDefinition,
    FieldMergeBucket,
    MergeCandidate,
    PageExtractionResult,
    PageFieldExtraction,
)
from antechamber.extraction.synthesis import (
    build_merge_buckets,
    check_source_hint_match,
    group_by_value,
    merge_field,
    normalize_for_comparison,
    select_best_group,
    synthesize_fields,
)

FETCHED = "2024-01-01T00:00:00Z"


def _candidate(value, confidence, url="https://acme.test/"):
    return MergeCandidate(
        value=value,
        confidence=confidence,
        citation=Citation(url=url, snippet=str(value), retrieved_at=FETCHED),
    )


def _bucket(key, *candidates):
    return FieldMergeBucket(key=key, candidates=list(candidates))


def _page(url, *extractions):
    return PageExtractionResult(
        url=url,
        page_title="Page",
        fetched_at=FETCHED,
        fields=[
            PageFieldExtraction(key=k, value=v, confidence=c, snippet=f"{v}")
            for k, v, c in extractions
        ],
    )


def test_confidence_is_clamped_to_one():
    field = FieldDefinition(key="name")
    merged = merge_field(
        field, _bucket("name", _candidate("Acme", 0.9), _candidate("Acme", 0.9))
    )
    assert merged.confidence == 1.0
    assert merged.status == "auto"


def test_corroboration_adds_boost_per_extra_page():
    field = FieldDefinition(key="name")
    merged = merge_field(
        field,
        _bucket(
            "name",
            _candidate("Acme", 0.5, "https://a.test/"),
            _candidate("acme ", 0.5, "https://b.test/"),
            _candidate("ACME", 0.5, "https://c.test/"),
        ),
    )
    assert merged.confidence == 0.7
    assert merged.value == "Acme"
    assert [c.url for c in merged.citations] == [
        "https://a.test/",
        "https://b.test/",
        "https://c.test/",
    ]
    assert merged.status == "needs_review"
    assert merged.reason == "Confidence 0.70 below threshold 0.75"


def test_conflict_forces_review_regardless_of_confidence():
    field = FieldDefinition(key="name", confidence_threshold=0.5)
    merged = merge_field(
        field, _bucket("name", _candidate("Beta", 0.92), _candidate("Alpha", 0.95))
    )
    assert merged.status == "needs_review"
    assert merged.value == "Alpha"
    assert merged.confidence == 0.95
    assert merged.reason == 'Conflicting values: "Alpha", "Beta"'


def test_empty_bucket_is_unknown():
    merged = merge_field(FieldDefinition(key="phone"), _bucket("phone"))
    assert merged.value is None
    assert merged.confidence == 0
    assert merged.status == "unknown"
    assert merged.citations == []


def test_field_threshold_overrides_default():
    merged = merge_field(
        FieldDefinition(key="name", confidence_threshold=0.5),
        _bucket("name", _candidate("Acme", 0.6)),
    )
    assert merged.status == "auto"
    assert merged.reason is None


def test_below_threshold_reason():
    merged = merge_field(FieldDefinition(key="name"), _bucket("name", _candidate("Acme", 0.6)))
    assert merged.status == "needs_review"
    assert merged.reason == "Confidence 0.60 below threshold 0.75"


def test_group_by_value_normalizes_and_keeps_first_seen_order():
    groups = group_by_value(
        [
            _candidate("Beta", 0.6),
            _candidate(" alpha", 0.7),
            _candidate("BETA", 0.5),
            _candidate(["b", "a"], 0.6),
            _candidate(["a", "b"], 0.6),
            _candidate(3.0, 0.6),
            _candidate(3, 0.6),
        ]
    )
    assert [len(g.candidates) for g in groups] == [2, 1, 2, 2]
    assert groups[0].total_confidence == pytest.approx(1.1)


def test_normalize_for_comparison():
    assert normalize_for_comparison("  Acme Inc ") == "acme inc"
    assert normalize_for_comparison(["B", "a"]) == normalize_for_comparison(["A", "b"])
    assert normalize_for_comparison({"b": 1, "a": 2}) == normalize_for_comparison(
        {"a": 2, "b": 1}
    )
    assert normalize_for_comparison(True) != normalize_for_comparison("true")


def test_select_best_group_tie_breaks():
    # equal totals: more candidates wins
    groups = group_by_value(
        [_candidate("solo", 0.8), _candidate("pair", 0.4), _candidate("pair", 0.4)]
    )
    assert select_best_group(groups).normalized_value == "pair"

    # full tie: first seen wins
    groups = group_by_value([_candidate("first", 0.5), _candidate("second", 0.5)])
    original = list(groups)
    assert select_best_group(groups).normalized_value == "first"
    assert groups == original


def test_select_best_group_requires_groups():
    with pytest.raises(ValueError):
        select_best_group([])


def test_check_source_hint_match():
    assert check_source_hint_match("https://acme.test/Contact-Us", ["contact"])
    assert not check_source_hint_match("https://acme.test/about", ["contact"])
    assert not check_source_hint_match("https://acme.test/about", [])
    assert not check_source_hint_match("https://acme.test/about", None)


def test_build_merge_buckets_applies_hint_boost_and_ignores_unknown_keys():
    fields = [FieldDefinition(key="phone", source_hints=["contact"])]
    pages = [
        _page("https://acme.test/contact", ("phone", "555", 0.9), ("fax", "556", 0.9)),
        _page("https://acme.test/about", ("phone", "555", 0.6)),
    ]
    buckets = build_merge_buckets(fields, pages)

    assert list(buckets) == ["phone"]
    first, second = buckets["phone"].candidates
    assert first.confidence == 1.0
    assert first.source_hint_match is True
    assert first.citation.page_title == "Page"
    assert second.confidence == 0.6
    assert second.source_hint_match is False


def test_synthesize_fields_in_schema_order():
    fields = [FieldDefinition(key="b"), FieldDefinition(key="a")]
    pages = [_page("https://x.test/", ("a", "one", 0.9))]
    config = ExtractionConfig(default_confidence_threshold=0.8)

    result = synthesize_fields(fields, pages, config)

    assert [f.key for f in result] == ["b", "a"]
    assert result[0].status == "unknown"
    assert result[1].status == "auto"
    assert all(0 <= f.confidence <= 1 for f in result)
