from reference_harvester.models import Author, MatchScore, NormalizedRecord
from reference_harvester.similarity import (
    compare_authors,
    compare_pages,
    compute_match_score,
    string_similarity,
    verdict_for_score,
)


def _record(**kwargs) -> NormalizedRecord:
    return NormalizedRecord(**kwargs)


def test_string_similarity_is_token_jaccard():
    assert string_similarity("Deep Learning", "deep learning") == 1.0
    assert string_similarity("a b c d", "a b") == 0.5
    assert string_similarity("", "anything") == 0.0
    assert string_similarity(None, "x") == 0.0


def test_author_comparison_weights_first_and_last():
    extracted = [Author(family="Smith"), Author(family="Jones")]
    validated = [Author(family="Smith"), Author(family="Brown")]

    assert compare_authors(extracted, validated) == 0.7
    assert compare_authors([Author(family="Smith")], validated) == 1.0
    assert compare_authors([], validated) == 0.0


def test_abbreviated_page_ranges_compare_equal():
    assert compare_pages("806-14", "806-814") == 1.0
    assert compare_pages("806–814", "806-814") == 1.0
    assert compare_pages("1-10", "2-10") == 0.0


def test_near_identical_title_with_author_and_year_is_valid():
    title_words = [f"word{i}" for i in range(20)]
    extracted = _record(
        title=" ".join(title_words[:19] + ["extra"]),
        authors=[Author(family="Doe", given="J.")],
        year=2021,
    )
    validated = _record(
        title=" ".join(title_words),
        authors=[Author(family="Doe", given="Jane")],
        year=2021,
    )

    score = compute_match_score(extracted, validated)
    status, message = verdict_for_score(score, "DOI verified via CrossRef")

    assert score.fields["authors"] == 1.0
    assert score.fields["year"] == 1.0
    assert score.overall >= 0.90
    assert status == "valid"
    assert message.startswith("DOI verified via CrossRef (")


def test_absent_fields_do_not_count_against_the_score():
    extracted = _record(title="A study of things", year=2020)
    validated = _record(title="A study of things", year=2020, journal="Nature", volume="12")

    score = compute_match_score(extracted, validated)

    assert score.overall == 1.0
    assert score.fields_compared == 2
    assert set(score.fields) == {"title", "year"}


def test_adding_a_matching_field_never_lowers_the_score():
    base_extracted = _record(title="Graph methods for citation parsing", year=2019)
    base_validated = _record(title="Graph methods for citation analysis", year=2019)
    before = compute_match_score(base_extracted, base_validated).overall

    base_extracted.authors = [Author(family="Lee")]
    base_validated.authors = [Author(family="Lee")]
    after = compute_match_score(base_extracted, base_validated).overall

    assert after >= before


def test_no_comparable_fields_scores_zero():
    score = compute_match_score(_record(title="Only title"), _record(year=2001))

    assert score.overall == 0.0
    assert score.fields_compared == 0


def test_verdict_thresholds_and_messages():
    assert verdict_for_score(MatchScore(overall=0.9), "X") == ("valid", "X (90% match)")
    assert verdict_for_score(MatchScore(overall=0.75), "X") == (
        "suspicious",
        "X - possible mismatch (75% match)",
    )
    assert verdict_for_score(MatchScore(overall=0.3), "X") == (
        "mismatch",
        "X - content mismatch (30% match)",
    )
    assert verdict_for_score(MatchScore(overall=0.706), "X")[1].endswith("(71% match)")
