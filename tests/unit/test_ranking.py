import pytest

from core.entities import WeightedHit, Winner
from core.ranking import (
    RankedResume,
    paginate,
    rank_resumes,
    rows_from_weighted,
    union_resume_ids,
)
from util.functions import coerce_int, unique_labels


def w(rid, sim, variant="v"):
    return Winner(resume_id=rid, max_sim=sim, best_chunk_id=None, winning_variant=variant)


def rows(n):
    return [
        RankedResume(resume_id=f"R{i}", score=1.0 - i / 10, winners=[])
        for i in range(n)
    ]


@pytest.mark.unit
def test_scores_are_summed_across_pills():
    per_pill = [
        {"A": [w("A", 0.8)], "B": [w("B", 0.9)]},
        {"A": [w("A", 0.6)], "B": [w("B", 0.1)]},
    ]
    ranked = rank_resumes(per_pill)
    assert [r.resume_id for r in ranked] == ["A", "B"]
    assert ranked[0].score == pytest.approx(1.4)
    assert ranked[1].score == pytest.approx(1.0)


@pytest.mark.unit
def test_weights_change_the_order():
    per_pill = [
        {"A": [w("A", 0.5)], "B": [w("B", 0.3)]},
        {"A": [w("A", 0.2)], "B": [w("B", 0.9)]},
    ]
    assert [r.resume_id for r in rank_resumes(per_pill)] == ["B", "A"]
    weighted = rank_resumes(per_pill, [2.0, 0.5])
    assert [r.resume_id for r in weighted] == ["A", "B"]
    assert weighted[0].score == pytest.approx(1.1)
    assert weighted[1].score == pytest.approx(1.05)


@pytest.mark.unit
def test_missing_pill_counts_as_zero_and_leaves_an_empty_cell():
    ranked = rank_resumes([{"A": [w("A", 0.4)]}, {"B": [w("B", 0.9)]}])
    assert [r.resume_id for r in ranked] == ["B", "A"]
    assert ranked[0].winners[0] == []
    assert ranked[1].winners[1] == []


@pytest.mark.unit
def test_equal_scores_keep_discovery_order():
    per_pill = [{"C": [w("C", 0.5)], "A": [w("A", 0.5)]}, {"B": [w("B", 0.5)]}]
    assert union_resume_ids(per_pill) == ["C", "A", "B"]
    assert [r.resume_id for r in rank_resumes(per_pill)] == ["C", "A", "B"]


@pytest.mark.unit
def test_multi_result_cells_rank_by_their_first_entry():
    per_pill = [{"A": [w("A", 0.6), w("A", 0.5)], "B": [w("B", 0.7)]}]
    ranked = rank_resumes(per_pill)
    assert [(r.resume_id, r.score) for r in ranked] == [("B", 0.7), ("A", 0.6)]


@pytest.mark.unit
def test_pages():
    page = paginate(rows(5), limit=2, offset=0)
    assert [r.resume_id for r in page.rows] == ["R0", "R1"]
    assert page.has_more is True

    page = paginate(rows(5), limit=2, offset=4)
    assert [r.resume_id for r in page.rows] == ["R4"]
    assert page.has_more is False

    page = paginate(rows(5), limit=2, offset=10)
    assert page.rows == []
    assert page.has_more is False


@pytest.mark.unit
def test_full_last_page_reports_more():
    page = paginate(rows(4), limit=2, offset=2)
    assert len(page.rows) == 2
    assert page.has_more is True


@pytest.mark.unit
@pytest.mark.parametrize("offset", [-3, "abc", None, True, 1.5e400])
def test_bad_offset_becomes_zero(offset):
    page = paginate(rows(3), limit=None, offset=offset)
    assert page.offset == 0
    assert len(page.rows) == 3


@pytest.mark.unit
@pytest.mark.parametrize("limit", [0, -2, "many", False])
def test_bad_limit_falls_back_to_default(limit):
    assert paginate(rows(5), limit=limit).limit is None
    assert len(paginate(rows(5), limit=limit).rows) == 5
    assert paginate(rows(5), limit=limit, default_limit=3).limit == 3


@pytest.mark.unit
def test_numeric_strings_are_accepted():
    page = paginate(rows(5), limit="2", offset="1")
    assert (page.offset, page.limit) == (1, 2)
    assert [r.resume_id for r in page.rows] == ["R1", "R2"]


@pytest.mark.unit
def test_weighted_rows_are_reformatted_not_resorted():
    hits = [
        WeightedHit("B", 0.3, [0.3, None], ["b1", None], 1),
        WeightedHit("A", 0.9, [0.5, 0.2], ["a1", "a2"], 2),
    ]
    out = rows_from_weighted(hits, ["java", "python"])
    assert [r.resume_id for r in out] == ["B", "A"]
    assert out[0].winners[1] == []
    assert out[1].winners[1][0].best_chunk_id == "a2"
    assert out[1].winners[1][0].winning_variant == "python"


@pytest.mark.unit
def test_coerce_int():
    assert coerce_int("7", None) == 7
    assert coerce_int(3.9, None) == 3
    assert coerce_int(True, 5) == 5
    assert coerce_int(-1, 5) == 5
    assert coerce_int(0, 5, minimum=1) == 5


@pytest.mark.unit
def test_duplicate_pill_texts_get_distinct_labels():
    labels = unique_labels(["java", "go", "java", "java"])
    assert labels == ["java", "go", "java#2", "java#3"]
    assert unique_labels(["a#2", "a", "a"]) == ["a#2", "a", "a#3"]
