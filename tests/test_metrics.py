from collections import defaultdict
from typing import List, Tuple
import itertools
import threading
import pytest
from hypothesis import given
import hypothesis.strategies as st
from maillon.errors import InvalidInputError
from maillon.pipeline.core import Mention
from maillon.pipeline.corefs.metrics import (
    CorefScores,
    MetricResult,
    ceaf_alignment,
    mean_coref_scores,
    phi4,
    score_b_cubed,
    score_ceaf,
    score_coref,
    score_coref_corpus,
    score_coref_documents,
    score_mentions,
    score_muc,
)

M1, M2, M3, M4 = (0, 1), (2, 3), (4, 5), (6, 7)


@st.composite
def chains(draw, max_mentions: int = 12, max_chains: int = 5) -> List[List[Tuple[int, int]]]:
    """Chains over mentions ``(i, i + 1)``.  Each mention belongs to at
    most one chain."""
    mentions_nb = draw(st.integers(min_value=0, max_value=max_mentions))
    labels = draw(
        st.lists(
            st.integers(min_value=-1, max_value=max_chains - 1),
            min_size=mentions_nb,
            max_size=mentions_nb,
        )
    )
    label_to_chain = defaultdict(list)
    for i, label in enumerate(labels):
        if label >= 0:
            label_to_chain[label].append((i, i + 1))
    return list(label_to_chain.values())


def _assert_valid(metric: MetricResult):
    for value in (metric.precision, metric.recall, metric.f1):
        assert 0.0 <= value <= 1.0 + 1e-9
    if metric.precision == 0.0 or metric.recall == 0.0:
        assert metric.f1 == 0.0


@given(predicted=chains(), gold=chains())
def test_metrics_are_bounded(predicted, gold):
    scores = score_coref(predicted, gold)
    _assert_valid(scores.muc)
    _assert_valid(scores.b3)
    _assert_valid(scores.ceaf)
    assert 0.0 <= scores.conll_f1 <= 1.0 + 1e-9


@given(gold=chains())
def test_perfect_match(gold):
    # MUC is not defined without links
    gold = gold + [[(100, 101), (102, 103)]]
    scores = score_coref(gold, gold)
    assert scores.muc.f1 == pytest.approx(1.0)
    assert scores.b3.f1 == pytest.approx(1.0)
    assert scores.ceaf.f1 == pytest.approx(1.0)
    assert scores.conll_f1 == pytest.approx(1.0)


def test_no_prediction():
    scores = score_coref([], [[M1, M2], [M3, M4]])
    for metric in (scores.muc, scores.b3, scores.ceaf):
        assert metric == MetricResult(0.0, 0.0, 0.0)
    assert scores.conll_f1 == 0.0


def test_missing_mention():
    gold = [[M1, M2, M3]]
    predicted = [[M1, M2]]

    muc = score_muc(predicted, gold)
    assert muc.recall == pytest.approx(0.5)
    assert muc.precision == pytest.approx(1.0)

    b3 = score_b_cubed(predicted, gold)
    assert b3.recall == pytest.approx(4 / 9)
    assert b3.precision == pytest.approx(1.0)

    ceaf = score_ceaf(predicted, gold)
    assert ceaf.precision == pytest.approx(0.8)
    assert ceaf.recall == pytest.approx(0.8)


def test_predicted_singleton():
    gold = [[M1, M2, M3]]
    predicted = [[M1, M2], [M3]]
    assert score_muc(predicted, gold).recall == pytest.approx(0.5)
    assert score_b_cubed(predicted, gold).recall == pytest.approx(5 / 9)
    assert score_ceaf(predicted, gold).precision == pytest.approx(0.4)


def test_muc_merged_chains():
    # a single predicted chain merging two gold chains
    gold = [[M1, M2], [M3, M4]]
    predicted = [[M1, M2, M3, M4]]
    muc = score_muc(predicted, gold)
    assert muc.recall == pytest.approx(1.0)
    assert muc.precision == pytest.approx(2 / 3)


def test_mentions_can_be_mention_objects():
    gold = [[Mention(["John"], 0, 1), Mention(["he"], 4, 5)]]
    predicted = [[Mention(["John"], 0, 1, score=0.7), Mention(["he"], 4, 5, score=0.6)]]
    assert score_coref(predicted, gold).conll_f1 == pytest.approx(1.0)


def test_duplicated_mentions_are_rejected():
    with pytest.raises(InvalidInputError):
        score_coref([[M1, M2]], [[M1, M2], [M2, M3]])
    with pytest.raises(InvalidInputError):
        score_coref([[M1, M1, M2]], [[M1, M2]])


def _brute_force_ceaf_similarity(predicted, gold) -> float:
    predicted = [set(c) for c in predicted]
    gold = [set(c) for c in gold]
    if len(predicted) > len(gold):
        predicted, gold = gold, predicted
    best = 0.0
    for permutation in itertools.permutations(range(len(gold)), len(predicted)):
        similarity = sum(phi4(predicted[i], gold[j]) for i, j in enumerate(permutation))
        best = max(best, similarity)
    return best


@given(predicted=chains(max_mentions=8, max_chains=4), gold=chains(max_mentions=8, max_chains=4))
def test_ceaf_alignment_is_optimal(predicted, gold):
    _, similarity = ceaf_alignment([set(c) for c in predicted], [set(c) for c in gold])
    assert similarity == pytest.approx(_brute_force_ceaf_similarity(predicted, gold))


def test_ceaf_alignment_is_one_to_one():
    predicted = [{M1, M2, M3}, {M4}]
    gold = [{M1, M2}, {M3, M4}]
    alignment, similarity = ceaf_alignment(predicted, gold)
    assert sorted(alignment) == [(0, 0), (1, 1)]
    assert similarity == pytest.approx(0.8 + 2 / 3)


def test_score_mentions():
    result = score_mentions([M1, M2, M4], [[M1, M2, M3]])
    assert result.precision == pytest.approx(2 / 3)
    assert result.recall == pytest.approx(2 / 3)
    assert score_mentions([], [[M1, M2]]) == MetricResult(0.0, 0.0, 0.0)


def test_mean_of_no_documents_is_zero():
    scores = mean_coref_scores([])
    assert scores.muc == scores.b3 == scores.ceaf == MetricResult(0.0, 0.0, 0.0)
    assert scores.conll_f1 == 0.0


def test_corpus_scores_are_macro_averaged():
    documents = [
        ([[M1, M2]], [[M1, M2]]),
        ([], [[M1, M2]]),
    ]
    scores = score_coref_corpus(documents, progress_report=None)
    assert scores.muc.f1 == pytest.approx(0.5)
    assert scores.b3.recall == pytest.approx(0.5)
    assert scores.conll_f1 == pytest.approx(0.5)


@given(documents=st.lists(st.tuples(chains(), chains()), max_size=8))
def test_parallel_scoring_keeps_input_order(documents):
    sequential = score_coref_documents(documents, progress_report=None)
    parallel = score_coref_documents(documents, n_workers=3, progress_report=None)
    assert sequential == parallel
    assert len(sequential) == len(documents)


@pytest.mark.parametrize("n_workers", [1, 4])
def test_cancelled_evaluation_scores_nothing(n_workers: int):
    cancel_event = threading.Event()
    cancel_event.set()
    documents = [([[M1, M2]], [[M1, M2]])] * 5
    assert (
        score_coref_documents(
            documents, n_workers, cancel_event=cancel_event, progress_report=None
        )
        == []
    )


def test_cancellation_is_checked_between_documents():
    cancel_event = threading.Event()

    class CancellingChains(list):
        def __iter__(self):
            cancel_event.set()
            return super().__iter__()

    documents = [
        ([[M1, M2]], CancellingChains([[M1, M2]])),
        ([[M1, M2]], [[M1, M2]]),
        ([[M1, M2]], [[M1, M2]]),
    ]
    scores = score_coref_documents(
        documents, cancel_event=cancel_event, progress_report=None
    )
    assert len(scores) == 1
    assert isinstance(scores[0], CorefScores)


def test_invalid_worker_count_is_rejected():
    with pytest.raises(InvalidInputError):
        score_coref_documents([], n_workers=0)
