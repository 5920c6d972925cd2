"""Coreference evaluation metrics: MUC, B-cubed, CEAF (entity-based,
φ4 similarity) and the CoNLL-F1 score.

Chains can be given as any sequence of sequences of hashable mentions
(:class:`.Mention` objects, or ``(start, end)`` tuples for example).
Predicted and gold chains must use the same mention representation.
"""
from __future__ import annotations
from typing import (
    Dict,
    Hashable,
    Iterable,
    List,
    Literal,
    Optional,
    Sequence,
    Set,
    Tuple,
)
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import closing
import threading
import numpy as np
from scipy.optimize import linear_sum_assignment
from maillon.errors import InvalidInputError
from maillon.pipeline.progress import get_progress_reporter, progress_
from maillon.utils import check_strictly_positive

Chains = Sequence[Iterable[Hashable]]


@dataclass(frozen=True)
class MetricResult:
    precision: float
    recall: float
    f1: float

    @staticmethod
    def from_precision_recall(precision: float, recall: float) -> MetricResult:
        return MetricResult(precision, recall, f1_score(precision, recall))


@dataclass(frozen=True)
class CorefScores:
    muc: MetricResult
    b3: MetricResult
    ceaf: MetricResult

    @property
    def conll_f1(self) -> float:
        """Unweighted mean of MUC, B-cubed and CEAF F1 scores"""
        return (self.muc.f1 + self.b3.f1 + self.ceaf.f1) / 3


def safe_divide(num: float, den: float) -> float:
    if den == 0:
        return 0.0
    return num / den


def f1_score(precision: float, recall: float) -> float:
    return safe_divide(2 * precision * recall, precision + recall)


def _as_sets(chains: Chains, name: str) -> List[Set[Hashable]]:
    """Convert chains to sets, dropping empty chains.

    :raise InvalidInputError: if a mention appears twice in
        ``chains``.
    """
    seen = set()
    out = []
    for chain in chains:
        chain = list(chain)
        chain_set = set(chain)
        if len(chain_set) != len(chain) or not seen.isdisjoint(chain_set):
            raise InvalidInputError(
                f"a mention appears more than once in {name} chains: {chain}"
            )
        seen |= chain_set
        if len(chain_set) > 0:
            out.append(chain_set)
    return out


def _mention_to_chain(chains: List[Set[Hashable]]) -> Dict[Hashable, int]:
    return {mention: i for i, chain in enumerate(chains) for mention in chain}


def _muc_links(
    key: List[Set[Hashable]], response: List[Set[Hashable]]
) -> Tuple[int, int]:
    """
    :return: ``(common links, key links)``.  Each key chain ``c``
        has ``|c| - 1`` links, of which ``|c| - partitions`` are found
        in ``response``, where ``partitions`` counts the response
        chains intersecting ``c`` plus the mentions of ``c`` missing
        from ``response``.
    """
    mention_to_response = _mention_to_chain(response)
    common_links = 0
    key_links = 0
    for chain in key:
        key_links += len(chain) - 1
        response_chains = set()
        missing = 0
        for mention in chain:
            response_chain = mention_to_response.get(mention)
            if response_chain is None:
                missing += 1
            else:
                response_chains.add(response_chain)
        common_links += len(chain) - (len(response_chains) + missing)
    return common_links, key_links


def score_muc(predicted: Chains, gold: Chains) -> MetricResult:
    """Link-based MUC metric (Vilain et al., 1995)"""
    predicted_sets, gold_sets = _as_sets(predicted, "predicted"), _as_sets(gold, "gold")
    recall = safe_divide(*_muc_links(gold_sets, predicted_sets))
    precision = safe_divide(*_muc_links(predicted_sets, gold_sets))
    return MetricResult.from_precision_recall(precision, recall)


def _b_cubed(key: List[Set[Hashable]], response: List[Set[Hashable]]) -> float:
    """Mean over key mentions of ``|c_r ∩ c_k| / |c_k|``.  A key mention
    absent from ``response`` has no overlap."""
    mention_to_response = _mention_to_chain(response)
    total = 0.0
    mentions_nb = 0
    for chain in key:
        for mention in chain:
            mentions_nb += 1
            response_chain = mention_to_response.get(mention)
            if response_chain is None:
                continue
            total += len(chain & response[response_chain]) / len(chain)
    return safe_divide(total, mentions_nb)


def score_b_cubed(predicted: Chains, gold: Chains) -> MetricResult:
    """Mention-based B-cubed metric (Bagga and Baldwin, 1998)"""
    predicted_sets, gold_sets = _as_sets(predicted, "predicted"), _as_sets(gold, "gold")
    recall = _b_cubed(gold_sets, predicted_sets)
    precision = _b_cubed(predicted_sets, gold_sets)
    return MetricResult.from_precision_recall(precision, recall)


def phi4(x: Set[Hashable], y: Set[Hashable]) -> float:
    """Entity similarity used by the entity-based CEAF"""
    return safe_divide(2 * len(x & y), len(x) + len(y))


def ceaf_alignment(
    predicted: List[Set[Hashable]], gold: List[Set[Hashable]]
) -> Tuple[List[Tuple[int, int]], float]:
    """Find the one-to-one alignment between predicted and gold chains
    maximizing the total :func:`phi4` similarity, using the
    Kuhn-Munkres algorithm.

    :return: ``(alignment, total similarity)``, where ``alignment`` is
        a list of ``(predicted chain index, gold chain index)``.
    """
    if len(predicted) == 0 or len(gold) == 0:
        return [], 0.0
    similarities = np.zeros((len(predicted), len(gold)))
    for i, predicted_chain in enumerate(predicted):
        for j, gold_chain in enumerate(gold):
            similarities[i, j] = phi4(predicted_chain, gold_chain)
    rows, cols = linear_sum_assignment(similarities, maximize=True)
    alignment = [(int(i), int(j)) for i, j in zip(rows, cols)]
    return alignment, float(similarities[rows, cols].sum())


def score_ceaf(predicted: Chains, gold: Chains) -> MetricResult:
    """Entity-based CEAF metric (Luo, 2005)"""
    predicted_sets, gold_sets = _as_sets(predicted, "predicted"), _as_sets(gold, "gold")
    _, similarity = ceaf_alignment(predicted_sets, gold_sets)
    precision = safe_divide(similarity, len(predicted_sets))
    recall = safe_divide(similarity, len(gold_sets))
    return MetricResult.from_precision_recall(precision, recall)


def score_coref(predicted: Chains, gold: Chains) -> CorefScores:
    """Score predicted coreference chains against gold chains.

    >>> scores = score_coref([[(0, 1), (4, 5)]], [[(0, 1), (4, 5)]])
    >>> scores.conll_f1
    1.0

    :param predicted: predicted chains
    :param gold: gold chains

    :return: MUC, B-cubed and CEAF scores.  Degenerate ratios (zero
        denominators) are defined as ``0``.
    """
    return CorefScores(
        score_muc(predicted, gold),
        score_b_cubed(predicted, gold),
        score_ceaf(predicted, gold),
    )


def score_mentions(
    predicted_mentions: Iterable[Hashable], gold: Chains
) -> MetricResult:
    """Score mention detection against all mentions of gold chains.

    :param predicted_mentions: detected mentions, for example the
        ``mentions`` attribute of a :class:`.PipelineState`.
    :param gold: gold chains
    """
    predicted_set = set(predicted_mentions)
    gold_set = set().union(*_as_sets(gold, "gold"))
    common = len(predicted_set & gold_set)
    return MetricResult.from_precision_recall(
        safe_divide(common, len(predicted_set)), safe_divide(common, len(gold_set))
    )


def mean_coref_scores(scores: Sequence[CorefScores]) -> CorefScores:
    """Macro-average scores over documents.

    :return: the unweighted mean of each value.  If ``scores`` is
        empty, all values are ``0``.
    """

    def mean_metric(metric: Literal["muc", "b3", "ceaf"]) -> MetricResult:
        results = [getattr(s, metric) for s in scores]
        return MetricResult(
            safe_divide(sum(r.precision for r in results), len(results)),
            safe_divide(sum(r.recall for r in results), len(results)),
            safe_divide(sum(r.f1 for r in results), len(results)),
        )

    return CorefScores(mean_metric("muc"), mean_metric("b3"), mean_metric("ceaf"))


def _score_unless_cancelled(
    predicted: Chains, gold: Chains, cancel_event: Optional[threading.Event]
) -> Optional[CorefScores]:
    if not cancel_event is None and cancel_event.is_set():
        return None
    return score_coref(predicted, gold)


def score_coref_documents(
    documents: Iterable[Tuple[Chains, Chains]],
    n_workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
    progress_report: Optional[Literal["tqdm"]] = "tqdm",
) -> List[CorefScores]:
    """Score each document of a corpus independently.

    :param documents: ``(predicted chains, gold chains)`` pairs
    :param n_workers: number of threads used to score documents
    :param cancel_event: when set, documents that did not start being
        scored are skipped.  It is checked between documents.
    :param progress_report: if ``tqdm``, report progress using tqdm.

    :return: the scores of completed documents, in input order
    """
    check_strictly_positive("n_workers", n_workers)
    documents = list(documents)
    progress_reporter = get_progress_reporter(progress_report, "scoring documents")

    if n_workers == 1:
        scores = []
        with closing(progress_(progress_reporter, documents)) as documents_it:
            for predicted, gold in documents_it:
                doc_scores = _score_unless_cancelled(predicted, gold, cancel_event)
                if doc_scores is None:
                    break
                scores.append(doc_scores)
        return scores

    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        futures = [
            executor.submit(_score_unless_cancelled, predicted, gold, cancel_event)
            for predicted, gold in documents
        ]
        for _ in progress_(progress_reporter, as_completed(futures), len(futures)):
            pass
    return [s for s in (f.result() for f in futures) if not s is None]


def score_coref_corpus(
    documents: Iterable[Tuple[Chains, Chains]],
    n_workers: int = 1,
    cancel_event: Optional[threading.Event] = None,
    progress_report: Optional[Literal["tqdm"]] = "tqdm",
) -> CorefScores:
    """Score a corpus, as the mean of per-document scores (see
    :func:`score_coref_documents` for parameters)."""
    return mean_coref_scores(
        score_coref_documents(documents, n_workers, cancel_event, progress_report)
    )
