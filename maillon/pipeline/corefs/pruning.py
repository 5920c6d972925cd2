from typing import Any, Callable, Dict, List, Sequence, Set, Tuple, Union
from maillon.errors import InvalidInputError
from maillon.pipeline.core import Mention, PipelineStep, Span, Token, check_tokens
from maillon.pipeline.corefs.scorers import (
    MentionScorer,
    SpanLengthMentionScorer,
    as_mention_scorer,
    call_scorer,
)
from maillon.utils import check_strictly_positive


def _score_order(scored_span: Tuple[Span, float]) -> Tuple[float, int, int]:
    span, score = scored_span
    # highest score first, then earlier start, then shorter length
    return (-score, span.start_idx, len(span))


def prune_spans(
    spans: Sequence[Span],
    tokens: Sequence[Union[Token, str]],
    mention_scorer: Union[MentionScorer, Callable[[Span], float]],
    top_k_spans: int = 50,
    min_span_score: float = 0.5,
) -> List[Mention]:
    """Score candidate spans and keep a bounded set of non-crossing
    mentions.

    1. every span is scored using ``mention_scorer``
    2. spans scoring below ``min_span_score`` are discarded
    3. spans are considered by decreasing score (ties: earlier start,
       then shorter length).  A span crossing an already retained span
       is discarded.  Nested spans do not conflict.
    4. at most ``top_k_spans`` spans are retained

    :param spans: candidate spans, usually from :class:`.SpanEnumerator`
    :param tokens: document tokens
    :param mention_scorer:
    :param top_k_spans: maximum number of retained mentions
    :param min_span_score: minimum score of a mention

    :return: retained mentions, ordered by document position.  No two
        retained mentions cross.

    :raise InvalidInputError: if a span is empty or does not fit in
        ``tokens``.
    :raise ScorerFailureError: if ``mention_scorer`` fails on any span.
    """
    check_strictly_positive("top_k_spans", top_k_spans)
    mention_scorer = as_mention_scorer(mention_scorer)
    tokens = check_tokens(tokens)
    for span in spans:
        if span.start_idx < 0 or span.end_idx > len(tokens) or len(span) <= 0:
            raise InvalidInputError(
                f"span {span} does not fit in a document of {len(tokens)} tokens"
            )

    scored_spans = [(span, call_scorer(mention_scorer, span, tokens)) for span in spans]
    scored_spans = [(span, score) for span, score in scored_spans if score >= min_span_score]
    scored_spans = sorted(scored_spans, key=_score_order)

    kept: List[Tuple[Span, float]] = []
    for span, score in scored_spans:
        if len(kept) >= top_k_spans:
            break
        if any(span.crosses(kept_span) for kept_span, _ in kept):
            continue
        kept.append((span, score))

    kept = sorted(kept, key=lambda ss: (ss[0].start_idx, ss[0].end_idx))
    return [
        Mention(
            [t.text for t in tokens[span.start_idx : span.end_idx]],
            span.start_idx,
            span.end_idx,
            score,
        )
        for span, score in kept
    ]


class SpanPruner(PipelineStep):
    """Score candidate spans and keep the best non-crossing ones"""

    def __init__(
        self,
        mention_scorer: Union[MentionScorer, Callable[[Span], float], None] = None,
        top_k_spans: int = 50,
        min_span_score: float = 0.5,
    ) -> None:
        """
        :param mention_scorer: either a :class:`.MentionScorer` or a
            function giving a score to a :class:`.Span`.  Defaults to
            :class:`.SpanLengthMentionScorer`.
        :param top_k_spans: maximum number of retained mentions
        :param min_span_score: minimum score of a mention
        """
        check_strictly_positive("top_k_spans", top_k_spans)
        self.mention_scorer = as_mention_scorer(
            mention_scorer or SpanLengthMentionScorer()
        )
        self.top_k_spans = top_k_spans
        self.min_span_score = min_span_score
        super().__init__()

    def __call__(
        self, tokens: List[Token], spans: List[Span], **kwargs
    ) -> Dict[str, Any]:
        tokens = check_tokens(tokens, getattr(self, "lang", "eng"))
        mentions = prune_spans(
            spans,
            tokens,
            self.mention_scorer,
            top_k_spans=self.top_k_spans,
            min_span_score=self.min_span_score,
        )
        return {"mentions": mentions}

    def needs(self) -> Set[str]:
        return {"tokens", "spans"}

    def production(self) -> Set[str]:
        return {"mentions"}
