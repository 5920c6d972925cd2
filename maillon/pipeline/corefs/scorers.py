from __future__ import annotations
from typing import Callable, Dict, List, Literal, Optional, Set, Union
import math
import torch
from maillon.errors import InvalidInputError, ScorerFailureError
from maillon.pipeline.core import Mention, Span, Token
from maillon.resources.pronouns import (
    is_a_pronoun,
    pronoun_gender,
    is_a_definite_determiner,
    supported_langs,
)
from maillon.utils import spans_indexs_map


class MentionScorer:
    """Give a score to a candidate mention span.

    .. note::

        The ``__call__`` method _must_ be overridden by derived
        classes.  It should be deterministic for a fixed model state.
    """

    def __call__(self, span: Span, tokens: List[Token]) -> float:
        """
        :param span: the candidate span
        :param tokens: all the tokens of the document
        """
        raise NotImplementedError


class AntecedentScorer:
    """Give a score to a ``(mention, antecedent)`` pair.

    .. note::

        The ``__call__`` method _must_ be overridden by derived
        classes.  It should be deterministic for a fixed model state.
    """

    def __call__(self, mention: Mention, antecedent: Mention) -> float:
        raise NotImplementedError


class FunctionMentionScorer(MentionScorer):
    """A mention scorer wrapping a plain ``Span -> float`` function"""

    def __init__(self, fn: Callable[[Span], float]) -> None:
        self.fn = fn

    def __call__(self, span: Span, tokens: List[Token]) -> float:
        return self.fn(span)


class FunctionAntecedentScorer(AntecedentScorer):
    """An antecedent scorer wrapping a plain ``(Mention, Mention) ->
    float`` function"""

    def __init__(self, fn: Callable[[Mention, Mention], float]) -> None:
        self.fn = fn

    def __call__(self, mention: Mention, antecedent: Mention) -> float:
        return self.fn(mention, antecedent)


def as_mention_scorer(
    scorer: Union[MentionScorer, Callable[[Span], float]]
) -> MentionScorer:
    if isinstance(scorer, MentionScorer):
        return scorer
    if callable(scorer):
        return FunctionMentionScorer(scorer)
    raise InvalidInputError(f"not a mention scorer: {scorer!r}")


def as_antecedent_scorer(
    scorer: Union[AntecedentScorer, Callable[[Mention, Mention], float]]
) -> AntecedentScorer:
    if isinstance(scorer, AntecedentScorer):
        return scorer
    if callable(scorer):
        return FunctionAntecedentScorer(scorer)
    raise InvalidInputError(f"not an antecedent scorer: {scorer!r}")


def _has_alnum(text: str) -> bool:
    return any(char.isalnum() for char in text)


class SpanLengthMentionScorer(MentionScorer):
    """A fallback mention scorer that mostly looks at span length,
    favoring spans of 2 or 3 tokens.  Spans starting or ending with a
    punctuation token get a score of 0.  Useful when no trained model
    is available."""

    def __call__(self, span: Span, tokens: List[Token]) -> float:
        first, last = tokens[span.start_idx], tokens[span.end_idx - 1]
        if not _has_alnum(first.text) or not _has_alnum(last.text):
            return 0.0
        length = len(span)
        if length == 1:
            return 0.6
        if length == 2:
            return 0.8
        if length == 3:
            return 0.9
        if length <= 6:
            return 0.7
        if length <= 10:
            return 0.5
        return 0.3


def _check_scores_shape(scores: torch.Tensor, expected: tuple, name: str):
    if tuple(scores.shape) != expected:
        raise InvalidInputError(
            f"{name} should have shape {expected} (got {tuple(scores.shape)})"
        )


class TensorMentionScorer(MentionScorer):
    """Look up mention scores precomputed by a neural model.

    ``scores[i]`` is the score of the i-th span of
    :func:`maillon.utils.spans_indexs`.
    """

    def __init__(
        self,
        scores: torch.Tensor,
        seq_len: int,
        max_span_length: int,
        apply_sigmoid: bool = False,
    ) -> None:
        """
        :param scores: a tensor of shape ``(spans_nb)``
        :param seq_len: number of tokens in the document
        :param max_span_length: maximum span length used to compute
            ``scores``
        :param apply_sigmoid: if ``True``, ``scores`` are considered
            to be logits and are passed through a sigmoid.
        """
        self.span_to_idx = spans_indexs_map(seq_len, max_span_length)
        _check_scores_shape(scores, (len(self.span_to_idx),), "scores")
        self.scores = torch.sigmoid(scores) if apply_sigmoid else scores
        self.scores = self.scores.detach().cpu()

    def __call__(self, span: Span, tokens: List[Token]) -> float:
        span_idx = self.span_to_idx[(span.start_idx, span.end_idx)]
        return float(self.scores[span_idx].item())


class TensorAntecedentScorer(AntecedentScorer):
    """Look up pairwise scores precomputed by a neural model.

    ``scores[i][j]`` is the score of the j-th span of
    :func:`maillon.utils.spans_indexs` being the antecedent of the
    i-th span.
    """

    def __init__(
        self,
        scores: torch.Tensor,
        seq_len: int,
        max_span_length: int,
        apply_sigmoid: bool = False,
    ) -> None:
        """
        :param scores: a tensor of shape ``(spans_nb, spans_nb)``
        :param seq_len: number of tokens in the document
        :param max_span_length: maximum span length used to compute
            ``scores``
        :param apply_sigmoid: if ``True``, ``scores`` are considered
            to be logits and are passed through a sigmoid.
        """
        self.span_to_idx = spans_indexs_map(seq_len, max_span_length)
        spans_nb = len(self.span_to_idx)
        _check_scores_shape(scores, (spans_nb, spans_nb), "scores")
        self.scores = torch.sigmoid(scores) if apply_sigmoid else scores
        self.scores = self.scores.detach().cpu()

    def __call__(self, mention: Mention, antecedent: Mention) -> float:
        mention_idx = self.span_to_idx[(mention.start_idx, mention.end_idx)]
        antecedent_idx = self.span_to_idx[(antecedent.start_idx, antecedent.end_idx)]
        return float(self.scores[mention_idx][antecedent_idx].item())


Number = Literal["singular", "plural"]


def _agreement(value: Optional[str], other: Optional[str]) -> float:
    if value is None or other is None:
        return 0.5
    return float(value == other)


class RulesAntecedentScorer(AntecedentScorer):
    """A feature-based antecedent scorer using simple rules.

    The score is the weighted sum of the following features, divided
    by the sum of weights so that it lies in ``[0, 1]``:

    - ``string_match``: both mentions have the same (lowercased) text
    - ``partial_match``: two non-pronoun mentions share a token that
      is not a determiner
    - ``gender_agreement``: ``1`` if genders agree, ``0`` if they
      disagree and ``0.5`` if a gender is unknown
    - ``number_agreement``: same, for grammatical number.  Proper
      names are singular.
    - ``pronoun_name``: a pronoun and a proper name
    - ``distance``: weighted by ``1 - distance / max_distance``, and
      ``0`` beyond ``max_distance`` tokens.

    Overlapping mentions (a mention and a span nested in it) always
    get a score of ``0``.
    """

    DEFAULT_WEIGHTS = {
        "distance": 0.4,
        "gender_agreement": 0.3,
        "number_agreement": 0.3,
        "string_match": 0.5,
        "partial_match": 0.2,
        "pronoun_name": 0.3,
    }

    def __init__(
        self,
        lang: str = "eng",
        weights: Optional[Dict[str, float]] = None,
        max_distance: int = 50,
    ) -> None:
        """
        :param lang: ISO 639-3 language code, used for pronouns
            lookup
        :param weights: features weights.  Missing features default
            to :attr:`DEFAULT_WEIGHTS`.
        :param max_distance: maximum distance between the antecedent
            end and the mention start, in tokens.
        """
        if not lang in supported_langs:
            raise InvalidInputError(
                f"unsupported lang: {lang} (supported langs: {supported_langs})"
            )
        self.lang = lang
        self.weights = {**RulesAntecedentScorer.DEFAULT_WEIGHTS, **(weights or {})}
        unknown_features = set(self.weights) - set(
            RulesAntecedentScorer.DEFAULT_WEIGHTS
        )
        if len(unknown_features) > 0:
            raise InvalidInputError(f"unknown features: {unknown_features}")
        if sum(self.weights.values()) <= 0:
            raise InvalidInputError("the sum of feature weights should be positive")
        if max_distance <= 0:
            raise InvalidInputError(
                f"max_distance should be strictly positive (got {max_distance})"
            )
        self.max_distance = max_distance

    def _is_pronoun(self, mention: Mention) -> bool:
        return len(mention.tokens) == 1 and is_a_pronoun(mention.tokens[0], self.lang)

    def _is_proper_name(self, mention: Mention) -> bool:
        first = mention.tokens[0]
        return (
            first[:1].isupper()
            and not is_a_pronoun(first, self.lang)
            and not is_a_definite_determiner(first, self.lang)
        )

    def _gender(self, mention: Mention) -> Optional[str]:
        if not self._is_pronoun(mention):
            return None
        gender = pronoun_gender(mention.tokens[0], self.lang)
        return None if gender == "plural" else gender

    def _number(self, mention: Mention) -> Optional[Number]:
        if self._is_pronoun(mention):
            if pronoun_gender(mention.tokens[0], self.lang) == "plural":
                return "plural"
            return "singular"
        if self._is_proper_name(mention):
            return "singular"
        # plural marker heuristic, only reliable for english
        if self.lang == "eng":
            return "plural" if mention.tokens[-1].lower().endswith("s") else "singular"
        return None

    def _content_tokens(self, mention: Mention) -> Set[str]:
        if self._is_pronoun(mention):
            return set()
        return {
            t.lower()
            for t in mention.tokens
            if _has_alnum(t) and not is_a_definite_determiner(t, self.lang)
        }

    def features(self, mention: Mention, antecedent: Mention) -> Dict[str, float]:
        """
        :return: the value of each feature, between 0 and 1
        """
        text = mention.text().lower()
        antecedent_text = antecedent.text().lower()
        shared_tokens = self._content_tokens(mention) & self._content_tokens(antecedent)

        gender, antecedent_gender = self._gender(mention), self._gender(antecedent)
        number, antecedent_number = self._number(mention), self._number(antecedent)

        distance = max(mention.start_idx - antecedent.end_idx, 0)
        if distance <= self.max_distance:
            distance_feature = 1.0 - distance / self.max_distance
        else:
            distance_feature = 0.0

        pronoun_name = (
            self._is_pronoun(mention) and self._is_proper_name(antecedent)
        ) or (self._is_proper_name(mention) and self._is_pronoun(antecedent))

        return {
            "distance": distance_feature,
            "gender_agreement": _agreement(gender, antecedent_gender),
            "number_agreement": _agreement(number, antecedent_number),
            "string_match": float(text == antecedent_text),
            "partial_match": float(len(shared_tokens) > 0),
            "pronoun_name": float(pronoun_name),
        }

    def __call__(self, mention: Mention, antecedent: Mention) -> float:
        if mention.span.overlaps(antecedent.span):
            return 0.0
        features = self.features(mention, antecedent)
        score = sum(self.weights[name] * value for name, value in features.items())
        return score / sum(self.weights.values())


def call_scorer(scorer: Callable[..., float], *args) -> float:
    """Call a scorer, making sure it returns a finite score.

    :raise ScorerFailureError: if the scorer raises an exception or
        returns a non-finite value.
    """
    try:
        score = float(scorer(*args))
    except Exception as e:
        raise ScorerFailureError(
            f"{scorer.__class__.__name__} failed on {args[0]}: {e!r}", scorer
        ) from e
    if not math.isfinite(score):
        raise ScorerFailureError(
            f"{scorer.__class__.__name__} returned a non-finite score ({score}) on {args[0]}",
            scorer,
        )
    return score
