from typing import Set, Tuple
import pytest
from maillon.errors import InvalidInputError, ScorerFailureError
from maillon.pipeline.core import Mention, AntecedentLink
from maillon.pipeline.corefs import AntecedentLinker, link_antecedents


def _mentions(*words: str):
    return [Mention([word], i * 2, i * 2 + 1) for i, word in enumerate(words)]


def _pairs_scorer(coreferent_pairs: Set[Tuple[str, str]], score: float = 1.0):
    def scorer(mention: Mention, antecedent: Mention) -> float:
        if (mention.tokens[0], antecedent.tokens[0]) in coreferent_pairs:
            return score
        return 0.0

    return scorer


def test_no_mentions_yields_no_links():
    assert link_antecedents([], _pairs_scorer(set())) == []


def test_first_mention_has_no_antecedent():
    links = link_antecedents(_mentions("John"), lambda m, a: 1.0)
    assert links == [AntecedentLink(0, None, 0.5)]
    assert not links[0].has_antecedent()


def test_best_antecedent_is_selected():
    mentions = _mentions("John", "Mary", "he")
    links = link_antecedents(mentions, _pairs_scorer({("he", "John")}))
    assert links[2] == AntecedentLink(2, 0, 1.0)
    assert links[1].antecedent_idx is None


def test_ties_go_to_the_nearest_antecedent():
    mentions = _mentions("John", "John", "John")
    links = link_antecedents(mentions, lambda m, a: 0.8)
    assert [l.antecedent_idx for l in links] == [None, 0, 1]


def test_threshold_is_strict():
    mentions = _mentions("John", "he")
    links = link_antecedents(mentions, lambda m, a: 0.5, min_coref_score=0.5)
    assert links[1].antecedent_idx is None
    assert links[1].score == 0.5
    links = link_antecedents(mentions, lambda m, a: 0.51, min_coref_score=0.5)
    assert links[1].antecedent_idx == 0


def test_max_antecedent_distance():
    mentions = [Mention(["John"], 0, 1), Mention(["he"], 10, 11)]
    links = link_antecedents(mentions, lambda m, a: 1.0, max_antecedent_distance=5)
    assert links[1].antecedent_idx is None
    links = link_antecedents(mentions, lambda m, a: 1.0, max_antecedent_distance=9)
    assert links[1].antecedent_idx == 0


def test_antecedents_always_precede_mentions():
    mentions = _mentions("a", "b", "c", "d", "e")
    links = link_antecedents(mentions, lambda m, a: (m.start_idx + a.start_idx) / 20)
    for link in links:
        if link.has_antecedent():
            assert link.antecedent_idx < link.mention_idx


def test_failing_scorer_raises_scorer_failure():
    def failing_scorer(mention: Mention, antecedent: Mention) -> float:
        raise KeyError(mention)

    with pytest.raises(ScorerFailureError):
        link_antecedents(_mentions("John", "he"), failing_scorer)


def test_negative_max_antecedent_distance_is_rejected():
    with pytest.raises(InvalidInputError):
        AntecedentLinker(max_antecedent_distance=-1)


def test_linker_step_uses_rules_scorer_by_default():
    linker = AntecedentLinker()
    mentions = [Mention(["the", "princess"], 0, 2), Mention(["the", "princess"], 5, 7)]
    links = linker(mentions=mentions)["antecedent_links"]
    assert links[1].antecedent_idx == 0
