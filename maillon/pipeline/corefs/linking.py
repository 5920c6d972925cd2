from typing import Any, Callable, Dict, List, Optional, Sequence, Set, Union
from maillon.errors import InvalidInputError
from maillon.pipeline.core import AntecedentLink, Mention, PipelineStep
from maillon.pipeline.progress import (
    NoopProgressReporter,
    ProgressReporter,
    progress_,
)
from maillon.pipeline.corefs.scorers import (
    AntecedentScorer,
    RulesAntecedentScorer,
    as_antecedent_scorer,
    call_scorer,
)


def link_antecedents(
    mentions: Sequence[Mention],
    antecedent_scorer: Union[AntecedentScorer, Callable[[Mention, Mention], float]],
    min_coref_score: float = 0.5,
    max_antecedent_distance: Optional[int] = None,
    progress_reporter: Optional[ProgressReporter] = None,
) -> List[AntecedentLink]:
    """Select the best antecedent of each mention.

    Mentions are processed from left to right.  Each mention can only
    be linked to a preceding mention.  The best candidate is the
    highest scoring one (ties go to the nearest candidate), and it is
    kept only if its score is strictly greater than
    ``min_coref_score``.

    :param mentions: mentions, ordered by document position
    :param antecedent_scorer:
    :param min_coref_score: decision threshold
    :param max_antecedent_distance: if given, candidates ending more
        than this number of tokens before a mention are not
        considered.
    :param progress_reporter: reports progress over mentions

    :return: a list of :class:`.AntecedentLink`, one per mention

    :raise ScorerFailureError: if ``antecedent_scorer`` fails on any
        pair.
    """
    antecedent_scorer = as_antecedent_scorer(antecedent_scorer)

    links = []
    progress_reporter = progress_reporter or NoopProgressReporter()
    for j, mention in progress_(progress_reporter, enumerate(mentions), len(mentions)):
        best_i, best_score = None, None
        # nearest candidates first: a later candidate needs a strictly
        # better score to win
        for i in range(j - 1, -1, -1):
            antecedent = mentions[i]
            if (
                not max_antecedent_distance is None
                and mention.start_idx - antecedent.end_idx > max_antecedent_distance
            ):
                continue
            score = call_scorer(antecedent_scorer, mention, antecedent)
            if best_score is None or score > best_score:
                best_i, best_score = i, score

        if not best_score is None and best_score > min_coref_score:
            links.append(AntecedentLink(j, best_i, best_score))
        else:
            links.append(
                AntecedentLink(j, None, min_coref_score if best_score is None else best_score)
            )

    return links


class AntecedentLinker(PipelineStep):
    """Link each mention to its best preceding mention, if any"""

    def __init__(
        self,
        antecedent_scorer: Union[
            AntecedentScorer, Callable[[Mention, Mention], float], None
        ] = None,
        min_coref_score: float = 0.5,
        max_antecedent_distance: Optional[int] = None,
    ) -> None:
        """
        :param antecedent_scorer: either an :class:`.AntecedentScorer`
            or a function giving a score to a ``(mention,
            antecedent)`` pair.  Defaults to a
            :class:`.RulesAntecedentScorer` for the pipeline language.
        :param min_coref_score: a mention is linked to its best
            antecedent only if its score is strictly greater than this
            threshold.
        :param max_antecedent_distance: maximum distance between a
            mention and its antecedent, in tokens.  ``None`` means no
            limit.
        """
        if not max_antecedent_distance is None and max_antecedent_distance < 0:
            raise InvalidInputError(
                f"max_antecedent_distance should be positive (got {max_antecedent_distance})"
            )
        self.antecedent_scorer = (
            None
            if antecedent_scorer is None
            else as_antecedent_scorer(antecedent_scorer)
        )
        self.min_coref_score = min_coref_score
        self.max_antecedent_distance = max_antecedent_distance
        super().__init__()

    def _pipeline_init_(self, lang: str, **kwargs):
        if self.antecedent_scorer is None:
            self.antecedent_scorer = RulesAntecedentScorer(lang)
        super()._pipeline_init_(lang, **kwargs)

    def __call__(self, mentions: List[Mention], **kwargs) -> Dict[str, Any]:
        if self.antecedent_scorer is None:
            self.antecedent_scorer = RulesAntecedentScorer()
        links = link_antecedents(
            mentions,
            self.antecedent_scorer,
            min_coref_score=self.min_coref_score,
            max_antecedent_distance=self.max_antecedent_distance,
            progress_reporter=getattr(self, "progress_reporter", None),
        )
        return {"antecedent_links": links}

    def needs(self) -> Set[str]:
        return {"mentions"}

    def production(self) -> Set[str]:
        return {"antecedent_links"}
