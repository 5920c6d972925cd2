from typing import Dict, Optional, Tuple
from maillon.errors import InvalidInputError
from maillon.pipeline.core import Pipeline
from maillon.pipeline.corefs.scorers import AntecedentScorer, MentionScorer


def coreference_pipeline(
    tokenizer_kwargs: Optional[dict] = None,
    span_enumerator_kwargs: Optional[dict] = None,
    span_pruner_kwargs: Optional[dict] = None,
    antecedent_linker_kwargs: Optional[dict] = None,
    cluster_builder_kwargs: Optional[dict] = None,
    scorers: Optional[Dict[str, Tuple[MentionScorer, AntecedentScorer]]] = None,
    tokenize: bool = True,
    **pipeline_kwargs,
) -> Pipeline:
    """Return a preconfigured coreference resolution pipeline.

    .. code-block:: python

        pipeline = coreference_pipeline(progress_report=None)
        state = pipeline("John saw Mary. He waved at her.")
        print(state.corefs)

    :param tokenizer_kwargs: kwargs for :class:`.NLTKTokenizer`
    :param span_enumerator_kwargs: kwargs for :class:`.SpanEnumerator`
    :param span_pruner_kwargs: kwargs for :class:`.SpanPruner`
    :param antecedent_linker_kwargs: kwargs for
        :class:`.AntecedentLinker`
    :param cluster_builder_kwargs: kwargs for :class:`.ClusterBuilder`
    :param scorers: a dict mapping ISO 639-3 language codes to
        ``(mention scorer, antecedent scorer)`` tuples.  Scorers for
        the pipeline language are used, unless scorers are explicitly
        given in ``span_pruner_kwargs`` or
        ``antecedent_linker_kwargs``.
    :param tokenize: if ``False``, the pipeline does not include a
        tokenizer, and must be called with a ``tokens`` argument.
    :param pipeline_kwargs: kwargs for :class:`.Pipeline`
    """
    from maillon.pipeline.tokenization import NLTKTokenizer
    from maillon.pipeline.corefs import (
        SpanEnumerator,
        SpanPruner,
        AntecedentLinker,
        ClusterBuilder,
    )

    tokenizer_kwargs = tokenizer_kwargs or {}
    span_enumerator_kwargs = span_enumerator_kwargs or {}
    span_pruner_kwargs = span_pruner_kwargs or {}
    antecedent_linker_kwargs = antecedent_linker_kwargs or {}
    cluster_builder_kwargs = cluster_builder_kwargs or {}

    if not scorers is None:
        lang = pipeline_kwargs.get("lang", "eng")
        if not lang in scorers:
            raise InvalidInputError(
                f"no scorers for lang {lang} (available: {set(scorers.keys())})"
            )
        mention_scorer, antecedent_scorer = scorers[lang]
        span_pruner_kwargs.setdefault("mention_scorer", mention_scorer)
        antecedent_linker_kwargs.setdefault("antecedent_scorer", antecedent_scorer)

    steps = [
        SpanEnumerator(**span_enumerator_kwargs),
        SpanPruner(**span_pruner_kwargs),
        AntecedentLinker(**antecedent_linker_kwargs),
        ClusterBuilder(**cluster_builder_kwargs),
    ]
    if tokenize:
        steps = [NLTKTokenizer(**tokenizer_kwargs)] + steps

    return Pipeline(steps, **pipeline_kwargs)
