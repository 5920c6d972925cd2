from maillon.pipeline.corefs.spans import SpanEnumerator, enumerate_spans
from maillon.pipeline.corefs.scorers import (
    MentionScorer,
    AntecedentScorer,
    FunctionMentionScorer,
    FunctionAntecedentScorer,
    SpanLengthMentionScorer,
    RulesAntecedentScorer,
    TensorMentionScorer,
    TensorAntecedentScorer,
)
from maillon.pipeline.corefs.pruning import SpanPruner, prune_spans
from maillon.pipeline.corefs.linking import AntecedentLinker, link_antecedents
from maillon.pipeline.corefs.clustering import (
    ClusterBuilder,
    DisjointSet,
    build_chains,
    chain_representative,
)
from maillon.pipeline.corefs.metrics import (
    MetricResult,
    CorefScores,
    score_muc,
    score_b_cubed,
    score_ceaf,
    score_coref,
    score_mentions,
    score_coref_documents,
    score_coref_corpus,
    mean_coref_scores,
)
