from maillon.pipeline.core import (
    Token,
    Span,
    Mention,
    AntecedentLink,
    PipelineStep,
    PipelineState,
    Pipeline,
    check_tokens,
    tokens_from_words,
)
from maillon.pipeline.progress import ProgressReporter
