from typing import Any, Dict, List, Sequence, Set, Union
from maillon.pipeline.core import PipelineStep, Span, Token, check_tokens
from maillon.utils import spans_indexs, check_strictly_positive


def enumerate_spans(
    tokens: Sequence[Union[Token, str]], max_span_length: int = 10
) -> List[Span]:
    """Enumerate all candidate mention spans of a document.

    :param tokens: document tokens (validated using
        :func:`.check_tokens`)
    :param max_span_length: maximum length of a span, in tokens

    :return: every span ``[i, i + L)`` with ``1 <= L <=
        max_span_length``, ordered by start index then length.  An
        empty document yields no spans.
    """
    check_strictly_positive("max_span_length", max_span_length)
    tokens = check_tokens(tokens)
    return [
        Span.from_tokens(tokens, start, end)
        for start, end in spans_indexs(len(tokens), max_span_length)
    ]


class SpanEnumerator(PipelineStep):
    """Generate all admissible mention spans"""

    def __init__(self, max_span_length: int = 10) -> None:
        """
        :param max_span_length: maximum length of a span, in tokens
        """
        check_strictly_positive("max_span_length", max_span_length)
        self.max_span_length = max_span_length
        super().__init__()

    def __call__(self, tokens: List[Token], **kwargs) -> Dict[str, Any]:
        tokens = check_tokens(tokens, getattr(self, "lang", "eng"))
        return {"spans": enumerate_spans(tokens, self.max_span_length)}

    def needs(self) -> Set[str]:
        return {"tokens"}

    def production(self) -> Set[str]:
        return {"spans"}
