from hypothesis import given
import hypothesis.strategies as st
from maillon.pipeline.core import AntecedentLink, Mention, Span


@given(
    start_1=st.integers(0, 20),
    length_1=st.integers(1, 10),
    start_2=st.integers(0, 20),
    length_2=st.integers(1, 10),
)
def test_crossing_spans_overlap_without_nesting(
    start_1: int, length_1: int, start_2: int, length_2: int
):
    span_1 = Span(start_1, start_1 + length_1)
    span_2 = Span(start_2, start_2 + length_2)
    assert span_1.crosses(span_2) == span_2.crosses(span_1)
    if span_1.contains(span_2) or not span_1.overlaps(span_2):
        assert not span_1.crosses(span_2)


def test_span_equality_ignores_characters():
    assert Span(0, 2, 0, 9) == Span(0, 2)
    assert len({Span(0, 2, 0, 9), Span(0, 2)}) == 1


def test_mention_equality_uses_token_range():
    assert Mention(["John"], 0, 1, score=0.2) == Mention(["John"], 0, 1, score=0.9)
    assert Mention(["John"], 0, 1) != Mention(["John"], 3, 4)
    assert Mention(["the", "princess"], 3, 5).span == Span(3, 5)


def test_shifted_mention_is_a_new_mention():
    mention = Mention(["Zarth", "Arn"], 4, 6, score=0.8)
    shifted = mention.shifted(10)
    assert (shifted.start_idx, shifted.end_idx) == (14, 16)
    assert shifted.tokens == ["Zarth", "Arn"]
    assert shifted.score == 0.8
    assert (mention.start_idx, mention.end_idx) == (4, 6)


def test_antecedent_link():
    assert AntecedentLink(2, 0, 0.9).has_antecedent()
    assert not AntecedentLink(0, None, 0.5).has_antecedent()
