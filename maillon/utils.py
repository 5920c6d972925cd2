from typing import Dict, List, Tuple
from maillon.errors import InvalidInputError


def spans_indexs(seq_len: int, max_len: int) -> List[Tuple[int, int]]:
    """Enumerate all spans of a sequence up to a maximum length

    .. note::

        spans are half-open ``(start, end)`` tuples, ordered by start
        index, then by length.

    :param seq_len: length of the sequence
    :param max_len: maximum length of a span

    :return: a list of ``(start, end)`` tuples.  There are
        ``sum(seq_len - l + 1 for l in range(1, max_len + 1))`` of
        them when ``seq_len >= max_len``.
    """
    check_strictly_positive("max_len", max_len)
    indexs = []
    for start in range(seq_len):
        for length in range(1, min(max_len, seq_len - start) + 1):
            indexs.append((start, start + length))
    return indexs


def spans_indexs_map(seq_len: int, max_len: int) -> Dict[Tuple[int, int], int]:
    """
    :return: a dict mapping each span of :func:`spans_indexs` to its
        position in that enumeration.
    """
    return {span: i for i, span in enumerate(spans_indexs(seq_len, max_len))}


def check_strictly_positive(name: str, value: int):
    """
    :raise InvalidInputError: if ``value`` is not a strictly positive
        integer.
    """
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(
            f"{name} should be a strictly positive integer (got {value!r})"
        )
