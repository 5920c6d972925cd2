from typing import Dict, Any, Set, Union, Literal, List
from bisect import bisect_right
import nltk
from nltk.tokenize.punkt import PunktTokenizer
from nltk.tokenize.destructive import NLTKWordTokenizer
from maillon.pipeline.core import PipelineStep, Token, Position


#: ISO 639-3 language codes supported by the punkt sentence splitter,
#: with their NLTK name
NLTK_ISO_STRING_TO_LANG = {
    "eng": "english",
    "ces": "czech",
    "dan": "danish",
    "nld": "dutch",
    "est": "estonian",
    "fin": "finnish",
    "fra": "french",
    "deu": "german",
    "ell": "greek",
    "ita": "italian",
    "nor": "norwegian",
    "pol": "polish",
    "por": "portuguese",
    "rus": "russian",
    "slv": "slovene",
    "spa": "spanish",
    "swe": "swedish",
    "tur": "turkish",
}


def make_line_starts(text: str) -> List[int]:
    """
    :return: the character offset of the start of each line of
        ``text``.  Use it with :func:`offset_to_pos`.
    """
    line_starts = [0]
    for char_i, char in enumerate(text):
        if char == "\n":
            line_starts.append(char_i + 1)
    return line_starts


def offset_to_pos(line_starts: List[int], offset: int) -> Position:
    """Convert a character offset into a 1-indexed line and a 0-indexed
    column."""
    line_i = bisect_right(line_starts, offset) - 1
    return (line_i + 1, offset - line_starts[line_i])


class NLTKTokenizer(PipelineStep):
    """A NLTK-based tokenizer, producing :class:`.Token` objects with
    their positions in the source text."""

    def __init__(self):
        nltk.download("punkt_tab", quiet=True)
        self.word_tokenizer = None
        self.sent_tokenizer = None
        super().__init__()

    def _pipeline_init_(self, lang: str, **kwargs):
        super()._pipeline_init_(lang, **kwargs)
        self.word_tokenizer = NLTKWordTokenizer()
        self.sent_tokenizer = PunktTokenizer(NLTK_ISO_STRING_TO_LANG[lang])

    def __call__(self, text: str, **kwargs) -> Dict[str, Any]:
        assert not self.word_tokenizer is None
        assert not self.sent_tokenizer is None

        line_starts = make_line_starts(text)

        tokens = []
        tokenized_sentences = []
        for sent_start, sent_end in self.sent_tokenizer.span_tokenize(text):
            sent = text[sent_start:sent_end]
            sent_tokens = []
            for start, end in self.word_tokenizer.span_tokenize(sent):
                start, end = start + sent_start, end + sent_start
                token = Token(
                    text[start:end],
                    self.lang,
                    offset_to_pos(line_starts, start),
                    offset_to_pos(line_starts, end),
                    start,
                    end,
                )
                sent_tokens.append(token)
            tokenized_sentences.append(sent_tokens)
            tokens += sent_tokens

        return {"tokens": tokens, "sentences": tokenized_sentences}

    def supported_langs(self) -> Union[Set[str], Literal["any"]]:
        return set(NLTK_ISO_STRING_TO_LANG.keys())

    def needs(self) -> Set[str]:
        return {"text"}

    def production(self) -> Set[str]:
        return {"tokens", "sentences"}
