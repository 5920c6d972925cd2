from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import (
    Any,
    Dict,
    Literal,
    Sequence,
    Tuple,
    Set,
    List,
    Optional,
    Union,
    Type,
)
import sys
from more_itertools import windowed
from maillon.errors import InvalidInputError
from maillon.pipeline.progress import ProgressReporter, get_progress_reporter, progress_


#: a ``(line, column)`` position in the source text
Position = Tuple[int, int]


@dataclass(frozen=True)
class Token:
    text: str
    #: ISO 639-3 language code
    lang: str
    start_pos: Position
    end_pos: Position
    #: offset of the first character of the token in the source text
    start_offset: int
    #: offset of the character following the token in the source text
    end_offset: int


def tokens_from_words(words: Sequence[str], lang: str = "eng") -> List[Token]:
    """Build tokens from plain words, assuming they were separated by
    a single space on a single line.

    :param words: token texts
    :param lang: ISO 639-3 language code
    """
    tokens = []
    offset = 0
    for word in words:
        end = offset + len(word)
        tokens.append(Token(word, lang, (1, offset), (1, end), offset, end))
        offset = end + 1
    return tokens


def check_tokens(
    tokens: Sequence[Union[Token, str]], lang: str = "eng"
) -> List[Token]:
    """Validate a token sequence.

    Plain strings are accepted and converted using
    :func:`tokens_from_words`.

    :param tokens: either a list of :class:`Token` or a list of
        ``str``.
    :param lang: ISO 639-3 language code, used when converting
        strings.

    :return: the validated list of :class:`Token`

    :raise InvalidInputError: if a token has an empty text, or if
        token spans overlap or are not monotonically increasing.
    """
    if len(tokens) == 0:
        return []

    if all(isinstance(t, str) for t in tokens):
        tokens = tokens_from_words(tokens, lang)  # type: ignore
    elif not all(isinstance(t, Token) for t in tokens):
        raise InvalidInputError(
            "tokens should be either all str or all Token instances"
        )

    for token_i, token in enumerate(tokens):
        assert isinstance(token, Token)
        if token.text == "":
            raise InvalidInputError(f"token {token_i} has an empty text")
        if token.start_offset < 0 or token.end_offset <= token.start_offset:
            raise InvalidInputError(
                f"token {token_i} ({token.text!r}) has an invalid character span: "
                + f"({token.start_offset}, {token.end_offset})"
            )
        if token.end_pos < token.start_pos:
            raise InvalidInputError(
                f"token {token_i} ({token.text!r}) ends before it starts: "
                + f"{token.start_pos} > {token.end_pos}"
            )

    for token_i, (t1, t2) in enumerate(windowed(tokens, 2)):
        if t2 is None:
            break
        assert isinstance(t1, Token) and isinstance(t2, Token)
        if t2.start_offset < t1.end_offset or t2.start_pos < t1.end_pos:
            raise InvalidInputError(
                f"tokens {token_i} ({t1.text!r}) and {token_i + 1} ({t2.text!r}) "
                + "overlap or are not monotonically increasing"
            )

    return list(tokens)  # type: ignore


@dataclass(frozen=True)
class Span:
    """A half-open range ``[start_idx, end_idx)`` of tokens"""

    start_idx: int
    end_idx: int
    #: character span, derived from the tokens of the document
    start_char: Optional[int] = field(default=None, compare=False)
    end_char: Optional[int] = field(default=None, compare=False)

    @staticmethod
    def from_tokens(tokens: Sequence[Token], start_idx: int, end_idx: int) -> Span:
        return Span(
            start_idx,
            end_idx,
            tokens[start_idx].start_offset,
            tokens[end_idx - 1].end_offset,
        )

    def __len__(self) -> int:
        return self.end_idx - self.start_idx

    def contains(self, other: Span) -> bool:
        return self.start_idx <= other.start_idx and other.end_idx <= self.end_idx

    def overlaps(self, other: Span) -> bool:
        return self.start_idx < other.end_idx and other.start_idx < self.end_idx

    def crosses(self, other: Span) -> bool:
        """Two spans cross when they overlap but none contains the other."""
        return (
            self.overlaps(other)
            and not self.contains(other)
            and not other.contains(self)
        )


@dataclass(frozen=True, eq=False)
class Mention:
    tokens: List[str]
    start_idx: int
    #: exclusive end index
    end_idx: int
    #: mention score, as given by a mention scorer
    score: float = 1.0
    #: opaque payload
    features: Optional[Any] = None

    @property
    def span(self) -> Span:
        return Span(self.start_idx, self.end_idx)

    def shifted(self, shift: int) -> Mention:
        return replace(
            self, start_idx=self.start_idx + shift, end_idx=self.end_idx + shift
        )

    def text(self) -> str:
        return " ".join(self.tokens)

    def __len__(self) -> int:
        return self.end_idx - self.start_idx

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mention):
            return NotImplemented
        return self.start_idx == other.start_idx and self.end_idx == other.end_idx

    def __hash__(self) -> int:
        return hash((self.start_idx, self.end_idx))

    def __repr__(self) -> str:
        return f"<{self.text()!r}, [{self.start_idx}, {self.end_idx})>"


@dataclass(frozen=True)
class AntecedentLink:
    #: index of the mention in the document's mention list
    mention_idx: int
    #: index of the antecedent in the mention list, or ``None`` when
    #: the mention has no antecedent
    antecedent_idx: Optional[int]
    score: float

    def has_antecedent(self) -> bool:
        return not self.antecedent_idx is None


class PipelineStep:
    """An abstract pipeline step

    .. note::

        The ``__call__``, ``needs`` and ``production`` methods _must_ be
        overridden by derived classes.

    .. note::

        The ``optional_needs`` and ``supported_langs`` methods can be
        overridden by derived classes.
    """

    def __init__(self):
        """Initialize the :class:`PipelineStep` with a given configuration."""
        pass

    def _pipeline_init_(
        self, lang: str, progress_reporter: ProgressReporter, **kwargs
    ) -> Optional[Dict[Pipeline.PipelineParameter, Any]]:
        """Set the step configuration that is common to the whole
        pipeline.

        :param lang: the lang of the whole pipeline
        :param progress_reporter:
        :param kwargs: additional pipeline parameters.

        :return: a step can return a dictionary of pipeline params if
                 it wish to modify some of these.
        """
        supported_langs = self.supported_langs()
        if not supported_langs == "any" and not lang in supported_langs:
            raise ValueError(
                f"[error] {self.__class__} does not support lang {lang} (supported language: {supported_langs})."
            )
        self.lang = lang

        self.progress_reporter = progress_reporter

    def __call__(self, **kwargs) -> Dict[str, Any]:
        raise NotImplementedError()

    def supported_langs(self) -> Union[Set[str], Literal["any"]]:
        """
        :return: a list of supported languages, as ISO 639-3 codes, or
                 the string ``'any'``
        """
        return "any"

    def needs(self) -> Set[str]:
        """
        :return: a `set` of state attributes needed by this
            :class:`PipelineStep`. This method must be overriden
            by derived classes.
        """
        raise NotImplementedError()

    def optional_needs(self) -> Set[str]:
        """
        :return: a `set` of state attributes optionally neeeded by this
            :class:`PipelineStep`. This method can be overriden by derived
            classes.
        """
        return set()

    def production(self) -> Set[str]:
        """
        :return: a `set` of state attributes produced by this
            :class:`PipelineStep`. This method must be overriden
            by derived classes.
        """
        raise NotImplementedError()


@dataclass
class PipelineState:
    """The state of a pipeline, annotated in a :class:`Pipeline` lifetime"""

    #: input text
    text: Optional[str]

    #: text splitted in tokens
    tokens: Optional[List[Token]] = None
    #: text splitted into sentences, each sentence being a list of
    #: tokens
    sentences: Optional[List[List[Token]]] = None

    #: candidate mention spans
    spans: Optional[List[Span]] = None

    #: mentions retained after pruning, in document order
    mentions: Optional[List[Mention]] = None

    #: one antecedent link per mention
    antecedent_links: Optional[List[AntecedentLink]] = None

    #: coreference chains
    corefs: Optional[List[List[Mention]]] = None


class Pipeline:
    """A flexible NLP pipeline"""

    #: all the possible parameters of the whole pipeline, that are
    #: shared between steps
    PipelineParameter = Literal["lang", "progress_reporter"]

    def __init__(
        self,
        steps: List[PipelineStep],
        lang: str = "eng",
        progress_report: Optional[Literal["tqdm"]] = "tqdm",
        warn: bool = True,
    ) -> None:
        """
        :param steps: a ``tuple`` of :class:``PipelineStep``, that
            will be executed in order
        :param progress_report: if ``tqdm``, report the pipeline
            progress using tqdm.  if ``None``, does not report
            progress.
        :param lang: ISO 639-3 language code
        :param warn:
        """
        self.steps = steps

        self.progress_report: Optional[Literal["tqdm"]] = progress_report
        self.progress_reporter = get_progress_reporter(progress_report)

        self.lang = lang
        self.warn = warn

    def _pipeline_init_steps_(self, ignored_steps: Optional[List[str]] = None):
        """Initialise steps with global pipeline parameters.

        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.
        """
        steps_progress_reporter = self.progress_reporter.get_subreporter()
        steps = self._non_ignored_steps(ignored_steps)
        pipeline_params: Dict[str, Any] = {"progress_reporter": steps_progress_reporter}
        for step in steps:
            step_additional_params = step._pipeline_init_(self.lang, **pipeline_params)
            if not step_additional_params is None:
                for key, value in step_additional_params.items():
                    setattr(self, key, value)
                    pipeline_params[key] = value

    def _non_ignored_steps(
        self, ignored_steps: Optional[List[str]]
    ) -> List[PipelineStep]:
        """Get steps that are not ignored.

        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` wont be returned.
        """
        if ignored_steps is None:
            return self.steps
        return [
            s
            for s in self.steps
            if not any([p in s.production() for p in ignored_steps])
        ]

    def check_valid(
        self, *args, ignored_steps: Optional[List[str]] = None
    ) -> Tuple[bool, List[str]]:
        """Check that the current pipeline can be run, which is
        possible if all steps needs are satisfied

        :param args: list of additional attributes to add to the
            starting pipeline state.
        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.

        :return: a tuple : ``(True, [warnings])`` if the pipeline is
                 valid, ``(False, [errors])`` otherwise
        """

        pipeline_state = set(args).union({"text"})
        warnings = []

        steps = self._non_ignored_steps(ignored_steps)

        for i, step in enumerate(steps):
            if not step.needs().issubset(pipeline_state):
                return (
                    False,
                    [
                        f"step {i + 1} ({step.__class__.__name__}) has unsatisfied needs. "
                        + f"needs: {step.needs()}. "
                        + f"available: {pipeline_state}. "
                        + f"missing: {step.needs() - pipeline_state}."
                    ],
                )

            if not step.optional_needs().issubset(pipeline_state):
                warnings.append(
                    f"step {i + 1} ({step.__class__.__name__}) has unsatisfied optional needs. "
                    + f"needs: {step.optional_needs()}. "
                    + f"available: {pipeline_state}. "
                    + f"missing: {step.optional_needs() - pipeline_state}."
                )

            pipeline_state = pipeline_state.union(step.production())

        return (True, warnings)

    def __call__(
        self,
        text: Optional[str] = None,
        ignored_steps: Optional[List[str]] = None,
        **kwargs,
    ) -> PipelineState:
        """Run the pipeline sequentially.

        .. note::

            If a step fails (for example with a
            :class:`.ScorerFailureError`), the error is propagated and
            no partial state is returned.

        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.

        :return: the output of the last step of the pipeline
        """
        is_valid, warnings_or_errors = self.check_valid(
            *kwargs.keys(), ignored_steps=ignored_steps
        )
        if not is_valid:
            raise ValueError(warnings_or_errors)
        if self.warn:
            for warning in warnings_or_errors:
                print(f"[warning] : {warning}", file=sys.stderr)

        self._pipeline_init_steps_(ignored_steps)

        state = PipelineState(text)
        # sets attributes to PipelineState dynamically. This ensures
        # that users can create steps returning custom attributes, and
        # that these attributes can be passed at pipeline call time.
        for key, value in kwargs.items():
            setattr(state, key, value)

        steps = self._non_ignored_steps(ignored_steps)

        for step in progress_(self.progress_reporter, steps):
            self.progress_reporter.update_message_(f"{step.__class__.__name__}")

            out = step(**state.__dict__)
            for key, value in out.items():
                setattr(state, key, value)

        return state

    def rerun_from(
        self,
        state: PipelineState,
        from_step: Union[str, Type[PipelineStep]],
        ignored_steps: Optional[List[str]] = None,
    ) -> PipelineState:
        """Recompute steps, starting from ``from_step`` (included).
        Previous steps results are not recomputed.

        .. note::

            steps are not re-inited using :func:`._pipeline_init_steps`.

        :param state: the previously computed state

        :param from_step: first step to recompute from.  Either :

                - ``str`` : in that case, the name of a step
                  production (``'mentions'``, ``'corefs'``...)

                - ``Type[PipelineStep]`` : in that case, the class of
                  a step

        :param ignored_steps: a list of steps production.  All steps
            with a production in ``ignored_steps`` will be ignored.

        :return: the output of the last step of the pipeline
        """
        steps = self._non_ignored_steps(ignored_steps)

        from_step_i = None
        for step_i, step in enumerate(steps):
            if step.__class__ == from_step or from_step in step.production():
                from_step_i = step_i
                break
        if from_step_i is None:
            raise ValueError(f"no step matching {from_step} in the pipeline")

        for step in progress_(self.progress_reporter, steps[from_step_i:]):
            self.progress_reporter.update_message_(f"{step.__class__.__name__}")
            out = step(**state.__dict__)
            for key, value in out.items():
                setattr(state, key, value)

        return state
