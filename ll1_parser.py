"""
LL(1) Grammar Engine - Grammar Model, Left-Recursion Removal and Set Computation

This module implements the core data structures and set computations used to
decide whether a context-free grammar is suitable for table-driven top-down
parsing: immediate left-recursion elimination, FIRST sets, FOLLOW sets and the
per-nonterminal prediction sets.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Union, Any, Iterable
import copy
import re
from enum import Enum


LAMBDA_SYMBOL = "λ"  # Empty-production marker
DOLLAR_SYMBOL = "$"  # End-of-input marker
PRIME_SUFFIX = "'"

# Spellings of the empty production accepted by the text reader
EMPTY_ALIASES = ("λ", "ε", "eps", "")


class GrammarError(Exception):
    """Base class for every error raised by the grammar engine."""


class InvalidGrammarPayloadError(GrammarError):
    """The input cannot be read as a Grammar."""


class ProductionsSetNotFoundError(GrammarError):
    """A symbol treated as nonterminal has no production set."""

    def __init__(self, nonterminal: str):
        self.nonterminal = nonterminal
        super().__init__(f"productions set not found: {nonterminal}")


# --- Set algebra helpers ---

def union_symbols(base: Iterable[str], values_to_add: Iterable[str]) -> List[str]:
    """
    Union of two symbol lists.

    Keeps the first-seen order of ``base`` followed by the elements of
    ``values_to_add`` not already present, dropping duplicates from both.
    """
    seen = set()
    union = []
    for value in list(base) + list(values_to_add):
        if value not in seen:
            seen.add(value)
            union.append(value)
    return union


def remove_element(values: Iterable[str], value: str) -> List[str]:
    """Return the unique elements of ``values`` without ``value``."""
    return [v for v in union_symbols(values, []) if v != value]


def contains_word(production: str, word: str) -> bool:
    """Check whether ``word`` is one of the space separated tokens of ``production``."""
    return word in production.split()


def normalize_production(production: str) -> str:
    """Trim a production and collapse inner whitespace; an empty one becomes λ."""
    normalized = " ".join(production.split())
    return normalized if normalized else LAMBDA_SYMBOL


# --- Symbols ---

@dataclass(frozen=True)
class Terminal:
    """A grammar symbol with no production set."""
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Nonterminal:
    """A grammar symbol defined by one or more productions."""
    name: str

    def __str__(self) -> str:
        return self.name


Symbol = Union[Terminal, Nonterminal]


# --- Trace hook ---

class TraceLevel(Enum):
    """Severity of a trace event."""
    DEBUG = 10
    INFO = 20


@dataclass
class TraceEvent:
    """One step recorded while the engine processes a grammar."""
    level: TraceLevel
    stage: str
    nonterminal: Optional[str]
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'level': self.level.name,
            'stage': self.stage,
            'nonterminal': self.nonterminal,
            'message': self.message,
            'data': self.data,
        }


class EngineTrace:
    """
    Per-request trace collector for the grammar engine.

    Disabled traces drop every event, so the engine can always call into the
    trace without checking whether the caller asked for it. Events below the
    configured level are dropped as well.
    """

    def __init__(self, enabled: bool = False, level: TraceLevel = TraceLevel.DEBUG):
        self.enabled = enabled
        self.level = level
        self.events: List[TraceEvent] = []

    def enable(self, level: Optional[TraceLevel] = None):
        """Start recording events."""
        self.enabled = True
        if level is not None:
            self.level = level

    def disable(self):
        """Stop recording events."""
        self.enabled = False

    def reset(self):
        """Drop every recorded event."""
        self.events.clear()

    def record(self, level: TraceLevel, stage: str, nonterminal: Optional[str],
               message: str, **data: Any):
        if not self.enabled or level.value < self.level.value:
            return
        self.events.append(TraceEvent(level, stage, nonterminal, message, data))

    def debug(self, stage: str, nonterminal: Optional[str], message: str, **data: Any):
        self.record(TraceLevel.DEBUG, stage, nonterminal, message, **data)

    def info(self, stage: str, nonterminal: Optional[str], message: str, **data: Any):
        self.record(TraceLevel.INFO, stage, nonterminal, message, **data)

    def get_events(self, stage: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Get the recorded events as plain dictionaries.

        Args:
            stage: Only return events of this stage when given

        Returns:
            List of event dictionaries in recording order
        """
        return [event.to_dict() for event in self.events
                if stage is None or event.stage == stage]


# --- Grammar model ---

@dataclass
class Grammar:
    """
    A context-free grammar as an ordered set of nonterminals and productions.

    ``order`` fixes the start symbol (first element) and the iteration order
    of every computation. ``productions`` maps a nonterminal to its
    alternatives, each one a space separated string of symbols; the empty
    production is written as the λ marker alone.
    """
    order: List[str] = field(default_factory=list)
    productions: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> 'Grammar':
        """
        Build a Grammar from its wire form.

        Args:
            payload: Mapping with ``order`` (list of names) and
                ``productions_set`` (name -> list of production strings)

        Returns:
            New Grammar instance

        Raises:
            InvalidGrammarPayloadError: If the payload does not have that shape
        """
        if not isinstance(payload, dict):
            raise InvalidGrammarPayloadError("grammar payload must be an object")

        productions_set = payload.get('productions_set')
        if not isinstance(productions_set, dict):
            raise InvalidGrammarPayloadError("productions_set must be an object")

        order = payload.get('order')
        if order is None:
            order = list(productions_set.keys())
        if not isinstance(order, list) or not all(isinstance(name, str) for name in order):
            raise InvalidGrammarPayloadError("order must be a list of nonterminal names")

        grammar = cls()
        for name in order:
            name = name.strip()
            if name and name not in grammar.order:
                grammar.order.append(name)

        for name, productions in productions_set.items():
            if not name.strip():
                raise InvalidGrammarPayloadError("nonterminal names must not be empty")
            if not isinstance(productions, list) or not all(isinstance(p, str) for p in productions):
                raise InvalidGrammarPayloadError(
                    f"productions of '{name}' must be a list of strings")
            grammar.add_production_group(name, [normalize_production(p) for p in productions])

        return grammar

    def to_payload(self) -> Dict[str, Any]:
        """Serialize the grammar back to its wire form."""
        return {
            'order': list(self.order),
            'productions_set': {name: list(prods) for name, prods in self.productions.items()},
        }

    def copy(self) -> 'Grammar':
        return Grammar(order=list(self.order), productions=copy.deepcopy(self.productions))

    @property
    def start_symbol(self) -> Optional[str]:
        return self.order[0] if self.order else None

    def nonterminals(self) -> List[str]:
        """Declared nonterminals: ``order`` first, then keys missing from it."""
        extra = [name for name in self.productions if name not in self.order]
        return list(self.order) + extra

    def index_of_nonterminal(self, nonterminal: str) -> int:
        """Position of ``nonterminal`` in ``order``, or -1."""
        for i, name in enumerate(self.order):
            if name == nonterminal:
                return i
        return -1

    def index_of_production(self, nonterminal: str, production: str) -> int:
        """Position of ``production`` among the alternatives of ``nonterminal``, or -1."""
        for i, prod in enumerate(self.productions.get(nonterminal, [])):
            if prod == production:
                return i
        return -1

    def add_production_group(self, nonterminal: str, productions: List[str]):
        """
        Register ``productions`` under ``nonterminal``.

        A known nonterminal (key of the production map or listed in
        ``order``) gets the new productions unioned into its alternatives;
        an unknown one is appended to ``order``.
        """
        nonterminal = nonterminal.strip()
        index = self.index_of_nonterminal(nonterminal)

        if nonterminal in self.productions or index != -1:
            found = self.productions.get(nonterminal, [])
            self.productions[nonterminal] = union_symbols(found, productions)
            return

        self.order.append(nonterminal)
        self.productions[nonterminal] = union_symbols(productions, [])

    def has_left_recursion(self, nonterminal: str, productions: List[str]) -> bool:
        """
        Check for immediate left recursion.

        This is a literal string-prefix test: ``A`` counts as left recursive
        on ``AB x`` as well, and the rewriting relies on the same prefix.
        """
        return any(production.startswith(nonterminal) for production in productions)

    def is_nonterminal(self, symbol: str) -> bool:
        return symbol in self.productions or symbol in self.order

    def is_terminal(self, symbol: str) -> bool:
        return not self.is_nonterminal(symbol)

    def resolve_production(self, production: str) -> List[Symbol]:
        """Split a production into tagged Terminal / Nonterminal symbols."""
        return [Nonterminal(word) if self.is_nonterminal(word) else Terminal(word)
                for word in production.split()]

    def undefined_nonterminals(self) -> List[str]:
        """Nonterminals listed in ``order`` that have no production set."""
        return [name for name in self.order if name not in self.productions]

    def validate(self):
        """
        Check that every declared nonterminal has a production set.

        Raises:
            ProductionsSetNotFoundError: For the first undefined nonterminal
        """
        undefined = self.undefined_nonterminals()
        if undefined:
            raise ProductionsSetNotFoundError(undefined[0])

    def __str__(self) -> str:
        lines = []
        for name in self.nonterminals():
            alternatives = self.productions.get(name, [])
            lines.append(f"{name} -> {' | '.join(alternatives)}")
        return "\n".join(lines)


# --- Text grammar reader ---

_ARROW_RE = re.compile(r'\s*->\s*')


def parse_grammar_text(text: str) -> Grammar:
    """
    Read a grammar written one rule per line.

    Supports lines like ``A -> alpha | beta | λ``. Blank lines and lines
    starting with ``#`` are skipped. The first left side is the start symbol
    and repeated left sides merge their alternatives.

    Raises:
        InvalidGrammarPayloadError: If a rule line has no ``->`` or no left side
    """
    grammar = Grammar()

    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith('#'):
            continue

        parts = _ARROW_RE.split(line, maxsplit=1)
        if len(parts) != 2 or not parts[0].strip():
            raise InvalidGrammarPayloadError(f"line {lineno} is not a rule: {line!r}")

        lhs, rhs = parts
        alternatives = []
        for alt in rhs.split('|'):
            alt = " ".join(alt.split())
            alternatives.append(LAMBDA_SYMBOL if alt in EMPTY_ALIASES else alt)

        grammar.add_production_group(lhs, alternatives)

    if not grammar.order:
        raise InvalidGrammarPayloadError("grammar text contains no rules")

    return grammar


# --- Left-recursion elimination ---

class LeftRecursionEliminator:
    """Rewrites immediately left-recursive nonterminals as ``A -> beta A'``, ``A' -> alpha A' | λ``."""

    def __init__(self, trace: Optional[EngineTrace] = None):
        self.trace = trace or EngineTrace()

    def eliminate(self, grammar: Grammar) -> Grammar:
        """
        Remove immediate left recursion from ``grammar`` in place.

        Nonterminals are snapshotted before rewriting, so primed nonterminals
        created here are not re-examined in the same pass. A λ alternative of
        a left-recursive nonterminal is dropped.

        Args:
            grammar: Grammar to rewrite

        Returns:
            The same grammar instance
        """
        rewritten: Dict[str, List[str]] = {}
        primed_groups: List[tuple] = []

        for nonterminal in grammar.nonterminals():
            productions = grammar.productions.get(nonterminal, [])
            if not grammar.has_left_recursion(nonterminal, productions):
                continue

            primed = nonterminal + PRIME_SUFFIX
            beta_productions = []

            for production in productions:
                if production == LAMBDA_SYMBOL:
                    continue

                if not production.startswith(nonterminal):
                    beta_productions.append(f"{production} {primed}".strip())
                    continue

                alpha = f"{production[len(nonterminal):]} {primed}".strip()
                primed_groups.append((primed, [alpha, LAMBDA_SYMBOL]))

            rewritten[nonterminal] = beta_productions
            self.trace.info("left_recursion", nonterminal, "rewritten",
                            primed=primed, productions=beta_productions)

        grammar.productions.update(rewritten)
        for primed, productions in primed_groups:
            grammar.add_production_group(primed, productions)

        return grammar


# --- FIRST sets ---

class FirstSetCalculator:
    """Computes FIRST sets of nonterminals by recursive descent over productions."""

    def __init__(self, grammar: Grammar, trace: Optional[EngineTrace] = None):
        self.grammar = grammar
        self.trace = trace or EngineTrace()

    def compute(self) -> Dict[str, List[str]]:
        """
        Compute the FIRST set of every nonterminal in ``order``.

        Raises:
            ProductionsSetNotFoundError: If a nonterminal has no production set
        """
        first = {}
        for nonterminal in self.grammar.order:
            first[nonterminal] = self.first_of(nonterminal)
            self.trace.info("first", nonterminal, "computed", first=first[nonterminal])
        return first

    def first_of(self, nonterminal: str) -> List[str]:
        """FIRST set of a single nonterminal."""
        return self._first_of(nonterminal, {})

    def _first_of(self, nonterminal: str, in_progress: Dict[str, List[str]]) -> List[str]:
        # Revisiting a nonterminal on the current path yields its partial set
        if nonterminal in in_progress:
            self.trace.debug("first", nonterminal, "cycle reached",
                             partial=list(in_progress[nonterminal]))
            return list(in_progress[nonterminal])

        productions = self.grammar.productions.get(nonterminal)
        if productions is None:
            raise ProductionsSetNotFoundError(nonterminal)

        first_set: List[str] = []
        in_progress[nonterminal] = first_set

        for production in productions:
            if production == LAMBDA_SYMBOL:
                first_set.append(LAMBDA_SYMBOL)
                continue

            symbols = self.grammar.resolve_production(production)
            for i, symbol in enumerate(symbols):
                if isinstance(symbol, Terminal):
                    first_set.append(symbol.name)
                    break

                found = self._first_of(symbol.name, in_progress)
                if LAMBDA_SYMBOL in found and i < len(symbols) - 1:
                    first_set.extend(remove_element(found, LAMBDA_SYMBOL))
                    continue

                first_set.extend(found)
                break

        del in_progress[nonterminal]
        return union_symbols(first_set, [])


# --- FOLLOW sets ---

@dataclass
class Occurrence:
    """A nonterminal found inside a production of ``nonterminal``."""
    nonterminal: str
    production: str
    following: str  # Next token, or λ when nothing follows

    def to_dict(self) -> Dict[str, str]:
        return {'nonterminal': self.nonterminal, 'production': self.production,
                'following': self.following}


def find_nonterminal_occurrences(grammar: Grammar, searched: str) -> List[Occurrence]:
    """
    Find every token occurrence of ``searched`` in every production.

    Each occurrence carries the token right after it, or λ when it is the
    last token of the production.
    """
    occurrences = []
    for nonterminal in grammar.nonterminals():
        for production in grammar.productions.get(nonterminal, []):
            if not contains_word(production, searched):
                continue

            words = production.split()
            for i, word in enumerate(words):
                if word != searched:
                    continue
                following = words[i + 1] if i + 1 < len(words) else LAMBDA_SYMBOL
                occurrences.append(Occurrence(nonterminal, production, following))

    return occurrences


class FollowSetCalculator:
    """
    Computes FOLLOW sets from the grammar and its FIRST table.

    Recursive lookups share one progressively populated table: once a
    nonterminal has an entry it is reused, and a nonterminal already being
    computed contributes its partial set.
    """

    def __init__(self, grammar: Grammar, first: Dict[str, List[str]],
                 trace: Optional[EngineTrace] = None):
        self.grammar = grammar
        self.first = first
        self.trace = trace or EngineTrace()
        self._follow: Dict[str, List[str]] = {}
        self._in_progress: Dict[str, List[str]] = {}
        self._first_calculator = FirstSetCalculator(grammar, self.trace)

    def compute(self) -> Dict[str, List[str]]:
        """
        Compute the FOLLOW set of every nonterminal in ``order``.

        Passes over ``order`` repeat until no entry changes, so an entry
        stored from a partial set during a cycle is completed later.
        """
        self._follow = {}
        self._in_progress = {}

        start = self.grammar.start_symbol
        if start is not None:
            self._follow[start] = [DOLLAR_SYMBOL]

        changed = True
        passes = 0
        while changed:
            changed = False
            passes += 1
            for nonterminal in self.grammar.order:
                before = set(self._follow.get(nonterminal, []))
                self._follow[nonterminal] = self._collect(nonterminal)
                if set(self._follow[nonterminal]) != before:
                    changed = True

        for nonterminal in self.grammar.order:
            self.trace.info("follow", nonterminal, "computed",
                            follow=self._follow[nonterminal], passes=passes)

        return {name: union_symbols(follows, []) for name, follows in self._follow.items()}

    def _collect(self, nonterminal: str) -> List[str]:
        follows = list(self._follow.get(nonterminal, []))
        self._in_progress[nonterminal] = follows

        occurrences = find_nonterminal_occurrences(self.grammar, nonterminal)
        self.trace.debug("follow", nonterminal, "occurrences",
                         occurrences=[occ.to_dict() for occ in occurrences])

        for occurrence in occurrences:
            following = occurrence.following

            if following == LAMBDA_SYMBOL:
                follows.extend(self._follow_of_enclosing(occurrence.nonterminal))
                continue

            if self.grammar.is_terminal(following):
                follows.append(following)
                continue

            first_of_following = self._first_of(following)
            follows.extend(remove_element(first_of_following, LAMBDA_SYMBOL))

            if LAMBDA_SYMBOL in first_of_following:
                follows.extend(self._follow_of_enclosing(occurrence.nonterminal))

        del self._in_progress[nonterminal]
        follows = union_symbols(follows, [])
        self._follow[nonterminal] = follows
        return follows

    def _follow_of_enclosing(self, nonterminal: str) -> List[str]:
        if nonterminal in self._in_progress:
            return list(self._in_progress[nonterminal])
        if nonterminal in self._follow:
            return list(self._follow[nonterminal])
        return self._collect(nonterminal)

    def _first_of(self, nonterminal: str) -> List[str]:
        if nonterminal in self.first:
            return self.first[nonterminal]
        return self._first_calculator.first_of(nonterminal)


# --- Pipeline operations ---

def remove_left_recursion(grammar: Grammar, trace: Optional[EngineTrace] = None) -> Grammar:
    return LeftRecursionEliminator(trace).eliminate(grammar)


def compute_first(grammar: Grammar, trace: Optional[EngineTrace] = None) -> Dict[str, List[str]]:
    return FirstSetCalculator(grammar, trace).compute()


def compute_follow(grammar: Grammar, first: Dict[str, List[str]],
                   trace: Optional[EngineTrace] = None) -> Dict[str, List[str]]:
    return FollowSetCalculator(grammar, first, trace).compute()


def compute_prediction_set(grammar: Grammar, first: Dict[str, List[str]],
                           follow: Dict[str, List[str]],
                           trace: Optional[EngineTrace] = None) -> Dict[str, List[str]]:
    """
    Build the prediction set of every nonterminal.

    The prediction set is the FIRST set, replaced wholesale by the FOLLOW set
    when FIRST contains λ. The two are not merged.
    """
    trace = trace or EngineTrace()
    prediction = {}

    for nonterminal in grammar.order:
        values = first.get(nonterminal, [])
        if LAMBDA_SYMBOL in values:
            values = follow.get(nonterminal, [])
            trace.debug("prediction", nonterminal, "replaced by follow", prediction=list(values))
        prediction[nonterminal] = list(values)

    return prediction


@dataclass
class LL1Result:
    """FIRST, FOLLOW and prediction tables keyed by nonterminal."""
    first: Dict[str, List[str]]
    follow: Dict[str, List[str]]
    prediction: Dict[str, List[str]]

    def to_dict(self) -> Dict[str, Dict[str, List[str]]]:
        return {'first': self.first, 'follow': self.follow, 'prediction': self.prediction}


@dataclass
class LL1Response:
    """The rewritten grammar bundled with its LL(1) tables."""
    grammar: Grammar
    result: LL1Result

    def to_dict(self) -> Dict[str, Any]:
        return {'grammar': self.grammar.to_payload(), 'result': self.result.to_dict()}


class LL1Analyzer:
    """
    Runs the engine stages in their mandatory order on one grammar.

    Left-recursion removal comes first, then FIRST, FOLLOW and the prediction
    sets. Any GrammarError aborts the remaining stages.
    """

    def __init__(self, trace: Optional[EngineTrace] = None):
        self.trace = trace or EngineTrace()

    def analyze(self, grammar: Grammar) -> LL1Response:
        grammar.validate()
        remove_left_recursion(grammar, self.trace)
        return self.validate_ll1(grammar)

    def analyze_payload(self, payload: Any) -> LL1Response:
        return self.analyze(Grammar.from_payload(payload))

    def analyze_text(self, text: str) -> LL1Response:
        return self.analyze(parse_grammar_text(text))

    def validate_ll1(self, grammar: Grammar) -> LL1Response:
        """
        Compute FIRST, FOLLOW and prediction tables of an already rewritten grammar.

        Raises:
            ProductionsSetNotFoundError: If a nonterminal has no production set
        """
        first = compute_first(grammar, self.trace)
        follow = compute_follow(grammar, first, self.trace)
        prediction = compute_prediction_set(grammar, first, follow, self.trace)

        return LL1Response(grammar=grammar, result=LL1Result(first, follow, prediction))
