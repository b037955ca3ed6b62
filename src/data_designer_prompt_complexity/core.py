# Line-level prompt complexity analyzer.
#
# Scores each line of a prompt for structural properties that make it harder for
# a language model to consume (character entropy, long tokens, symbol noise, poor
# compressibility, chain-of-thought step spam, positional artifacts) and returns
# one finding per problematic line with a severity, a score, and remediation text.

from __future__ import annotations

import math
import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Thresholds:
    """Static cut-offs for flag evaluation and severity escalation."""

    entropy_high: float = 4.3
    avg_token_len_high: float = 11.0
    symbol_density_high: float = 0.28
    compression_high: float = 0.92
    mdl_high: float = 4.3

    uniq_min_tokens: int = 15
    uniq_ratio_high: float = 0.98
    entropy_jump_delta: float = 1.5
    step_budget_base: float = 10.0
    periodicity_interval: int = 64

    min_tokens: int = 4
    aux_severity_factor: float = 0.5
    high_severity_weight: float = 3.0
    warning_score_floor: float = 1.0


DEFAULT_THRESHOLDS = Thresholds()


# ---------------------------------------------------------------------------
# Flags and severities
# ---------------------------------------------------------------------------


class Flag(str, Enum):
    # Declaration order is evaluation order: core flags first, then auxiliary.
    ENTROPY_HIGH = "entropy_high"
    LONG_TOKENS = "long_tokens"
    SYMBOL_NOISE = "symbol_noise"
    COMPRESS_HIGH = "compress_high"
    MDL_HIGH = "mdl_high"
    UNIQ_HIGH = "uniq_high"
    ENTROPY_JUMP = "entropy_jump"
    STEP_EXCESS = "step_excess"
    PERIODICITY_BIAS = "periodicity_bias"

    @property
    def is_core(self) -> bool:
        return self in CORE_FLAG_WEIGHTS


class Severity(str, Enum):
    WARNING = "warning"
    HIGH = "high"


CORE_FLAG_WEIGHTS: Mapping[Flag, float] = MappingProxyType({
    Flag.ENTROPY_HIGH: 1.0,
    Flag.LONG_TOKENS: 0.8,
    Flag.SYMBOL_NOISE: 0.6,
    Flag.COMPRESS_HIGH: 0.7,
    Flag.MDL_HIGH: 0.7,
})
AUX_FLAG_WEIGHTS: Mapping[Flag, float] = MappingProxyType({
    Flag.UNIQ_HIGH: 0.4,
    Flag.ENTROPY_JUMP: 0.3,
    Flag.STEP_EXCESS: 0.3,
    Flag.PERIODICITY_BIAS: 0.2,
})


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineMetrics:
    entropy: float
    avg_token_len: float
    unique_token_ratio: float
    symbol_density: float
    case_switch_rate: float
    compression_ratio: float
    mdl_bits_per_char: float
    step_count: int
    periodicity_bias: bool
    token_count: int

    def to_payload(self) -> dict[str, object]:
        return {
            "entropy": round(self.entropy, 4),
            "avg_token_len": round(self.avg_token_len, 4),
            "unique_token_ratio": round(self.unique_token_ratio, 4),
            "symbol_density": round(self.symbol_density, 4),
            "case_switch_rate": round(self.case_switch_rate, 4),
            "compression_ratio": round(self.compression_ratio, 4),
            "mdl_bits_per_char": round(self.mdl_bits_per_char, 4),
            "step_count": self.step_count,
            "periodicity_bias": self.periodicity_bias,
            "token_count": self.token_count,
        }


@dataclass(frozen=True)
class LineRecord:
    """Everything computed for one input line. Exempt lines have no flags."""

    index: int
    raw: str
    normalized: str
    metrics: LineMetrics
    flags: tuple[Flag, ...] = ()
    score: float = 0.0
    severity: Severity | None = None


@dataclass(frozen=True)
class Finding:
    line: int
    start: int
    end: int
    severity: Severity
    score: float
    flags: tuple[Flag, ...]
    message: str

    def to_payload(self) -> dict[str, object]:
        return {
            "type": "Finding",
            "line": self.line,
            "start": self.start,
            "end": self.end,
            "severity": self.severity.value,
            "score": round(self.score, 2),
            "flags": [f.value for f in self.flags],
            "message": self.message,
        }


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

_HEADING_RE = re.compile(r"^\s{0,3}#")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_EMPHASIS_RE = re.compile(r"\*\*|__|`")
_PLACEHOLDER_RE = re.compile(r"\{\{?[A-Za-z0-9_:-]+\}?\}")
PLACEHOLDER_MARKER = "<VAR>"


def normalize(line: str) -> str:
    """Replace links by their label, drop emphasis markers, collapse placeholders."""
    line = _LINK_RE.sub(r"\1", line)
    line = _EMPHASIS_RE.sub("", line)
    return _PLACEHOLDER_RE.sub(PLACEHOLDER_MARKER, line)


# ---------------------------------------------------------------------------
# Metric extractors
# ---------------------------------------------------------------------------

# Word characters are ASCII-only; whitespace is Unicode-aware.
_TOKEN_RE = re.compile(r"\w+", re.ASCII)
_NON_SYMBOL_RE = re.compile(r"[A-Za-z0-9_\s]")
_ALPHA_RE = re.compile(r"[A-Za-z]")
_STEP_RE = re.compile(
    r"\b(?:step\s*\d+|first|second|third|fourth|fifth|sixth|seventh|eighth|ninth|tenth)\b",
    re.IGNORECASE,
)


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text)


def shannon_entropy(text: str) -> float:
    if not text:
        return 0.0
    n = len(text)
    entropy = 0.0
    for count in Counter(text).values():
        p = count / n
        entropy -= p * math.log2(p)
    return entropy


def average_token_length(tokens: Sequence[str]) -> float:
    if not tokens:
        return 0.0
    return sum(len(t) for t in tokens) / len(tokens)


def unique_token_ratio(tokens: Sequence[str]) -> float:
    if not tokens:
        return 0.0
    return len(set(tokens)) / len(tokens)


def symbol_density(text: str) -> float:
    if not text:
        return 0.0
    return len(_NON_SYMBOL_RE.sub("", text)) / len(text)


def case_switch_rate(text: str) -> float:
    letters = _ALPHA_RE.findall(text)
    if len(letters) < 2:
        return 0.0
    switches = sum(1 for a, b in zip(letters, letters[1:]) if a.isupper() != b.isupper())
    return switches / (len(letters) - 1)


def run_length_encode(text: str) -> str:
    """``aaab`` -> ``a3b``: each maximal run becomes the char plus its length if > 1."""
    parts: list[str] = []
    i = 0
    while i < len(text):
        j = i
        while j < len(text) and text[j] == text[i]:
            j += 1
        run = j - i
        parts.append(text[i] + (str(run) if run > 1 else ""))
        i = j
    return "".join(parts)


def compression_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(run_length_encode(text)) / len(text)


def count_steps(text: str) -> int:
    return len(_STEP_RE.findall(text))


def is_periodic_position(index: int, hp: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    """``index`` is 0-based; the check is on the 1-based line number."""
    return (index + 1) % hp.periodicity_interval == 0


def step_budget(token_count: int, hp: Thresholds = DEFAULT_THRESHOLDS) -> int:
    return math.ceil(math.sqrt(token_count) * math.log2(hp.step_budget_base))


def extract_metrics(normalized: str, index: int, hp: Thresholds = DEFAULT_THRESHOLDS) -> LineMetrics:
    tokens = tokenize(normalized)
    entropy = shannon_entropy(normalized)
    return LineMetrics(
        entropy=entropy,
        avg_token_len=average_token_length(tokens),
        unique_token_ratio=unique_token_ratio(tokens),
        symbol_density=symbol_density(normalized),
        case_switch_rate=case_switch_rate(normalized),
        compression_ratio=compression_ratio(normalized),
        mdl_bits_per_char=entropy,
        step_count=count_steps(normalized),
        periodicity_bias=is_periodic_position(index, hp),
        token_count=len(tokens),
    )


# ---------------------------------------------------------------------------
# Flag evaluator
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _PreviousLine:
    entropy: float
    blank: bool


def is_exempt(raw: str, metrics: LineMetrics, hp: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    return metrics.token_count < hp.min_tokens or bool(_HEADING_RE.match(raw))


def evaluate_flags(
    metrics: LineMetrics,
    previous: _PreviousLine | None,
    hp: Thresholds = DEFAULT_THRESHOLDS,
) -> tuple[Flag, ...]:
    entropy_jump = (
        previous is not None
        and not previous.blank
        and metrics.entropy - previous.entropy > hp.entropy_jump_delta
    )
    checks = {
        Flag.ENTROPY_HIGH: metrics.entropy >= hp.entropy_high,
        Flag.LONG_TOKENS: metrics.avg_token_len >= hp.avg_token_len_high,
        Flag.SYMBOL_NOISE: metrics.symbol_density >= hp.symbol_density_high,
        Flag.COMPRESS_HIGH: metrics.compression_ratio >= hp.compression_high,
        Flag.MDL_HIGH: metrics.mdl_bits_per_char >= hp.mdl_high,
        Flag.UNIQ_HIGH: (
            metrics.token_count >= hp.uniq_min_tokens
            and metrics.unique_token_ratio > hp.uniq_ratio_high
        ),
        Flag.ENTROPY_JUMP: entropy_jump,
        Flag.STEP_EXCESS: metrics.step_count > step_budget(metrics.token_count, hp),
        Flag.PERIODICITY_BIAS: metrics.periodicity_bias,
    }
    return tuple(flag for flag in Flag if checks[flag])


# ---------------------------------------------------------------------------
# Severity & score aggregation
# ---------------------------------------------------------------------------


def flag_score(flags: Iterable[Flag]) -> float:
    return math.fsum(CORE_FLAG_WEIGHTS.get(f, AUX_FLAG_WEIGHTS.get(f, 0.0)) for f in flags)


def combined_weight(flags: Iterable[Flag], hp: Thresholds = DEFAULT_THRESHOLDS) -> float:
    flags = list(flags)
    core = sum(1 for f in flags if f.is_core)
    return core + hp.aux_severity_factor * (len(flags) - core)


def classify(flags: Iterable[Flag], hp: Thresholds = DEFAULT_THRESHOLDS) -> Severity | None:
    weight = combined_weight(flags, hp)
    if weight <= 0:
        return None
    if weight >= hp.high_severity_weight:
        return Severity.HIGH
    return Severity.WARNING


def is_reportable(record: LineRecord, hp: Thresholds = DEFAULT_THRESHOLDS) -> bool:
    if record.severity is None:
        return False
    if record.severity is Severity.WARNING:
        return record.score >= hp.warning_score_floor
    return True


# ---------------------------------------------------------------------------
# Finding composer
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _FlagDetail:
    explanation: str
    problem: str
    solution: str


_FLAG_DETAILS: Mapping[Flag, _FlagDetail] = MappingProxyType({
    Flag.ENTROPY_HIGH: _FlagDetail(
        "High information density forces the model to track many unique patterns at once, "
        "which dilutes attention and raises the odds of misreading or skipping content.",
        'e.g. "The quick brown fox jumps over the lazy dog 1234567890!@#" '
        "(many distinct characters, digits and symbols in one sentence)",
        "Split the line into shorter, plainer sentences and drop incidental digits or symbols. "
        'Example: "The quick brown fox jumps over the lazy dog."',
    ),
    Flag.LONG_TOKENS: _FlagDetail(
        "Very long words fragment into many subword tokens, which weakens their embedding "
        "and makes wrong completions or hallucinated spellings more likely.",
        'e.g. "antidisestablishmentarianism pseudopseudohypoparathyroidism"',
        'Prefer shorter synonyms or split compound terms. Example: "The policy was opposed by many."',
    ),
    Flag.SYMBOL_NOISE: _FlagDetail(
        "Dense punctuation and symbols pull attention toward non-semantic characters "
        "and reduce comprehension of the surrounding words.",
        'e.g. "Hello!!! $$$$ @@@@ ####"',
        'Remove or reduce special symbols. Example: "Hello!"',
    ),
    Flag.COMPRESS_HIGH: _FlagDetail(
        "Poor compressibility means the line looks random; the model cannot lean on "
        "learned regularities and has to treat every character as unpredictable.",
        'e.g. "qwertyuiopasdfghjklzxcvbnm"',
        'Use more regular, structured phrasing. Example: "Repeat the word cat five times: cat cat cat cat cat."',
    ),
    Flag.MDL_HIGH: _FlagDetail(
        "The line has a high minimum description length: it needs many bits per "
        "character to encode and is hard for the model to summarize internally.",
        'e.g. "XyZ!@#123" (random mix of cases, symbols and digits)',
        'Lower the randomness of the line. Example: "Please summarize the following text."',
    ),
    Flag.UNIQ_HIGH: _FlagDetail(
        "Almost every token on the line is distinct, so there are too many separate "
        "concepts for the model to associate with each other.",
        'e.g. "apple banana cherry date elderberry fig grape kiwi lemon mango ..."',
        'Group related items or focus on fewer concepts. Example: "List three fruits you like."',
    ),
    Flag.ENTROPY_JUMP: _FlagDetail(
        "Complexity jumps abruptly compared to the previous line, which can break the "
        "model's sense of context and flow.",
        'e.g. "Simple line." followed by "Next: XyZ!@#123"',
        'Introduce the change gradually. Example: "Now consider a more complex example: ..."',
    ),
    Flag.STEP_EXCESS: _FlagDetail(
        "The line packs more explicit reasoning steps than its length supports, which "
        "can overwhelm the model's chain of thought.",
        'e.g. "Step 1: ... Step 2: ... Step 3: ... Step 4: ... Step 5: ... Step 6: ..."',
        'Condense or merge steps. Example: "Steps 1-3: prepare the data. Steps 4-6: train the model."',
    ),
    Flag.PERIODICITY_BIAS: _FlagDetail(
        "The line sits at a position (every 64th line) where transformer positional "
        "encodings can show artifacts that affect prediction quality.",
        "e.g. lines 64, 128, 192, ...",
        "Avoid placing key instructions at these positions, or add a buffer line before them.",
    ),
})


def severity_label(severity: Severity) -> str:
    return severity.value.upper()


def compose_message(severity: Severity, score: float, flags: Iterable[Flag]) -> str:
    blocks: list[str] = []
    for flag in flags:
        detail = _FLAG_DETAILS.get(flag)
        if detail is None:
            continue
        blocks.append(
            f"[{flag.value.upper()}]: {detail.explanation}\n"
            f"  Problem: {detail.problem}\n"
            f"  Solution: {detail.solution}"
        )
    header = f"Prompt complexity {severity_label(severity)}: score={score:.2f}"
    return "\n".join([header, *blocks])


def compose_finding(record: LineRecord) -> Finding:
    if record.severity is None:
        raise ValueError(f"line {record.index} has no severity; only flagged lines become findings")
    return Finding(
        line=record.index,
        start=0,
        end=len(record.raw),
        severity=record.severity,
        score=record.score,
        flags=record.flags,
        message=compose_message(record.severity, record.score, record.flags),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def score_lines(lines: Sequence[str], thresholds: Thresholds | None = None) -> list[LineRecord]:
    """Build a :class:`LineRecord` for every line, in order.

    The only state carried between lines is the previous line's entropy and
    whether its raw text was blank, used by the entropy-jump flag.
    """
    hp = thresholds or DEFAULT_THRESHOLDS
    records: list[LineRecord] = []
    previous: _PreviousLine | None = None
    for index, raw in enumerate(lines):
        normalized = normalize(raw)
        metrics = extract_metrics(normalized, index, hp)
        if is_exempt(raw, metrics, hp):
            record = LineRecord(index=index, raw=raw, normalized=normalized, metrics=metrics)
        else:
            flags = evaluate_flags(metrics, previous, hp)
            record = LineRecord(
                index=index,
                raw=raw,
                normalized=normalized,
                metrics=metrics,
                flags=flags,
                score=flag_score(flags),
                severity=classify(flags, hp),
            )
        records.append(record)
        previous = _PreviousLine(entropy=metrics.entropy, blank=not raw.strip())
    return records


def analyze_lines(lines: Sequence[str], thresholds: Thresholds | None = None) -> list[Finding]:
    """Return findings for the lines worth reporting.

    Args:
        lines: Document lines in order; the caller decides how text was split.
        thresholds: Optional overrides. Uses :data:`DEFAULT_THRESHOLDS` if omitted.

    Returns:
        Zero or one :class:`Finding` per input line, ordered by line index.
    """
    hp = thresholds or DEFAULT_THRESHOLDS
    return [compose_finding(r) for r in score_lines(lines, hp) if is_reportable(r, hp)]
