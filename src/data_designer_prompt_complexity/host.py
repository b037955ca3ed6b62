"""Editor-style host adapter around :func:`analyze_lines`.

The engine only understands lists of lines. This module owns everything around
it that an interactive host needs: splitting raw text, filtering documents by
language, publishing findings per document, and debouncing bursts of edits.
"""

from __future__ import annotations

import logging
import re
import threading
from functools import partial
from typing import Callable, Protocol, Sequence

from data_designer_prompt_complexity.core import Finding, Thresholds, analyze_lines

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES = frozenset({"plaintext", "markdown", "text", "yaml"})
DEFAULT_DEBOUNCE_SECONDS = 0.6

_LINE_BREAK_RE = re.compile(r"\r?\n")


class DocumentLike(Protocol):
    uri: str
    language_id: str

    def get_text(self) -> str: ...


class FindingsSink(Protocol):
    def set(self, uri: str, findings: Sequence[Finding]) -> None: ...

    def clear(self) -> None: ...


def split_lines(text: str) -> list[str]:
    return _LINE_BREAK_RE.split(text)


def analyze_text(text: str, thresholds: Thresholds | None = None) -> list[Finding]:
    """Split ``text`` into lines and analyze them."""
    return analyze_lines(split_lines(text), thresholds)


class InMemoryDiagnostics:
    """Findings keyed by document uri."""

    def __init__(self) -> None:
        self._by_uri: dict[str, tuple[Finding, ...]] = {}

    def set(self, uri: str, findings: Sequence[Finding]) -> None:
        self._by_uri[uri] = tuple(findings)

    def get(self, uri: str) -> tuple[Finding, ...]:
        return self._by_uri.get(uri, ())

    def clear(self) -> None:
        self._by_uri.clear()

    def __len__(self) -> int:
        return len(self._by_uri)


class DiagnosticsPublisher:
    def __init__(
        self,
        sink: FindingsSink,
        thresholds: Thresholds | None = None,
        languages: frozenset[str] = SUPPORTED_LANGUAGES,
    ) -> None:
        self.sink = sink
        self.thresholds = thresholds
        self.languages = languages
        self._publish_lock = threading.Lock()

    def analyze_and_publish(
        self,
        document: DocumentLike,
        is_current: Callable[[], bool] | None = None,
    ) -> list[Finding] | None:
        """Recompute and publish findings for ``document``.

        ``is_current`` is checked under the publish lock right before the sink
        is written; a pass whose snapshot has been superseded publishes nothing.

        Returns the published findings, or ``None`` when nothing was published
        (unsupported language, unreadable text or superseded snapshot).
        """
        if document.language_id not in self.languages:
            logger.warning(f"Skipping {document.uri!r}: language {document.language_id!r} is not analyzed")
            self.sink.clear()
            return None
        try:
            text = document.get_text()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Could not read {document.uri!r}: {exc}")
            return None

        findings = analyze_text(text, self.thresholds)
        with self._publish_lock:
            if is_current is not None and not is_current():
                logger.debug(f"Dropping superseded pass for {document.uri!r}")
                return None
            logger.debug(f"Publishing {len(findings)} finding(s) for {document.uri!r}")
            self.sink.set(document.uri, findings)
        return findings


class DebouncedAnalyzer:
    """Coalesces rapid re-analysis requests per document.

    Each :meth:`schedule` call for a uri cancels the pending one for that uri,
    so only the last edit in a burst triggers an analysis pass. Every call also
    bumps the uri's generation; a pass still running for an older generation
    is not allowed to publish over a newer one.
    """

    def __init__(self, publisher: DiagnosticsPublisher, delay: float = DEFAULT_DEBOUNCE_SECONDS) -> None:
        self.publisher = publisher
        self.delay = delay
        self._lock = threading.Lock()
        self._pending: dict[str, tuple[threading.Timer, DocumentLike, int]] = {}
        self._generations: dict[str, int] = {}

    def schedule(self, document: DocumentLike) -> None:
        uri = document.uri
        with self._lock:
            generation = self._generations.get(uri, 0) + 1
            self._generations[uri] = generation
            timer = threading.Timer(self.delay, self._fire, args=(uri, generation))
            timer.daemon = True
            previous = self._pending.pop(uri, None)
            if previous is not None:
                previous[0].cancel()
            self._pending[uri] = (timer, document, generation)
        timer.start()

    def pending(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def flush(self) -> None:
        """Run every pending analysis now, on the calling thread."""
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
        for timer, document, generation in pending:
            timer.cancel()
            self._run(document, generation)

    def cancel_all(self) -> None:
        """Drop pending analyses and keep in-flight ones from publishing."""
        with self._lock:
            pending = list(self._pending.values())
            self._pending.clear()
            for uri in self._generations:
                self._generations[uri] += 1
        for timer, _, _ in pending:
            timer.cancel()

    def _is_current(self, uri: str, generation: int) -> bool:
        with self._lock:
            return self._generations.get(uri) == generation

    def _fire(self, uri: str, generation: int) -> None:
        with self._lock:
            entry = self._pending.get(uri)
            if entry is None or entry[2] != generation:
                return
            del self._pending[uri]
        self._run(entry[1], generation)

    def _run(self, document: DocumentLike, generation: int) -> None:
        self.publisher.analyze_and_publish(document, is_current=partial(self._is_current, document.uri, generation))
