import logging
import threading
from dataclasses import dataclass

from data_designer_prompt_complexity.core import Severity
from data_designer_prompt_complexity.host import (
    DebouncedAnalyzer,
    DiagnosticsPublisher,
    InMemoryDiagnostics,
    analyze_text,
    split_lines,
)

NOISY_LINE = "Q7#x!Zp@2&Lm$9^Kw*R4%Tb(8)Vn"


@dataclass
class FakeDocument:
    uri: str
    text: str
    language_id: str = "markdown"
    error: Exception | None = None

    def get_text(self) -> str:
        if self.error is not None:
            raise self.error
        return self.text


class SlowDocument(FakeDocument):
    def __init__(self, uri, text):
        super().__init__(uri, text)
        self.reading = threading.Event()
        self.release = threading.Event()

    def get_text(self) -> str:
        self.reading.set()
        self.release.wait(5)
        return self.text


class CountingPublisher(DiagnosticsPublisher):
    def __init__(self, sink):
        super().__init__(sink)
        self.calls = []
        self.finished = threading.Event()

    def analyze_and_publish(self, document, is_current=None):
        self.calls.append(document.text)
        result = super().analyze_and_publish(document, is_current)
        self.finished.set()
        return result


class TestSplitLines:
    def test_handles_both_line_endings(self):
        assert split_lines("a\r\nb\nc") == ["a", "b", "c"]

    def test_trailing_newline_yields_empty_line(self):
        assert split_lines("a\n") == ["a", ""]
        assert split_lines("") == [""]


class TestAnalyzeText:
    def test_line_indices_follow_text(self):
        findings = analyze_text(f"# Title\n\n{NOISY_LINE}\r\nok")
        assert [f.line for f in findings] == [2]
        assert findings[0].severity is Severity.HIGH

    def test_clean_text(self):
        assert analyze_text("Summarize the meeting notes.\nKeep it short.") == []


class TestDiagnosticsPublisher:
    def test_publishes_findings(self):
        sink = InMemoryDiagnostics()
        findings = DiagnosticsPublisher(sink).analyze_and_publish(FakeDocument("file:///a.md", NOISY_LINE))
        assert len(findings) == 1
        assert sink.get("file:///a.md") == tuple(findings)

    def test_republish_replaces_previous_findings(self):
        sink = InMemoryDiagnostics()
        publisher = DiagnosticsPublisher(sink)
        publisher.analyze_and_publish(FakeDocument("file:///a.md", NOISY_LINE))
        publisher.analyze_and_publish(FakeDocument("file:///a.md", "fine"))
        assert sink.get("file:///a.md") == ()

    def test_unsupported_language_clears_sink(self):
        sink = InMemoryDiagnostics()
        publisher = DiagnosticsPublisher(sink)
        publisher.analyze_and_publish(FakeDocument("file:///a.md", NOISY_LINE))
        result = publisher.analyze_and_publish(FakeDocument("file:///b.py", NOISY_LINE, language_id="python"))
        assert result is None
        assert len(sink) == 0

    def test_read_failure_leaves_sink_untouched(self, caplog):
        sink = InMemoryDiagnostics()
        publisher = DiagnosticsPublisher(sink)
        publisher.analyze_and_publish(FakeDocument("file:///a.md", NOISY_LINE))
        broken = FakeDocument("file:///a.md", "", error=OSError("disk gone"))
        with caplog.at_level(logging.WARNING):
            assert publisher.analyze_and_publish(broken) is None
        assert len(sink.get("file:///a.md")) == 1
        assert "disk gone" in caplog.text


class TestDebouncedAnalyzer:
    def test_latest_edit_wins(self):
        publisher = CountingPublisher(InMemoryDiagnostics())
        debouncer = DebouncedAnalyzer(publisher, delay=60)
        debouncer.schedule(FakeDocument("file:///a.md", "first draft"))
        debouncer.schedule(FakeDocument("file:///a.md", NOISY_LINE))
        assert debouncer.pending() == ["file:///a.md"]
        debouncer.flush()
        assert publisher.calls == [NOISY_LINE]
        assert debouncer.pending() == []
        assert len(publisher.sink.get("file:///a.md")) == 1

    def test_documents_are_debounced_independently(self):
        publisher = CountingPublisher(InMemoryDiagnostics())
        debouncer = DebouncedAnalyzer(publisher, delay=60)
        debouncer.schedule(FakeDocument("file:///a.md", "a"))
        debouncer.schedule(FakeDocument("file:///b.md", "b"))
        debouncer.flush()
        assert sorted(publisher.calls) == ["a", "b"]

    def test_cancel_all_drops_pending_work(self):
        publisher = CountingPublisher(InMemoryDiagnostics())
        debouncer = DebouncedAnalyzer(publisher, delay=60)
        debouncer.schedule(FakeDocument("file:///a.md", NOISY_LINE))
        debouncer.cancel_all()
        debouncer.flush()
        assert publisher.calls == []

    def test_superseded_pass_does_not_overwrite_newer_findings(self):
        publisher = CountingPublisher(InMemoryDiagnostics())
        debouncer = DebouncedAnalyzer(publisher, delay=0.01)
        slow = SlowDocument("file:///a.md", NOISY_LINE)
        debouncer.schedule(slow)
        assert slow.reading.wait(5)

        debouncer.delay = 60
        debouncer.schedule(FakeDocument("file:///a.md", "fine now"))
        debouncer.flush()
        assert publisher.sink.get("file:///a.md") == ()

        publisher.finished.clear()
        slow.release.set()
        assert publisher.finished.wait(5)
        assert publisher.calls == [NOISY_LINE, "fine now"]
        assert publisher.sink.get("file:///a.md") == ()

    def test_cancel_all_stops_in_flight_pass(self):
        publisher = CountingPublisher(InMemoryDiagnostics())
        debouncer = DebouncedAnalyzer(publisher, delay=0.01)
        slow = SlowDocument("file:///a.md", NOISY_LINE)
        debouncer.schedule(slow)
        assert slow.reading.wait(5)
        debouncer.cancel_all()
        slow.release.set()
        assert publisher.finished.wait(5)
        assert len(publisher.sink) == 0


class TestStalenessCheck:
    def test_publish_skipped_when_snapshot_is_stale(self):
        sink = InMemoryDiagnostics()
        result = DiagnosticsPublisher(sink).analyze_and_publish(FakeDocument("file:///a.md", NOISY_LINE), is_current=lambda: False)
        assert result is None
        assert len(sink) == 0

    def test_unsupported_language_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            DiagnosticsPublisher(InMemoryDiagnostics()).analyze_and_publish(FakeDocument("file:///b.py", "x", language_id="python"))
        assert "'python' is not analyzed" in caplog.text
