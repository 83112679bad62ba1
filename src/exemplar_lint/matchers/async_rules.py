"""Blocking calls made from inside asynchronous functions."""

from ..models import Language
from ..sketch import Sketch
from .base import AntiPatternMatcher, LineRange, matching_pattern, unique_ranges

# Glob patterns over dotted call names
BLOCKING_CALLS: dict[Language, tuple[str, ...]] = {
    Language.PYTHON: (
        "time.sleep",
        "requests.*",
        "urllib.request.urlopen",
        "urlopen",
        "open",
        "input",
        "subprocess.*",
        "os.system",
        "os.popen",
        "socket.create_connection",
        "httpx.get",
        "httpx.post",
        "httpx.put",
        "httpx.patch",
        "httpx.delete",
        "httpx.request",
        "psycopg2.connect",
        "sqlite3.connect",
        "*.read_text",
        "*.write_text",
        "*.read_bytes",
        "*.write_bytes",
    ),
    Language.TYPESCRIPT: (
        "*Sync",
        "Atomics.wait",
    ),
    Language.CLOJURE: (
        "Thread/sleep",
        "slurp",
        "spit",
        "<!!",
        ">!!",
        "alts!!",
        "clj-http.client/*",
        "http/*",
        "client/*",
        "jdbc/*",
        "sh",
        "shell/sh",
        "clojure.java.shell/sh",
    ),
}


class BlockingCallInAsyncMatcher(AntiPatternMatcher):
    """Flags blocking I/O or sleeps inside async functions and go blocks."""

    KIND = "blocking-call-in-async"
    DESCRIPTION = "Blocking call inside async function"
    LANGUAGES = frozenset({Language.PYTHON, Language.TYPESCRIPT, Language.CLOJURE})

    def _hits(self, sketch: Sketch, patterns: tuple[str, ...]):
        for call in sketch.calls:
            pattern = matching_pattern(call.name, patterns)
            if pattern and sketch.in_async(call.open_index):
                yield pattern, call

    def derive(self, sketch: Sketch) -> tuple[str, ...] | None:
        patterns = BLOCKING_CALLS.get(sketch.language, ())
        found = {pattern for pattern, _ in self._hits(sketch, patterns)}
        return tuple(sorted(found)) or None

    def match(self, sketch: Sketch, params: tuple[str, ...]) -> list[LineRange]:
        return unique_ranges([(call.line, call.end_line) for _, call in self._hits(sketch, params)])
