"""
Per-document debounce state and the decoration store.

Every document gets its own `DocumentSession` holding a settle timer and a
generation counter. A trigger restarts the timer; only the newest request
after a quiet period runs, and always with the newest text. Sessions belong
to a `HintSessionManager`, which the application starts on startup and
shuts down on exit.
"""
import logging
import threading
from typing import Callable, Dict, Optional

from vardec.config import AUTO_ANALYZE, SETTLE_DELAY_SECONDS
from vardec.models import DocumentEvent, EventAck, HintResponse
from vardec.services.hints import run_pass
from vardec.services.languages.registry import get_adapter, normalize_language

logger = logging.getLogger(__name__)

Renderer = Callable[[HintResponse], None]
Analyzer = Callable[..., HintResponse]


class DecorationStore:
    """Last applied decorations per document. Each apply replaces the full set."""

    def __init__(self):
        self._lock = threading.Lock()
        self._applied: Dict[str, HintResponse] = {}

    def apply(self, response: HintResponse) -> None:
        with self._lock:
            self._applied[response.document_id] = response

    def clear(self, document_id: str, language_id: str = "", status: str = "ok") -> None:
        self.apply(HintResponse(document_id=document_id, language_id=language_id, status=status))

    def get(self, document_id: str) -> Optional[HintResponse]:
        with self._lock:
            return self._applied.get(document_id)

    def forget(self, document_id: str) -> None:
        with self._lock:
            self._applied.pop(document_id, None)


class DocumentSession:
    def __init__(
        self,
        document_id: str,
        renderer: Renderer,
        settle_delay: float = SETTLE_DELAY_SECONDS,
        analyzer: Analyzer = run_pass,
    ):
        self.document_id = document_id
        self.settle_delay = settle_delay
        self._renderer = renderer
        self._analyzer = analyzer
        self._lock = threading.Lock()
        # Serialises passes so the timer thread and flush() never overlap.
        self._run_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[DocumentEvent] = None
        self._generation = 0
        self.passes_run = 0

    @property
    def generation(self) -> int:
        return self._generation

    def trigger(self, event: DocumentEvent) -> int:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = event
            generation = self._generation
            self._timer = threading.Timer(self.settle_delay, self._fire, args=(generation,))
            self._timer.daemon = True
            self._timer.start()
        return generation

    def flush(self) -> bool:
        """Run the pending request now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            generation = self._generation
        return self._fire(generation)

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            timer = self._timer
        if timer is not None:
            timer.join(timeout)
        # A pass that already left the timer may still be running.
        with self._run_lock:
            pass

    def close(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None
            # Anything still in flight is now stale.
            self._generation += 1

    def _fire(self, generation: int) -> bool:
        with self._run_lock:
            with self._lock:
                if generation != self._generation or self._pending is None:
                    logger.debug("Skipping superseded pass %s for %s", generation, self.document_id)
                    return False
                event = self._pending
                self._pending = None
                self._timer = None

            response = self._analyzer(
                event.text,
                event.language_id,
                tab_size=event.tab_size,
                path=event.path,
                document_id=self.document_id,
            )
            response.generation = generation
            self.passes_run += 1

            with self._lock:
                if generation != self._generation:
                    # A newer request arrived while this pass ran; it will render instead.
                    return False
                self._renderer(response)

            logger.info(
                "Applied %d decoration(s) to %s (status=%s, generation=%d)",
                len(response.decorations),
                self.document_id,
                response.status,
                generation,
            )
            return True


class HintSessionManager:
    def __init__(
        self,
        store: Optional[DecorationStore] = None,
        settle_delay: float = SETTLE_DELAY_SECONDS,
        auto_analyze: bool = AUTO_ANALYZE,
        analyzer: Analyzer = run_pass,
    ):
        self.store = store or DecorationStore()
        self.settle_delay = settle_delay
        self.auto_analyze = auto_analyze
        self._analyzer = analyzer
        self._sessions: Dict[str, DocumentSession] = {}
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        self._running = True

    def shutdown(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._running = False
        for session in sessions:
            session.close()

    def session(self, document_id: str) -> DocumentSession:
        with self._lock:
            session = self._sessions.get(document_id)
            if session is None:
                session = DocumentSession(
                    document_id,
                    renderer=self.store.apply,
                    settle_delay=self.settle_delay,
                    analyzer=self._analyzer,
                )
                self._sessions[document_id] = session
            return session

    def handle_event(self, document_id: str, event: DocumentEvent) -> EventAck:
        if not self._running:
            raise RuntimeError("Hint session manager is not running")

        language_id = normalize_language(event.language_id)
        if get_adapter(language_id) is None:
            # Nothing to analyse; make sure stale hints from a previous language go away.
            with self._lock:
                session = self._sessions.get(document_id)
            if session is not None:
                # A pass still queued for the old language must not render over the clear.
                session.close()
            self.store.clear(document_id, language_id=language_id, status="unsupported")
            return EventAck(document_id=document_id, scheduled=False)

        if event.kind in {"open", "activate"} and not self.auto_analyze:
            return EventAck(document_id=document_id, scheduled=False)

        generation = self.session(document_id).trigger(event)
        return EventAck(document_id=document_id, scheduled=True, generation=generation)

    def flush(self, document_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(document_id)
        if session is None:
            return False
        return session.flush()

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            session.wait_idle(timeout)

    def decorations(self, document_id: str) -> Optional[HintResponse]:
        return self.store.get(document_id)

    def close_document(self, document_id: str) -> bool:
        with self._lock:
            session = self._sessions.pop(document_id, None)
        if session is not None:
            session.close()
        known = session is not None or self.store.get(document_id) is not None
        self.store.forget(document_id)
        return known
