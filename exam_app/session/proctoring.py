import logging
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

_ENTER_EVENTS = {'enterfullscreen'}
_LEAVE_EVENTS = {'leavefullscreen', 'exitfullscreen'}


def _event_name(e) -> str:
    """Normalize a flet window event (enum ``type`` or legacy ``data`` string)"""
    event_type = getattr(e, 'type', None)
    raw = getattr(event_type, 'value', event_type)
    if raw is None:
        raw = getattr(e, 'data', '')
    return str(raw or '').lower().replace('_', '').replace('-', '').replace('windoweventtype.', '')


class FullscreenGuard:
    """Full-screen presentation for an active exam.

    Wraps the flet page window. Engaging is best-effort: web pages and pages
    without a window simply report ``is_engaged == False``. Exits triggered by
    the test-taker (e.g. pressing Escape) are picked up from window events and
    reported to subscribers.
    """

    def __init__(self, page, enabled: bool = True):
        self.page = page
        self.enabled = enabled
        self._engaged = False
        self._original_state: Optional[bool] = None
        self._listeners: List[Callable[[bool], None]] = []
        self._attached = False
        self._previous_handler = None

    @property
    def window(self):
        return getattr(self.page, 'window', None) if self.page is not None else None

    @property
    def is_supported(self) -> bool:
        if not self.enabled or self.window is None:
            return False
        if getattr(self.page, 'web', False):
            return False
        return hasattr(self.window, 'full_screen')

    @property
    def is_engaged(self) -> bool:
        return self._engaged

    def subscribe(self, listener: Callable[[bool], None]):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[bool], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def attach(self):
        """Start listening to window events"""
        if self._attached or not self.is_supported:
            return
        window = self.window
        self._previous_handler = getattr(window, 'on_event', None)
        window.on_event = self.handle_window_event
        self._attached = True
        self._engaged = bool(getattr(window, 'full_screen', False))

    def detach(self):
        if not self._attached:
            return
        self.window.on_event = self._previous_handler
        self._previous_handler = None
        self._attached = False

    def engage(self) -> bool:
        """Request full-screen. Returns the resulting status."""
        if not self.is_supported:
            logger.warning("[FULLSCREEN] Full-screen not available, continuing without it")
            return False
        try:
            self.attach()
            window = self.window
            if self._original_state is None:
                self._original_state = bool(getattr(window, 'full_screen', False))
            window.full_screen = True
            self.page.update()
            self._set_engaged(bool(window.full_screen))
        except Exception as e:
            logger.warning(f"[FULLSCREEN] Could not enable fullscreen: {e}")
            self._set_engaged(False)
        return self._engaged

    def release(self):
        """Leave full-screen, restoring whatever state was in effect before engage()"""
        if not self.is_supported:
            return
        try:
            window = self.window
            window.full_screen = bool(self._original_state)
            self.page.update()
            self._set_engaged(bool(window.full_screen))
        except Exception as e:
            logger.warning(f"[FULLSCREEN] Could not restore fullscreen state: {e}")
        finally:
            self._original_state = None

    def handle_window_event(self, e):
        name = _event_name(e)
        if name in _ENTER_EVENTS:
            engaged = True
        elif name in _LEAVE_EVENTS:
            engaged = False
        else:
            engaged = bool(getattr(self.window, 'full_screen', self._engaged))
        if name in _ENTER_EVENTS or name in _LEAVE_EVENTS:
            logger.info(f"[FULLSCREEN] Window event detected: {name}")
        self._set_engaged(engaged)
        if self._previous_handler:
            self._previous_handler(e)

    def _set_engaged(self, engaged: bool):
        if engaged == self._engaged:
            return
        self._engaged = engaged
        for listener in list(self._listeners):
            try:
                listener(engaged)
            except Exception as e:
                logger.error(f"[FULLSCREEN] Listener failed: {e}")
