"""Cooperative cancellation for the session and match loops."""

import signal
import threading

from loguru import logger


class CancellationToken:
    """A stop request that can be raised from any thread.

    The loops check it at every iteration boundary and around blocking
    collaborator calls; a request never interrupts a call already in flight.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep for up to ``seconds``, waking early on cancellation.

        Returns:
            True if cancellation was requested.
        """
        if seconds <= 0:
            return self.cancelled
        return self._event.wait(seconds)


def install_sigint_handler(token: CancellationToken) -> None:
    """Turn Ctrl-C into a cancellation request instead of KeyboardInterrupt."""

    def _handle(signum, frame) -> None:
        logger.warning("Interrupt received, stopping after the current step")
        token.cancel()

    signal.signal(signal.SIGINT, _handle)
