"""Pause gate consulted before transcript mutations."""

import logging

logger = logging.getLogger(__name__)


class PauseGate:
    """A single externally toggled pause flag.

    While paused, inbound turns are dropped rather than buffered; audio keeps
    flowing so the remote session stays up.
    """

    def __init__(self, paused: bool = False):
        self._paused = paused

    @property
    def is_paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        if not self._paused:
            logger.info("Transcript updates paused")
        self._paused = True

    def resume(self) -> None:
        if self._paused:
            logger.info("Transcript updates resumed")
        self._paused = False
