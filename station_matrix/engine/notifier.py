"""Notification channel for user-visible outcomes."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class Notifier(ABC):
    @abstractmethod
    def success(self, message: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def error(self, message: str) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default channel: messages go to the application log."""

    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.warning(message)


@dataclass
class RecordingNotifier(Notifier):
    successes: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def success(self, message: str) -> None:
        self.successes.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)
