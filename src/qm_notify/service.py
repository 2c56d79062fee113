"""User-facing notifications.

Two kinds:
  - Notice: an in-app toast the UI renders (title + description + variant).
  - Desktop notification: a best-effort OS-level popup. Permission may be
    denied or the platform may not support it; failures never propagate.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from src.qm_common.enums import NoticeVariant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    title: str
    description: str = ""
    variant: NoticeVariant = NoticeVariant.DEFAULT


class NoticeSinkProtocol(Protocol):
    def emit(self, notice: Notice) -> None: ...


class DesktopNotifierProtocol(Protocol):
    async def show(self, title: str, body: str) -> None: ...


class LogNoticeSink:
    """Default sink: notices go to the log when no UI is attached."""

    def emit(self, notice: Notice) -> None:
        level = logging.WARNING if notice.variant == NoticeVariant.DESTRUCTIVE else logging.INFO
        logger.log(level, "%s: %s", notice.title, notice.description)


class LogDesktopNotifier:
    async def show(self, title: str, body: str) -> None:
        logger.info("[desktop] %s: %s", title, body)


async def notify_best_effort(notifier: DesktopNotifierProtocol | None, title: str, body: str) -> None:
    """Fire a desktop notification, ignoring any failure."""
    if notifier is None:
        return
    try:
        await notifier.show(title, body)
    except Exception:
        logger.debug("Desktop notification failed: %s", title, exc_info=True)
