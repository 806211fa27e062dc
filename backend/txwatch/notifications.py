"""
User-facing transaction notifications.

A Notifier stands in for the toast layer of a UI: the executor and the watch
registry push pending/success/warning/error notifications through it. The
default implementation writes them to the log.
"""

from typing import Optional
from loguru import logger

class Notifier:
    """Notification sink. `key` identifies a replaceable notification, usually the tx hash."""

    def pending(self, key: str, title: str, description: str) -> None:
        raise NotImplementedError

    def success(self, title: str, description: str, link: Optional[str] = None) -> None:
        raise NotImplementedError

    def warning(self, title: str, description: str) -> None:
        raise NotImplementedError

    def error(self, title: str, description: str) -> None:
        raise NotImplementedError

    def dismiss(self, key: str) -> None:
        raise NotImplementedError

class LogNotifier(Notifier):
    def pending(self, key: str, title: str, description: str) -> None:
        logger.info(f"⏳ {title}: {description} [{key[:16]}]")

    def success(self, title: str, description: str, link: Optional[str] = None) -> None:
        suffix = f" ({link})" if link else ""
        logger.success(f"✅ {title}: {description}{suffix}")

    def warning(self, title: str, description: str) -> None:
        logger.warning(f"⚠️ {title}: {description}")

    def error(self, title: str, description: str) -> None:
        logger.error(f"❌ {title}: {description}")

    def dismiss(self, key: str) -> None:
        logger.debug(f"Dismissed notification {key[:16]}")
