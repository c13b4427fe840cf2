"""
Notification Sink Protocol (Interface)
"""
from __future__ import annotations

from typing import Protocol


class NotificationSink(Protocol):
    async def send_welcome(self, email: str, name: str, password_hint: str) -> None:
        """
        Send the welcome email. ``password_hint`` is either the generated
        temporary password or a phrase like "your chosen password".
        """
        ...
