"""
User-facing notifications.

A Notification is the toast the UI shows after an action: a level, a short
title and a description. Views attach it to responses under "notification".
"""
from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class Notification:
    level: str  # 'success', 'error', 'warning'
    title: str
    description: str = ''

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def success(cls, title: str, description: str = '') -> 'Notification':
        return cls('success', title, description)

    @classmethod
    def error(cls, title: str, description: str = '') -> 'Notification':
        return cls('error', title, description)

    @classmethod
    def warning(cls, title: str, description: str = '') -> 'Notification':
        return cls('warning', title, description)
