from .config import NotifierConfig
from .notifier import FailoverNotifier, HttpFailoverNotifier, NullFailoverNotifier

__all__ = [
    "FailoverNotifier",
    "HttpFailoverNotifier",
    "NotifierConfig",
    "NullFailoverNotifier",
]
