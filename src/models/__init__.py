"""
ORM models. Importing the package registers every mapper so that string
relationship targets resolve no matter which model is used first.
"""

from src.models.api_key_model import APIKey
from src.models.bookmark_model import Bookmark, Collection
from src.models.usage_model import APIUsage
from src.models.user_model import User
from src.models.webhook_model import WebhookSubscription

__all__ = [
    "APIKey",
    "APIUsage",
    "Bookmark",
    "Collection",
    "User",
    "WebhookSubscription",
]
