from horrorhub.models.config import Config
from horrorhub.models.subgenre import Subgenre, ContentSubgenre
from horrorhub.models.platform import Platform, ContentPlatform
from horrorhub.models.content import Content
from horrorhub.models.api_usage import ApiUsage
from horrorhub.models.user import User
from horrorhub.models.watchlist import Watchlist

__all__ = [
    "Config",
    "Subgenre",
    "ContentSubgenre",
    "Platform",
    "ContentPlatform",
    "Content",
    "ApiUsage",
    "User",
    "Watchlist",
]
