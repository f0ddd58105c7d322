"""SQLAlchemy database models."""
from dotenv import load_dotenv

from trendpipe.models.base import Base
from trendpipe.models.content import Article, InternalLink
from trendpipe.models.keyword import TrendKeyword
from trendpipe.models.source import TrendSource
from trendpipe.models.topic import BlogTopic

load_dotenv()

__all__ = [
    "Base",
    "TrendKeyword",
    "TrendSource",
    "BlogTopic",
    "Article",
    "InternalLink",
]
