"""
SQLAlchemy models of the article export database.
"""
from newsscraper.models.article import ArticleKeyword, ArticleRecord

__all__ = [
    "ArticleRecord",
    "ArticleKeyword",
]
