"""
News article acquisition: search, filter and populate articles per provider.
"""
from newsscraper.crawler.api import ApiArticle, ApiResult, ApiStrategy
from newsscraper.crawler.article import Article, ArticleMap, RunResult, merge_article
from newsscraper.crawler.exceptions import (
    ConfigurationError,
    DateParseError,
    FetchError,
    NewsScraperError,
    ParseError,
)
from newsscraper.crawler.extraction import ArticleExtractor, ExtractionRules
from newsscraper.crawler.fetch import DocumentFetcher, FetcherConfig, FetchResult
from newsscraper.crawler.filters import (
    PublicationDateFilter,
    URLPatternFilter,
    URLPrefixFilter,
    URLSuffixFilter,
)
from newsscraper.crawler.orchestrator import AcquisitionOrchestrator, Provider
from newsscraper.crawler.pagination import (
    PredictiveStrategy,
    ReactiveStrategy,
    SearchResultRules,
)
from newsscraper.crawler.populator import Populator

__all__ = [
    "AcquisitionOrchestrator",
    "ApiArticle",
    "ApiResult",
    "ApiStrategy",
    "Article",
    "ArticleExtractor",
    "ArticleMap",
    "ConfigurationError",
    "DateParseError",
    "DocumentFetcher",
    "ExtractionRules",
    "FetchError",
    "FetchResult",
    "FetcherConfig",
    "NewsScraperError",
    "ParseError",
    "Populator",
    "PredictiveStrategy",
    "Provider",
    "PublicationDateFilter",
    "ReactiveStrategy",
    "RunResult",
    "SearchResultRules",
    "URLPatternFilter",
    "URLPrefixFilter",
    "URLSuffixFilter",
    "merge_article",
]
