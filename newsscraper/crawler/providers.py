"""
Configurations of the supported news providers.

Every provider is plain data: how to build its search URLs, where the
results and article fields live in its markup, which date formats it uses
and which filters apply to it.
"""
import logging
from typing import Callable, Dict, List, Optional, Sequence
from urllib.parse import quote, urlencode

from bs4 import Tag

from newsscraper.crawler.api import ApiStrategy
from newsscraper.crawler.exceptions import ConfigurationError
from newsscraper.crawler.extraction import (
    ArticleExtractor,
    DateSource,
    ExtractionRules,
    date_from_sources,
    own_text,
)
from newsscraper.crawler.fetch import DocumentFetcher
from newsscraper.crawler.filters import URLSuffixFilter, date_range_filter_factory
from newsscraper.crawler.orchestrator import Provider
from newsscraper.crawler.pagination import (
    PredictiveStrategy,
    ReactiveStrategy,
    SearchResultRules,
    continue_on_short_page,
    first_href,
)
from newsscraper.crawler.populator import jittered_delay
from newsscraper.crawler.results import GuardianResult, ZeitResult

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[DocumentFetcher, object], Provider]


def with_query(base_url: str, params: Sequence) -> str:
    """Append URL encoded ``params`` to ``base_url``."""
    separator = "&" if "?" in base_url else "?"
    return base_url + separator + urlencode(params, quote_via=quote)


def page_number(offset: int, limit: int) -> int:
    """1-based page number of ``offset``."""
    return offset // limit + 1


# -- The Guardian ------------------------------------------------------------

GUARDIAN_URL = "http://content.guardianapis.com/search"


def guardian(fetcher: DocumentFetcher, settings) -> Provider:
    api_key = settings.GUARDIAN_API_KEY

    def search_url(keyword, from_date, to_date, offset, limit):
        return with_query(GUARDIAN_URL, [
            ("api-key", api_key),
            ("q", keyword),
            ("from-date", from_date.strftime("%Y-%m-%d")),
            ("to-date", to_date.strftime("%Y-%m-%d")),
            ("page", page_number(offset, limit)),
            ("page-size", limit),
            ("order-by", "newest"),
            ("use-date", "published"),
            ("show-fields", "trailText,body"),
        ])

    # Subtitle and body come with the search result, no page fetch needed
    return Provider(
        name="guardian",
        display_name="The Guardian",
        strategy=ApiStrategy(
            fetcher, search_url, GuardianResult, page_size=50, root_element="response",
        ),
        fetcher=fetcher,
    )


# -- Die Zeit ----------------------------------------------------------------

ZEIT_URL = "http://api.zeit.de/content"


def zeit(fetcher: DocumentFetcher, settings) -> Provider:
    api_key = settings.ZEIT_API_KEY

    def search_url(keyword, from_date, to_date, offset, limit):
        fmt = "%Y-%m-%dT%H:%M:%S"
        query = f"{keyword} AND release_date:[{from_date.strftime(fmt)} TO {to_date.strftime(fmt)}]"
        return with_query(ZEIT_URL, [
            ("api_key", api_key),
            ("q", query),
            ("offset", offset),
            ("limit", limit),
            ("sort", "release_date desc"),
            ("fields", "href,title,subtitle,release_date"),
        ])

    return Provider(
        name="zeit",
        display_name="Die Zeit",
        strategy=ApiStrategy(fetcher, search_url, ZeitResult, page_size=100),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            full_text_selector=".article-body",
            languages=["de"],
        )),
    )


# -- Der Spiegel / Spiegel Online ----------------------------------------

SPIEGEL_SEARCH_URL = "http://www.spiegel.de/suche/index.html"

SPIEGEL_RESULTS = SearchResultRules(
    results_selector="#content-main .column-wide.spSearchPage .search-teaser",
    url_selector="a",
    title_selector=".headline",
)


def spiegel_search_url(source_group: str):
    def search_url(keyword, from_date, to_date, offset, limit):
        return with_query(SPIEGEL_SEARCH_URL, [
            ("quellenGroup", source_group),
            ("suchbegriff", keyword),
            ("fromDate", from_date.strftime("%d.%m.%Y")),
            ("toDate", to_date.strftime("%d.%m.%Y")),
            ("pageNumber", page_number(offset, limit)),
            ("offsets", offset),
        ])

    return search_url


def spiegel_online(fetcher: DocumentFetcher, settings) -> Provider:
    return Provider(
        name="spiegel_online",
        display_name="Spiegel Online",
        strategy=PredictiveStrategy(
            fetcher,
            spiegel_search_url("SPOX"),
            SPIEGEL_RESULTS,
            page_size=20,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector="#content-main p.article-intro",
            full_text_selector="#content-main .article-section",
            languages=["de"],
            date_extractor=date_from_sources([
                DateSource(
                    'time[itemprop="datePublished"][datetime]',
                    attribute="datetime",
                    formats=["%Y-%m-%d %H:%M:%S"],
                ),
                DateSource(
                    'span[itemprop="datePublished"][content]',
                    attribute="content",
                ),
                DateSource(
                    ".module-box .article-function-box-wide span",
                    formats=["%d.%m.%Y – %H:%M Uhr", "%d.%m.%Y - %H:%M Uhr"],
                ),
                DateSource(
                    "#content-main li.article-function-date time",
                    formats=["%a, %d.%m.%Y – %H:%M Uhr"],
                ),
            ], languages=["de"]),
        )),
    )


def spiegel(fetcher: DocumentFetcher, settings) -> Provider:
    # The print archive search under-fills pages although more results follow
    return Provider(
        name="spiegel",
        display_name="Der Spiegel",
        strategy=PredictiveStrategy(
            fetcher,
            spiegel_search_url("SP"),
            SPIEGEL_RESULTS,
            page_size=20,
            short_page_hook=continue_on_short_page,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector="#content-main p.author ~ p > strong",
            full_text_selector="#content-main div.artikel",
            publication_date_selector="div#spShortDate",
            publication_date_formats=["%d.%m.%Y"],
            languages=["de"],
        )),
    )


# -- Süddeutsche Zeitung -----------------------------------------------------

SUEDDEUTSCHE_URL = "http://suche.sueddeutsche.de/query/"


def _sueddeutsche_title(element: Tag) -> str:
    # The headline link also holds an overline and a department label
    link = element.select_one("a.entry-title")
    return own_text(link) if link is not None else ""


def sueddeutsche(fetcher: DocumentFetcher, settings) -> Provider:
    def search_url(keyword, from_date, to_date, offset, limit):
        return (
            f"{SUEDDEUTSCHE_URL}{quote(keyword)}"
            f"/nav/{quote('§documenttype:Artikel', safe=':')}/sort/-docdatetime"
            f"/page/{page_number(offset, limit)}"
        )

    # The search cannot be restricted by date
    return Provider(
        name="sueddeutsche",
        display_name="Süddeutsche Zeitung",
        strategy=PredictiveStrategy(
            fetcher,
            search_url,
            SearchResultRules(
                results_selector="div#sitecontent.search div.content div.teaser",
                url_selector="a.entry-title",
                title_selector="a.entry-title",
                title_extractor=_sueddeutsche_title,
            ),
            page_size=15,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector="article section.body p.article.entry-summary",
            full_text_selector=(
                "article section.body p:not([class]), "
                "article section.body ul, article section.body h3"
            ),
            publication_date_selector="article section.header time",
            publication_date_formats=["%Y-%m-%d %H:%M:%S"],
            date_attribute="datetime",
            languages=["de"],
        )),
        post_filter_factory=date_range_filter_factory(reject_missing=False),
    )


# -- The Telegraph -----------------------------------------------------------

TELEGRAPH_URL = (
    "http://www.telegraph.co.uk/template/ver1-0/templates/fragments/otsn/results.jsp"
    "?fq[]=type:Article&sort=recent&paging=true&ajax=true"
)


def telegraph(fetcher: DocumentFetcher, settings) -> Provider:
    def search_url(keyword, from_date, to_date, offset, limit):
        return with_query(TELEGRAPH_URL, [
            ("queryText", keyword),
            ("range", from_date.strftime("%Y-%m-%d")),
            ("rangeTo", to_date.strftime("%Y-%m-%dT%H:%M:%S.999Z")),
            ("p", page_number(offset, limit)),
            ("limit", limit),
        ])

    return Provider(
        name="telegraph",
        display_name="The Telegraph",
        strategy=PredictiveStrategy(
            fetcher,
            search_url,
            SearchResultRules(
                results_selector="ul.searchresults li.searchresult",
                url_selector="div h3 a",
                title_selector="div h3 a",
            ),
            page_size=20,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector=".twoThirds.gutter .storyhead h2",
            full_text_selector=(
                '.twoThirds.gutter #mainBodyArea div[class$="Par"], '
                ".twoThirds.gutter #mainBodyArea div.body"
            ),
            publication_date_selector=".twoThirds.gutter p.publishedDate",
            publication_date_formats=["%I:%M%p %Z %d %b %Y"],
        )),
    )


# -- Daily Mail --------------------------------------------------------------

DAILY_MAIL_URL = "http://www.dailymail.co.uk/home/search.html?sel=site&type=article"


def daily_mail(fetcher: DocumentFetcher, settings) -> Provider:
    def search_url(keyword, from_date, to_date, offset, limit):
        return with_query(DAILY_MAIL_URL, [
            ("searchPhrase", keyword),
            ("size", limit),
            ("offset", offset),
            ("sort", "recent"),
            ("days", "all"),
        ])

    # Article timestamps are wrapped with a label, hence own text only.
    # Pages without a timestamp may still carry a "Last updated at" note.
    dates = date_from_sources([
        DateSource(
            "div.article-text span.article-timestamp",
            own_text=True,
            formats=["%H:%M %Z, %d %B %Y", "%H:%M %Z, %d %b %Y"],
        ),
        DateSource(
            'div.article-text h1 ~ p:-soup-contains("Last updated at")',
            own_text=True,
            strip_prefix="Last updated at ",
            formats=["%H:%M %d %B %Y", "%H:%M %d %b %Y"],
        ),
    ])

    # No date range in the search; the server also rejects request bursts
    return Provider(
        name="daily_mail",
        display_name="Daily Mail Online",
        strategy=PredictiveStrategy(
            fetcher,
            search_url,
            SearchResultRules(
                results_selector="div#search div.sch-results div.sch-result",
                url_selector="div.sch-res-content h3.sch-res-title a",
                title_selector="div.sch-res-content h3.sch-res-title a",
            ),
            page_size=50,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector="div.article-text > h1 + ul.mol-bullets-with-font",
            full_text_selector=(
                'div.article-text h1 ~ p:not(.author-section):not([class*="byline"]), '
                "div.article-text h1 ~ div:not(.column-content.cleared)"
                ":not(#most-read-news-wrapper):not(#most-watched-videos-wrapper)"
                ":not(.article-reader-comments):not(#articleIconLinksContainer)"
                ":not(#taboola-below-main-column)"
            ),
            date_extractor=dates,
        )),
        post_filter_factory=date_range_filter_factory(reject_missing=False),
        before_populate=jittered_delay(settings.DAILY_MAIL_MAX_DELAY_SECONDS),
    )


# -- Mirror ------------------------------------------------------------------

MIRROR_URL = "http://www.mirror.co.uk/search/advanced.do?destinationSectionId=219&publicationName=mirror"


def mirror(fetcher: DocumentFetcher, settings) -> Provider:
    def search_url(keyword, from_date, to_date, offset, limit):
        fmt = "%Y-%m-%dT%H:%M:%SZ"
        return with_query(MIRROR_URL, [
            ("searchString", keyword),
            ("dateRange", f"{from_date.strftime(fmt)} TO {to_date.strftime(fmt)}"),
            ("pageLength", limit),
            ("pageNumber", page_number(offset, limit)),
            ("sortString", "publishdate"),
            ("sortOrder", "desc"),
        ])

    return Provider(
        name="mirror",
        display_name="Mirror",
        strategy=PredictiveStrategy(
            fetcher,
            search_url,
            SearchResultRules(
                results_selector="div.search-results div.article:not(.no-results)",
                url_selector="h3 a",
                title_selector="h3 a",
            ),
            page_size=50,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector='div.article-page div.article div[itemprop*="alternativeHeadline"]',
            full_text_selector='div.article-page div.article div[itemprop="articleBody"]',
            date_extractor=date_from_sources([
                DateSource(
                    'time[itemprop="datePublished"][datetime]',
                    attribute="datetime",
                    formats=["%Y-%m-%dT%H:%M%z"],
                ),
                DateSource(
                    'div.article-page div.article [data-type="pub-date"]',
                    formats=["%H:%M, %d %b %Y", "%H:%M, %d %B %Y"],
                ),
            ]),
        )),
        # Links ending in .ece lead to syndicated stubs, not articles
        pre_filter=URLSuffixFilter(".ece"),
    )


# -- Der Tagesspiegel --------------------------------------------------------

TAGESSPIEGEL_URL = "http://www.tagesspiegel.de/suchergebnis/artikel/"


def tagesspiegel(fetcher: DocumentFetcher, settings) -> Provider:
    def search_url(keyword, from_date, to_date, offset, limit):
        return with_query(TAGESSPIEGEL_URL, [
            ("sw", keyword),
            ("search-fromday", from_date.day),
            ("search-frommonth", from_date.month),
            ("search-fromyear", from_date.year),
            ("search-today", to_date.day),
            ("search-tomonth", to_date.month),
            ("search-toyear", to_date.year),
            ("p9049616", page_number(offset, limit)),
        ])

    return Provider(
        name="tagesspiegel",
        display_name="Der Tagesspiegel",
        strategy=PredictiveStrategy(
            fetcher,
            search_url,
            SearchResultRules(
                results_selector=(
                    "div.hcf-result > ul.hcf-teaser-list > "
                    "li.hcf-teaser:not(.hcf-hidden):has(h2)"
                ),
                url_selector="h2 a",
                title_selector="h2 a span.hcf-headline",
            ),
            page_size=20,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector="article p.hcf-teaser",
            full_text_selector="article > p:not(.hcf-teaser)",
            publication_date_selector="article span.date",
            publication_date_formats=["%d.%m.%Y %H:%M Uhr"],
            languages=["de"],
        )),
    )


# -- Stern -------------------------------------------------------------------

STERN_URL = "http://wefind.stern.de/suche?extendedSearch=on"


def stern(fetcher: DocumentFetcher, settings) -> Provider:
    def search_url(keyword, from_date, to_date, offset, limit):
        return with_query(STERN_URL, [
            ("query", keyword),
            ("datehistogram", "range"),
            ("rangeFromDay", from_date.day),
            ("rangeFromMonth", from_date.month),
            ("rangeFromYear", from_date.year),
            ("rangeToDay", to_date.day),
            ("rangeToMonth", to_date.month),
            ("rangeToYear", to_date.year),
            ("format", "Artikel"),
            # 0-based
            ("pageIndex", offset // limit),
        ])

    return Provider(
        name="stern",
        display_name="Stern",
        strategy=PredictiveStrategy(
            fetcher,
            search_url,
            SearchResultRules(
                results_selector="div#main div#boxArchiveContent1 div.moduleL17",
                url_selector="a.h2",
                title_selector="a.h2 span.boxHeadline",
            ),
            page_size=10,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector="p#div_article_intro",
            full_text_selector=(
                'div#main.pageArticle div[itemprop="mainContentOfPage"] span[itemprop="articleBody"], '
                "div#main.pageArticle div.boxTabProContra ~ div.boxContent, "
                "div#main.pageArticle div#div_module_xl7 div.moduleHookContainer:nth-child(1) ~ *"
            ),
            publication_date_selector="div#main.pageArticle div.datePublished",
            publication_date_formats=["%d. %B %Y, %H:%M", "%d. %b %Y, %H:%M"],
            languages=["de"],
        )),
    )


# -- Frankfurter Allgemeine --------------------------------------------------

FAZ_URL = "http://www.faz.net/suche/s{page}.html"


def _faz_url(element: Tag, base_url: str) -> Optional[str]:
    """
    Article URL of a FAZ search result.

    Older articles are not linked from the result list. Their id can still be
    read from the archive link, and the article is reachable under an id URL.
    """
    url = first_href(element, "a.TeaserHeadLink", base_url)
    if url is not None:
        return url

    archive_link = element.select_one("div.ArchivInfo a.ArchivLink")
    if archive_link is None:
        return None
    href = archive_link.get("href", "")
    if "=" not in href:
        return None
    article_id = href.split("=")[1].replace(".", "")
    return f"http://www.faz.net/-{article_id}.html?printPagedArticle=true"


def faz(fetcher: DocumentFetcher, settings) -> Provider:
    def search_url(keyword, from_date, to_date, offset, limit):
        return with_query(FAZ_URL.format(page=page_number(offset, limit)), [
            ("BTyp", "redaktionelleInhalte"),
            ("chkBoxType_2", "on"),
            ("sort", "date"),
            ("query", keyword),
            ("from", from_date.strftime("%d.%m.%Y")),
            ("to", to_date.strftime("%d.%m.%Y")),
            ("resultsPerPage", limit),
        ])

    return Provider(
        name="faz",
        display_name="Frankfurter Allgemeine Zeitung",
        strategy=PredictiveStrategy(
            fetcher,
            search_url,
            SearchResultRules(
                results_selector="form#search div.SuchergebnisListe div.Teaser620",
                url_selector="a.TeaserHeadLink",
                title_selector="span.headline",
                url_extractor=_faz_url,
            ),
            page_size=80,
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector='div.Artikel div.FAZArtikelEinleitung [itemprop="description"]',
            full_text_selector='div.Artikel [itemprop="articleBody"]',
            publication_date_selector='div.Artikel [itemprop="datePublished"]',
            publication_date_formats=["%Y-%m-%dT%H:%M:%S%z"],
            date_attribute="content",
            languages=["de"],
        )),
    )


# -- Welt --------------------------------------------------------------------

WELT_URL = "http://suchen.welt.de/woa/search.do?outputs=80&wtmc=suche_main&mode=extended"


def welt(fetcher: DocumentFetcher, settings) -> Provider:
    def first_url(keyword, from_date, to_date, limit):
        return with_query(WELT_URL, [
            ("search", keyword),
            ("date", "period"),
            ("dateFrom", from_date.strftime("%d.%m.%Y")),
            ("dateTo", to_date.strftime("%d.%m.%Y")),
            ("order", "date desc"),
            ("length", limit),
        ])

    return Provider(
        name="welt",
        display_name="Welt",
        strategy=ReactiveStrategy(
            fetcher,
            first_url,
            "div.pagination span.page.next a",
            SearchResultRules(
                results_selector="div.SearchrResultList div.article",
                url_selector="h4.headLine a",
                title_selector="h4.headLine a",
            ),
            page_size=10,
            # The next link drops the page size parameter
            next_url=lambda url: url + "&outputs=80",
            max_pages=settings.MAX_PAGES,
        ),
        fetcher=fetcher,
        extractor=ArticleExtractor(ExtractionRules(
            subtitle_selector="div#main p#artAbstract",
            full_text_selector="div#main div.groupWrapper div.storyBody",
            publication_date_selector="div.timestamp span.time",
            publication_date_formats=["%d.%m.%y"],
            languages=["de"],
        )),
    )


PROVIDERS: Dict[str, ProviderFactory] = {
    "guardian": guardian,
    "zeit": zeit,
    "spiegel_online": spiegel_online,
    "spiegel": spiegel,
    "sueddeutsche": sueddeutsche,
    "telegraph": telegraph,
    "daily_mail": daily_mail,
    "mirror": mirror,
    "tagesspiegel": tagesspiegel,
    "stern": stern,
    "faz": faz,
    "welt": welt,
}

# Provider name -> settings attribute holding its API key
API_KEYS = {
    "guardian": "GUARDIAN_API_KEY",
    "zeit": "ZEIT_API_KEY",
}


def resolve_provider_names(names: Optional[Sequence[str]] = None) -> List[str]:
    """
    Validate provider names; None selects every provider.

    Raises:
        ConfigurationError: if a name is unknown
    """
    if names is None:
        return list(PROVIDERS)

    resolved = [n.strip().lower() for n in names if n and n.strip()]
    unknown = [n for n in resolved if n not in PROVIDERS]
    if unknown:
        raise ConfigurationError(
            f"Unknown provider(s): {', '.join(unknown)}. "
            f"Available: {', '.join(PROVIDERS)}"
        )
    if not resolved:
        raise ConfigurationError("No providers selected")
    return list(dict.fromkeys(resolved))


def build_providers(
    fetcher: DocumentFetcher,
    settings,
    names: Optional[Sequence[str]] = None,
) -> List[Provider]:
    """
    Build the configured providers.

    Args:
        fetcher: Shared fetch client
        settings: Application settings
        names: Providers to build; defaults to ``settings.enabled_providers``

    Raises:
        ConfigurationError: for unknown names, or for an explicitly selected
            API provider without an API key
    """
    explicit = names if names is not None else settings.enabled_providers
    selected = resolve_provider_names(explicit)

    providers = []
    for name in selected:
        key_setting = API_KEYS.get(name)
        if key_setting and not getattr(settings, key_setting):
            if explicit is not None:
                raise ConfigurationError(f"Provider {name} requires {key_setting} to be set")
            logger.warning("Skipping provider %s: %s is not set", name, key_setting)
            continue
        providers.append(PROVIDERS[name](fetcher, settings))
    return providers
