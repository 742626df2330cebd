"""
Watchmode -> catalog ingestion

A sync run pages through Watchmode candidates supplied by a SyncStrategy,
skips titles already stored (by Watchmode id, then title + year +-1) before
spending any request on them, enriches the rest (details, sources, poster),
and persists the new rows with their platform links.

Every Watchmode call costs one unit of the monthly quota. The run budget is
min(maxRequests, remaining quota); a title costs two requests (details +
sources) and a result page one.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, date
from typing import AsyncIterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from horrorhub.models.content import Content
from horrorhub.services import content_repository, platform_repository
from horrorhub.services.platform_repository import POPULAR_PLATFORMS, UnknownPlatformError
from horrorhub.services.poster_resolver import find_backfill_poster, resolve_poster_url
from horrorhub.services.settings import get_int_setting, get_setting
from horrorhub.services.tvdb_client import TVDBClient
from horrorhub.services.usage_ledger import QuotaExceededError, UsageLedger
from horrorhub.services.watchmode_client import WatchmodeClient, WatchmodeError
from horrorhub.services.watchmode_converter import (
    content_type_for, convert_title_to_content, filter_platform_sources, has_genre,
)


logger = logging.getLogger(__name__)

REQUESTS_PER_TITLE = 2
QUOTA_EXHAUSTED = "API request limit reached for the month."
DEFAULT_SELECTED_PLATFORMS = ["Netflix", "Amazon Prime Video", "Hulu", "HBO Max", "Shudder"]

ADDED = "added"
SKIPPED_EXISTING = "skipped_existing"
FILTERED_OUT = "filtered_out"
ERROR = "error"


# --- Run parameters and results ---

@dataclass
class SyncOptions:
    titles_to_sync_count: Optional[int] = None
    max_requests: Optional[int] = None
    selected_platforms: Optional[List[str]] = None
    min_rating: Optional[float] = None
    validation_only: bool = False


@dataclass
class SyncSettings:
    horror_genre_id: int = 11
    hidden_genre_id: int = 33
    default_poster_url: str = content_repository.DEFAULT_POSTER_URL

    @classmethod
    def from_config(cls, db: Session) -> "SyncSettings":
        return cls(
            horror_genre_id=get_int_setting(db, "horror_genre_id", 11),
            hidden_genre_id=get_int_setting(db, "hidden_genre_id", 33),
            default_poster_url=get_setting(db, "default_poster_url", content_repository.DEFAULT_POSTER_URL),
        )


@dataclass
class TitleOutcome:
    title: str
    year: Optional[int]
    action: str
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"title": self.title, "year": self.year, "action": self.action}
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class SearchStats:
    total_titles_found: int = 0
    pages_searched: int = 0
    duplicates_skipped: int = 0
    filtered_out: int = 0


@dataclass
class SyncResult:
    strategy: str
    new_movies_added: int = 0
    movies_validated: int = 0
    movies_removed: int = 0
    requests_used: int = 0
    errors: List[str] = field(default_factory=list)
    summary: str = ""
    titles_processed: List[TitleOutcome] = field(default_factory=list)
    search_stats: SearchStats = field(default_factory=SearchStats)
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def record(self, title: str, year: Optional[int], action: str, reason: Optional[str] = None):
        self.titles_processed.append(TitleOutcome(title=title, year=year, action=action, reason=reason))

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy,
            "newMoviesAdded": self.new_movies_added,
            "moviesValidated": self.movies_validated,
            "moviesRemoved": self.movies_removed,
            "requestsUsed": self.requests_used,
            "errors": list(self.errors),
            "summary": self.summary,
            "titlesProcessed": [t.to_dict() for t in self.titles_processed],
            "searchStats": {
                "totalTitlesFound": self.search_stats.total_titles_found,
                "pagesSearched": self.search_stats.pages_searched,
                "duplicatesSkipped": self.search_stats.duplicates_skipped,
                "filteredOut": self.search_stats.filtered_out,
            },
            "timestamp": self.timestamp,
        }


def generate_summary(result: SyncResult) -> str:
    stats = result.search_stats
    parts = []
    if result.new_movies_added > 0:
        parts.append(f"{result.new_movies_added} new content items added")
    if result.movies_validated > 0:
        parts.append(f"{result.movies_validated} items validated")
    if result.movies_removed > 0:
        parts.append(f"{result.movies_removed} items removed")
    if stats.duplicates_skipped > 0:
        parts.append(f"{stats.duplicates_skipped} duplicates skipped")
    if stats.filtered_out > 0:
        parts.append(f"{stats.filtered_out} filtered out")
    if result.requests_used > 0:
        parts.append(f"{result.requests_used} API requests used")
    if stats.pages_searched > 0:
        parts.append(f"{stats.pages_searched} pages searched")
    if result.errors:
        parts.append(f"{len(result.errors)} errors occurred")
    return ", ".join(parts) + "." if parts else "No changes made."


class RequestBudget:
    """Requests this run may still send, measured on the client's own counter"""

    def __init__(self, limit: int, client: WatchmodeClient):
        self.limit = limit
        self.client = client
        self.start = client.request_count

    @property
    def used(self) -> int:
        return self.client.request_count - self.start

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.used)

    def can_afford(self, cost: int) -> bool:
        return self.remaining >= cost


# --- Strategies ---

@dataclass
class Candidate:
    watchmode_id: int
    title: str
    year: Optional[int]
    type: Optional[str] = None
    source_release_date: Optional[str] = None
    require_horror: bool = False


@dataclass
class Page:
    candidates: List[Candidate]


def _candidate(item: dict, **extra) -> Candidate:
    return Candidate(
        watchmode_id=item.get("id"),
        title=item.get("title") or "",
        year=item.get("year"),
        type=item.get("type") or item.get("tv_type"),
        **extra,
    )


class SyncStrategy:
    """Supplies candidate pages; every yielded page cost exactly one request"""
    name = "base"
    default_target = 25
    max_titles: Optional[int] = None

    def pages(self, client: WatchmodeClient, platform_ids: List[int], options: SyncOptions,
              settings: SyncSettings) -> AsyncIterator[Page]:
        raise NotImplementedError

    def source_release_date(self, candidate: Candidate, details: dict) -> Optional[str]:
        return None


class HorrorGenreStrategy(SyncStrategy):
    """Bulk sync: horror titles on the selected platforms, most popular first"""
    name = "horror_genre"
    default_target = 25
    page_size = 250

    async def pages(self, client, platform_ids, options, settings):
        page = 1
        while True:
            result = await client.search_titles(
                genres=[settings.horror_genre_id],
                source_ids=platform_ids,
                minimum_rating=options.min_rating,
                sort_by="popularity_desc",
                page=page,
                limit=self.page_size,
            )
            titles = result["titles"]
            yield Page(candidates=[_candidate(t) for t in titles])
            total_pages = result.get("total_pages") or 0
            if not titles or (total_pages and page >= total_pages):
                return
            page += 1


class NewToStreamingStrategy(SyncStrategy):
    """
    Daily sync: the newest horror titles, then the last 30 days of titles that
    arrived on a subscription service (horror-checked after fetching details).
    """
    name = "new_to_streaming"
    default_target = 15
    max_titles = 15
    search_limit = 15
    search_top = 8

    async def pages(self, client, platform_ids, options, settings):
        search = await client.search_titles(
            genres=[settings.horror_genre_id],
            source_ids=platform_ids,
            sort_by="release_date_desc",
            limit=self.search_limit,
        )
        yield Page(candidates=[_candidate(t) for t in search["titles"][:self.search_top]])

        releases = await client.get_recent_releases(
            source_ids=platform_ids,
            change_type="new,subscription",
            types="movie,tv",
            days_back=30,
            limit=100,
        )
        yield Page(candidates=[
            _candidate(r, source_release_date=r.get("source_release_date"), require_horror=True)
            for r in releases
        ])

    def source_release_date(self, candidate, details):
        return (candidate.source_release_date
                or details.get("release_date")
                or date.today().isoformat())


STRATEGIES = {
    HorrorGenreStrategy.name: HorrorGenreStrategy,
    NewToStreamingStrategy.name: NewToStreamingStrategy,
}


@dataclass
class StagedTitle:
    candidate: Candidate
    values: dict
    links: List[dict]


# --- Orchestrator ---

class ContentSyncService:
    def __init__(self, db: Session, client: WatchmodeClient, ledger: UsageLedger,
                 strategy: Optional[SyncStrategy] = None, tvdb: Optional[TVDBClient] = None,
                 settings: Optional[SyncSettings] = None):
        self.db = db
        self.client = client
        self.ledger = ledger
        self.strategy = strategy or HorrorGenreStrategy()
        self.tvdb = tvdb
        self.settings = settings or SyncSettings.from_config(db)

    def _selected_platform_ids(self, options: SyncOptions) -> List[int]:
        if isinstance(self.strategy, NewToStreamingStrategy):
            return list(POPULAR_PLATFORMS.values())
        names = options.selected_platforms or DEFAULT_SELECTED_PLATFORMS
        ids = [POPULAR_PLATFORMS[n] for n in names if n in POPULAR_PLATFORMS]
        if not ids:
            logger.warning(f"No known platforms in {names}, searching all tracked platforms")
            ids = list(POPULAR_PLATFORMS.values())
        return ids

    def _plan(self, options: SyncOptions, result: SyncResult) -> Optional[RequestBudget]:
        remaining = self.ledger.remaining()
        run_budget = remaining if options.max_requests is None else min(options.max_requests, remaining)
        max_titles = run_budget // REQUESTS_PER_TITLE
        if max_titles <= 0:
            result.errors.append(QUOTA_EXHAUSTED)
            logger.warning(f"✗ Sync not started: {remaining} Watchmode requests left this month")
            return None
        return RequestBudget(run_budget, self.client)

    def _target(self, options: SyncOptions, budget: RequestBudget) -> int:
        requested = (
            options.titles_to_sync_count
            or (options.max_requests // REQUESTS_PER_TITLE if options.max_requests else None)
            or self.strategy.default_target
        )
        target = min(requested, budget.limit // REQUESTS_PER_TITLE)
        if self.strategy.max_titles:
            target = min(target, self.strategy.max_titles)
        return target

    async def run(self, options: Optional[SyncOptions] = None) -> SyncResult:
        options = options or SyncOptions()
        result = SyncResult(strategy=self.strategy.name)
        logger.info(f"🔄 Starting {self.strategy.name} sync")

        budget = self._plan(options, result)
        if budget:
            if options.validation_only:
                await self._validate_existing(budget, result)
            else:
                staged = await self._collect(options, budget, result)
                self._persist(staged, result)
            result.requests_used = budget.used

        result.summary = generate_summary(result)
        logger.info(f"✅ Sync {self.strategy.name} finished: {result.summary}")
        return result

    # --- Collect ---

    def _is_known(self, candidate: Candidate) -> Optional[str]:
        if candidate.watchmode_id and content_repository.find_by_watchmode_id(self.db, candidate.watchmode_id):
            return "Already in database"
        if content_repository.find_by_title_year(self.db, candidate.title, candidate.year):
            return "Matching title and year already in database"
        return None

    async def _collect(self, options: SyncOptions, budget: RequestBudget, result: SyncResult) -> List[StagedTitle]:
        target = self._target(options, budget)
        platform_ids = self._selected_platform_ids(options)
        stats = result.search_stats
        staged: List[StagedTitle] = []
        seen = set()
        pages = self.strategy.pages(self.client, platform_ids, options, self.settings)

        try:
            while len(staged) < target and budget.can_afford(1):
                try:
                    page = await pages.__anext__()
                except StopAsyncIteration:
                    break
                except WatchmodeError as e:
                    result.errors.append(f"Search failed: {e}")
                    break
                stats.pages_searched += 1
                stats.total_titles_found += len(page.candidates)

                for candidate in page.candidates:
                    if len(staged) >= target:
                        break
                    key = candidate.watchmode_id or (candidate.title.lower(), candidate.year)
                    reason = "Duplicate within this sync run" if key in seen else self._is_known(candidate)
                    seen.add(key)
                    if reason:
                        stats.duplicates_skipped += 1
                        result.record(candidate.title, candidate.year, SKIPPED_EXISTING, reason)
                        continue

                    if not budget.can_afford(REQUESTS_PER_TITLE):
                        logger.info("Run budget spent, stopping enrichment")
                        return staged
                    try:
                        item = await self._enrich(candidate, options, result)
                    except QuotaExceededError:
                        result.record(candidate.title, candidate.year, ERROR, QUOTA_EXHAUSTED)
                        raise
                    except Exception as e:
                        logger.error(f"✗ Failed to process '{candidate.title}': {e}")
                        result.errors.append(f"Failed to process {candidate.title}: {e}")
                        result.record(candidate.title, candidate.year, ERROR, str(e))
                        continue
                    if item:
                        staged.append(item)
        except QuotaExceededError as e:
            result.errors.append(f"{QUOTA_EXHAUSTED} {e}")
        finally:
            await pages.aclose()
        return staged

    async def _enrich(self, candidate: Candidate, options: SyncOptions, result: SyncResult) -> Optional[StagedTitle]:
        """Details, sources, poster and platform mapping for one unseen title"""
        try:
            details = await self.client.get_title_details(candidate.watchmode_id)
        except WatchmodeError as e:
            logger.error(f"✗ Details failed for '{candidate.title}': {e}")
            result.record(candidate.title, candidate.year, ERROR, str(e))
            return None

        if candidate.require_horror and not has_genre(details, self.settings.horror_genre_id):
            result.search_stats.filtered_out += 1
            result.record(candidate.title, candidate.year, FILTERED_OUT, "Not a horror title")
            return None

        sources = []
        try:
            sources = await self.client.get_title_sources(candidate.watchmode_id)
        except (WatchmodeError, QuotaExceededError) as e:
            logger.warning(f"Could not fetch sources for '{candidate.title}': {e}")

        title = details.get("title") or candidate.title
        year = details.get("year") or candidate.year
        if not title or not year:
            result.record(candidate.title, candidate.year, ERROR, "Missing title or year in catalog details")
            return None
        details = {**details, "title": title, "year": year}

        content_type = content_type_for(details.get("type"))
        poster_url, poster_source = await resolve_poster_url(
            self.tvdb, title, year, content_type,
            imdb_id=details.get("imdb_id"),
            catalog_poster=details.get("poster"),
            default_poster=self.settings.default_poster_url,
        )
        logger.debug(f"Poster for '{title}' from {poster_source}")

        values = convert_title_to_content(
            details, poster_url, self.strategy.source_release_date(candidate, details)
        )

        if has_genre(details, self.settings.hidden_genre_id):
            values["hidden"] = True

        if options.min_rating:
            average = values.get("average_rating")
            if average is None or average < options.min_rating:
                result.search_stats.filtered_out += 1
                result.record(title, year, FILTERED_OUT, f"Average rating below {options.min_rating}")
                return None

        links = []
        for source in filter_platform_sources(sources):
            try:
                platform = platform_repository.get_or_create_platform_by_watchmode_id(
                    self.db, source["source_id"], source.get("name")
                )
            except (UnknownPlatformError, SQLAlchemyError) as e:
                logger.warning(f"Skipping source {source['source_id']} for '{title}': {e}")
                continue
            links.append({
                "platform_id": platform.id,
                "platform_name": platform.platform_name,
                "web_url": source.get("web_url"),
                "seasons": source.get("seasons") if content_type == "series" else None,
                "episodes": source.get("episodes") if content_type == "series" else None,
            })

        return StagedTitle(candidate=candidate, values=values, links=links)

    # --- Persist ---

    def _persist(self, staged: List[StagedTitle], result: SyncResult):
        for item in staged:
            values = item.values
            title, year = values["title"], values["year"]

            # Storage may have changed since the candidate was checked
            existing = (
                (values.get("watchmode_id") and content_repository.find_by_watchmode_id(self.db, values["watchmode_id"]))
                or content_repository.find_by_title_year(self.db, title, year)
            )
            if existing:
                result.search_stats.duplicates_skipped += 1
                result.record(title, year, SKIPPED_EXISTING, "Already in database")
                continue

            try:
                created = content_repository.create_content(self.db, values)
            except (SQLAlchemyError, ValueError) as e:
                self.db.rollback()
                logger.error(f"✗ Failed to add '{title}': {e}")
                result.errors.append(f"Failed to add {title}: {e}")
                result.record(title, year, ERROR, str(e))
                continue

            result.new_movies_added += 1
            link_errors = []
            for link in item.links:
                try:
                    platform_repository.create_content_platform(
                        self.db, created.id, link["platform_id"],
                        web_url=link["web_url"], seasons=link["seasons"], episodes=link["episodes"],
                    )
                except SQLAlchemyError as e:
                    self.db.rollback()
                    logger.error(f"✗ Failed to link '{title}' to {link['platform_name']}: {e}")
                    link_errors.append(link["platform_name"])
                    result.errors.append(f"Failed to link {title} to {link['platform_name']}: {e}")

            reason = f"Platform links failed: {', '.join(link_errors)}" if link_errors else None
            result.record(title, year, ADDED, reason)
            logger.info(f"✓ Added {title} ({year}) with {len(item.links) - len(link_errors)} platform links")

    # --- Validation ---

    async def _validate_existing(self, budget: RequestBudget, result: SyncResult):
        """Re-check stored titles against Watchmode, dropping ones it no longer knows"""
        rows = self.db.query(Content).order_by(Content.id).all()
        for row in rows:
            if not budget.can_afford(1):
                break
            try:
                if row.watchmode_id:
                    await self.client.get_title_details(row.watchmode_id)
                    result.movies_validated += 1
                elif row.imdb_id:
                    matches = await self.client.search_by_imdb_id(row.imdb_id)
                    if matches:
                        result.movies_validated += 1
                    else:
                        content_repository.delete_content(self.db, row.id)
                        result.movies_removed += 1
                else:
                    await self._backfill_ids(row, result)
            except QuotaExceededError as e:
                result.errors.append(f"{QUOTA_EXHAUSTED} {e}")
                break
            except WatchmodeError as e:
                logger.error(f"✗ Failed to validate '{row.title}': {e}")
                result.errors.append(f"Failed to validate {row.title}: {e}")

    async def _backfill_ids(self, row: Content, result: SyncResult):
        search_type = "tv" if row.type == "series" else "movie"
        matches = await self.client.search_by_name(row.title, search_type)
        for match in matches:
            name = (match.get("name") or match.get("title") or "").lower()
            match_year = match.get("year")
            if name == row.title.lower() and match_year and abs(match_year - row.year) <= 1:
                changes = {"watchmode_id": match.get("id")}
                if match.get("imdb_id") and not row.imdb_id:
                    changes["imdb_id"] = match["imdb_id"]
                if match.get("tmdb_id") and not row.tmdb_id:
                    changes["tmdb_id"] = match["tmdb_id"]
                content_repository.update_content(self.db, row.id, changes)
                result.movies_validated += 1
                return


async def backfill_posters(db: Session, tvdb: TVDBClient, default_poster_url: str) -> dict:
    """Give rows with an empty or placeholder poster a TVDB poster where one matches"""
    rows = db.query(Content).filter(
        (Content.poster_url.is_(None)) | (Content.poster_url == "") | (Content.poster_url == default_poster_url)
    ).all()

    updated = skipped = 0
    for row in rows:
        poster_url = await find_backfill_poster(tvdb, row.title, row.year, row.original_title)
        if poster_url:
            row.poster_url = poster_url
            db.commit()
            updated += 1
            logger.info(f"✓ Poster found for {row.title}")
        else:
            skipped += 1

    logger.info(f"✅ Poster backfill: {updated} updated, {skipped} skipped")
    return {
        "message": "Bulk poster sync completed",
        "postersUpdated": updated,
        "itemsSkipped": skipped,
        "totalProcessed": updated + skipped,
        "timestamp": datetime.utcnow().isoformat(),
    }
