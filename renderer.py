"""
Public site renderer.

Fetches published content for each page section and swaps the markup of the
section's mount point in one assignment. A section whose fetch fails or comes
back empty keeps whatever markup it already had.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Set

from pymongo import ASCENDING, DESCENDING
from starlette.concurrency import run_in_threadpool

from database import ContentStore
from errors import NotFoundError
from formatting import (
    EN_DASH,
    bucket_by_date,
    escape_html,
    format_competition_range,
    format_day,
    format_month,
    format_post_date,
    format_time,
    sort_by_order,
)
from schemas import COMPETITIONS, FLYERS, NEWS, SCHEDULE, SPONSORS

logger = logging.getLogger(__name__)

# Mount points
SCHEDULE_GRID = "scheduleGrid"
NEWS_SECTION = "news"
NEWS_GRID = "newsGrid"
NEWS_EMPTY = "newsEmpty"
NAV_NEWS = "navNewsLink"
FLYERS_WRAP = "flyersWrap"
FLYERS_GRID = "flyersGrid"
COMP_LIST = "compList"
COMP_EMPTY = "compEmpty"
SPONSORS_GRID = "sponsorsGrid"


@dataclass
class PageRegions:
    """Markup per mount point plus the set of hidden mount points."""

    markup: Dict[str, str] = field(default_factory=dict)
    hidden: Set[str] = field(default_factory=set)

    def replace(self, region: str, html: str) -> None:
        self.markup[region] = html

    def show(self, region: str) -> None:
        self.hidden.discard(region)

    def hide(self, region: str) -> None:
        self.hidden.add(region)

    def is_visible(self, region: str) -> bool:
        return region not in self.hidden

    def to_dict(self) -> dict:
        return {"regions": dict(self.markup), "hidden": sorted(self.hidden)}


# Templates. Every stored value passes through escape_html exactly once here.

def schedule_card(slot) -> str:
    featured = slot.featured
    tag = '<div class="schedule-featured-tag">Featured</div>' if featured else ""
    title = f'<div class="schedule-title">{escape_html(slot.title)}</div>' if slot.title else ""
    return (
        f'<div class="schedule-card{" schedule-card--featured" if featured else ""}">'
        f"{tag}"
        f'<div class="schedule-day">{escape_html(slot.day)}</div>'
        f"{title}"
        f'<div class="schedule-time">{escape_html(format_time(slot.start_time))} {EN_DASH} '
        f'{escape_html(format_time(slot.end_time))}</div>'
        f'<div class="schedule-loc">{escape_html(slot.location)}</div>'
        f'<div class="schedule-badge">Weekly</div>'
        f"</div>"
    )


def news_card(post) -> str:
    image = ""
    if post.image_url:
        image = (
            f'<div class="news-img"><img src="{escape_html(post.image_url)}" '
            f'alt="{escape_html(post.title)}" loading="lazy" /></div>'
        )
    posted = format_post_date(post.date)
    posted_html = f'<time class="news-date">{escape_html(posted)}</time>' if posted else ""
    return (
        f'<article class="news-card">{image}<div class="news-body">{posted_html}'
        f'<h3 class="news-title">{escape_html(post.title)}</h3>'
        f'<p class="news-content">{escape_html(post.content)}</p>'
        f"</div></article>"
    )


def flyer_card(flyer) -> str:
    url = escape_html(flyer.image_url)
    return (
        f'<a class="flyer-card" href="{url}" target="_blank" rel="noopener">'
        f'<img src="{url}" alt="{escape_html(flyer.title)}" loading="lazy" />'
        f'<div class="flyer-label">{escape_html(flyer.title)}</div>'
        f"</a>"
    )


def competition_card(event, past: bool = False) -> str:
    details = []
    if event.location:
        details.append(f'<div class="comp-loc">{escape_html(event.location)}</div>')
    if event.divisions:
        details.append(f'<div class="comp-divisions">{escape_html(event.divisions)}</div>')
    if event.notes:
        details.append(f'<p class="comp-notes">{escape_html(event.notes)}</p>')
    if event.link and not past:
        details.append(
            f'<a class="comp-link" href="{escape_html(event.link)}" target="_blank" rel="noopener">Details</a>'
        )
    travel = '<span class="comp-travel">Travel</span>' if event.travel else ""
    return (
        f'<div class="comp-card{" comp-card--past" if past else ""}">'
        f'<div class="comp-badge"><span class="comp-month">{format_month(event.date)}</span>'
        f'<span class="comp-day">{format_day(event.date)}</span></div>'
        f'<div class="comp-body"><h3 class="comp-name">{escape_html(event.name)}{travel}</h3>'
        f'<div class="comp-dates">{escape_html(format_competition_range(event.date, event.end_date))}</div>'
        f'{"".join(details)}</div>'
        f"</div>"
    )


def sponsor_tile(sponsor) -> str:
    if sponsor.logo_url:
        inner = f'<img src="{escape_html(sponsor.logo_url)}" alt="{escape_html(sponsor.name)}" loading="lazy" />'
    else:
        inner = f'<span class="sponsor-name">{escape_html(sponsor.name)}</span>'
    if sponsor.website:
        return (
            f'<a class="sponsor-tile" href="{escape_html(sponsor.website)}" target="_blank" '
            f'rel="noopener">{inner}</a>'
        )
    return f'<div class="sponsor-tile">{inner}</div>'


# Section application

def apply_schedule(page: PageRegions, slots: List) -> None:
    page.replace(SCHEDULE_GRID, "".join(schedule_card(s) for s in slots))


def apply_news(page: PageRegions, posts: List) -> None:
    page.replace(NEWS_GRID, "".join(news_card(p) for p in posts))
    page.show(NEWS_SECTION)
    page.show(NAV_NEWS)
    page.hide(NEWS_EMPTY)


def apply_flyers(page: PageRegions, flyers: List) -> None:
    page.replace(FLYERS_GRID, "".join(flyer_card(f) for f in flyers))
    page.show(FLYERS_WRAP)
    page.show(NEWS_SECTION)


def apply_competitions(page: PageRegions, events: List, today: Optional[date] = None) -> None:
    buckets = bucket_by_date(events, today)
    html = "".join(competition_card(e) for e in buckets.upcoming)
    if buckets.past:
        html += '<h3 class="comp-past-heading">Past events</h3>'
        html += "".join(competition_card(e, past=True) for e in buckets.past)
    page.replace(COMP_LIST, html)
    if buckets.upcoming:
        page.hide(COMP_EMPTY)
    else:
        page.show(COMP_EMPTY)


def apply_sponsors(page: PageRegions, sponsors: List) -> None:
    page.replace(SPONSORS_GRID, "".join(sponsor_tile(s) for s in sponsors))


class PublicRenderer:
    """Projects published store content into page regions."""

    def __init__(self, store: Optional[ContentStore]):
        self.store = store

    # Fetchers run in a worker thread; pymongo calls block.

    def fetch_schedule(self) -> List:
        try:
            schedule = self.store.get(SCHEDULE)
        except NotFoundError:
            return []
        return sort_by_order(schedule.slots)

    def fetch_news(self) -> List:
        return self.store.get(NEWS, where={"published": True}, order_by=[("date", DESCENDING)])

    def fetch_flyers(self) -> List:
        flyers = self.store.get(FLYERS, where={"published": True}, order_by=[("date", DESCENDING)])
        return [f for f in flyers if f.image_url]

    def fetch_competitions(self) -> List:
        return self.store.get(COMPETITIONS, where={"published": True}, order_by=[("date", ASCENDING)])

    def fetch_sponsors(self) -> List:
        return sort_by_order(self.store.get(SPONSORS))

    async def _section(self, name: str, fetch: Callable[[], List], apply: Callable[[PageRegions, List], None],
                       page: PageRegions) -> None:
        try:
            records = await run_in_threadpool(fetch)
        except Exception as e:
            logger.warning(f"Could not load {name} content, keeping default markup: {e}")
            return
        if not records:
            return
        try:
            apply(page, records)
        except Exception as e:
            logger.warning(f"Could not render {name} content, keeping default markup: {e}")

    async def render(self, page: PageRegions, today: Optional[date] = None) -> PageRegions:
        """Fill `page` with every section; all five fetches run concurrently."""
        if self.store is None:
            logger.info("Content store not configured, showing default content")
            return page
        await asyncio.gather(
            self._section(SCHEDULE, self.fetch_schedule, apply_schedule, page),
            self._section(NEWS, self.fetch_news, apply_news, page),
            self._section(FLYERS, self.fetch_flyers, apply_flyers, page),
            self._section(
                COMPETITIONS,
                self.fetch_competitions,
                lambda p, events: apply_competitions(p, events, today),
                page,
            ),
            self._section(SPONSORS, self.fetch_sponsors, apply_sponsors, page),
        )
        return page
