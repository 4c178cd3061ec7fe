"""
Public page shell.

The default markup below is what visitors see when the store is not
configured or a section could not be loaded.
"""
from jinja2 import Environment, select_autoescape
from markupsafe import Markup

from renderer import (
    COMP_EMPTY,
    COMP_LIST,
    FLYERS_GRID,
    FLYERS_WRAP,
    NAV_NEWS,
    NEWS_EMPTY,
    NEWS_GRID,
    NEWS_SECTION,
    SCHEDULE_GRID,
    SPONSORS_GRID,
    PageRegions,
)

DEFAULT_MARKUP = {
    SCHEDULE_GRID: (
        '<div class="schedule-card schedule-card--featured">'
        '<div class="schedule-featured-tag">Featured</div>'
        '<div class="schedule-day">Tuesday</div>'
        '<div class="schedule-time">8:00 PM – 9:00 PM</div>'
        '<div class="schedule-loc">NA Senior High School</div>'
        '<div class="schedule-badge">Weekly</div>'
        "</div>"
    ),
    NEWS_GRID: "",
    NEWS_EMPTY: '<p class="empty-state">No news yet. Check back soon.</p>',
    FLYERS_GRID: "",
    COMP_LIST: "",
    COMP_EMPTY: '<p class="empty-state">No upcoming competitions announced yet.</p>',
    SPONSORS_GRID: "",
}

# Sections that stay hidden until content arrives
DEFAULT_HIDDEN = {NEWS_SECTION, NAV_NEWS, FLYERS_WRAP}

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{{ title }}</title>
  <link rel="stylesheet" href="/static/style.css" />
</head>
<body>
  <nav class="nav">
    <a href="#schedule">Schedule</a>
    <a href="#competitions">Competitions</a>
    <a id="navNewsLink" href="#news"{{ hidden_attr("navNewsLink") }}>News</a>
    <a href="#sponsors">Sponsors</a>
  </nav>

  <section id="schedule">
    <h2>Practice Schedule</h2>
    <div id="scheduleGrid" class="schedule-grid">{{ region("scheduleGrid") }}</div>
  </section>

  <section id="competitions">
    <h2>Competitions</h2>
    <div id="compList" class="comp-list">{{ region("compList") }}</div>
    <div id="compEmpty"{{ hidden_attr("compEmpty") }}>{{ region("compEmpty") }}</div>
  </section>

  <section id="news"{{ hidden_attr("news") }}>
    <h2>News</h2>
    <div id="newsGrid" class="news-grid">{{ region("newsGrid") }}</div>
    <div id="newsEmpty"{{ hidden_attr("newsEmpty") }}>{{ region("newsEmpty") }}</div>
    <div id="flyersWrap"{{ hidden_attr("flyersWrap") }}>
      <h3>Flyers</h3>
      <div id="flyersGrid" class="flyers-grid">{{ region("flyersGrid") }}</div>
    </div>
  </section>

  <section id="sponsors">
    <h2>Our Sponsors</h2>
    <div id="sponsorsGrid" class="sponsors-grid">{{ region("sponsorsGrid") }}</div>
  </section>
</body>
</html>
"""

_env = Environment(autoescape=select_autoescape(default_for_string=True))
_template = _env.from_string(PAGE_TEMPLATE)


def default_regions() -> PageRegions:
    return PageRegions(markup=dict(DEFAULT_MARKUP), hidden=set(DEFAULT_HIDDEN))


def render_page(page: PageRegions, title: str = "Club") -> str:
    # Region markup is already escaped by the section templates.
    return _template.render(
        title=title,
        region=lambda name: Markup(page.markup.get(name, "")),
        hidden_attr=lambda name: Markup(" hidden") if not page.is_visible(name) else "",
    )
