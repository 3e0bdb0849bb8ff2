# dailyhi/content.py

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import feedparser

from dailyhi.timezones import as_utc

logger = logging.getLogger(__name__)

PHOTO_WIDTH_RANGE = (800, 1400)
PHOTO_HEIGHT_RANGE = (600, 1400)

# Creative Commons BY, BY-SA and BY-ND
PHOTO_LICENSES = (
    'creativecommons.org/licenses/by/',
    'creativecommons.org/licenses/by-sa/',
    'creativecommons.org/licenses/by-nd/',
)
PHOTO_MAX_AGE = timedelta(days=1)


@dataclass(frozen=True)
class Photo:
    url: str
    width: int
    height: int
    title: str = ""
    link: str = ""


def _as_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _fits(width, height):
    return (PHOTO_WIDTH_RANGE[0] <= width <= PHOTO_WIDTH_RANGE[1]
            and PHOTO_HEIGHT_RANGE[0] <= height <= PHOTO_HEIGHT_RANGE[1])


def license_of(entry):
    """License URL from <creativeCommons:license> or an Atom rel="license" link."""
    if entry.get("license"):
        return entry["license"]
    for link in entry.get("links", []) or []:
        if link.get("rel") == "license":
            return link.get("href", "")
    return ""


def published_at(entry):
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=timezone.utc)


def is_adult(entry):
    rating = entry.get("media_rating") or {}
    return str(rating.get("content", "")).strip().lower() == "adult"


def read_lines(path):
    with open(path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


class ContentProvider:
    """Supplies the photo and fun fact for a digest.

    Both lookups return None on any failure; a digest without a photo or
    fact is still sent.
    """

    def __init__(self, photo_feed_url, facts_file, weekly_facts_file,
                 weekly_weekday=6, fetch_feed=None, rng=None,
                 licenses=PHOTO_LICENSES, max_age=PHOTO_MAX_AGE):
        self.photo_feed_url = photo_feed_url
        self.facts_file = facts_file
        self.weekly_facts_file = weekly_facts_file
        self.weekly_weekday = weekly_weekday
        self.fetch_feed = fetch_feed or feedparser.parse
        self.rng = rng or random.Random()
        self.licenses = tuple(marker.strip().lower() for marker in licenses if marker.strip())
        self.max_age = max_age

    @classmethod
    def from_config(cls, config):
        return cls(
            photo_feed_url=config["PHOTO_FEED_URL"],
            facts_file=config["FACTS_FILE"],
            weekly_facts_file=config["WEEKLY_FACTS_FILE"],
            weekly_weekday=config.get("WEEKLY_FACT_WEEKDAY", 6),
            licenses=config.get("PHOTO_LICENSES", PHOTO_LICENSES),
            max_age=timedelta(hours=config.get("PHOTO_MAX_AGE_HOURS", 24)),
        )

    def find_photo(self, local_time):
        """Return the first eligible feed photo whose size fits the digest layout."""
        if not self.photo_feed_url:
            return None

        try:
            feed = self.fetch_feed(self.photo_feed_url)
        except Exception as e:
            logger.warning(f"Photo feed fetch failed: {e}")
            return None

        if feed.get("bozo") and not feed.get("entries"):
            logger.warning(f"Photo feed unreadable: {feed.get('bozo_exception')}")
            return None

        since = as_utc(local_time) - self.max_age
        for entry in feed.get("entries", []):
            if not self.eligible(entry, since):
                continue
            for media in entry.get("media_content", []) or []:
                url = media.get("url")
                width = _as_int(media.get("width"))
                height = _as_int(media.get("height"))
                if url and _fits(width, height):
                    return Photo(url=url, width=width, height=height,
                                 title=entry.get("title", ""), link=entry.get("link", ""))

        logger.info(f"No suitable photo for {local_time:%Y-%m-%d}")
        return None

    def eligible(self, entry, since):
        license_url = license_of(entry).lower()
        if not any(allowed in license_url for allowed in self.licenses):
            return False
        if is_adult(entry):
            return False
        published = published_at(entry)
        return published is not None and published >= since

    def fun_fact(self, local_time):
        """Weekly fact on the weekly weekday (indexed by ISO week), random fact otherwise."""
        try:
            if local_time.weekday() == self.weekly_weekday:
                facts = read_lines(self.weekly_facts_file)
                week = local_time.isocalendar()[1]
                if facts and 1 <= week <= len(facts):
                    return facts[week - 1]
            else:
                facts = read_lines(self.facts_file)
        except OSError as e:
            logger.warning(f"Fact lookup failed: {e}")
            return None

        if not facts:
            return None
        return self.rng.choice(facts)
