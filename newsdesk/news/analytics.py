"""
News Analytics Service.

Summary statistics derived purely from the published-item collection. No
state is kept between calls: the same items and `now` always give the same
summary.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from newsdesk.lib.time import utcnow_naive
from newsdesk.news.constants import (
    TOP_GROUPS_LIMIT, RECENT_ACTIVITY_DAYS, LAST_WEEK_DAYS, LAST_MONTH_DAYS
)
from newsdesk.news.models import PublishedItem


@dataclass
class GroupCount:
    key: str
    count: int
    percentage: int


@dataclass
class DailyActivity:
    date: str
    count: int


@dataclass
class NewsAnalytics:
    total_posts: int = 0
    top_topics: List[GroupCount] = field(default_factory=list)
    top_cities: List[GroupCount] = field(default_factory=list)
    posts_last_week: int = 0
    posts_last_month: int = 0
    average_posts_per_day: float = 0.0
    recent_activity: List[DailyActivity] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalPosts': self.total_posts,
            'topTopics': [
                {'category': g.key, 'count': g.count, 'percentage': g.percentage}
                for g in self.top_topics
            ],
            'topCities': [
                {'city': g.key, 'count': g.count, 'percentage': g.percentage}
                for g in self.top_cities
            ],
            'postsLastWeek': self.posts_last_week,
            'postsLastMonth': self.posts_last_month,
            'averagePostsPerDay': self.average_posts_per_day,
            'recentActivity': [{'date': a.date, 'count': a.count} for a in self.recent_activity],
        }


class NewsAnalyticsService:
    """Analytics over published news items."""

    @staticmethod
    def _pct(numerator: int, denominator: int) -> int:
        # Half-up rounding to a whole percent
        if denominator <= 0:
            return 0
        return int(math.floor(numerator * 100 / denominator + 0.5))

    @staticmethod
    def _day_label(day) -> str:
        return f"{day.strftime('%b')} {day.day}"

    @classmethod
    def top_groups(cls, values: Sequence[str], limit: int = TOP_GROUPS_LIMIT) -> List[GroupCount]:
        """
        Count occurrences and return the largest groups.

        Ties keep first-encountered order (Counter preserves insertion order
        and sorted() is stable).
        """
        total = len(values)
        counts = Counter(values)
        ranked = sorted(counts.items(), key=lambda pair: pair[1], reverse=True)
        return [
            GroupCount(key=key, count=count, percentage=cls._pct(count, total))
            for key, count in ranked[:limit]
        ]

    @staticmethod
    def count_since(items: Sequence[PublishedItem], now: datetime, days: int) -> int:
        cutoff = now - timedelta(days=days)
        return sum(1 for item in items if item.published_at >= cutoff)

    @staticmethod
    def average_posts_per_day(items: Sequence[PublishedItem]) -> float:
        if not items:
            return 0.0
        dates = [item.published_at for item in items]
        span_days = (max(dates) - min(dates)) / timedelta(days=1)
        days = max(1, math.ceil(span_days))
        return round(len(items) / days, 1)

    @classmethod
    def recent_activity(cls, items: Sequence[PublishedItem], now: datetime,
                        days: int = RECENT_ACTIVITY_DAYS) -> List[DailyActivity]:
        """One entry per calendar day from now-(days-1) to now, oldest first."""
        per_day = Counter(item.published_at.date() for item in items)
        activity = []
        for offset in range(days - 1, -1, -1):
            day = (now - timedelta(days=offset)).date()
            activity.append(DailyActivity(date=cls._day_label(day), count=per_day.get(day, 0)))
        return activity

    @classmethod
    def summarize(cls, items: Sequence[PublishedItem], now: Optional[datetime] = None) -> NewsAnalytics:
        """
        Return the analytics summary for a collection of published items.

        An empty collection is a valid state: all counts are 0, the topic and
        city lists are empty, and recent activity has 7 zero-count days.
        """
        now = now or utcnow_naive()
        items = list(items)

        return NewsAnalytics(
            total_posts=len(items),
            top_topics=cls.top_groups([item.category for item in items]),
            top_cities=cls.top_groups([item.city for item in items]),
            posts_last_week=cls.count_since(items, now, LAST_WEEK_DAYS),
            posts_last_month=cls.count_since(items, now, LAST_MONTH_DAYS),
            average_posts_per_day=cls.average_posts_per_day(items),
            recent_activity=cls.recent_activity(items, now),
        )

    @classmethod
    def summarize_period(cls, items: Sequence[PublishedItem], start: datetime, end: datetime) -> Dict[str, Any]:
        """
        Totals and top groups for items published within [start, end].
        """
        in_period = [item for item in items if start <= item.published_at <= end]
        return {
            'totalPosts': len(in_period),
            'topTopics': [
                {'category': g.key, 'count': g.count, 'percentage': g.percentage}
                for g in cls.top_groups([item.category for item in in_period])
            ],
            'topCities': [
                {'city': g.key, 'count': g.count, 'percentage': g.percentage}
                for g in cls.top_groups([item.city for item in in_period])
            ],
        }


def summarize(items: Sequence[PublishedItem], now: Optional[datetime] = None) -> NewsAnalytics:
    return NewsAnalyticsService.summarize(items, now)
