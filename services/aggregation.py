"""
services/aggregation.py

Pure reporting math over already-fetched event rows. No DB access here;
services/report_service.py runs the window queries and hands rows in.

Every function takes an explicit `now` (naive UTC) so windows are stable
within one request and reproducible in tests.

Bucket rules:
  - windows and buckets are half-open: [start, end)
  - hourly/daily buckets are anchored to `now`, oldest first
  - monthly slots are anchored to the first day of the oldest month and
    indexed by (year_delta * 12 + month_delta)
  - an event outside the window lands in no bucket; an event inside lands
    in exactly one
"""

import calendar
import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple


HOUR = timedelta(hours=1)
DAY = timedelta(hours=24)

# range -> (bucket size, bucket count)
ENGAGEMENT_RANGES: Dict[str, Tuple[timedelta, int]] = {
    "24h": (HOUR, 24),
    "7d": (DAY, 7),
    "30d": (DAY, 30),
}


# =====================================================================
# SECTION: RATES AND ROUNDING
# =====================================================================

def round_half_up(value: float, digits: int = 0) -> float:
    """Round like the dashboards expect (0.5 always away from zero for positives)."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def safe_rate(numerator: float, denominator: float) -> float:
    """numerator / denominator, or 0 when the denominator is 0."""
    if not denominator:
        return 0
    return numerator / denominator


def conversion_pct(clickouts: int, searches: int) -> float:
    """Percent with one decimal: round(clickouts / searches * 1000) / 10."""
    if not searches:
        return 0
    return math.floor(clickouts / searches * 1000 + 0.5) / 10


def ctr_pct(clickouts: int, searches: int) -> float:
    return safe_rate(clickouts, searches) * 100


def growth_pct(current: float, previous: float) -> float:
    """
    Period-over-period change in percent.
    previous == 0 is reported as 100 when current > 0 (new) and 0 otherwise.
    """
    if not previous:
        return 100 if current else 0
    return (current - previous) / previous * 100


# =====================================================================
# SECTION: WINDOWS
# =====================================================================

def naive_utc(ts: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC; convert aware query values to match."""
    if ts is None or ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


def last_and_prev_24h(now: datetime) -> Tuple[Tuple[datetime, datetime], Tuple[datetime, datetime]]:
    start_last = now - DAY
    start_prev = start_last - DAY
    return (start_last, now), (start_prev, start_last)


def report_window(
    range_name: Optional[str],
    now: datetime,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    """
    Resolve the [start, cutoff) window for single-range reports.

    Explicit startDate + endDate win. Otherwise the window is the 24h ending
    at `end` (last24h) or the 24h before that (prev24h), where `end` is
    endDate or now. A lone startDate overrides only the window start.
    """
    start_date = naive_utc(start_date)
    end_date = naive_utc(end_date)
    end = end_date or now
    if start_date is not None and end_date is not None:
        return start_date, end_date

    if range_name == "prev24h":
        start = start_date or end - 2 * DAY
        return start, end - DAY

    start = start_date or end - DAY
    return start, end


def engagement_window(range_name: str, now: datetime) -> Tuple[datetime, datetime]:
    size, count = ENGAGEMENT_RANGES[range_name]
    return now - size * count, now


def previous_window(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    return start - (end - start), start


# =====================================================================
# SECTION: TIME BUCKETS
# =====================================================================

def build_buckets(now: datetime, size: timedelta, count: int) -> List[Tuple[datetime, datetime]]:
    """`count` contiguous [start, end) buckets ending at now, oldest first."""
    start = now - size * count
    return [(start + size * i, start + size * (i + 1)) for i in range(count)]


def bucket_index(ts: datetime, start: datetime, size: timedelta, count: int) -> Optional[int]:
    if ts < start:
        return None
    idx = int((ts - start) // size)
    if idx >= count:
        return None
    return idx


def hour_label(ts: datetime) -> str:
    return f"{ts.hour:02d}:00"


def day_label(ts: datetime) -> str:
    return f"{ts.month}/{ts.day}"


def hourly_series(
    search_times: Iterable[datetime],
    click_times: Iterable[datetime],
    now: datetime,
) -> List[Dict[str, Any]]:
    """
    24 one-hour buckets over [now-24h, now) counting searches and click-outs.
    Each bucket is labelled by the hour it ends in, so the last reads as now.
    """
    buckets = build_buckets(now, HOUR, 24)
    start = buckets[0][0]
    series = [{"label": hour_label(b_end), "searches": 0, "clickouts": 0} for _, b_end in buckets]

    for ts in search_times:
        idx = bucket_index(ts, start, HOUR, 24)
        if idx is not None:
            series[idx]["searches"] += 1
    for ts in click_times:
        idx = bucket_index(ts, start, HOUR, 24)
        if idx is not None:
            series[idx]["clickouts"] += 1

    return series


def engagement_series(
    searches: Iterable[Tuple[datetime, Optional[str]]],
    click_times: Iterable[datetime],
    range_name: str,
    now: datetime,
) -> List[Dict[str, Any]]:
    """
    Per-bucket searches, distinct sessions, click-outs and CTR.
    `searches` yields (created_at, session_id); null session ids are not counted.
    """
    size, count = ENGAGEMENT_RANGES[range_name]
    buckets = build_buckets(now, size, count)
    start = buckets[0][0]
    label = hour_label if size == HOUR else day_label

    search_counts = [0] * count
    sessions: List[set] = [set() for _ in range(count)]
    click_counts = [0] * count

    for ts, session_id in searches:
        idx = bucket_index(ts, start, size, count)
        if idx is None:
            continue
        search_counts[idx] += 1
        if session_id:
            sessions[idx].add(session_id)

    for ts in click_times:
        idx = bucket_index(ts, start, size, count)
        if idx is not None:
            click_counts[idx] += 1

    out = []
    for i, (b_start, _) in enumerate(buckets):
        out.append({
            "label": label(b_start),
            "searches": search_counts[i],
            "sessions": len(sessions[i]),
            "clickouts": click_counts[i],
            "ctr": round_half_up(ctr_pct(click_counts[i], search_counts[i]), 1),
        })
    return out


def engagement_totals(
    search_count: int,
    click_count: int,
    session_ids: Iterable[Optional[str]],
) -> Dict[str, Any]:
    sessions = len({s for s in session_ids if s})
    return {
        "searches": search_count,
        "clickouts": click_count,
        "sessions": sessions,
        "ctr": ctr_pct(click_count, search_count),
    }


def engagement_deltas(current: Dict[str, Any], prev: Dict[str, Any]) -> Dict[str, float]:
    return {key: growth_pct(current[key], prev[key]) for key in ("searches", "clickouts", "sessions", "ctr")}


# =====================================================================
# SECTION: MONTHLY SLOTS
# =====================================================================

def months_window_start(now: datetime, months: int) -> datetime:
    """First day of the oldest month in a `months`-long series ending at now's month."""
    total = now.year * 12 + (now.month - 1) - (months - 1)
    return datetime(total // 12, total % 12 + 1, 1)


def month_index(ts: datetime, start: datetime) -> int:
    return (ts.year - start.year) * 12 + ts.month - start.month


def _month_slots(start: datetime, months: int) -> List[datetime]:
    slots = []
    for i in range(months):
        total = start.year * 12 + (start.month - 1) + i
        slots.append(datetime(total // 12, total % 12 + 1, 1))
    return slots


def monthly_counts(
    search_times: Iterable[datetime],
    click_times: Iterable[datetime],
    now: datetime,
    months: int,
) -> List[Dict[str, Any]]:
    start = months_window_start(now, months)
    slots = _month_slots(start, months)
    searches = [0] * months
    clicks = [0] * months

    for ts in search_times:
        idx = month_index(ts, start)
        if 0 <= idx < months:
            searches[idx] += 1
    for ts in click_times:
        idx = month_index(ts, start)
        if 0 <= idx < months:
            clicks[idx] += 1

    return [
        {
            "month": calendar.month_abbr[slot.month],
            "year": slot.year,
            "searches": searches[i],
            "clickouts": clicks[i],
        }
        for i, slot in enumerate(slots)
    ]


def monthly_prices(
    priced_clicks: Iterable[Tuple[datetime, Optional[float]]],
    now: datetime,
    months: int,
) -> List[Dict[str, Any]]:
    start = months_window_start(now, months)
    slots = _month_slots(start, months)
    values: List[List[float]] = [[] for _ in range(months)]

    for ts, price in priced_clicks:
        if price is None:
            continue
        idx = month_index(ts, start)
        if 0 <= idx < months:
            values[idx].append(float(price))

    out = []
    for i, slot in enumerate(slots):
        v = values[i]
        out.append({
            "month": calendar.month_abbr[slot.month],
            "year": slot.year,
            "avgPrice": round_half_up(sum(v) / len(v), 2) if v else 0,
            "minPrice": min(v) if v else 0,
            "maxPrice": max(v) if v else 0,
        })
    return out


# =====================================================================
# SECTION: ROUTES
# =====================================================================

RouteKey = Tuple[str, str]


def route_label(origin: str, destination: str) -> str:
    return f"{origin} → {destination}"


def merge_top_routes(
    search_groups: Sequence[Tuple[str, str, int]],
    click_stats: Dict[RouteKey, Tuple[int, Optional[float]]],
) -> List[Dict[str, Any]]:
    """
    Join ranked (origin, destination, searches) rows with click-out
    (count, avg price) for the same route and window.
    """
    rows = []
    for origin, destination, searches in search_groups:
        clickouts, avg_price = click_stats.get((origin, destination), (0, None))
        rows.append({
            "origin": origin,
            "destination": destination,
            "searches": searches,
            "clickouts": clickouts,
            "conversion": conversion_pct(clickouts, searches),
            "avgPrice": avg_price,
        })
    return rows


def trending_routes(
    this_week: Dict[RouteKey, int],
    last_week: Dict[RouteKey, int],
    limit: int,
) -> List[Dict[str, Any]]:
    """Week-over-week growth for every route searched this week, highest growth first."""
    rows = []
    for (origin, destination), count in this_week.items():
        prev = last_week.get((origin, destination), 0)
        rows.append({
            "route": route_label(origin, destination),
            "growth": round_half_up(growth_pct(count, prev), 1),
            "searches": count,
        })
    rows.sort(key=lambda r: (-r["growth"], -r["searches"], r["route"]))
    return rows[:limit]


def rank_counts(counts: Dict[str, int], top: Optional[int] = None) -> List[Tuple[str, int]]:
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    if top is not None:
        ranked = ranked[:top]
    return ranked


# =====================================================================
# SECTION: GEO ROLLUPS
# =====================================================================

COUNTRY_REGIONS: Dict[str, str] = {
    "US": "North America",
    "CA": "North America",
    "MX": "North America",
    "BR": "South America",
    "AR": "South America",
    "CL": "South America",
    "GB": "Europe",
    "DE": "Europe",
    "FR": "Europe",
    "ES": "Europe",
    "IT": "Europe",
    "NL": "Europe",
    "PT": "Europe",
    "PL": "Europe",
    "SE": "Europe",
    "NO": "Europe",
    "TR": "Middle East",
    "AE": "Middle East",
    "SA": "Middle East",
    "EG": "Middle East",
    "IL": "Middle East",
    "KZ": "Central Asia",
    "UZ": "Central Asia",
    "KG": "Central Asia",
    "TJ": "Central Asia",
    "TM": "Central Asia",
    "CN": "East Asia",
    "JP": "East Asia",
    "KR": "East Asia",
    "HK": "East Asia",
    "TW": "East Asia",
    "IN": "South Asia",
    "PK": "South Asia",
    "BD": "South Asia",
    "LK": "South Asia",
    "MY": "Southeast Asia",
    "SG": "Southeast Asia",
    "TH": "Southeast Asia",
    "ID": "Southeast Asia",
    "PH": "Southeast Asia",
    "AU": "Oceania",
    "NZ": "Oceania",
    "ZA": "Africa",
    "NG": "Africa",
    "KE": "Africa",
    "MA": "Africa",
}


def region_for(country: Optional[str]) -> str:
    return COUNTRY_REGIONS.get((country or "").strip().upper(), "Other")


def region_rollup(countries: Iterable[Optional[str]]) -> List[Dict[str, Any]]:
    agg = Counter(region_for(c) for c in countries)
    return [{"region": region, "searches": n} for region, n in rank_counts(dict(agg))]


def country_rollup(countries: Iterable[Optional[str]], top: int) -> List[Dict[str, Any]]:
    """Top-N countries by searches, the remaining tail collapsed into "Other"."""
    agg = Counter((c or "Unknown") for c in countries)
    ranked = rank_counts(dict(agg))
    head = [{"country": country, "searches": n} for country, n in ranked[:top]]
    other = sum(n for _, n in ranked[top:])
    if other > 0:
        head.append({"country": "Other", "searches": other})
    return head
