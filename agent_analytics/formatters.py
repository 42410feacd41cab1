"""Report formatters.

Each function maps one decoded API payload to the lines printed for a
command. They do no I/O so the CLI stays a thin fetch-then-print layer.
"""

from __future__ import annotations

import json
import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from .term import RESET, ROLES, bar, bold, colorize, dim, heading, pad_field, success

DOLLARS_PER_1K_EVENTS = 2


def parse_timestamp(value) -> datetime | None:
    """Parse an ISO string or epoch milliseconds into a local naive datetime."""
    if value is None or value == "":
        return None
    try:
        if isinstance(value, (int, float)):
            dt = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        else:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError, OverflowError, OSError):
        return None
    if dt.tzinfo:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def format_date(value) -> str:
    dt = parse_timestamp(value)
    return dt.strftime("%Y-%m-%d") if dt else str(value or "")


def format_datetime(value) -> str:
    dt = parse_timestamp(value)
    return dt.strftime("%Y-%m-%d %H:%M:%S") if dt else str(value or "")


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (round() would go to even)."""
    return math.floor(value + 0.5)


def usage_cost(events: int) -> float:
    """Dollar cost of a number of events."""
    return events / 1000 * DOLLARS_PER_1K_EVENTS


# ---------------------------------------------------------------------------
# Account & projects
# ---------------------------------------------------------------------------

def format_projects(projects: list[dict[str, Any]]) -> list[str]:
    if not projects:
        return [
            "No projects yet. Create one:",
            f"  {colorize('agent-analytics create my-site --domain https://mysite.com', 'cyan')}",
        ]

    lines = [heading(f"Your Projects ({len(projects)})"), ""]
    for p in projects:
        lines.append(f"  {bold(p.get('name', ''))}  {dim('created ' + format_date(p.get('created_at')))}")
        lines.append(f"  {dim('token:')} {p.get('project_token', '')}")
        lines.append(f"  {dim('origins:')} {p.get('allowed_origins') or '*'}")
        lines.append("")
    return lines


def format_project_created(data: dict[str, Any], domain: str) -> list[str]:
    verb = "Found existing project" if data.get("existing") else "Project created"
    return [
        success(f"{verb} for {bold(domain)}!\n"),
        heading("1. Add this snippet to your site:"),
        f"{colorize(data.get('snippet', ''), 'cyan')}\n",
        heading("2. Your agent queries stats with:"),
        f"{colorize(data.get('api_example', ''), 'cyan')}\n",
        heading("Project token (for the snippet):"),
        f"{colorize(data.get('project_token', ''), 'yellow')}\n",
    ]


def format_account(data: dict[str, Any]) -> list[str]:
    lines = [
        heading("Account"),
        f"  {bold('Email:')}    {data.get('email')}",
        f"  {bold('GitHub:')}   {data.get('github_login') or 'N/A'}",
        f"  {bold('Tier:')}     {data.get('tier')}",
        f"  {bold('Projects:')} {data.get('projects_count')}/{data.get('projects_limit')}",
    ]
    cap = data.get("monthly_spend_cap_dollars")
    if data.get("tier") == "pro" and cap is not None:
        lines.append(f"  {bold('Spend cap:')} ${cap:.2f}/month")
    lines.append("")
    return lines


# ---------------------------------------------------------------------------
# Stats & events
# ---------------------------------------------------------------------------

def format_monthly_usage(headers: dict[str, str]) -> list[str]:
    """Usage line built from the x-monthly-* response headers, if present."""
    raw = headers.get("x-monthly-usage")
    if not raw:
        return []
    try:
        events = int(raw)
    except ValueError:
        return []

    text = f"{events:,} events (${usage_cost(events):.2f})"
    limit = headers.get("x-monthly-limit")
    pct = headers.get("x-monthly-usage-percent")
    if limit and pct:
        try:
            cap = usage_cost(int(limit))
            text += f" — {pct}% of ${cap:.2f} cap"
        except ValueError:
            pass
    return ["", f"  {dim('Monthly usage:')} {text}"]


def format_stats(project: str, days: int, data: dict[str, Any],
                 headers: dict[str, str] | None = None) -> list[str]:
    lines = [heading(f"Stats: {project} (last {days} days)"), ""]

    totals = data.get("totals")
    if totals:
        lines.append(f"  {bold('Total events:')}   {totals.get('total_events') or 0}")
        lines.append(f"  {bold('Unique users:')}   {totals.get('unique_users') or 0}")

    events = data.get("events") or []
    if events:
        lines.append("")
        lines.append(heading("Events:"))
        for e in events:
            lines.append(
                f"  {e.get('event')}  {dim('→')}  {bold(e.get('count'))}  "
                f"{dim('(' + str(e.get('unique_users')) + ' users)')}"
            )

    daily = data.get("daily") or []
    if daily:
        lines.append("")
        lines.append(heading("Daily:"))
        for d in daily:
            total = d.get("total_events") or 0
            lines.append(f"  {d.get('date')}  {colorize(bar(total, 5), 'green')}  {total} events")

    lines.extend(format_monthly_usage(headers or {}))
    lines.append("")
    return lines


def format_events(project: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Events: {project}"), ""]
    events = data.get("events") or []
    if not events:
        lines.append("  No events yet.")
        return lines

    for e in events:
        lines.append(
            f"  {dim(format_datetime(e.get('timestamp')))}  {bold(e.get('event'))}  "
            f"{dim(e.get('user_id') or '')}"
        )
        if e.get("properties"):
            lines.append(f"    {dim(json.dumps(e['properties'], separators=(',', ':')))}")
    lines.append("")
    return lines


def format_properties_received(project: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Received Properties: {project}"), ""]
    properties = data.get("properties") or []
    if not properties:
        lines.append("  No properties found.")
        return lines

    by_event: dict[str, list[str]] = defaultdict(list)
    for p in properties:
        by_event[p.get("event")].append(p.get("key"))

    for event, keys in by_event.items():
        lines.append(f"  {bold(event)}")
        for key in keys:
            lines.append(f"    {colorize(key, 'cyan')}")

    lines.append(f"\n{dim('Sampled from last ' + str(data.get('sample_size')) + ' events')}")
    lines.append("")
    return lines


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

def _change_arrow(change) -> str:
    # colour is left open so it also covers the percentage that follows
    if change and change > 0:
        return f"{ROLES['green']}↑"
    if change and change < 0:
        return f"{ROLES['red']}↓"
    return f"{ROLES['dim']}—"


def format_insights(project: str, period: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Insights: {project} ({period} vs previous)"), ""]
    for key, metric in (data.get("metrics") or {}).items():
        label = key.replace("_", " ")
        arrow = _change_arrow(metric.get("change"))
        change_pct = metric.get("change_pct")
        pct = ""
        if change_pct is not None:
            sign = "+" if change_pct > 0 else ""
            pct = f" ({sign}{change_pct}%)"
        lines.append(
            f"  {bold(label + ':')}  {metric.get('current')} "
            f"{arrow}{pct}{RESET}  {dim('was ' + str(metric.get('previous')))}"
        )
    lines.append("")
    lines.append(f"  {bold('Trend:')} {data.get('trend')}")
    lines.append("")
    return lines


def format_breakdown(project: str, prop: str, data: dict[str, Any]) -> list[str]:
    event = f" ({data['event']})" if data.get("event") else ""
    lines = [heading(f"Breakdown: {project} — {prop}{event}"), ""]
    values = data.get("values") or []
    if not values:
        lines.append("  No data found.")
        return lines

    for v in values:
        lines.append(
            f"  {bold(v.get('value'))}  {v.get('count')} events  "
            f"{dim('(' + str(v.get('unique_users')) + ' users)')}"
        )
    lines.append(
        f"\n{dim(str(data.get('total_with_property')) + ' of ' + str(data.get('total_events')) + ' events have this property')}"
    )
    lines.append("")
    return lines


def format_pages(project: str, page_type: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Pages: {project} ({page_type})"), ""]
    pages = data.get("entry_pages") or data.get("exit_pages") or []
    if not pages:
        lines.append("  No page data found.")
        return lines

    for p in pages:
        bounce = f"{round_half_up((p.get('bounce_rate') or 0) * 100)}% bounce"
        duration = f"{round_half_up((p.get('avg_duration') or 0) / 1000)}s avg"
        lines.append(
            f"  {bold(p.get('page'))}  {p.get('sessions')} sessions  "
            f"{dim(f'{bounce}  {duration}  ' + str(p.get('avg_events')) + ' events/session')}"
        )

    if data.get("exit_pages") and data.get("entry_pages"):
        lines.append("")
        lines.append(heading("Exit pages:"))
        for p in data["exit_pages"]:
            lines.append(f"  {bold(p.get('page'))}  {p.get('sessions')} sessions")
    lines.append("")
    return lines


def format_session_distribution(project: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Session Distribution: {project}"), ""]
    buckets = data.get("distribution") or []
    if not buckets:
        lines.append("  No session data found.")
        return lines

    for b in buckets:
        pct = b.get("pct") or 0
        lines.append(
            f"  {pad_field(b.get('bucket', ''), 7)}  {colorize(bar(pct, 2), 'green')}  "
            f"{b.get('sessions')} ({pct}%)"
        )
    lines.append("")
    lines.append(
        f"  {bold('Median:')} {data.get('median_bucket')}  "
        f"{bold('Engaged:')} {data.get('engaged_pct')}% (sessions ≥30s)"
    )
    lines.append("")
    return lines


def format_heatmap(project: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Heatmap: {project}"), ""]
    if not data.get("heatmap"):
        lines.append("  No heatmap data found.")
        return lines

    peak = data.get("peak")
    if peak:
        lines.append(
            f"  {bold('Peak:')} {peak.get('day_name')} at {peak.get('hour')}:00 "
            f"({peak.get('events')} events, {peak.get('users')} users)"
        )
    lines.append(f"  {bold('Busiest day:')} {data.get('busiest_day')}")
    lines.append(f"  {bold('Busiest hour:')} {data.get('busiest_hour')}:00")
    lines.append("")
    return lines


def format_funnel(project: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Funnel: {project}"), ""]
    steps = data.get("steps") or []
    if not steps:
        lines.append("  No funnel data found.")
        return lines

    first = steps[0].get("users") or 0
    width = max(len(str(s.get("event", ""))) for s in steps)
    for i, step in enumerate(steps, 1):
        users = step.get("users") or 0
        pct = round_half_up(users / first * 100) if first else 0
        lines.append(
            f"  {i}. {pad_field(step.get('event', ''), width)}  "
            f"{colorize(bar(pct, 2.5), 'green')}  {users} users ({pct}%)"
        )
        drop = step.get("drop_off")
        if i > 1 and drop:
            lines.append(f"     {dim(str(drop) + ' dropped off')}")

    lines.append("")
    rate = data.get("conversion_rate")
    if rate is not None:
        lines.append(f"  {bold('Overall conversion:')} {round_half_up(rate * 100)}%")
        lines.append("")
    return lines


def format_retention(project: str, period: str, data: dict[str, Any]) -> list[str]:
    lines = [heading(f"Retention: {project} (by {period})"), ""]
    cohorts = data.get("cohorts") or []
    if not cohorts:
        lines.append("  No retention data found.")
        return lines

    columns = max(len(c.get("retention") or []) for c in cohorts)
    label = period[0].upper() if period else "P"
    header = "  " + pad_field("Cohort", 12) + pad_field("Users", 8)
    header += "".join(pad_field(f"{label}{i}", 6) for i in range(columns))
    lines.append(bold(header))
    for c in cohorts:
        row = "  " + pad_field(format_date(c.get("date")), 12) + pad_field(c.get("users", 0), 8)
        row += "".join(pad_field(f"{round_half_up(r * 100)}%", 6) for r in (c.get("retention") or []))
        lines.append(row)
    lines.append("")
    return lines


# ---------------------------------------------------------------------------
# Experiments
# ---------------------------------------------------------------------------

STATUS_ROLES = {"active": "green", "paused": "yellow", "completed": "cyan"}


def _status(status: str | None) -> str:
    return colorize(status or "unknown", STATUS_ROLES.get(status or "", "dim"))


def format_experiments(project: str, experiments: list[dict[str, Any]]) -> list[str]:
    lines = [heading(f"Experiments: {project}"), ""]
    if not experiments:
        lines.append("  No experiments yet.")
        return lines

    for x in experiments:
        variants = ", ".join(
            v.get("name", "") if isinstance(v, dict) else str(v) for v in x.get("variants") or []
        )
        lines.append(f"  {bold(x.get('name'))}  {_status(x.get('status'))}  {dim(x.get('id', ''))}")
        lines.append(f"  {dim('goal:')} {x.get('goal_event')}  {dim('variants:')} {variants}")
        lines.append("")
    return lines


def format_experiment(data: dict[str, Any]) -> list[str]:
    lines = [
        heading(f"Experiment: {data.get('name')}"),
        "",
        f"  {bold('Status:')}  {_status(data.get('status'))}",
        f"  {bold('Goal:')}    {data.get('goal_event')}",
    ]
    if data.get("winner"):
        lines.append(f"  {bold('Winner:')}  {colorize(data['winner'], 'green')}")

    results = data.get("results") or {}
    variants = results.get("variants") or []
    if variants:
        lines.append("")
        width = max(len(str(v.get("variant", ""))) for v in variants)
        for v in variants:
            rate = v.get("conversion_rate") or 0
            pct = round_half_up(rate * 100)
            lines.append(
                f"  {pad_field(v.get('variant', ''), width)}  {colorize(bar(pct, 2.5), 'green')}  "
                f"{v.get('conversions', 0)}/{v.get('exposures', 0)} ({pct}%)"
            )

    if results.get("significant"):
        confidence = round_half_up((results.get("confidence") or 0) * 100)
        leader = results.get("leader")
        lines.append("")
        lines.append(f"  {colorize('Significant', 'green')}: {bold(leader)} leads at {confidence}% confidence")
    elif variants:
        lines.append("")
        lines.append(f"  {dim('Not significant yet')}")
    lines.append("")
    return lines
