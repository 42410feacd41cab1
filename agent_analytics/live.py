"""Live dashboard: polls every target project's live snapshot on a fixed
interval and redraws an aggregated view of the whole terminal.

Each tick fans out one snapshot request per project, waits for all of them,
merges the results into an AggregatedFrame and renders it. A failed fetch
counts as zero activity for that project and never stops the loop. Ticks run
back to back with an interruptible sleep in between until stop() is called,
SIGINT/SIGTERM arrives, or the process is killed.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterator, TextIO

from .exceptions import AnalyticsError
from .formatters import parse_timestamp
from .term import CLEAR_HOME, HIDE_CURSOR, SHOW_CURSOR, bold, colorize, dim, pad_field

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5  # seconds between ticks
DEFAULT_WINDOW = 60  # seconds of activity counted as "live"

TOP_PER_PROJECT = 3
MAX_TOP_PAGES = 8
MAX_RECENT_EVENTS = 10

# How often a tick waiting on fetches re-checks for cancellation
JOIN_POLL_SECONDS = 0.1


class LiveError(AnalyticsError):
    """The live view cannot start (no projects, or unknown project name)."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LiveSnapshot:
    """One project's activity inside the lookback window."""
    active_visitors: int = 0
    active_sessions: int = 0
    events_per_minute: float = 0.0
    top_pages: tuple[dict[str, Any], ...] = ()
    recent_events: tuple[dict[str, Any], ...] = ()

    @classmethod
    def empty(cls) -> "LiveSnapshot":
        return cls()

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "LiveSnapshot":
        """Build a snapshot from a /live response body.

        Counts are coerced to numbers and non-object list entries dropped, so
        a malformed body raises here (ValueError, TypeError or AttributeError)
        rather than later during aggregation.
        """
        pages = tuple(
            {**p, "visitors": int(p.get("visitors") or 0)}
            for p in data.get("top_pages") or ()
            if isinstance(p, dict)
        )
        events = tuple(e for e in data.get("recent_events") or () if isinstance(e, dict))
        return cls(
            active_visitors=int(data.get("active_visitors") or 0),
            active_sessions=int(data.get("active_sessions") or 0),
            events_per_minute=float(data.get("events_per_minute") or 0),
            top_pages=pages,
            recent_events=events,
        )

    @property
    def is_active(self) -> bool:
        return bool(self.active_visitors or self.events_per_minute)


@dataclass
class AggregatedFrame:
    """Everything one render needs, rebuilt from scratch every tick."""
    active_visitors: int = 0
    active_sessions: int = 0
    events_per_minute: float = 0
    projects: list[tuple[str, LiveSnapshot]] = field(default_factory=list)
    top_pages: list[dict[str, Any]] = field(default_factory=list)
    recent_events: list[dict[str, Any]] = field(default_factory=list)


def _event_time(event: dict[str, Any]) -> float:
    dt = parse_timestamp(event.get("timestamp"))
    return dt.timestamp() if dt else 0.0


def aggregate(snapshots: list[tuple[str, LiveSnapshot]]) -> AggregatedFrame:
    """Merge per-project snapshots, in fetch order, into one frame.

    Totals are plain sums. Top pages and recent events take the first
    TOP_PER_PROJECT entries of every project, tagged with the project name,
    then sort descending. Sorting is stable, so ties keep fetch order.
    """
    frame = AggregatedFrame(projects=list(snapshots))
    pages: list[dict[str, Any]] = []
    events: list[dict[str, Any]] = []

    for name, snap in snapshots:
        frame.active_visitors += snap.active_visitors
        frame.active_sessions += snap.active_sessions
        frame.events_per_minute += snap.events_per_minute
        pages.extend({**p, "project": name} for p in snap.top_pages[:TOP_PER_PROJECT])
        events.extend({**e, "project": name} for e in snap.recent_events[:TOP_PER_PROJECT])

    pages.sort(key=lambda p: p.get("visitors") or 0, reverse=True)
    events.sort(key=_event_time, reverse=True)
    frame.top_pages = pages[:MAX_TOP_PAGES]
    frame.recent_events = events[:MAX_RECENT_EVENTS]
    return frame


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _num(value) -> str:
    if isinstance(value, float):
        value = round(value, 1)
        if value.is_integer():
            value = int(value)
    return str(value)


def render_frame(frame: AggregatedFrame, interval, window, now: datetime) -> str:
    """Full-screen text for one tick, starting with clear-and-home."""
    lines = [
        f"{bold('Agent Analytics — Live')}  {dim(now.strftime('%H:%M:%S'))}",
        dim(f"{interval}s refresh, {window}s window"),
        "",
        f"  {bold(_num(frame.active_visitors))} visitors   "
        f"{bold(_num(frame.active_sessions))} sessions   "
        f"{bold(_num(frame.events_per_minute))} events/min",
        "",
        bold("Projects"),
    ]

    width = max((len(name) for name, _ in frame.projects), default=0)
    for name, snap in frame.projects:
        if snap.is_active:
            lines.append(
                f"  {colorize('●', 'green')} {pad_field(name, width)}  "
                f"{_num(snap.active_visitors)} visitors  {_num(snap.events_per_minute)}/min"
            )
        else:
            lines.append(f"  {dim('○')} {pad_field(name, width)}  {dim('idle')}")

    lines.append("")
    lines.append(bold("Top pages"))
    if frame.top_pages:
        path_width = max(len(str(p.get("path", ""))) for p in frame.top_pages)
        for p in frame.top_pages:
            lines.append(
                f"  {pad_field(p.get('path', ''), path_width)}  "
                f"{_num(p.get('visitors') or 0)}  {dim(p['project'])}"
            )
    else:
        lines.append(f"  {dim('No page views in this window')}")

    lines.append("")
    lines.append(bold("Recent events"))
    if frame.recent_events:
        for e in frame.recent_events:
            dt = parse_timestamp(e.get("timestamp"))
            stamp = dt.strftime("%H:%M:%S") if dt else "--:--:--"
            user = e.get("user_id") or ""
            lines.append(
                f"  {dim(stamp)}  {bold(e.get('event', ''))}  {dim(e['project'])}"
                + (f"  {dim(user)}" if user else "")
            )
    else:
        lines.append(f"  {dim('No events in this window')}")

    lines.append("")
    lines.append(dim("Press Ctrl+C to exit"))
    return CLEAR_HOME + "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------

def resolve_projects(client, name: str | None = None) -> list[dict[str, Any]]:
    """Fetch the project list once and narrow it to `name` if given.

    Raises:
        LiveError: If the account has no projects or `name` is not one of them
    """
    projects = client.projects.list()
    if not projects:
        raise LiveError("No projects found. Create one: agent-analytics create <name> --domain <url>")
    if name is None:
        return projects

    for project in projects:
        if project.get("name") == name:
            return [project]
    raise LiveError(f"Project not found: {name}")


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


@contextmanager
def _sigterm_as_interrupt() -> Iterator[None]:
    """Treat SIGTERM like Ctrl+C for the duration of the block (main thread only)."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


class LiveDashboard:
    """Polling full-screen view of one or more projects.

    Args:
        client: AnalyticsClient (anything with .live.snapshot(project, window))
        projects: Project dicts, in the order they are fetched and listed
        interval: Seconds to sleep between ticks
        window: Lookback window passed to the snapshot endpoint
        out: Stream the screen is written to
        clock: Returns the time shown in the header
    """

    def __init__(
        self,
        client,
        projects: list[dict[str, Any]],
        interval=DEFAULT_INTERVAL,
        window=DEFAULT_WINDOW,
        out: TextIO | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.client = client
        self.projects = projects
        self.interval = interval
        self.window = window
        self.out = out or sys.stdout
        self.clock = clock
        self.ticks = 0
        self._stop = threading.Event()

    def stop(self) -> None:
        """Ask the loop to finish; safe to call from any thread."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def _fetch_snapshot(self, name: str) -> LiveSnapshot:
        try:
            return LiveSnapshot.from_payload(self.client.live.snapshot(name, window=self.window))
        except Exception as e:
            logger.warning("Live snapshot for %s failed: %s", name, e)
            return LiveSnapshot.empty()

    def fetch_all(self) -> list[tuple[str, LiveSnapshot]] | None:
        """Fetch every project's snapshot concurrently.

        Returns the (name, snapshot) pairs in project order once every fetch
        has settled, or None if the dashboard was stopped while waiting.
        """
        names = [p.get("name", "") for p in self.projects]
        results = [LiveSnapshot.empty() for _ in names]

        def worker(index: int, name: str) -> None:
            results[index] = self._fetch_snapshot(name)

        # daemon threads: a hung request must not keep the process alive on exit
        threads = [
            threading.Thread(target=worker, args=(i, name), name=f"live-{name}", daemon=True)
            for i, name in enumerate(names)
        ]
        for t in threads:
            t.start()
        for t in threads:
            while t.is_alive():
                if self._stop.is_set():
                    return None
                t.join(JOIN_POLL_SECONDS)
        return list(zip(names, results))

    def tick(self) -> AggregatedFrame | None:
        """Fetch, aggregate and render once."""
        started = time.monotonic()
        snapshots = self.fetch_all()
        if snapshots is None:
            return None
        frame = aggregate(snapshots)
        self.out.write(render_frame(frame, self.interval, self.window, self.clock()))
        self.out.flush()
        self.ticks += 1
        logger.debug("Tick %d rendered in %.2fs", self.ticks, time.monotonic() - started)
        return frame

    def run(self) -> None:
        """Tick until stopped or interrupted, then restore the cursor."""
        self.out.write(HIDE_CURSOR)
        self.out.flush()
        try:
            with _sigterm_as_interrupt():
                while not self._stop.is_set():
                    if self.tick() is None:
                        break
                    if self._stop.wait(self.interval):
                        break
        except KeyboardInterrupt:
            logger.info("Live view interrupted after %d tick(s)", self.ticks)
        finally:
            self._stop.set()
            self.out.write(SHOW_CURSOR)
            self.out.flush()
