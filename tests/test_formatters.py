"""Tests for agent_analytics/formatters.py."""

from datetime import datetime

from agent_analytics import formatters as fmt


def text(lines):
    return "\n".join(lines)


class TestTimestamps:

    def test_iso_and_epoch_ms_agree(self):
        iso = fmt.parse_timestamp("2026-03-01T12:00:00Z")
        epoch = fmt.parse_timestamp(1772366400000)
        assert iso == epoch
        assert iso.tzinfo is None

    def test_unparseable(self):
        assert fmt.parse_timestamp(None) is None
        assert fmt.parse_timestamp("yesterday") is None
        assert fmt.format_date("yesterday") == "yesterday"

    def test_naive_iso_kept_as_is(self):
        assert fmt.parse_timestamp("2026-03-01T08:30:00") == datetime(2026, 3, 1, 8, 30)


class TestRounding:

    def test_halves_round_up(self):
        assert [fmt.round_half_up(v) for v in (0.5, 1.5, 2.5, 12.5)] == [1, 2, 3, 13]

    def test_below_half_rounds_down(self):
        assert fmt.round_half_up(2.4999) == 2
        assert fmt.round_half_up(0) == 0

    def test_negative_half_goes_toward_positive(self):
        assert fmt.round_half_up(-2.5) == -2


class TestUsage:

    def test_cost(self):
        assert fmt.usage_cost(1500) == 3.0

    def test_usage_line(self, plain):
        lines = fmt.format_monthly_usage({"x-monthly-usage": "12500"})
        assert plain(lines[-1]).strip() == "Monthly usage: 12,500 events ($25.00)"

    def test_usage_line_with_cap(self, plain):
        lines = fmt.format_monthly_usage({
            "x-monthly-usage": "5000",
            "x-monthly-limit": "50000",
            "x-monthly-usage-percent": "10",
        })
        assert "5,000 events ($10.00) — 10% of $100.00 cap" in plain(lines[-1])

    def test_missing_or_bad_header(self):
        assert fmt.format_monthly_usage({}) == []
        assert fmt.format_monthly_usage({"x-monthly-usage": "lots"}) == []


class TestProjects:

    def test_empty(self, plain):
        out = plain(text(fmt.format_projects([])))
        assert "No projects yet" in out

    def test_lists_each_project(self, plain):
        out = plain(text(fmt.format_projects([
            {"name": "site-a", "project_token": "aat_1", "created_at": "2026-01-02T00:00:00"},
            {"name": "site-b", "project_token": "aat_2", "allowed_origins": "https://b.com"},
        ])))
        assert "Your Projects (2)" in out
        assert "aat_1" in out and "site-b" in out
        assert "origins: *" in out
        assert "origins: https://b.com" in out

    def test_created_vs_existing(self, plain):
        assert "Project created for x.com" in plain(text(fmt.format_project_created({}, "x.com")))
        assert "Found existing project" in plain(text(fmt.format_project_created({"existing": True}, "x.com")))


class TestReports:

    def test_stats_daily_bar(self, plain):
        out = plain(text(fmt.format_stats("site", 7, {
            "totals": {"total_events": 12, "unique_users": 4},
            "daily": [{"date": "2026-01-01", "total_events": 12}],
        })))
        assert "Stats: site (last 7 days)" in out
        assert "Total events:   12" in out
        assert "2026-01-01  ███  12 events" in out

    def test_events_properties_compact(self, plain):
        out = plain(text(fmt.format_events("site", {"events": [
            {"event": "click", "timestamp": "2026-01-01T00:00:00", "properties": {"a": 1, "b": "x"}},
        ]})))
        assert '{"a":1,"b":"x"}' in out

    def test_events_empty(self, plain):
        assert "No events yet." in plain(text(fmt.format_events("site", {"events": []})))

    def test_properties_grouped_by_event(self, plain):
        out = plain(text(fmt.format_properties_received("site", {
            "properties": [
                {"event": "click", "key": "button"},
                {"event": "page_view", "key": "path"},
                {"event": "click", "key": "label"},
            ],
            "sample_size": 500,
        })))
        assert out.index("button") < out.index("label") < out.index("page_view")
        assert "Sampled from last 500 events" in out

    def test_insights_arrows(self, plain):
        out = plain(text(fmt.format_insights("site", "7d", {
            "metrics": {
                "unique_users": {"current": 20, "previous": 10, "change": 10, "change_pct": 100},
                "bounce_rate": {"current": 0.2, "previous": 0.3, "change": -0.1, "change_pct": -33},
                "sessions": {"current": 5, "previous": 5, "change": 0, "change_pct": 0},
            },
            "trend": "growing",
        })))
        assert "unique users:  20 ↑ (+100%)" in out
        assert "↓ (-33%)" in out
        assert "— (0%)" in out
        assert "Trend: growing" in out

    def test_pages_rounding(self, plain):
        out = plain(text(fmt.format_pages("site", "entry", {"entry_pages": [
            {"page": "/", "sessions": 10, "bounce_rate": 0.456, "avg_duration": 12600, "avg_events": 2.5},
        ]})))
        assert "46% bounce" in out
        assert "13s avg" in out

    def test_pages_half_values_round_up(self, plain):
        out = plain(text(fmt.format_pages("site", "entry", {"entry_pages": [
            {"page": "/", "sessions": 8, "bounce_rate": 0.125, "avg_duration": 2500, "avg_events": 1},
        ]})))
        assert "13% bounce" in out
        assert "3s avg" in out

    def test_session_distribution(self, plain):
        out = plain(text(fmt.format_session_distribution("site", {
            "distribution": [{"bucket": "0s", "sessions": 5, "pct": 25}],
            "median_bucket": "10-30s",
            "engaged_pct": 40,
        })))
        assert "0s       █████████████  5 (25%)" in out
        assert "Median: 10-30s" in out

    def test_funnel_percentages(self, plain):
        out = plain(text(fmt.format_funnel("site", {
            "steps": [
                {"event": "page_view", "users": 200},
                {"event": "signup", "users": 50, "drop_off": 150},
            ],
            "conversion_rate": 0.25,
        })))
        assert "1. page_view  " in out
        assert "200 users (100%)" in out
        assert "50 users (25%)" in out
        assert "150 dropped off" in out
        assert "Overall conversion: 25%" in out

    def test_funnel_half_percent_rounds_up(self, plain):
        out = plain(text(fmt.format_funnel("site", {
            "steps": [{"event": "a", "users": 8}, {"event": "b", "users": 1}],
            "conversion_rate": 0.125,
        })))
        assert "1 users (13%)" in out
        assert "Overall conversion: 13%" in out

    def test_funnel_zero_first_step(self, plain):
        out = plain(text(fmt.format_funnel("site", {"steps": [
            {"event": "a", "users": 0}, {"event": "b", "users": 0},
        ]})))
        assert "0 users (0%)" in out

    def test_retention_table(self, plain):
        out = plain(text(fmt.format_retention("site", "week", {"cohorts": [
            {"date": "2026-01-05", "users": 40, "retention": [1.0, 0.5, 0.25]},
        ]})))
        assert "W0" in out and "W2" in out
        assert "100%" in out and "25%" in out


class TestExperiments:

    def test_list(self, plain):
        out = plain(text(fmt.format_experiments("site", [
            {"id": "exp_1", "name": "cta", "status": "active", "goal_event": "signup",
             "variants": [{"name": "control"}, {"name": "green"}]},
        ])))
        assert "cta  active  exp_1" in out
        assert "variants: control, green" in out

    def test_significant_result(self, plain):
        out = plain(text(fmt.format_experiment({
            "name": "cta", "status": "active", "goal_event": "signup",
            "results": {
                "variants": [
                    {"variant": "control", "conversions": 10, "exposures": 100, "conversion_rate": 0.1},
                    {"variant": "green", "conversions": 20, "exposures": 100, "conversion_rate": 0.2},
                ],
                "significant": True,
                "leader": "green",
                "confidence": 0.97,
            },
        })))
        assert "20/100 (20%)" in out
        assert "Significant: green leads at 97% confidence" in out

    def test_half_percent_variant_rate_rounds_up(self, plain):
        out = plain(text(fmt.format_experiment({
            "name": "cta",
            "results": {"variants": [
                {"variant": "a", "conversions": 1, "exposures": 8, "conversion_rate": 0.125},
            ]},
        })))
        assert "1/8 (13%)" in out

    def test_not_significant(self, plain):
        out = plain(text(fmt.format_experiment({
            "name": "cta",
            "results": {"variants": [{"variant": "a", "conversion_rate": 0}], "significant": False},
        })))
        assert "Not significant yet" in out
