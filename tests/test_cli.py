"""Tests for agent_analytics/cli.py."""

import json
from unittest.mock import patch

import pytest

from agent_analytics.cli import build_parser, main
from agent_analytics.config import load_config
from agent_analytics.exceptions import AnalyticsAPIError, AnalyticsAuthenticationError


@pytest.fixture(autouse=True)
def no_log_file():
    with patch("agent_analytics.cli.setup_logging"):
        yield


class TestHelp:

    @pytest.mark.parametrize("argv", [[], ["help"], ["-h"], ["--help"]])
    def test_prints_usage(self, argv, capsys, plain):
        main(argv)
        out = plain(capsys.readouterr().out)
        assert "USAGE" in out
        assert "COMMANDS" in out
        assert "live [name]" in out

    def test_unknown_command(self, capsys, plain):
        with pytest.raises(SystemExit) as exc:
            main(["frobnicate"])
        assert exc.value.code == 1
        err = plain(capsys.readouterr().err)
        assert "✗ Unknown command: frobnicate. Run: agent-analytics help" in err

    def test_aliases_are_known_commands(self):
        with patch("agent_analytics.cli.get_client") as get_client:
            get_client.return_value.projects.list.return_value = []
            main(["list"])
        get_client.return_value.projects.list.assert_called_once()

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "agent-analytics" in capsys.readouterr().out


class TestParser:

    def test_aliases(self):
        parser = build_parser()
        assert parser.parse_args(["init", "site", "--domain", "x"]).func.__name__ == "cmd_create"
        assert parser.parse_args(["list"]).func.__name__ == "cmd_projects"

    def test_live_defaults(self):
        args = build_parser().parse_args(["live"])
        assert args.project is None
        assert (args.interval, args.window) == (5, 60)

    def test_live_options(self):
        args = build_parser().parse_args(["live", "site", "--interval", "10", "--window", "120"])
        assert (args.project, args.interval, args.window) == ("site", 10, 120)


class TestLogin:

    def test_without_token_shows_instructions(self, capsys, plain):
        main(["login"])
        assert "agent-analytics login --token" in plain(capsys.readouterr().out)

    def test_saves_key_and_account(self, capsys, config_dir):
        with patch("agent_analytics.cli.AnalyticsClient") as cls:
            cls.return_value.account.get.return_value = {"email": "a@b.c", "github_login": "octo"}
            main(["login", "--token", "aak_good"])

        cls.assert_called_once_with(base_url="https://api.agentanalytics.sh", api_key="aak_good")
        saved = json.loads((config_dir / "config.json").read_text())
        assert saved == {"api_key": "aak_good", "email": "a@b.c", "github_login": "octo"}
        assert "Logged in as" in capsys.readouterr().out

    def test_rejected_key(self, capsys, config_dir):
        with patch("agent_analytics.cli.AnalyticsClient") as cls:
            cls.return_value.account.get.side_effect = AnalyticsAuthenticationError("Invalid API key")
            with pytest.raises(SystemExit) as exc:
                main(["login", "--token", "aak_bad"])

        assert exc.value.code == 1
        assert "Invalid API key" in capsys.readouterr().err
        assert not (config_dir / "config.json").exists()


class TestCommands:

    def test_not_logged_in(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["projects"])
        assert exc.value.code == 1
        assert "Not logged in" in capsys.readouterr().err

    def test_stats(self, mock_client, capsys, plain):
        mock_client.stats.summary.return_value = (
            {"totals": {"total_events": 42, "unique_users": 7}},
            {"x-monthly-usage": "1000"},
        )
        main(["stats", "my-site", "--days", "30"])

        mock_client.stats.summary.assert_called_once_with("my-site", days=30, return_headers=True)
        out = plain(capsys.readouterr().out)
        assert "Stats: my-site (last 30 days)" in out
        assert "1,000 events ($2.00)" in out

    def test_api_error_exits_1(self, mock_client, capsys):
        mock_client.stats.events.side_effect = AnalyticsAPIError("Project not found", 404)
        with pytest.raises(SystemExit) as exc:
            main(["events", "nope"])
        assert exc.value.code == 1
        assert "Failed to get events: Project not found" in capsys.readouterr().err

    def test_create_requires_domain(self, mock_client, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["create", "my-site"])
        assert exc.value.code == 1
        assert "--domain" in capsys.readouterr().err
        mock_client.projects.create.assert_not_called()

    def test_revoke_key_saves_new_key(self, mock_client, config_dir):
        mock_client.account.revoke_key.return_value = {"api_key": "aak_new"}
        main(["revoke-key"])
        assert load_config().api_key == "aak_new"

    def test_funnel_needs_two_steps(self, mock_client, capsys):
        with pytest.raises(SystemExit):
            main(["funnel", "my-site", "--steps", "page_view"])
        mock_client.stats.funnel.assert_not_called()

    def test_funnel(self, mock_client):
        mock_client.stats.funnel.return_value = {"steps": []}
        main(["funnel", "my-site", "--steps", "page_view, signup"])
        mock_client.stats.funnel.assert_called_once_with("my-site", ["page_view", "signup"], days=30)


class TestExperiments:

    def test_create(self, mock_client, capsys):
        mock_client.experiments.create.return_value = {"id": "exp_1"}
        main([
            "experiments", "create", "my-site", "--name", "cta",
            "--variants", "control,green", "--goal", "signup", "--weights", "70,30",
        ])
        mock_client.experiments.create.assert_called_once_with(
            "my-site", "cta", ["control", "green"], "signup", weights=[70, 30],
        )
        assert "exp_1" in capsys.readouterr().out

    def test_create_weight_mismatch(self, mock_client, capsys):
        with pytest.raises(SystemExit):
            main([
                "experiments", "create", "my-site", "--name", "cta",
                "--variants", "a,b", "--goal", "signup", "--weights", "100",
            ])
        assert "1 weights for 2 variants" in capsys.readouterr().err
        mock_client.experiments.create.assert_not_called()

    @pytest.mark.parametrize("sub,status", [
        ("pause", "paused"),
        ("resume", "active"),
        ("complete", "completed"),
    ])
    def test_status_changes(self, mock_client, sub, status):
        main(["experiments", sub, "exp_1"])
        mock_client.experiments.update.assert_called_once_with("exp_1", status=status, winner=None)

    def test_complete_with_winner(self, mock_client):
        main(["experiments", "complete", "exp_1", "--winner", "green"])
        mock_client.experiments.update.assert_called_once_with("exp_1", status="completed", winner="green")


class TestLive:

    def test_unknown_project_fails_before_polling(self, mock_client, capsys):
        mock_client.projects.list.return_value = [{"name": "a"}]
        with patch("agent_analytics.cli.LiveDashboard") as dashboard:
            with pytest.raises(SystemExit) as exc:
                main(["live", "missing"])
        assert exc.value.code == 1
        assert "Project not found: missing" in capsys.readouterr().err
        dashboard.assert_not_called()
        mock_client.live.snapshot.assert_not_called()

    def test_rejects_non_positive_interval(self, mock_client, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["live", "--interval", "0"])
        assert exc.value.code == 1
        mock_client.projects.list.assert_not_called()

    def test_runs_dashboard_for_all_projects(self, mock_client):
        projects = [{"name": "a"}, {"name": "b"}]
        mock_client.projects.list.return_value = projects
        with patch("agent_analytics.cli.LiveDashboard") as dashboard:
            main(["live", "--interval", "2", "--window", "30"])
        dashboard.assert_called_once_with(mock_client, projects, interval=2, window=30)
        dashboard.return_value.run.assert_called_once()
