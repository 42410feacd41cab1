"""agent-analytics CLI: query your analytics account from the command line."""

import argparse
import logging
import os
import sys
from typing import NoReturn

from . import __version__
from .config import Config, get_config_path, get_logs_dir, load_config, save_config, resolve_base_url
from .client import AnalyticsClient
from .exceptions import AnalyticsError
from .live import DEFAULT_INTERVAL, DEFAULT_WINDOW, LiveDashboard, resolve_projects
from .sdk import NotLoggedInError, get_client
from . import formatters as fmt
from .term import bold, colorize, dim, failure, heading, success, warn

logger = logging.getLogger(__name__)

DASHBOARD_URL = "https://app.agentanalytics.sh"

ENV_LOG_LEVEL = "AGENT_ANALYTICS_LOG_LEVEL"


def emit(lines: list[str]) -> None:
    for line in lines:
        print(line)


def fail(msg: str) -> NoReturn:
    """Print an error and exit non-zero."""
    print(failure(msg), file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

def cmd_login(args: argparse.Namespace, config: Config) -> None:
    """Validate an API key and store it."""
    if not args.token:
        emit([
            heading("Agent Analytics — Login"),
            "",
            "Pass your API key from the dashboard:",
            f"  {colorize('agent-analytics login --token aak_your_key_here', 'cyan')}",
            "",
            "Or set it as an environment variable:",
            f"  {colorize('export AGENT_ANALYTICS_API_KEY=aak_your_key_here', 'cyan')}",
            "",
            f"Get your API key at: {colorize(DASHBOARD_URL, 'cyan')}",
            dim("Sign in with GitHub → your API key is shown once on first signup."),
        ])
        return

    client = AnalyticsClient(base_url=resolve_base_url(config), api_key=args.token)
    try:
        account = client.account.get()
    except AnalyticsError as e:
        fail(f"Invalid API key: {e}")

    config.api_key = args.token
    config.email = account.get("email")
    config.github_login = account.get("github_login")
    save_config(config)
    logger.info("Logged in as %s", config.github_login or config.email)

    emit([
        success(f"Logged in as {bold(config.github_login or config.email)}"),
        dim(f"API key saved to {get_config_path()}"),
        f"\nNext: {colorize('agent-analytics create my-site --domain https://mysite.com', 'cyan')}",
    ])


def cmd_whoami(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.account.get()
    except AnalyticsError as e:
        fail(f"Failed to get account: {e}")
    emit(fmt.format_account(data))


def cmd_revoke_key(args: argparse.Namespace, config: Config) -> None:
    """Revoke the current key and store its replacement."""
    client = get_client(config)
    try:
        data = client.account.revoke_key()
    except AnalyticsError as e:
        fail(f"Failed to revoke key: {e}")

    config.api_key = data["api_key"]
    save_config(config)

    emit([
        warn("Old API key revoked"),
        success("New API key generated and saved\n"),
        heading("New API key:"),
        colorize(data["api_key"], "yellow"),
        dim(f"Saved to {get_config_path()}") + "\n",
        warn("Update your agent with this new key!"),
    ])


def cmd_delete_account(args: argparse.Namespace, config: Config) -> None:
    emit([
        heading("Delete Account"),
        "",
        "For security, account deletion must be done from the dashboard.",
        f"Visit: {colorize(DASHBOARD_URL + '/settings', 'cyan')}",
        "",
    ])


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

CREATE_USAGE = "Usage: agent-analytics create <project-name> --domain https://mysite.com"


def cmd_create(args: argparse.Namespace, config: Config) -> None:
    if not args.domain:
        fail(CREATE_USAGE + "\n\nThe domain is required so we can restrict tracking to your site.")

    client = get_client(config)
    emit([heading(f"Creating project: {args.name}")])
    try:
        data = client.projects.create(args.name, args.domain)
    except AnalyticsError as e:
        fail(f"Failed to create project: {e}")
    emit(fmt.format_project_created(data, args.domain))


def cmd_projects(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        projects = client.projects.list()
    except AnalyticsError as e:
        fail(f"Failed to list projects: {e}")
    emit(fmt.format_projects(projects))


def cmd_delete(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        client.projects.delete(args.id)
    except AnalyticsError as e:
        fail(f"Failed to delete project: {e}")
    emit([success(f"Project {args.id} deleted")])


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def cmd_stats(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data, headers = client.stats.summary(args.project, days=args.days, return_headers=True)
    except AnalyticsError as e:
        fail(f"Failed to get stats: {e}")
    emit(fmt.format_stats(args.project, args.days, data, headers))


def cmd_events(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.events(args.project, event=args.event, days=args.days, limit=args.limit)
    except AnalyticsError as e:
        fail(f"Failed to get events: {e}")
    emit(fmt.format_events(args.project, data))


def cmd_properties_received(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.properties_received(args.project, since=args.since, sample=args.sample)
    except AnalyticsError as e:
        fail(f"Failed to get properties: {e}")
    emit(fmt.format_properties_received(args.project, data))


def cmd_insights(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.insights(args.project, period=args.period)
    except AnalyticsError as e:
        fail(f"Failed to get insights: {e}")
    emit(fmt.format_insights(args.project, args.period, data))


def cmd_breakdown(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.breakdown(
            args.project, args.property, event=args.event, since=args.since, limit=args.limit,
        )
    except AnalyticsError as e:
        fail(f"Failed to get breakdown: {e}")
    emit(fmt.format_breakdown(args.project, args.property, data))


def cmd_pages(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.pages(args.project, type=args.type, since=args.since, limit=args.limit)
    except AnalyticsError as e:
        fail(f"Failed to get pages: {e}")
    emit(fmt.format_pages(args.project, args.type, data))


def cmd_sessions_dist(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.session_distribution(args.project, since=args.since)
    except AnalyticsError as e:
        fail(f"Failed to get session distribution: {e}")
    emit(fmt.format_session_distribution(args.project, data))


def cmd_heatmap(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.heatmap(args.project, since=args.since)
    except AnalyticsError as e:
        fail(f"Failed to get heatmap: {e}")
    emit(fmt.format_heatmap(args.project, data))


def cmd_funnel(args: argparse.Namespace, config: Config) -> None:
    steps = _split_list(args.steps)
    if len(steps) < 2:
        fail("Usage: agent-analytics funnel <project-name> --steps page_view,signup,purchase")

    client = get_client(config)
    try:
        data = client.stats.funnel(args.project, steps, days=args.days)
    except AnalyticsError as e:
        fail(f"Failed to get funnel: {e}")
    emit(fmt.format_funnel(args.project, data))


def cmd_retention(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.stats.retention(args.project, period=args.period, cohorts=args.cohorts)
    except AnalyticsError as e:
        fail(f"Failed to get retention: {e}")
    emit(fmt.format_retention(args.project, args.period, data))


# ---------------------------------------------------------------------------
# Experiments
# ---------------------------------------------------------------------------

def _split_list(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


def cmd_experiments_list(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        experiments = client.experiments.list(args.project)
    except AnalyticsError as e:
        fail(f"Failed to list experiments: {e}")
    emit(fmt.format_experiments(args.project, experiments))


def cmd_experiments_create(args: argparse.Namespace, config: Config) -> None:
    variants = _split_list(args.variants)
    if len(variants) < 2:
        fail("An experiment needs at least two variants, e.g. --variants control,new_cta")

    weights = None
    if args.weights:
        try:
            weights = [int(w) for w in _split_list(args.weights)]
        except ValueError:
            fail(f"Weights must be integers: {args.weights}")
        if len(weights) != len(variants):
            fail(f"Got {len(weights)} weights for {len(variants)} variants")

    client = get_client(config)
    try:
        data = client.experiments.create(
            args.project, args.name, variants, args.goal, weights=weights,
        )
    except AnalyticsError as e:
        fail(f"Failed to create experiment: {e}")

    emit([
        success(f"Experiment {bold(args.name)} created"),
        f"  {dim('id:')} {data.get('id', '')}",
        f"  {dim('variants:')} {', '.join(variants)}",
        f"  {dim('goal:')} {args.goal}",
        "",
    ])


def cmd_experiments_get(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        data = client.experiments.get(args.id)
    except AnalyticsError as e:
        fail(f"Failed to get experiment: {e}")
    emit(fmt.format_experiment(data))


def _set_experiment_status(args: argparse.Namespace, config: Config, status: str, verb: str) -> None:
    client = get_client(config)
    try:
        client.experiments.update(args.id, status=status, winner=getattr(args, "winner", None))
    except AnalyticsError as e:
        fail(f"Failed to {verb} experiment: {e}")
    emit([success(f"Experiment {args.id} {status}")])


def cmd_experiments_pause(args: argparse.Namespace, config: Config) -> None:
    _set_experiment_status(args, config, "paused", "pause")


def cmd_experiments_resume(args: argparse.Namespace, config: Config) -> None:
    _set_experiment_status(args, config, "active", "resume")


def cmd_experiments_complete(args: argparse.Namespace, config: Config) -> None:
    _set_experiment_status(args, config, "completed", "complete")


def cmd_experiments_delete(args: argparse.Namespace, config: Config) -> None:
    client = get_client(config)
    try:
        client.experiments.delete(args.id)
    except AnalyticsError as e:
        fail(f"Failed to delete experiment: {e}")
    emit([success(f"Experiment {args.id} deleted")])


# ---------------------------------------------------------------------------
# Live
# ---------------------------------------------------------------------------

def cmd_live(args: argparse.Namespace, config: Config) -> None:
    """Full-screen live view across one or all projects."""
    if args.project and args.project.startswith("--"):
        fail("Usage: agent-analytics live [project-name] [--interval N] [--window N]")
    if args.interval <= 0 or args.window <= 0:
        fail("--interval and --window must be positive")

    client = get_client(config)
    try:
        projects = resolve_projects(client, args.project)
    except AnalyticsError as e:
        fail(f"Failed to start live view: {e}")

    dashboard = LiveDashboard(client, projects, interval=args.interval, window=args.window)
    dashboard.run()


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------

def usage_text() -> str:
    c = lambda s: colorize(s, "cyan")  # noqa: E731
    return f"""
{bold('agent-analytics')} — Web analytics your AI agent can read

{bold('USAGE')}
  agent-analytics <command> [options]

{bold('COMMANDS')}
  {c('login')} --token <key> Save your API key
  {c('create')} <name>      Create a project and get your snippet
  {c('init')} <name>        Alias for create
  {c('projects')}           List your projects
  {c('delete')} <id>        Delete a project
  {c('stats')} <name>       Get stats for a project
  {c('events')} <name>      Get recent events
  {c('properties-received')} <name>  Show property keys per event
  {c('insights')} <name>    Period-over-period comparison
  {c('breakdown')} <name>   Property value distribution
  {c('pages')} <name>       Entry/exit page performance
  {c('sessions-dist')} <name>  Session duration distribution
  {c('heatmap')} <name>     Peak hours & busiest days
  {c('funnel')} <name>      Conversion through a sequence of events
  {c('retention')} <name>   Cohort retention table
  {c('experiments')} <sub>  list | create | get | pause | resume | complete | delete
  {c('live')} [name]        Real-time view of all (or one) projects
  {c('whoami')}             Show current account
  {c('revoke-key')}         Revoke and regenerate API key
  {c('delete-account')}     Delete your account (opens dashboard)

{bold('OPTIONS')}
  --days <N>         Days of data (default: 7)
  --limit <N>        Max events/rows to return (default: 100)
  --domain <url>     Your site domain (required for create)
  --since <date>     ISO date for properties-received (default: 7 days)
  --sample <N>       Max events to sample (default: 5000)
  --period <P>       Period for insights: 1d, 7d, 14d, 30d, 90d (default: 7d)
  --property <key>   Property key for breakdown (required)
  --event <name>     Filter by event name
  --type <T>         Page type: entry, exit, both (default: entry)
  --steps <a,b,c>    Funnel steps (event names, in order)
  --interval <N>     Live refresh interval in seconds (default: {DEFAULT_INTERVAL})
  --window <N>       Live activity window in seconds (default: {DEFAULT_WINDOW})

{bold('ENVIRONMENT')}
  AGENT_ANALYTICS_API_KEY    API key (overrides config file)
  AGENT_ANALYTICS_URL        Custom API URL

{bold('EXAMPLES')}
  {dim('# First time: save your API key (from app.agentanalytics.sh)')}
  agent-analytics login --token aak_your_key

  {dim('# Create a project')}
  agent-analytics create my-site --domain https://mysite.com

  {dim('# Check how your site is doing')}
  agent-analytics stats my-site --days 30

  {dim('# Watch traffic as it happens')}
  agent-analytics live --interval 10

{dim('https://agentanalytics.sh')}
"""


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agent-analytics",
        description="Agent Analytics command-line client",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    sub = parser.add_subparsers(dest="command")

    # login
    p_login = sub.add_parser("login", help="Save your API key")
    p_login.add_argument("--token", help="API key from the dashboard")
    p_login.set_defaults(func=cmd_login)

    # create <name> / init <name>
    p_create = sub.add_parser("create", aliases=["init"], help="Create a project")
    p_create.add_argument("name", help="Project name")
    p_create.add_argument("--domain", help="Site origin allowed to send events")
    p_create.set_defaults(func=cmd_create)

    # projects
    p_projects = sub.add_parser("projects", aliases=["list"], help="List projects")
    p_projects.set_defaults(func=cmd_projects)

    # delete <id>
    p_delete = sub.add_parser("delete", help="Delete a project")
    p_delete.add_argument("id", help="Project ID")
    p_delete.set_defaults(func=cmd_delete)

    # stats <name>
    p_stats = sub.add_parser("stats", help="Stats for a project")
    p_stats.add_argument("project", help="Project name")
    p_stats.add_argument("--days", type=int, default=7)
    p_stats.set_defaults(func=cmd_stats)

    # events <name>
    p_events = sub.add_parser("events", help="Recent events")
    p_events.add_argument("project", help="Project name")
    p_events.add_argument("--days", type=int, default=7)
    p_events.add_argument("--limit", type=int, default=100)
    p_events.add_argument("--event", help="Only this event name")
    p_events.set_defaults(func=cmd_events)

    # properties-received <name>
    p_props = sub.add_parser("properties-received", help="Property keys per event")
    p_props.add_argument("project", help="Project name")
    p_props.add_argument("--since", help="ISO date")
    p_props.add_argument("--sample", type=int)
    p_props.set_defaults(func=cmd_properties_received)

    # insights <name>
    p_insights = sub.add_parser("insights", help="Period-over-period comparison")
    p_insights.add_argument("project", help="Project name")
    p_insights.add_argument("--period", default="7d")
    p_insights.set_defaults(func=cmd_insights)

    # breakdown <name>
    p_breakdown = sub.add_parser("breakdown", help="Property value distribution")
    p_breakdown.add_argument("project", help="Project name")
    p_breakdown.add_argument("--property", required=True, help="Property key")
    p_breakdown.add_argument("--event", help="Only this event name")
    p_breakdown.add_argument("--since", help="ISO date")
    p_breakdown.add_argument("--limit", type=int, default=20)
    p_breakdown.set_defaults(func=cmd_breakdown)

    # pages <name>
    p_pages = sub.add_parser("pages", help="Entry/exit page performance")
    p_pages.add_argument("project", help="Project name")
    p_pages.add_argument("--type", default="entry", choices=["entry", "exit", "both"])
    p_pages.add_argument("--since", help="ISO date")
    p_pages.add_argument("--limit", type=int, default=20)
    p_pages.set_defaults(func=cmd_pages)

    # sessions-dist <name>
    p_dist = sub.add_parser("sessions-dist", help="Session duration distribution")
    p_dist.add_argument("project", help="Project name")
    p_dist.add_argument("--since", help="ISO date")
    p_dist.set_defaults(func=cmd_sessions_dist)

    # heatmap <name>
    p_heatmap = sub.add_parser("heatmap", help="Peak hours & busiest days")
    p_heatmap.add_argument("project", help="Project name")
    p_heatmap.add_argument("--since", help="ISO date")
    p_heatmap.set_defaults(func=cmd_heatmap)

    # funnel <name>
    p_funnel = sub.add_parser("funnel", help="Conversion through a sequence of events")
    p_funnel.add_argument("project", help="Project name")
    p_funnel.add_argument("--steps", required=True, help="Comma-separated event names")
    p_funnel.add_argument("--days", type=int, default=30)
    p_funnel.set_defaults(func=cmd_funnel)

    # retention <name>
    p_retention = sub.add_parser("retention", help="Cohort retention")
    p_retention.add_argument("project", help="Project name")
    p_retention.add_argument("--period", default="week", choices=["day", "week", "month"])
    p_retention.add_argument("--cohorts", type=int, default=8)
    p_retention.set_defaults(func=cmd_retention)

    # experiments <sub>
    p_exp = sub.add_parser("experiments", help="A/B experiments")
    exp_sub = p_exp.add_subparsers(dest="experiments_command", required=True)

    p_exp_list = exp_sub.add_parser("list", help="List a project's experiments")
    p_exp_list.add_argument("project", help="Project name")
    p_exp_list.set_defaults(func=cmd_experiments_list)

    p_exp_create = exp_sub.add_parser("create", help="Create an experiment")
    p_exp_create.add_argument("project", help="Project name")
    p_exp_create.add_argument("--name", required=True)
    p_exp_create.add_argument("--variants", required=True, help="Comma-separated, control first")
    p_exp_create.add_argument("--goal", required=True, help="Goal event name")
    p_exp_create.add_argument("--weights", help="Comma-separated traffic split")
    p_exp_create.set_defaults(func=cmd_experiments_create)

    p_exp_get = exp_sub.add_parser("get", help="Show results")
    p_exp_get.add_argument("id", help="Experiment ID")
    p_exp_get.set_defaults(func=cmd_experiments_get)

    p_exp_pause = exp_sub.add_parser("pause", help="Pause an experiment")
    p_exp_pause.add_argument("id", help="Experiment ID")
    p_exp_pause.set_defaults(func=cmd_experiments_pause)

    p_exp_resume = exp_sub.add_parser("resume", help="Resume a paused experiment")
    p_exp_resume.add_argument("id", help="Experiment ID")
    p_exp_resume.set_defaults(func=cmd_experiments_resume)

    p_exp_complete = exp_sub.add_parser("complete", help="End an experiment")
    p_exp_complete.add_argument("id", help="Experiment ID")
    p_exp_complete.add_argument("--winner", help="Winning variant")
    p_exp_complete.set_defaults(func=cmd_experiments_complete)

    p_exp_delete = exp_sub.add_parser("delete", help="Delete an experiment")
    p_exp_delete.add_argument("id", help="Experiment ID")
    p_exp_delete.set_defaults(func=cmd_experiments_delete)

    # live [project]
    p_live = sub.add_parser("live", help="Real-time view")
    p_live.add_argument("project", nargs="?", help="Only this project")
    p_live.add_argument("--interval", type=int, default=DEFAULT_INTERVAL, help="Seconds between refreshes")
    p_live.add_argument("--window", type=int, default=DEFAULT_WINDOW, help="Seconds of activity to include")
    p_live.set_defaults(func=cmd_live)

    # whoami / revoke-key / delete-account
    p_whoami = sub.add_parser("whoami", help="Show current account")
    p_whoami.set_defaults(func=cmd_whoami)

    p_revoke = sub.add_parser("revoke-key", help="Revoke and regenerate API key")
    p_revoke.set_defaults(func=cmd_revoke_key)

    p_delacct = sub.add_parser("delete-account", help="Delete your account")
    p_delacct.set_defaults(func=cmd_delete_account)

    parser.command_names = frozenset(sub.choices)
    return parser


HELP_COMMANDS = ("help", "-h", "--help")


def setup_logging() -> None:
    """Log to a file under the config dir so output never mixes with the screen."""
    level = getattr(logging, os.environ.get(ENV_LOG_LEVEL, "WARNING").upper(), logging.WARNING)
    if not isinstance(level, int):
        level = logging.WARNING
    log_path = get_logs_dir() / "cli.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        logging.basicConfig(level=level)
        return
    logging.basicConfig(
        filename=str(log_path),
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    if not argv or argv[0] in HELP_COMMANDS:
        print(usage_text())
        return

    parser = build_parser()
    if not argv[0].startswith("-") and argv[0] not in parser.command_names:
        fail(f"Unknown command: {argv[0]}. Run: agent-analytics help")

    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        print(usage_text())
        return

    setup_logging()
    config = load_config()
    try:
        args.func(args, config)
    except NotLoggedInError as e:
        fail(str(e))
    except AnalyticsError as e:
        logger.exception("Command %s failed", args.command)
        fail(str(e))


if __name__ == "__main__":
    main()
