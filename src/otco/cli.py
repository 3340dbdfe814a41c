"""Main CLI for otco."""

import typer
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from rich.console import Console
from rich.markup import escape
from typing import Callable, Iterator, Optional

from .config import (
    CONFIG_KEYS,
    OtcoContext,
    default_config,
    default_config_path,
    delete_token,
    derive_host,
    find_config_file,
    get_config_value,
    load_config_file,
    resolve_context,
    save_token,
    set_config_value,
    write_config_file,
)
from .errors import FetchCancelled, OtcoError
from .github_client import GitHubClient
from .logging_setup import LOG_LEVELS, configure_logging
from .models.records import ProjectionSpec
from .output import build_pagination, get_renderer, truncation_notice
from .paginator import FetchResult
from .pipeline import project_and_render
from .services import (
    get_client,
    resolve_context_info,
)
from .services.actions import (
    list_workflows as svc_list_workflows,
    list_workflow_runs as svc_list_workflow_runs,
)
from .services.issues import list_issues as svc_list_issues, list_pulls as svc_list_pulls
from .services.meta import current_user as svc_current_user, rate_limit as svc_rate_limit
from .services.repos import list_org_repos as svc_list_org_repos
from .services.security import (
    list_dependabot_alerts as svc_list_dependabot_alerts,
    list_code_scanning_alerts as svc_list_code_scanning_alerts,
    list_secret_scanning_alerts as svc_list_secret_scanning_alerts,
)

app = typer.Typer(
    name="otco",
    help="otco - explore GitHub organizations, repositories, CI and security data",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


@dataclass
class CliState:
    """Global options shared by every command."""

    config_path: Optional[Path] = None
    output_format: Optional[str] = None
    api_url: Optional[str] = None
    fetch_all: bool = False
    fields: Optional[str] = None
    sort: Optional[str] = None
    limit: Optional[int] = None
    output_file: Optional[Path] = None


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a config file (yaml or json)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Output format (table|json|yaml|csv|psv)"),
    api_url: Optional[str] = typer.Option(None, "--api-url", help="GitHub API base URL"),
    log_level: str = typer.Option("warning", "--log-level", help=f"Log level ({'|'.join(LOG_LEVELS)})"),
    fetch_all: bool = typer.Option(False, "--all", help="Fetch every page instead of stopping at the page cap"),
    fields: Optional[str] = typer.Option(None, "--fields", help="Comma-separated fields to keep, in order"),
    sort: Optional[str] = typer.Option(None, "--sort", help="Sort by field; prefix with '-' for descending"),
    limit: Optional[int] = typer.Option(None, "--limit", min=0, help="Maximum records to output (0 = all)"),
    output_file: Optional[Path] = typer.Option(None, "--output-file", help="Write output to a file instead of stdout"),
):
    """Explore GitHub data from the command line."""
    configure_logging(log_level)
    ctx.obj = CliState(
        config_path=config,
        output_format=output,
        api_url=api_url,
        fetch_all=fetch_all,
        fields=fields,
        sort=sort,
        limit=limit,
        output_file=output_file,
    )


# Per-command pagination options
PER_PAGE_OPTION = typer.Option(None, "--per-page", min=1, max=100, help="Records per page (1-100)")
PAGES_OPTION = typer.Option(None, "--pages", min=1, help="Maximum pages to fetch without --all")


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Report known errors on the console and exit non-zero."""
    try:
        yield
    except FetchCancelled as e:
        err_console.print(f"[yellow]Cancelled:[/yellow] {escape(str(e))}")
        raise typer.Exit(130)
    except OtcoError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        for suggestion in e.suggestions:
            err_console.print(f"  {escape(suggestion)}")
        raise typer.Exit(1)
    except ValueError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        err_console.print("[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)


def _state(ctx: typer.Context) -> CliState:
    return ctx.obj if isinstance(ctx.obj, CliState) else CliState()


def _resolve(state: CliState, per_page: Optional[int] = None, pages: Optional[int] = None) -> OtcoContext:
    return resolve_context(
        state.config_path,
        api_url=state.api_url,
        output_format=state.output_format,
        per_page=per_page,
        max_pages=pages,
    )


def _run_listing(
    ctx: typer.Context,
    fetch: Callable[[GitHubClient], FetchResult],
    per_page: Optional[int] = None,
    pages: Optional[int] = None,
) -> None:
    """Fetch, project and render one listing using the global options."""
    state = _state(ctx)
    with _handle_errors():
        context = _resolve(state, per_page, pages)
        # Fail on a bad format before spending any requests
        renderer = get_renderer(context.output_format)
        projection = ProjectionSpec.parse(state.fields, state.sort, state.limit)

        client, _ = get_client(context, fetch_all=state.fetch_all)
        try:
            result = fetch(client)
        except KeyboardInterrupt:
            client.cancel()
            raise

        projected = project_and_render(result.records, projection, renderer.name, state.output_file)

        pagination = build_pagination(
            pages=result.pages,
            record_count=len(result.records),
            truncated=result.truncated,
            page_cap=None if state.fetch_all else context.max_pages,
            rate_remaining=result.rate.remaining,
        )
        notice = truncation_notice(pagination)
        if notice:
            err_console.print(f"[yellow]Warning:[/yellow] {notice}")
        if state.output_file:
            err_console.print(f"[dim]Wrote {len(projected)} record(s) to {escape(str(state.output_file))}[/dim]")


# ============================================================================
# Context Commands
# ============================================================================


@app.command("context")
def show_context(ctx: typer.Context):
    """Show resolved configuration and where each setting came from.

    Displays:
    - Config source (explicit, directory, user, none)
    - API URL, output format and pagination defaults
    - Authentication status
    """
    state = _state(ctx)
    with _handle_errors():
        info = resolve_context_info(_resolve(state))
    console.print(info["help"], markup=False, highlight=False)


# ============================================================================
# Auth Commands
# ============================================================================

auth_app = typer.Typer(help="Authentication commands")
app.add_typer(auth_app, name="auth")


@auth_app.command("login")
def auth_login(
    ctx: typer.Context,
    token: str = typer.Option(..., prompt="GitHub token", hide_input=True, help="Personal access token"),
    host: Optional[str] = typer.Option(None, "--host", help="Host key for storage (default: API URL host)"),
    verify: bool = typer.Option(True, "--verify/--no-verify", help="Check the token against /user first"),
):
    """Store a personal access token for an API host."""
    state = _state(ctx)
    with _handle_errors():
        context = _resolve(state)
        host = host or context.host
        if verify:
            client = GitHubClient(api_url=context.api_url, token=token)
            user = svc_current_user(client).records.to_list()
            login = user[0].get("login") if user else None
            console.print(f"[green]✓[/green] Token valid for {login or 'unknown user'}")
        path = save_token(host, token)
    console.print(f"[green]✓[/green] Stored token for host {host}")
    console.print(f"[dim]{path}[/dim]")


@auth_app.command("logout")
def auth_logout(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Host key for storage (default: API URL host)"),
):
    """Remove the stored token for an API host."""
    state = _state(ctx)
    with _handle_errors():
        if host is None:
            host = derive_host(state.api_url or _resolve(state).api_url)
        removed = delete_token(host)
    if removed:
        console.print(f"[green]✓[/green] Removed token for host {host}")
    else:
        console.print(f"No stored token for host {host}")


@auth_app.command("whoami")
def auth_whoami(ctx: typer.Context):
    """Show the authenticated user."""
    _run_listing(ctx, svc_current_user)


# ============================================================================
# Meta Commands
# ============================================================================

meta_app = typer.Typer(help="API metadata")
app.add_typer(meta_app, name="meta")


@meta_app.command("rate-limit")
def meta_rate_limit(ctx: typer.Context):
    """Show current rate limit usage."""
    _run_listing(ctx, svc_rate_limit)


# ============================================================================
# Repository Commands
# ============================================================================

org_app = typer.Typer(help="Organization commands")
app.add_typer(org_app, name="org")

repo_app = typer.Typer(help="Repository commands")
app.add_typer(repo_app, name="repo")


def _list_repos(ctx: typer.Context, org: str, repo_type: Optional[str], per_page: Optional[int], pages: Optional[int]):
    _run_listing(ctx, lambda client: svc_list_org_repos(client, org, repo_type), per_page, pages)


@org_app.command("repos")
def org_repos(
    ctx: typer.Context,
    org: str = typer.Argument(..., help="Organization login"),
    repo_type: Optional[str] = typer.Option(None, "--type", help="all|public|private|forks|sources|member"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List repositories in an organization."""
    _list_repos(ctx, org, repo_type, per_page, pages)


@repo_app.command("list")
def repo_list(
    ctx: typer.Context,
    org: str = typer.Argument(..., help="Organization login"),
    repo_type: Optional[str] = typer.Option(None, "--type", help="all|public|private|forks|sources|member"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List repositories in an organization (alias of 'org repos')."""
    _list_repos(ctx, org, repo_type, per_page, pages)


# ============================================================================
# Issue and Pull Request Commands
# ============================================================================

issues_app = typer.Typer(help="Issue commands")
app.add_typer(issues_app, name="issues")

prs_app = typer.Typer(help="Pull request commands")
app.add_typer(prs_app, name="prs")


@issues_app.command("list")
def issues_list(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="open|closed|all"),
    labels: Optional[str] = typer.Option(None, "--labels", "-l", help="Comma-separated label names"),
    assignee: Optional[str] = typer.Option(None, "--assignee", help="Assignee login"),
    milestone: Optional[str] = typer.Option(None, "--milestone", help="Milestone number, '*' or 'none'"),
    since: Optional[str] = typer.Option(None, "--since", help="Only issues updated since (ISO 8601)"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List issues in a repository."""
    _run_listing(
        ctx,
        lambda client: svc_list_issues(
            client,
            repo,
            state=state,
            labels=labels,
            assignee=assignee,
            milestone=milestone,
            since=since,
        ),
        per_page,
        pages,
    )


@prs_app.command("list")
def prs_list(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="open|closed|all"),
    draft: Optional[bool] = typer.Option(None, "--draft/--no-draft", help="Only draft / non-draft pull requests"),
    base: Optional[str] = typer.Option(None, "--base", help="Base branch name"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List pull requests in a repository."""
    _run_listing(
        ctx,
        lambda client: svc_list_pulls(client, repo, state=state, draft=draft, base=base),
        per_page,
        pages,
    )


# ============================================================================
# Actions Commands
# ============================================================================

actions_app = typer.Typer(help="GitHub Actions commands")
app.add_typer(actions_app, name="actions")


@actions_app.command("workflows")
def actions_workflows(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List workflows defined in a repository."""
    _run_listing(ctx, lambda client: svc_list_workflows(client, repo), per_page, pages)


@actions_app.command("runs")
def actions_runs(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    branch: Optional[str] = typer.Option(None, "--branch", help="Branch name"),
    status: Optional[str] = typer.Option(None, "--status", help="Run status (queued, in_progress, completed, ...)"),
    conclusion: Optional[str] = typer.Option(None, "--conclusion", help="Run conclusion (success, failure, ...)"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List workflow runs in a repository."""
    _run_listing(
        ctx,
        lambda client: svc_list_workflow_runs(
            client, repo, branch=branch, status=status, conclusion=conclusion
        ),
        per_page,
        pages,
    )


# ============================================================================
# Security Commands
# ============================================================================

security_app = typer.Typer(help="Security alert commands")
app.add_typer(security_app, name="security")


@security_app.command("dependabot")
def security_dependabot(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="Alert state"),
    severity: Optional[str] = typer.Option(None, "--severity", help="low|medium|high|critical"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List Dependabot alerts."""
    _run_listing(
        ctx,
        lambda client: svc_list_dependabot_alerts(client, repo, state=state, severity=severity),
        per_page,
        pages,
    )


@security_app.command("code-scanning")
def security_code_scanning(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="Alert state"),
    severity: Optional[str] = typer.Option(None, "--severity", help="Alert severity"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List code scanning alerts."""
    _run_listing(
        ctx,
        lambda client: svc_list_code_scanning_alerts(client, repo, state=state, severity=severity),
        per_page,
        pages,
    )


@security_app.command("secret-scanning")
def security_secret_scanning(
    ctx: typer.Context,
    repo: str = typer.Argument(..., help="Repository as owner/name"),
    state: Optional[str] = typer.Option(None, "--state", "-s", help="Alert state"),
    secret_type: Optional[str] = typer.Option(None, "--secret-type", help="Comma-separated secret types"),
    per_page: Optional[int] = PER_PAGE_OPTION,
    pages: Optional[int] = PAGES_OPTION,
):
    """List secret scanning alerts."""
    _run_listing(
        ctx,
        lambda client: svc_list_secret_scanning_alerts(client, repo, state=state, secret_type=secret_type),
        per_page,
        pages,
    )


# ============================================================================
# Config Commands
# ============================================================================

config_app = typer.Typer(help="Config file commands")
app.add_typer(config_app, name="config")


@config_app.command("init")
def config_init(
    fmt: str = typer.Option("yaml", "--format", "-f", help="Config file format (yaml|json)"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory to create the file in"),
):
    """Create an otco config file with default settings."""
    with _handle_errors():
        target = default_config_path(fmt, path)
        if target.exists():
            console.print(f"Config already exists at {target}")
            return
        write_config_file(target, default_config())
    console.print(f"[green]✓[/green] Created config at {target}")


@config_app.command("get")
def config_get(
    ctx: typer.Context,
    key: str = typer.Argument(..., help=f"Config key ({', '.join(CONFIG_KEYS)})"),
):
    """Print a config value from the active config file."""
    state = _state(ctx)
    with _handle_errors():
        path, _ = find_config_file(state.config_path)
        data = load_config_file(path) if path else {}
    value = get_config_value(data, key)
    if value is None:
        err_console.print(f"Key not found: {key}")
        raise typer.Exit(1)
    typer.echo(value)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help=f"Config key ({', '.join(CONFIG_KEYS)})"),
    value: str = typer.Argument(..., help="New value"),
    path: Optional[Path] = typer.Option(None, "--path", help="Config file to update (default: ./otco.yaml)"),
):
    """Set a config value, creating the file if needed."""
    with _handle_errors():
        target = path or default_config_path("yaml")
        data = load_config_file(target) if target.exists() else {}
        set_config_value(data, key, value)
        write_config_file(target, data)
    console.print(f"[green]✓[/green] Updated {target}")


if __name__ == "__main__":
    app()
