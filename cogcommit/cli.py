#!/usr/bin/env python3
"""CogCommit command line interface.

Usage:
  cogcommit import [--clear] [--project]
  cogcommit studio [--port 4747] [--watch]
  cogcommit search "refactor parser" --project api
  cogcommit export --format markdown --output commits.md
  cogcommit prune --before 30d --dry-run
  cogcommit stats --json
  cogcommit login --token <supabase access token>
  cogcommit push --dry-run
  cogcommit pull
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable

from cogcommit import auth, config
from cogcommit.date_utils import parse_before_date
from cogcommit.db import connection, migrations
from cogcommit.db.factory import get_commit_repository, get_turn_repository
from cogcommit.formatters import format_date
from cogcommit.services.cloud_sync import pull_commits, push_commits
from cogcommit.services.exporters import format_commits_as_json, format_commits_as_markdown
from cogcommit.services.importer import import_sessions
from cogcommit.services.search import ANSI_CYAN, ANSI_RESET, highlight_match


_PRUNE_PREVIEW = 10
_TOP_PROJECTS = 5


def _err(message: str) -> None:
    print(message, file=sys.stderr)


async def _with_local_db(body: Callable[[Any], Awaitable[int]]) -> int:
    """Open the local database, run migrations, run ``body``, always close."""
    config.ensure_global_storage_dir()
    db = await connection.get_connection()
    try:
        await migrations.run_migrations(db)
        return await body(db)
    finally:
        await connection.close_connection()


# ── import ──────────────────────────────────────────────────────────

async def _cmd_import(args: argparse.Namespace) -> int:
    async def body(db) -> int:
        result = await import_sessions(
            db,
            claude_dir=Path(args.claude_dir).expanduser() if args.claude_dir else None,
            codex_dir=Path(args.codex_dir).expanduser() if args.codex_dir else None,
            project=Path.cwd() if args.project else None,
            clear=args.clear,
        )
        print(f"Imported {result.commits} commits ({result.turns} turns) from {result.files} files.")
        if result.skipped:
            print(f"Skipped {result.skipped} files with no conversation.")
        return 0

    return await _with_local_db(body)


# ── search ──────────────────────────────────────────────────────────

async def _cmd_search(args: argparse.Namespace) -> int:
    async def body(db) -> int:
        results = await get_turn_repository(db).search(args.query, project=args.project, limit=args.limit)
        if not results:
            print(f'No results found for "{args.query}"')
            return 0

        print(f'Found {len(results)} matches for "{args.query}":\n')
        for result in results:
            project = result.project_name or "unknown"
            print(f"{ANSI_CYAN}{project}{ANSI_RESET} - {result.commit_id[:8]}")
            print(f"  {result.role}: {highlight_match(result.content, args.query)}")
            print()
        return 0

    return await _with_local_db(body)


# ── export ──────────────────────────────────────────────────────────

async def _cmd_export(args: argparse.Namespace) -> int:
    async def body(db) -> int:
        repo = get_commit_repository(db)
        if args.project:
            commits = await repo.get_by_project(args.project)
        else:
            commits = await repo.list_all()
        if args.limit:
            commits = commits[:args.limit]

        if args.format == "markdown":
            output = format_commits_as_markdown(commits)
        else:
            output = format_commits_as_json(commits)

        if args.output:
            Path(args.output).write_text(output, encoding="utf-8")
            print(f"Exported {len(commits)} commits to {args.output}")
        else:
            print(output)
        return 0

    return await _with_local_db(body)


# ── prune ───────────────────────────────────────────────────────────

def _confirm(prompt: str) -> bool:
    try:
        answer = input(prompt)
    except EOFError:
        return False
    return answer.strip().lower() == "yes"


async def _cmd_prune(args: argparse.Namespace) -> int:
    if not args.before:
        _err("Error: --before is required (e.g., --before 30d or --before 2024-01-01)")
        return 1
    try:
        before = parse_before_date(args.before)
    except ValueError as e:
        _err(f"Error: {e}")
        return 1

    async def body(db) -> int:
        repo = get_commit_repository(db)
        commits = await repo.get_before_date(before, args.project)
        if not commits:
            print("No commits found matching criteria.")
            return 0

        print(f"Found {len(commits)} commits to prune.")

        if args.dry_run:
            print("\nDry run - would delete:")
            for c in commits[:_PRUNE_PREVIEW]:
                print(f"  {c.id[:8]} - {c.projectName or 'unknown'} - {format_date(c.closedAt)}")
            if len(commits) > _PRUNE_PREVIEW:
                print(f"  ... and {len(commits) - _PRUNE_PREVIEW} more")
            return 0

        if not args.yes and not _confirm(f"Delete {len(commits)} commits? Type 'yes' to confirm: "):
            print("Aborted.")
            return 0

        deleted = await repo.delete_many([c.id for c in commits])
        print(f"Deleted {deleted} commits.")
        return 0

    return await _with_local_db(body)


# ── stats ───────────────────────────────────────────────────────────

async def _cmd_stats(args: argparse.Namespace) -> int:
    async def body(db) -> int:
        stats = await get_commit_repository(db).get_stats(args.project)
        if args.json:
            print(json.dumps(stats.model_dump(), indent=2))
            return 0

        print("\nCogCommit Statistics\n")
        print(f"Total commits:     {stats.totalCommits}")
        print(f"Total sessions:    {stats.totalSessions}")
        print(f"Total turns:       {stats.totalTurns}")
        print(f"Projects:          {stats.projectCount}")

        if stats.bySource:
            print("\nBy source:")
            for source, count in stats.bySource.items():
                print(f"  {source}: {count}")

        if stats.topProjects:
            print("\nTop projects:")
            for proj in stats.topProjects[:_TOP_PROJECTS]:
                print(f"  {proj.name}: {proj.count} commits")

        if stats.firstCommit or stats.lastCommit:
            print("\nTime range:")
            if stats.firstCommit:
                print(f"  First: {format_date(stats.firstCommit)}")
            if stats.lastCommit:
                print(f"  Last:  {format_date(stats.lastCommit)}")
        print()
        return 0

    return await _with_local_db(body)


# ── auth ────────────────────────────────────────────────────────────

async def _cmd_login(args: argparse.Namespace) -> int:
    try:
        user = auth.fetch_supabase_user(args.token)
    except config.SupabaseNotConfiguredError as e:
        _err(str(e))
        return 1
    except auth.AuthError as e:
        _err(f"Login failed: {e}")
        return 1

    payload = auth.build_auth_payload(args.token, user, args.refresh_token, args.expires_at)
    auth.save_auth(payload)
    print(f"Logged in as {payload['user']['githubUsername']}")
    return 0


async def _cmd_logout(args: argparse.Namespace) -> int:
    if auth.clear_auth():
        print("Logged out.")
    else:
        print("Not logged in.")
    return 0


# ── cloud sync ──────────────────────────────────────────────────────

def _require_auth() -> dict[str, Any] | None:
    try:
        stored = auth.get_valid_auth()
    except (auth.AuthError, config.SupabaseNotConfiguredError) as e:
        _err(f"Authentication error: {e}")
        return None
    if stored is None:
        _err("Not logged in. Run `cogcommit login --token <token>` first.")
    return stored


async def _open_cloud():
    try:
        pool = await connection.get_cloud_pool()
    except connection.CloudNotConfiguredError as e:
        _err(str(e))
        return None
    await migrations.run_migrations(pool)
    return pool


async def _cmd_push(args: argparse.Namespace) -> int:
    stored = _require_auth()
    if stored is None:
        return 1

    async def body(db) -> int:
        cloud = await _open_cloud()
        if cloud is None:
            return 1
        try:
            result = await push_commits(
                db, cloud, stored["user"]["id"],
                force=args.force, retry=args.retry, dry_run=args.dry_run,
                machine_id=stored.get("machineId") or auth.get_machine_id(),
            )
        finally:
            await connection.close_cloud_pool()

        if args.verbose:
            print(f"Candidates: {result.candidates}")
            print(f"Skipped (warmup or empty): {result.skippedFiltered}")
        if result.dryRun:
            print(f"Dry run: would push {len(result.pushedIds)} commits.")
            if args.verbose:
                for commit_id in result.pushedIds:
                    print(f"  {commit_id[:8]}")
        else:
            print(f"Pushed {result.pushed} commits.")
            if result.failed:
                print(f"Failed to push {result.failed} commits (retry with --retry).")
                if args.verbose:
                    for commit_id, error in result.errors.items():
                        print(f"  {commit_id[:8]}: {error}")
        if result.skippedLimit:
            print(
                f"Skipped {result.skippedLimit} commits: free tier limit of "
                f"{config.FREE_TIER_COMMIT_LIMIT} commits reached."
            )
        return 1 if result.failed else 0

    return await _with_local_db(body)


async def _cmd_pull(args: argparse.Namespace) -> int:
    stored = _require_auth()
    if stored is None:
        return 1

    async def body(db) -> int:
        cloud = await _open_cloud()
        if cloud is None:
            return 1
        try:
            result = await pull_commits(db, cloud, stored["user"]["id"])
        finally:
            await connection.close_cloud_pool()
        print(f"Pulled {result.pulled} commits.")
        if args.verbose:
            print(f"Turns: {result.turns}")
        return 0

    return await _with_local_db(body)


# ── studio ──────────────────────────────────────────────────────────

def _run_studio(args: argparse.Namespace) -> int:
    import uvicorn

    config.STUDIO_WATCH = bool(args.watch)
    config.STUDIO_HOST = args.host
    config.STUDIO_PORT = args.port
    url = f"http://{args.host}:{args.port}"
    print(f"CogCommit studio running at {url}")
    uvicorn.run("cogcommit.main:app", host=args.host, port=args.port, log_level=config.LOG_LEVEL.lower())
    return 0


# ── entry point ─────────────────────────────────────────────────────

_ASYNC_COMMANDS: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
    "import": _cmd_import,
    "search": _cmd_search,
    "export": _cmd_export,
    "prune": _cmd_prune,
    "stats": _cmd_stats,
    "login": _cmd_login,
    "logout": _cmd_logout,
    "push": _cmd_push,
    "pull": _cmd_pull,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cogcommit", description="Browse and sync cognitive commits")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import", help="Import Claude Code and Codex transcripts")
    p.add_argument("--clear", action="store_true", help="Remove existing commits first")
    p.add_argument("--project", action="store_true", help="Only import the current directory's project")
    p.add_argument("--claude-dir", default=None)
    p.add_argument("--codex-dir", default=None)

    for name in ("studio", "dashboard"):
        p = sub.add_parser(name, help="Run the local studio")
        p.add_argument("--port", type=int, default=config.STUDIO_PORT)
        p.add_argument("--host", default=config.STUDIO_HOST)
        p.add_argument("--watch", action="store_true", help="Re-import transcripts as they change")

    p = sub.add_parser("search", help="Search through conversation content")
    p.add_argument("query")
    p.add_argument("-p", "--project", default=None)
    p.add_argument("--limit", type=int, default=20)

    p = sub.add_parser("export", help="Export commits to JSON or Markdown")
    p.add_argument("-f", "--format", choices=("json", "markdown"), default="json")
    p.add_argument("-o", "--output", default=None)
    p.add_argument("-p", "--project", default=None)
    p.add_argument("--limit", type=int, default=None)

    p = sub.add_parser("prune", help="Delete old commits from the local database")
    p.add_argument("--before", default=None, help="ISO date or relative like 30d, 2w, 3m")
    p.add_argument("-p", "--project", default=None)
    p.add_argument("-n", "--dry-run", action="store_true")
    p.add_argument("-y", "--yes", action="store_true")

    p = sub.add_parser("stats", help="Show statistics about cognitive commits")
    p.add_argument("-p", "--project", default=None)
    p.add_argument("--json", action="store_true")

    p = sub.add_parser("login", help="Store a Supabase access token")
    p.add_argument("--token", required=True)
    p.add_argument("--refresh-token", default=None)
    p.add_argument("--expires-at", type=float, default=None, help="Token expiry (epoch seconds)")

    sub.add_parser("logout", help="Forget stored credentials")

    p = sub.add_parser("push", help="Sync local commits to the cloud")
    p.add_argument("-v", "--verbose", action="store_true")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--force", action="store_true", help="Re-push every commit")
    p.add_argument("--retry", action="store_true", help="Retry commits that failed before")

    p = sub.add_parser("pull", help="Download synced commits")
    p.add_argument("-v", "--verbose", action="store_true")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING)

    if args.command in ("studio", "dashboard"):
        return _run_studio(args)
    return asyncio.run(_ASYNC_COMMANDS[args.command](args))


if __name__ == "__main__":
    raise SystemExit(main())
