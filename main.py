"""CLI entry point for the matching engine."""

import argparse
import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ValidationError

from matchengine.core.config import Settings
from matchengine.core.db import insert_application, insert_job, insert_user
from matchengine.core.errors import NotFoundError
from matchengine.core.schemas import (
    Application,
    CandidateProfile,
    JobPosting,
    SearchQuery,
    SortMode,
)
from matchengine.engine import MatchingEngine


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Matching engine - skill matching, recommendations and ranked job search",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- load-data ---
    load_parser = subparsers.add_parser(
        "load-data", help="Load users, jobs and applications from a YAML file",
    )
    load_parser.add_argument("--file", required=True, help="Path to data YAML file")
    _add_common(load_parser)

    # --- match ---
    match_parser = subparsers.add_parser(
        "match", help="Show match score and skill gap for a user and a job",
    )
    match_parser.add_argument("--user", type=int, required=True, help="User id")
    match_parser.add_argument("--job", type=int, required=True, help="Job id")
    _add_common(match_parser)

    # --- recommend-jobs ---
    jobs_parser = subparsers.add_parser("recommend-jobs", help="Recommend jobs for a candidate")
    jobs_parser.add_argument("--user", type=int, required=True, help="Candidate user id")
    jobs_parser.add_argument("--limit", type=int, help="Maximum results (default from config)")
    _add_common(jobs_parser)

    # --- recommend-candidates ---
    cands_parser = subparsers.add_parser(
        "recommend-candidates", help="Recommend candidates for a job",
    )
    cands_parser.add_argument("--job", type=int, required=True, help="Job id")
    cands_parser.add_argument("--limit", type=int, help="Maximum results (default from config)")
    _add_common(cands_parser)

    # --- search ---
    search_parser = subparsers.add_parser("search", help="Search active jobs")
    search_parser.add_argument("--q", default="", help="Free-text search term")
    search_parser.add_argument("--location", help="Location substring")
    search_parser.add_argument("--type", dest="job_type", help="Job type, e.g. Full-time")
    search_parser.add_argument("--skills", help="Comma-separated skills (any of)")
    search_parser.add_argument("--salary-min", help="Minimum salary")
    search_parser.add_argument("--salary-max", help="Maximum salary")
    search_parser.add_argument("--experience", help="entry, mid or senior")
    search_parser.add_argument(
        "--sort",
        default=SortMode.RELEVANCE.value,
        choices=[m.value for m in SortMode],
        help="Sort mode (default: relevance)",
    )
    search_parser.add_argument("--cursor", type=int, help="Id of the last job of the previous page")
    search_parser.add_argument("--limit", type=int, help="Page size (default from config)")
    _add_common(search_parser)

    # --- analytics ---
    analytics_parser = subparsers.add_parser("analytics", help="Employer job analytics")
    analytics_parser.add_argument("--employer", type=int, required=True, help="Employer id")
    _add_common(analytics_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _print_json(data: BaseModel | list[BaseModel]) -> None:
    if isinstance(data, list):
        print(json.dumps([d.model_dump(mode="json") for d in data], indent=2))
    else:
        print(data.model_dump_json(indent=2))


def load_data(engine: MatchingEngine, path: str | Path) -> tuple[int, int, int]:
    """Insert users, jobs and applications from YAML. Returns the three counts."""
    path = Path(path)
    if not path.exists():
        msg = f"Data file not found: {path}"
        raise FileNotFoundError(msg)
    raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}

    users = [CandidateProfile.model_validate(u) for u in raw.get("users", [])]
    jobs = [JobPosting.model_validate(j) for j in raw.get("jobs", [])]
    for user in users:
        insert_user(engine.conn, user)
    for job in jobs:
        insert_job(engine.conn, job)

    applied = 0
    for entry in raw.get("applications", []):
        app = Application.model_validate(entry)
        if insert_application(engine.conn, app.user_id, app.job_id, app.applied_at) is not None:
            applied += 1
    return len(users), len(jobs), applied


def run_command(args: argparse.Namespace, engine: MatchingEngine) -> None:
    """Dispatch a parsed subcommand against an open engine."""
    if args.command == "load-data":
        users, jobs, applications = load_data(engine, args.file)
        print(f"Loaded {users} users, {jobs} jobs, {applications} applications.")
    elif args.command == "match":
        _print_json(engine.skill_gap(args.user, args.job))
    elif args.command == "recommend-jobs":
        _print_json(engine.recommend_jobs(args.user, args.limit))
    elif args.command == "recommend-candidates":
        _print_json(engine.recommend_candidates(args.job, args.limit))
    elif args.command == "search":
        query = SearchQuery(
            term=args.q,
            location=args.location,
            job_type=args.job_type,
            skills=args.skills,
            salary_min=args.salary_min,
            salary_max=args.salary_max,
            experience_level=args.experience,
            sort=args.sort,
            cursor=args.cursor,
            page_size=args.limit or engine.settings.ranking.default_page_size,
        )
        _print_json(engine.search_jobs(query))
    elif args.command == "analytics":
        _print_json(engine.employer_analytics(args.employer))


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    engine = MatchingEngine.from_settings(settings)
    try:
        run_command(args, engine)
    except (FileNotFoundError, NotFoundError, ValidationError, sqlite3.IntegrityError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        engine.close()


if __name__ == "__main__":
    main()
