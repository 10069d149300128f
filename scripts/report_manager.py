#!/usr/bin/env python3
"""
Mithaq — Report Manager: catalog checks, scoring and report admin CLI

Operator script working directly against the configured database.
Subcommands:

  catalog   — Validate the question catalog and print its categories.
  score     — Score two users' stored questionnaires without saving a report.
  generate  — Generate and store a report for two users.
  reports   — List the reports a user is part of.
  forget    — Delete a user's stored questionnaire.

Usage examples
--------------
  python scripts/report_manager.py catalog
  python scripts/report_manager.py catalog --path ./catalog.json
  python scripts/report_manager.py score user_a user_b --json
  python scripts/report_manager.py generate user_a user_b
  python scripts/report_manager.py reports user_a
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

# Ensure the project root is importable
sys.path.insert(0, ".")

from app.catalog import load_catalog
from app.config import get_settings
from app.database import dispose_engine
from app.exceptions import CompatibilityError
from app.repositories.compatibility_repository import SqlCompatibilityRepository
from app.services.compatibility_service import CompatibilityService
from app.services.scoring_service import ScoringService


def _build_service(catalog_path: str | None) -> CompatibilityService:
    catalog = load_catalog(catalog_path)
    return CompatibilityService(SqlCompatibilityRepository(), ScoringService(catalog))


def _print_score(score) -> None:
    print(f"\n{'=' * 60}")
    print(f"  {score.user_id_1}  <->  {score.user_id_2}")
    print(f"{'=' * 60}")
    print(f"  Overall:  {score.overall_score:6.2f}  {score.compatibility_level} ({score.level_color})")
    print(f"  {score.level_description}")
    print()
    for category_id, value in score.category_scores.items():
        weighted = score.breakdown.get(f"{category_id}_weighted", 0.0)
        print(f"  {category_id:<28} {value:5.2f}  (weighted {weighted:5.3f})")
    print()


def cmd_catalog(args: argparse.Namespace) -> None:
    """Print the catalog's categories, weights and question counts."""
    catalog = load_catalog(args.path)

    print(f"\n  Catalog version {catalog.version}")
    print(f"  {'Category':<28} {'Weight':>6}  Questions")
    print(f"  {'-' * 28} {'-' * 6}  {'-' * 9}")
    for category in catalog.categories:
        print(f"  {category.id:<28} {category.weight:6.2f}  {len(category.questions):9d}")
    print(f"\n  Total questions: {catalog.total_questions}")
    print(f"  Weight sum:      {catalog.weight_sum:.4f}\n")

    if abs(catalog.weight_sum - 1.0) > get_settings().CATALOG_WEIGHT_TOLERANCE:
        print("  WARNING: weights do not sum to 1.0; scores may leave [0, 100]")
        sys.exit(2)


async def cmd_score(args: argparse.Namespace) -> None:
    """Score a pair from stored responses; nothing is written."""
    service = _build_service(args.path)
    response_a, response_b = await service.fetch_pair_responses(args.user_id_1, args.user_id_2)
    score = service.scoring_service.calculate_compatibility(response_a, response_b)
    _print_score(score)
    if args.json:
        print(json.dumps(score.model_dump(mode="json"), indent=2))


async def cmd_generate(args: argparse.Namespace) -> None:
    service = _build_service(args.path)
    report = await service.generate_report(args.user_id_1, args.user_id_2)
    print(f"  Stored report {report.id}")
    _print_score(report.scores)


async def cmd_reports(args: argparse.Namespace) -> None:
    service = _build_service(args.path)
    reports = await service.fetch_reports(args.user_id)
    if not reports:
        print(f"  No reports for {args.user_id}")
        return

    for report in reports:
        shared = ", ".join(report.shared_with) if report.is_shared else "-"
        print(
            f"  {report.id}  {report.generated_at:%Y-%m-%d %H:%M}  "
            f"{report.user_id_1} <-> {report.user_id_2}  "
            f"{report.scores.overall_score:6.2f}  shared: {shared}"
        )


async def cmd_forget(args: argparse.Namespace) -> None:
    repository = SqlCompatibilityRepository()
    await repository.delete_response(args.user_id)
    print(f"  Deleted stored questionnaire for {args.user_id}")


async def _run(handler, args: argparse.Namespace) -> None:
    try:
        await handler(args)
    finally:
        await dispose_engine()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Mithaq Report Manager — catalog checks, scoring and report admin.",
    )
    parser.add_argument(
        "--path",
        type=str,
        default=None,
        help="Catalog JSON to use instead of CATALOG_PATH / the bundled catalog.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    subparsers.add_parser("catalog", help="Validate and summarise the question catalog.")

    score_parser = subparsers.add_parser("score", help="Score two users without saving.")
    score_parser.add_argument("user_id_1")
    score_parser.add_argument("user_id_2")
    score_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Also output the raw score as JSON.",
    )

    generate_parser = subparsers.add_parser("generate", help="Generate and store a report.")
    generate_parser.add_argument("user_id_1")
    generate_parser.add_argument("user_id_2")

    reports_parser = subparsers.add_parser("reports", help="List a user's reports.")
    reports_parser.add_argument("user_id")

    forget_parser = subparsers.add_parser("forget", help="Delete a user's stored questionnaire.")
    forget_parser.add_argument("user_id")

    args = parser.parse_args()

    handlers = {
        "score": cmd_score,
        "generate": cmd_generate,
        "reports": cmd_reports,
        "forget": cmd_forget,
    }

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "catalog":
            cmd_catalog(args)
        else:
            asyncio.run(_run(handlers[args.command], args))
    except CompatibilityError as exc:
        print(f"  ERROR: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
