"""
Command-line interface for offline grading and similarity checks
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import structlog

from gradelens.analyzers import SimilarityCandidate, find_matches, grade_submission
from gradelens.core.config import settings
from gradelens.core.exceptions import GradeLensError
from gradelens.services import EmbeddingService
from gradelens.utils import truncate_content

logger = structlog.get_logger()


def _configure_logging(verbose: bool) -> None:
    # stdout carries command output, so logs go to stderr
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False)
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.WARNING
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def _read_text(path: str) -> str:
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File {path} does not exist")
    return file_path.read_text(encoding="utf-8")


def _load_rubric(value: str) -> dict[str, float]:
    """Rubric from a JSON string or a path to a JSON file"""
    text = value if value.lstrip().startswith("{") else Path(value).read_text(encoding="utf-8")
    rubric = json.loads(text)
    if not isinstance(rubric, dict):
        raise ValueError("Rubric must be a JSON object of criterion name to weight")
    return {str(name): float(weight) for name, weight in rubric.items()}


async def grade_command(args: Any) -> int:
    """Grade a single file against a rubric"""
    try:
        content = _read_text(args.file)
        rubric = _load_rubric(args.rubric)

        result = grade_submission(content, rubric, args.max_score)

        if args.json:
            print(json.dumps({
                "score": result.score,
                "max_score": result.max_score,
                "feedback": result.feedback,
                "rubric_scores": result.rubric_scores,
                "reasoning": result.reasoning
            }, indent=2))
            return 0

        print(f"Grading file: {args.file}")
        print("-" * 40)
        print(result.feedback)

        if result.reasoning:
            print("\nCriteria:")
            for line in result.reasoning:
                print(f"  {line}")

        return 0

    except (OSError, ValueError) as e:
        logger.error("Grading failed", error=str(e))
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1


async def compare_command(args: Any) -> int:
    """Rank files by embedding similarity to a target file"""
    try:
        service = EmbeddingService(args.model)

        target_text = _read_text(args.target)
        target = await service.embed(target_text)

        candidates = []
        for index, path in enumerate(args.others):
            text = _read_text(path)
            candidates.append(SimilarityCandidate(
                id=path,
                vector=await service.embed(text),
                student_id=str(index),
                content=text
            ))

        matches = find_matches(target, candidates, args.threshold)

        print(f"Target: {args.target}")
        print(f"Compared against {len(candidates)} file(s) at threshold {args.threshold:.2f}")
        print("-" * 60)

        if not matches:
            print("No similar files found")
            return 0

        for match in matches:
            flag = "FLAGGED" if match.percentage >= args.flag_threshold else ""
            print(f"{match.percentage:3d}%  {match.id}  {flag}".rstrip())
            if args.show_content:
                print(f"      {truncate_content(match.content, settings.similarity.snippet_length)!r}")

        return 0

    except (OSError, GradeLensError) as e:
        logger.error("Comparison failed", error=str(e))
        print(f"Error: {str(e)}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser"""
    parser = argparse.ArgumentParser(
        description="GradeLens - Plagiarism detection and heuristic grading for submissions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Grade an essay with a weighted rubric
  python -m gradelens.cli grade essay.txt --rubric '{"Content Quality": 2, "Style": 1}'

  # Grade and print JSON
  python -m gradelens.cli grade essay.txt --rubric rubric.json --max-score 50 --json

  # Rank other submissions by similarity to one file
  python -m gradelens.cli compare essay.txt other1.txt other2.txt
        """
    )

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Log debug output to stderr')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    grade_parser = subparsers.add_parser('grade', help='Grade a file against a rubric')
    grade_parser.add_argument('file', help='Submission text file')
    grade_parser.add_argument('--rubric', required=True,
                              help='Rubric as JSON object or path to a JSON file')
    grade_parser.add_argument('--max-score', type=int,
                              default=settings.grading.default_max_score,
                              help='Points available (default: %(default)s)')
    grade_parser.add_argument('--json', action='store_true',
                              help='Print the result as JSON')

    compare_parser = subparsers.add_parser('compare', help='Compare files by embedding similarity')
    compare_parser.add_argument('target', help='File to check')
    compare_parser.add_argument('others', nargs='+', help='Files to compare against')
    compare_parser.add_argument('--threshold', type=float,
                                default=settings.similarity.match_threshold,
                                help='Minimum similarity to report (default: %(default)s)')
    compare_parser.add_argument('--flag-threshold', type=int,
                                default=settings.similarity.flag_threshold,
                                help='Percentage at which a match is flagged (default: %(default)s)')
    compare_parser.add_argument('--model', default=settings.embedding.model_name,
                                help='Sentence-transformers model name')
    compare_parser.add_argument('--show-content', action='store_true',
                                help='Print a snippet of each matched file')

    return parser


async def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'grade':
        return await grade_command(args)
    elif args.command == 'compare':
        return await compare_command(args)
    else:
        parser.print_help()
        return 1


def run() -> None:
    """Console script entry point"""
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
