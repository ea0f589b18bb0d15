"""Command-line runner: score one message file against a reference bundle.

Usage:
    piqi-score --message message.json --bundle bundle.json --audit --output result.json
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from piqi.config import EngineConfig
from piqi.engine import ScoringEngine, ScoringRequest, ScoringResponse
from piqi.errors import PiqiError
from piqi.loader import load_bundle, load_message
from piqi.logger import get_engine_logger
from piqi.reporting.html_report import HTMLReportGenerator


def format_console_report(response: ScoringResponse) -> str:
    """Format a scoring response as a console summary."""
    lines = []

    lines.append("=" * 80)
    lines.append("  PIQI MESSAGE QUALITY SCORE")
    lines.append("=" * 80)
    lines.append("")

    if not response.succeeded or response.scoring_data is None:
        lines.append(f"Status: FAILED ({response.error_message})")
        lines.append("=" * 80)
        return "\n".join(lines)

    report = response.scoring_data
    message = report.message_results
    lines.append(f"Rubric: {report.evaluation_rubric}")
    if report.message_id:
        lines.append(f"Message: {report.message_id}")
    lines.append("")
    lines.append(f"  Score: {message.score} ({message.numerator}/{message.denominator})")
    lines.append(
        f"  Weighted score: {message.weighted_score} "
        f"({message.weighted_numerator}/{message.weighted_denominator})"
    )
    lines.append(f"  Critical failures: {message.critical_failure_count}")
    lines.append("")

    lines.append("-" * 80)
    lines.append("Data classes:")
    lines.append("-" * 80)
    for class_result in report.data_class_results:
        lines.append(
            f"  {class_result.data_class_name:<30} "
            f"x{class_result.instance_count:<4} "
            f"score {class_result.score:>3} "
            f"({class_result.numerator}/{class_result.denominator})"
        )

    lines.append("")
    lines.append(f"Elapsed: {response.elapsed_ms:.1f} ms")
    lines.append("=" * 80)

    return "\n".join(lines)


def main() -> int:
    """Main entry point for the scoring runner.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Score a clinical message against a PIQI evaluation rubric"
    )
    parser.add_argument("--message", type=str, required=True, help="Path to message JSON file")
    parser.add_argument("--bundle", type=str, required=True, help="Path to reference bundle JSON file")
    parser.add_argument(
        "--audit",
        action="store_true",
        default=None,
        help="Include the audited message in the output",
    )
    parser.add_argument("--html", type=str, help="Optional directory for the HTML report")
    parser.add_argument("--output", type=str, help="Optional path to save the JSON response")

    args = parser.parse_args()

    load_dotenv()
    config = EngineConfig.from_env()
    get_engine_logger(config.log_level)

    try:
        bundle = load_bundle(args.bundle)
        payload = load_message(args.message)
    except (FileNotFoundError, PiqiError) as e:
        print(f"Error: {e}")
        return 1

    engine = ScoringEngine(config=config)
    request = ScoringRequest(audit=args.audit)
    response, outcome = engine.score_detailed(request, payload, bundle)

    print(format_console_report(response))

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(response.model_dump_json(indent=2), encoding="utf-8")
        print(f"\nResponse saved to: {output_path}")

    if args.html and outcome is not None:
        result = HTMLReportGenerator(template_directory=config.template_directory).generate(
            outcome.report, outcome.statistics, args.html
        )
        print(f"HTML report written to: {result.index_file}")

    return 0 if response.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
