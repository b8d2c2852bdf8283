"""
Main entry point for the AI Financial File Analyzer.
Usage: python main.py --file <file_path> [--file <file_path> ...] [--output result.json] [options]
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from datetime import datetime
from src.agents.coordinator_agent import CoordinatorAgent
from src.config import CONFIG
from src.core.errors import AnalysisError, GENERIC_FAILURE_MESSAGE

logger = logging.getLogger(__name__)


def setup_logging(debug: bool):
    """Log to stderr and to <log_dir>/app.log."""
    Path(CONFIG.log_dir).mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(Path(CONFIG.log_dir) / 'app.log'),
            logging.StreamHandler()
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='AI Financial File Analyzer - KPIs, charts and field glossary from raw data files'
    )

    parser.add_argument(
        '--file', '-f',
        action='append',
        required=True,
        help='Data file to analyze (CSV, XLSX, XLS, JSON, TXT). Repeat for several files.'
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Write the full analysis result as JSON to this path'
    )

    parser.add_argument(
        '--language',
        type=str,
        default=CONFIG.analysis.output_language,
        help='Language for narrative fields (default: %(default)s)'
    )

    parser.add_argument(
        '--llm-model',
        type=str,
        default=CONFIG.llm.model_name,
        help='Gemini model name (default: %(default)s)'
    )

    parser.add_argument(
        '--llm-api-key',
        type=str,
        help='Gemini API key (defaults to GEMINI_API_KEY / LLM_API_KEY / API_KEY)'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug mode'
    )

    return parser


def print_summary(task_id: str, data: dict, duration: float, output: str = None):
    result = data["result"]
    print("\n" + "=" * 60)
    print("ANALYSIS COMPLETE")
    print("=" * 60)
    print(f"Task ID: {task_id}")
    print(f"Files: {', '.join(f.name for f in data['files'])}")
    if data.get("truncated"):
        print(f"Truncated: {', '.join(data['truncated'])}")
    print(f"Duration: {duration:.2f} seconds")
    print("-" * 60)
    print(result.summary)
    print("-" * 60)
    for kpi in result.kpis:
        trend = f" ({kpi.trend:+}%)" if kpi.trend is not None else ""
        print(f"  {kpi.label}: {kpi.value}{trend}")
    for chart in result.charts:
        print(f"  [{chart.type}] {chart.title} - {len(chart.data)} points, series: {', '.join(chart.data_keys)}")
    if output:
        print(f"Output: {output}")
    print("=" * 60 + "\n")


def main(argv=None):
    """Main execution entry point."""
    args = build_parser().parse_args(argv)
    CONFIG.debug_mode = args.debug or CONFIG.debug_mode
    setup_logging(CONFIG.debug_mode)

    missing = [f for f in args.file if not Path(f).exists()]
    if missing:
        logger.error(f"Input file not found: {', '.join(missing)}")
        return False

    llm_settings = {"model_name": args.llm_model}
    if args.llm_api_key:
        llm_settings["api_key"] = args.llm_api_key

    task = {
        "task_id": f"analysis_{datetime.now().timestamp()}",
        "files": args.file,
        "language": args.language,
        "llm_settings": llm_settings,
    }

    logger.info(f"Starting analysis: {task['task_id']}")
    logger.info(f"Input files: {', '.join(args.file)}")
    logger.info(f"Model: {args.llm_model}")

    coordinator = CoordinatorAgent()
    result = asyncio.run(coordinator.execute(task))

    if not result.success:
        cause = result.exception
        message = cause.user_message if isinstance(cause, AnalysisError) else GENERIC_FAILURE_MESSAGE
        logger.error(f"❌ Analysis failed: {result.error}")
        print(message)
        return False

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(result.data["result"].to_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )

    logger.info("✅ Analysis completed successfully")
    print_summary(task["task_id"], result.data, result.duration_seconds, args.output)
    return True


if __name__ == "__main__":
    import sys
    success = main()
    sys.exit(0 if success else 1)
