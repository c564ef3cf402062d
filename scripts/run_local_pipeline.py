"""
Local Pipeline Runner

This script runs the whole pipeline on your machine:
generate CSV files -> load them into SQLite -> run the analytics reports.

Usage:
    python scripts/run_local_pipeline.py --all
    python scripts/run_local_pipeline.py --generate --seed 42
    python scripts/run_local_pipeline.py --load
    python scripts/run_local_pipeline.py --report
"""

import logging
import os
import sys
import click
from pathlib import Path
from datetime import datetime

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ecommerce_pipeline.config import PipelineConfig
from ecommerce_pipeline.data_generator.generator import generate_dataset
from ecommerce_pipeline.database.loader import load_database
from ecommerce_pipeline.database.reports import format_report, run_reports
from ecommerce_pipeline.exceptions import PipelineError
from ecommerce_pipeline.quality.validators import raise_for_failures, validate_dataset

logger = logging.getLogger(__name__)


def run_generate(config: PipelineConfig):
    """Generate the dataset and write one CSV file per table to data_dir."""
    print("\n" + "=" * 60)
    print("GENERATE - Synthetic Data")
    print("=" * 60)

    generator = generate_dataset(config)

    validators = validate_dataset(generator.dataset())
    for validator in validators:
        validator.log_results()
    raise_for_failures(validators)

    for table, records in generator.dataset().items():
        print(f"  {table}: {len(records)} records")
    print(f"\nFiles saved to {os.path.abspath(config.data_dir)}")


def run_load(config: PipelineConfig):
    """Recreate the SQLite schema and bulk-load the CSV files."""
    print("\n" + "=" * 60)
    print("LOAD - SQLite Bulk Load")
    print("=" * 60)

    counts = load_database(config.data_dir, config.db_path, show_progress=True)

    for table, count in counts.items():
        print(f"  {table}: {count} rows")
    print(f"\nDatabase written to {os.path.abspath(config.db_path)}")


def run_report(config: PipelineConfig):
    """Run the read-only analytics queries and print the results."""
    print("\n" + "=" * 60)
    print("REPORT - Analytics Queries")
    print("=" * 60)

    for title, rows in run_reports(config.db_path).items():
        print()
        print(format_report(title, rows))


@click.command()
@click.option('--all', 'run_all', is_flag=True, help='Run all phases')
@click.option('--generate', is_flag=True, help='Generate CSV files')
@click.option('--load', is_flag=True, help='Load CSV files into SQLite')
@click.option('--report', is_flag=True, help='Run analytics reports')
@click.option('--data-dir', default=None, help='Directory for CSV files')
@click.option('--db-path', default=None, help='SQLite database file')
@click.option('--seed', type=int, default=None, help='Random seed for reproducibility')
def main(run_all, generate, load, report, data_dir, db_path, seed):
    """Run the e-commerce pipeline locally."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if not any([run_all, generate, load, report]):
        print("Please specify --all or one of --generate, --load, --report")
        print("Run with --help for more information")
        return

    config = PipelineConfig.from_env(data_dir=data_dir, db_path=db_path, seed=seed)

    print("\n" + "=" * 60)
    print("E-COMMERCE DATA PIPELINE")
    print("=" * 60)
    print(f"Data directory: {os.path.abspath(config.data_dir)}")
    print(f"Database: {os.path.abspath(config.db_path)}")
    print(f"Started at: {datetime.now().isoformat()}")

    start_time = datetime.now()

    try:
        if run_all or generate:
            run_generate(config)
        if run_all or load:
            run_load(config)
        if run_all or report:
            run_report(config)
    except PipelineError as e:
        logger.error(f"Pipeline failed: {e}")
        sys.exit(1)

    duration = (datetime.now() - start_time).total_seconds()

    print("\n" + "=" * 60)
    print("PIPELINE COMPLETE")
    print("=" * 60)
    print(f"Duration: {duration:.1f} seconds")


if __name__ == '__main__':
    main()
