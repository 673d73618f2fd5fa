#!/usr/bin/env python3
"""
Database build orchestrator.

This module coordinates one build of the vulnerability database:
1. Storage: Open the database file and initialize the bucket tables
2. Ingestion: Update every enabled source from the local feed cache
3. Light mode: Drop vulnerability details
4. Metadata: Stamp schema version, type and update timestamps
5. Quality: Run data quality checks against the built database
6. Reporting: Write a Markdown build report

The build is:
- Idempotent: re-running with the same cache reproduces the same database
- All-or-nothing per source: a failed commit leaves nothing from that source
- Fatal on the first source error: the process exits non-zero

Usage:
    python build_db.py [--config path/to/config.yaml] [--light]
"""
import sys
import logging
import argparse
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List

import yaml

from storage import SCHEMA_VERSION, Database, DBType, Metadata
from ingestion import AmazonSource, VulnSource
from ingestion.amazon import DEFAULT_VERSIONS
from observability import BuildMetrics, BuildReporter, QualityChecker

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load and validate the YAML build configuration.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a required key is missing
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    for key in ["database", "sources", "cache_dir"]:
        if key not in config:
            raise ValueError(f"Missing required config key: {key}")
    if "path" not in (config["database"] or {}):
        raise ValueError("Missing required config key: database.path")

    return config


class DBBuilder:
    """
    Builds the vulnerability database from the local feed cache.

    Sources run one after another; each commits in its own transaction.
    """

    def __init__(self, config: Dict[str, Any], light: bool = None):
        """
        Args:
            config: Validated configuration (see load_config)
            light: Override the config's "light" flag
        """
        self.config = config
        self.light = bool(config.get("light", False)) if light is None else light
        self.cache_dir = Path(config["cache_dir"])
        self.update_interval = timedelta(hours=config.get("update_interval_hours", 12))
        self.report_dir = Path(config.get("output", {}).get("report_dir", "output"))

        self.db = Database(config["database"]["path"])
        self.quality_checker = QualityChecker(self.db)
        self.reporter = BuildReporter()
        self.sources = self._init_sources()

    def _init_sources(self) -> List[VulnSource]:
        sources_config = self.config["sources"] or {}
        sources = []

        amazon = sources_config.get("amazon") or {}
        if amazon.get("enabled", True):
            sources.append(AmazonSource(
                self.db,
                logger=logging.getLogger("ingestion.amazon"),
                versions=[str(v) for v in amazon.get("versions", DEFAULT_VERSIONS)],
                light=self.light,
            ))

        return sources

    def run(self) -> BuildMetrics:
        """
        Execute one complete build.

        Returns:
            BuildMetrics with execution statistics

        Raises:
            RuntimeError: If any stage fails
        """
        started_at = datetime.utcnow()
        build_id = f"build_{started_at.strftime('%Y%m%d_%H%M%S')}"
        metrics = BuildMetrics(
            build_id=build_id,
            started_at=started_at,
            db_type="light" if self.light else "full",
        )

        logger.info(f"=== Starting Build: {build_id} ({metrics.db_type}) ===")

        try:
            logger.info("Stage 1: Opening database")
            Path(self.db.db_path).parent.mkdir(parents=True, exist_ok=True)
            self.db.open()

            logger.info("Stage 2: Updating sources")
            self._update_all_sources(metrics)

            if self.light:
                logger.info("Stage 3: Removing vulnerability details")
                self.db.delete_vulnerability_detail_bucket()

            logger.info("Stage 4: Stamping metadata")
            updated_at = datetime.utcnow()
            self.db.set_metadata(Metadata(
                version=SCHEMA_VERSION,
                type=DBType.LIGHT if self.light else DBType.FULL,
                updated_at=updated_at,
                next_update=updated_at + self.update_interval,
            ))

            logger.info("Stage 5: Running quality checks")
            quality_results = self.quality_checker.run_all_checks()

            logger.info("Stage 6: Generating report")
            metrics.completed_at = datetime.utcnow()
            report = self.reporter.generate_report(metrics, quality_results)
            report_path = self.reporter.save_report(report, self.report_dir)

            duration = (metrics.completed_at - metrics.started_at).total_seconds()
            logger.info("=== Build Complete ===")
            logger.info(f"Duration: {duration:.1f}s")
            logger.info(f"Advisories: {metrics.advisories_saved}")
            logger.info(f"Report: {report_path}")

        except Exception as e:
            metrics.record_error(str(e))
            raise RuntimeError(f"Build failed: {e}") from e

        finally:
            self.db.close()

        return metrics

    def _update_all_sources(self, metrics: BuildMetrics):
        for source in self.sources:
            logger.info(f"  Updating {source.name}")
            try:
                source.update(self.cache_dir)
            finally:
                metrics.record_source(source.get_health())

            health = source.get_health()
            logger.info(
                f"    Walked {health.records_walked} records, "
                f"saved {health.advisories_saved} advisories"
            )


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Build the vulnerability database"
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "--light",
        action="store_true",
        default=None,
        help="Build a light database without vulnerability details"
    )
    args = parser.parse_args()

    try:
        config = load_config(args.config)
        logging.basicConfig(
            level=config.get("logging", {}).get("level", "INFO"),
            format=LOG_FORMAT,
        )
        builder = DBBuilder(config, light=args.light)
        metrics = builder.run()

        print("\n" + "=" * 60)
        print("Build Summary")
        print("=" * 60)
        print(f"Build ID: {metrics.build_id}")
        print(f"Type: {metrics.db_type}")
        print(f"Records: {metrics.records_walked}")
        print(f"Advisories: {metrics.advisories_saved}")
        print(f"Skipped files: {metrics.files_skipped}")
        print("=" * 60)

        sys.exit(0)

    except Exception as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logger.error(f"Build failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
