"""
CMDB demo entry point.

Opens a database, adds two web servers, names their type, links them and
lists the relationships of the first one.

Usage:
    python -m cmdb.main [--db PATH]

Configuration is via environment variables, see config.py.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import json_log_formatter

from .config import CmdbConfig
from .db import CMDB

logger = logging.getLogger(__name__)


def setup_logging(config: CmdbConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: CMDB configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


def run_demo(db: CMDB) -> Dict[str, Any]:
    """Run the demo against an open database.

    Returns:
        Summary with the created CI ids, the relationship id and the
        relationships found for the first CI
    """
    web01 = db.add_ci({"hostname": "web01", "ip": "192.168.0.100"})
    logger.info(f"Added CI: {web01}")

    db.rename_ci_type(web01.type.id, "webserver")

    web02 = db.add_ci({"hostname": "web02", "ip": "192.168.0.101"})
    logger.info(f"Added CI: {web02}")

    rel = db.add_relationship(web01.id, web02.id, "connected-to", {"master": "web02"})
    logger.info(f"Added Relationship: {rel}")

    rels = db.get_relationships_by_ci(web01.id)
    logger.info(f"Length of rels: {len(rels)}")
    for r in rels:
        logger.info(f"Rel: {r}")

    return {
        "cis": [web01.id, web02.id],
        "type_name": web02.type.name,
        "relationship": rel.id,
        "relationships_of_first": [r.id for r in rels],
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="CMDB demo")
    parser.add_argument("--db", help="Database file (default: CMDB_DB_PATH or cmdb.db)")
    args = parser.parse_args(argv)

    try:
        config = CmdbConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)
    config.log_config()

    with CMDB.open(args.db, config=config.storage) as db:
        run_demo(db)
    return 0


if __name__ == "__main__":
    sys.exit(main())
