"""
Import a sandbox data document from disk into the configured store.

    python -m sandbox_banking data.json [--db sandbox.db] [--in-memory]
"""

import argparse
import json
import sys

from pydantic import ValidationError

from .config import get_config
from .data_import import DataImporter, load_document
from .logging_config import setup_logging
from .storage import create_storage


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="sandbox_banking", description=__doc__.strip().splitlines()[0])
    parser.add_argument("document", help="Path to the JSON import document")
    parser.add_argument("--db", default=None, help="SQLite database path (defaults to configuration)")
    parser.add_argument("--in-memory", action="store_true", help="Validate and import into a throwaway store")
    args = parser.parse_args(argv)

    config = get_config()
    setup_logging(config.log_level, "sandbox", config.log_format, config.log_file)

    try:
        document = load_document(args.document)
    except (OSError, ValidationError) as e:
        print(f"Could not read import document: {e}", file=sys.stderr)
        return 2

    storage = create_storage(not args.in_memory, args.db or config.database_path)
    try:
        result = DataImporter(storage, config=config).import_data(document)
    finally:
        storage.close()

    if not result.success:
        print(f"Import rejected ({result.failure.stage}): {result.message}", file=sys.stderr)
        return 1

    print(json.dumps({"counts": result.counts, "warnings": result.warnings}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
