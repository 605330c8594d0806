"""Command line entry point running one index rebuild outside the API process."""

import argparse
import asyncio
import sys

from solr_indexer.config import Settings, get_settings
from solr_indexer.core.logging import get_logger, setup_logging
from solr_indexer.repository.memory import load_repository
from solr_indexer.services.indexing_service import IndexingStats, SolrIndexer
from solr_indexer.services.solr_service import SolrService

logger = get_logger(__name__)


async def reindex(
    settings: Settings,
    export_path: str,
    *,
    only_if_empty: bool = False,
) -> IndexingStats | None:
    """Rebuild the index from a repository export.

    Args:
        settings: Application settings.
        export_path: JSON export of the repository tree.
        only_if_empty: Skip the rebuild when Solr already holds documents.

    Returns:
        IndexingStats | None: Run outcome, None if the emptiness check failed.
    """
    repository = load_repository(export_path)
    async with SolrService(settings) as solr:
        indexer = SolrIndexer(settings, repository, solr)
        if only_if_empty:
            return await indexer.startup_check()
        return await indexer.run()


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Rebuild the Solr index from a repository export")
    parser.add_argument(
        "--export",
        default=settings.repository_export_path,
        help="Path to the repository JSON export (default: REPOSITORY_EXPORT_PATH)",
    )
    parser.add_argument(
        "--if-empty",
        action="store_true",
        help="Only rebuild when the Solr index is empty",
    )
    args = parser.parse_args(argv)

    setup_logging()
    if not args.export:
        logger.error("No repository export given (use --export or REPOSITORY_EXPORT_PATH)")
        return 2

    stats = asyncio.run(reindex(settings, args.export, only_if_empty=args.if_empty))
    if stats is None:
        return 1
    logger.info(f"Run finished: {stats.status} ({stats.documents_indexed} documents)")
    return 0 if stats.status in ("completed", "skipped") else 1


if __name__ == "__main__":
    sys.exit(main())
