#!/usr/bin/env python
"""Create and verify the insight collection.

Usage:
    python -m scripts.create_index
    python -m scripts.create_index --verify-only
    python -m scripts.create_index --recreate

Exits non-zero when the collection is missing or has the wrong width, so it
can run as a deploy step before the API starts.
"""

import argparse
import asyncio
import sys

from jobinsight.config import get_settings
from jobinsight.embeddings.adapter import EmbeddingAdapter
from jobinsight.exceptions import JobInsightError
from jobinsight.logging_config import get_logger, setup_logging
from jobinsight.vectorstore.client import InsightStore
from jobinsight.vectorstore.service import QdrantVectorStore

logger = get_logger(__name__)


async def prepare_collection(verify_only: bool = False, recreate: bool = False) -> bool:
    """Create the collection if needed and check its dimensions.

    Args:
        verify_only: Only check, never create.
        recreate: Drop an existing collection first.

    Returns:
        True if the collection is usable.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level)

    vector_store = QdrantVectorStore(settings.qdrant)
    store = InsightStore(
        EmbeddingAdapter(
            native_dimensions=settings.embedding.native_dimensions,
            store_dimensions=settings.qdrant.dimensions,
        ),
        vector_store,
        settings.qdrant,
    )

    print("\n" + "=" * 60)
    print("INSIGHT COLLECTION")
    print("=" * 60)
    print(f"Qdrant: {settings.qdrant.url}")
    print(f"Collection: {store.collection}")
    print(f"Dimensions: {store.dimensions} (native {settings.embedding.native_dimensions})")
    print("Distance: cosine")

    try:
        if verify_only:
            await store.verify_collection()
            created = False
        else:
            if recreate and await vector_store.collection_exists(store.collection):
                logger.info(f"Dropping collection {store.collection}")
                await vector_store.delete_collection(store.collection)
            created = await store.ensure_collection()
    except JobInsightError as e:
        logger.error(
            f"Collection check failed: {e.message}",
            extra={"code": e.code.value, "details": e.details},
        )
        print(f"\nRESULT: FAILED ({e.code.value}: {e.message})")
        return False
    finally:
        await store.close()

    print(f"\nRESULT: {'CREATED' if created else 'VERIFIED'}")
    return True


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Create and verify the insight collection",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--verify-only",
        action="store_true",
        help="Check the collection without creating it",
    )
    group.add_argument(
        "--recreate",
        action="store_true",
        help="Drop and recreate the collection (deletes all stored insights)",
    )

    args = parser.parse_args()

    ok = asyncio.run(prepare_collection(verify_only=args.verify_only, recreate=args.recreate))
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
