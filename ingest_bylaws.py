#!/usr/bin/env python3
"""
Ingest the HOA bylaws into Azure AI Search.

Chunks the bylaws text, generates embeddings and uploads everything to the
search index. The index is rebuilt from the whole document on every run.

Usage:
    python ingest_bylaws.py                 # Normal ingestion
    python ingest_bylaws.py --dry-run       # Preview chunking without uploading
    python ingest_bylaws.py --clear         # Clear the index and re-ingest
    python ingest_bylaws.py --stats         # Show index statistics
    python ingest_bylaws.py --file path/to/bylaws.txt
"""
import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from app.core.errors import InvalidInput, RAGError
from app.core.settings import embedding_deployment
from app.db.client import search_client_manager
from app.models.config import INGESTION_CHUNK_CONFIG
from app.services.chunk_service import ChunkService
from app.services.embedding_service import EmbeddingService
from app.services.index_service import IndexService
from app.services.ingestion_service import IngestionService
from app.services.search_service import SearchService

DEFAULT_BYLAWS_PATH = Path(__file__).parent / "data" / "bylaws.txt"


def load_bylaws(path: Path) -> str:
    """
    Load and validate the bylaws file.

    Args:
        path: Path to the bylaws text file

    Returns:
        File contents
    """
    if not path.exists():
        raise InvalidInput(f"Bylaws file not found: {path}")

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        raise InvalidInput("Bylaws file is empty or contains only whitespace")

    print(f"✅ Loaded bylaws: {len(text)} characters")
    return text


def show_preview(text: str) -> None:
    """Print chunking results without calling any provider."""
    preview = ChunkService().preview_chunking(text, INGESTION_CHUNK_CONFIG)

    print(f"✅ Created {preview['total_chunks']} chunks")
    print(f"📊 Average chunk size: {preview['average_chunk_size']} characters")
    print(f"📋 Sections found: {preview['sections_found']}")
    print(f"📈 Coverage: {preview['coverage_percentage']}%")
    print("\n📋 Dry run - Preview of first 3 chunks:")
    for i, sample in enumerate(preview["sample_chunks"], 1):
        print(f"\n--- Chunk {i} ---")
        print(f"ID: {sample['id']}")
        print(f"Length: {sample['length']} characters")
        print(f"Section: {sample['section_number'] or 'N/A'} - {sample['section_title'] or 'N/A'}")
        print(f"Preview: {sample['preview']}")


def show_stats(search_service: SearchService) -> None:
    """Print index statistics."""
    stats = search_service.get_index_stats(embedding_model=embedding_deployment())

    print("\n📋 Index Statistics:")
    print(f"   Index Name: {stats['index_name']}")
    print(f"   Document Count: {stats['document_count']}")
    print(f"   Has Documents: {'Yes' if stats['has_documents'] else 'No'}")
    print(f"   Embedding Model: {stats['embedding_model']}")
    print(f"   Embedding Dimensions: {stats['embedding_dimensions']}")

    sample = stats["sample_document"]
    if sample:
        print("\n📄 Sample Document:")
        print(f"   ID: {sample['id']}")
        print(f"   Section: {sample['section_number'] or 'N/A'}")
        print(f"   Title: {sample['section_title'] or 'N/A'}")


def main() -> int:
    """Main function to ingest the bylaws."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Ingest the HOA bylaws into Azure AI Search")
    parser.add_argument("--clear", action="store_true", help="Clear the existing index before ingestion")
    parser.add_argument("--dry-run", action="store_true", help="Preview chunking without uploading")
    parser.add_argument("--stats", action="store_true", help="Show current index statistics")
    parser.add_argument("--file", type=Path, default=DEFAULT_BYLAWS_PATH, help="Path to the bylaws text file")
    args = parser.parse_args()

    try:
        if args.stats:
            show_stats(SearchService(search_client_manager.get_client()))
            return 0

        print("🚀 Starting HOA Bylaws ingestion...\n")
        text = load_bylaws(args.file)

        if args.dry_run:
            show_preview(text)
            print("\n✅ Dry run completed successfully")
            return 0

        search_service = SearchService(search_client_manager.get_client())
        ingestion = IngestionService(
            chunk_service=ChunkService(),
            embedding_service=EmbeddingService(),
            index_service=IndexService(),
            search_service=search_service,
        )

        print("🔪 Chunking, embedding and uploading...")
        result = ingestion.ingest(text, INGESTION_CHUNK_CONFIG, clear_first=args.clear)

        print(f"✅ Created {result['chunks_created']} chunks ({result['sections_found']} with sections)")
        if args.clear:
            print(f"🗑️  Deleted {result['documents_deleted']} existing documents")
        print(f"✅ Indexed {result['chunks_indexed']}/{result['chunks_created']} chunks")

        show_stats(search_service)
        print("\n✅ Ingestion completed successfully!")
        return 0 if result["status"] == "success" else 1

    except RAGError as e:
        print(f"\n❌ Ingestion failed: {e}")
        print("💡 Check your .env configuration and try again")
        return 1
    finally:
        search_client_manager.close()


if __name__ == "__main__":
    sys.exit(main())
