"""
Command-line entry point for docqa.

Answers questions about one plain-text document:
1. Gets or creates the vector store collection
2. Embeds the document the first time (chunk, embed, store)
3. Retrieves the closest chunks for the question
4. Asks the language model to answer from them

Usage:
    docqa "Who is Professor Kerry Walsh?"
    docqa --reset
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from docqa.config import LOG_FORMAT, LOG_LEVEL, Settings
from docqa.logger import setup_logging
from docqa.services.chunking_engine import ChunkingEngine
from docqa.services.embedding_model import EmbeddingModel
from docqa.services.llm_client import LLMClient
from docqa.services.rag_pipeline import RAGPipeline
from docqa.services.vector_store import VectorStore

logger = logging.getLogger(__name__)

EXAMPLES = """examples:
  docqa "Who is Professor Kerry Walsh?"
  docqa "What are his research interests?"
  docqa "Tell me about his awards"
  docqa --reset        # delete the collection and re-embed the document
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docqa",
        description="Ask questions about a text document using retrieval-augmented generation.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("question", nargs="*", help="question to answer (words are joined with spaces)")
    parser.add_argument(
        "-r", "--reset",
        action="store_true",
        help="delete and repopulate the collection, then answer the built-in test question",
    )
    parser.add_argument("--document", help="path of the document to embed (overrides DOCUMENT_PATH)")
    parser.add_argument("--collection", help="collection name (overrides COLLECTION_NAME)")
    parser.add_argument("--top-k", type=int, dest="top_k", help="number of chunks to retrieve (overrides TOP_K)")
    return parser


def build_pipeline(settings: Settings) -> RAGPipeline:
    """Wire the services together from settings."""
    return RAGPipeline(
        vector_store=VectorStore(
            host=settings.chroma_host,
            port=settings.chroma_port,
            ssl=settings.chroma_ssl
        ),
        embedding_model=EmbeddingModel(
            api_key=settings.huggingface_api_key,
            model_name=settings.embedding_model,
            api_url=settings.embedding_api_url
        ),
        llm_client=LLMClient(
            api_key=settings.groq_api_key,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature
        ),
        chunking_engine=ChunkingEngine(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap
        ),
        collection_name=settings.collection_name,
        top_k=settings.top_k,
        domain=settings.domain_name
    )


async def _ask(pipeline: RAGPipeline, settings: Settings, question: str, reset: bool) -> str:
    try:
        if reset:
            logger.info("Resetting collection for updated document...")
            return await pipeline.reset(settings.document_path, question)
        return await pipeline.run(question, settings.document_path)
    finally:
        await pipeline.aclose()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.question and not args.reset:
        parser.print_help()
        return 0

    setup_logging(LOG_LEVEL, LOG_FORMAT)

    try:
        settings = Settings.from_env(
            document_path=args.document,
            collection_name=args.collection,
            top_k=args.top_k
        )
        question = " ".join(args.question) if args.question else settings.reset_test_question
        pipeline = build_pipeline(settings)
        answer = asyncio.run(_ask(pipeline, settings, question, args.reset))

    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        return 130
    except Exception as e:
        logger.error(f"Failed to answer question: {str(e)}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Question: {question}")
    print()
    print("Answer:")
    print("--------")
    print(answer)
    return 0


if __name__ == "__main__":
    sys.exit(main())
