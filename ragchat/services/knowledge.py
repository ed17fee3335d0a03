"""Vector knowledge store: chunk, embed, and nearest-neighbour search."""

from __future__ import annotations

import json
import os
from typing import List, Optional

import aiosqlite
import numpy as np
from langchain_core.embeddings import Embeddings

from ragchat.core.errors import KnowledgeSearchError, StorageError
from ragchat.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SEPARATOR = "\n---\n"


def chunk_text(text: str, max_size: int = 300) -> List[str]:
    """Split text into sentence-aligned chunks shorter than ``max_size``.

    Sentences are split on ". "; a sentence longer than ``max_size`` becomes
    its own chunk.
    """
    chunks: List[str] = []
    current = ""

    for sentence in text.split(". "):
        sentence = sentence.strip()
        if not sentence:
            continue
        piece = sentence if sentence.endswith(".") else f"{sentence}."
        if len(current) + len(piece) < max_size:
            current = f"{current} {piece}" if current else piece
        else:
            if current:
                chunks.append(current)
            current = piece

    if current:
        chunks.append(current)
    return chunks


def cosine_similarity(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
    """Cosine similarity between each row of ``matrix`` and ``vector``."""
    matrix_norms = np.linalg.norm(matrix, axis=1)
    vector_norm = np.linalg.norm(vector)
    denominator = matrix_norms * vector_norm
    denominator[denominator == 0] = 1.0
    return (matrix @ vector) / denominator


class KnowledgeService:
    """Stores document chunks with embeddings and answers similarity queries.

    Vectors live next to their text in SQLite as JSON arrays; search ranks
    every stored chunk by cosine similarity with numpy, which is adequate for
    a single-business knowledge base of a few thousand chunks.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        db_path: str,
        top_k: int = 3,
        chunk_size: int = 300,
        separator: str = DEFAULT_SEPARATOR,
    ) -> None:
        self.embeddings = embeddings
        self.db_path = db_path
        self.top_k = top_k
        self.chunk_size = chunk_size
        self.separator = separator
        self._initialized = False

    async def initialize(self) -> None:
        """Ensure the knowledge table exists."""
        if self._initialized:
            return

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute(
                    """
                    CREATE TABLE IF NOT EXISTS knowledge_base (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        content TEXT NOT NULL,
                        embedding TEXT NOT NULL
                    )
                    """
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to initialize knowledge base: {e}", operation="initialize") from e

        self._initialized = True
        logger.info("Knowledge base initialized at %s", self.db_path)

    async def ingest_document(self, text: str) -> int:
        """Chunk, embed and store a document.

        Returns:
            Number of chunks stored.
        """
        chunks = chunk_text(text, self.chunk_size)
        if not chunks:
            return 0

        await self.initialize()

        try:
            vectors = await self.embeddings.aembed_documents(chunks)
        except Exception as e:
            logger.error(f"Error embedding chunks: {e}")
            raise KnowledgeSearchError(f"Failed to embed document: {e}", operation="embed") from e

        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.executemany(
                    "INSERT INTO knowledge_base (content, embedding) VALUES (?, ?)",
                    [(chunk, json.dumps(vector)) for chunk, vector in zip(chunks, vectors)],
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to store chunks: {e}", operation="ingest") from e

        logger.info("Ingested %d chunks", len(chunks))
        return len(chunks)

    async def search_chunks(self, query: str, k: Optional[int] = None) -> List[str]:
        """Return the ``k`` chunks nearest to ``query``, best first."""
        await self.initialize()
        k = k or self.top_k

        try:
            query_vector = np.asarray(await self.embeddings.aembed_query(query), dtype=float)
        except Exception as e:
            raise KnowledgeSearchError(f"Failed to embed query: {e}", operation="embed") from e

        try:
            async with aiosqlite.connect(self.db_path) as db:
                async with db.execute("SELECT content, embedding FROM knowledge_base") as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise KnowledgeSearchError(f"Failed to read knowledge base: {e}", operation="search") from e

        if not rows:
            return []

        contents = [row[0] for row in rows]
        matrix = np.asarray([json.loads(row[1]) for row in rows], dtype=float)
        if matrix.shape[1] != query_vector.shape[0]:
            raise KnowledgeSearchError(
                f"Embedding dimension mismatch: stored {matrix.shape[1]}, query {query_vector.shape[0]}",
                operation="search",
            )

        scores = cosine_similarity(matrix, query_vector)
        # Stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:k]
        return [contents[i] for i in order]

    async def search(self, query: str) -> str:
        """Return the nearest chunks joined into one context string.

        Returns:
            Empty string when the knowledge base has no chunks.
        """
        chunks = await self.search_chunks(query)
        if not chunks:
            return ""
        return self.separator.join(chunks)
