"""Tests for the vector knowledge service."""

import numpy as np
import pytest
from unittest.mock import AsyncMock, MagicMock

from langchain_core.embeddings import DeterministicFakeEmbedding

from ragchat.core.errors import KnowledgeSearchError
from ragchat.services.knowledge import KnowledgeService, chunk_text, cosine_similarity


class TestChunkText:

    def test_short_text_is_one_chunk(self):
        assert chunk_text("We open at nine. We close at five.") == [
            "We open at nine. We close at five."
        ]

    def test_splits_at_sentence_boundaries(self):
        chunks = chunk_text("Alpha is first. Beta is second. Gamma is third.", max_size=20)
        assert chunks == ["Alpha is first.", "Beta is second.", "Gamma is third."]

    def test_oversized_sentence_is_own_chunk(self):
        long_sentence = "x" * 50
        chunks = chunk_text(f"Short one. {long_sentence}. Tail.", max_size=20)
        assert chunks == ["Short one.", f"{long_sentence}.", "Tail."]

    def test_empty_text(self):
        assert chunk_text("") == []
        assert chunk_text("   ") == []


class TestCosineSimilarity:

    def test_identical_vectors_score_one(self):
        matrix = np.array([[1.0, 0.0], [0.0, 1.0]])
        scores = cosine_similarity(matrix, np.array([1.0, 0.0]))
        assert scores[0] == pytest.approx(1.0)
        assert scores[1] == pytest.approx(0.0)

    def test_zero_vector_does_not_divide_by_zero(self):
        scores = cosine_similarity(np.array([[0.0, 0.0]]), np.array([1.0, 0.0]))
        assert scores[0] == 0.0


@pytest.fixture
def knowledge(tmp_path):
    return KnowledgeService(
        DeterministicFakeEmbedding(size=16),
        str(tmp_path / "knowledge.db"),
        top_k=3,
        chunk_size=20,
    )


@pytest.mark.asyncio
class TestKnowledgeService:

    async def test_empty_knowledge_base_returns_empty_string(self, knowledge):
        assert await knowledge.search("anything") == ""

    async def test_ingest_returns_chunk_count(self, knowledge):
        count = await knowledge.ingest_document("Alpha is first. Beta is second.")
        assert count == 2

    async def test_ingest_empty_document(self, knowledge):
        assert await knowledge.ingest_document("") == 0

    async def test_nearest_chunk_comes_first(self, knowledge):
        await knowledge.ingest_document("Alpha is first. Beta is second. Gamma is third.")

        context = await knowledge.search("Beta is second.")

        parts = context.split("\n---\n")
        assert parts[0] == "Beta is second."
        assert sorted(parts) == ["Alpha is first.", "Beta is second.", "Gamma is third."]

    async def test_top_k_limits_results(self, tmp_path):
        service = KnowledgeService(
            DeterministicFakeEmbedding(size=16), str(tmp_path / "k.db"), top_k=1, chunk_size=20
        )
        await service.ingest_document("Alpha is first. Beta is second. Gamma is third.")

        assert await service.search("Gamma is third.") == "Gamma is third."

    async def test_dimension_mismatch_raises(self, tmp_path):
        db_path = str(tmp_path / "k.db")
        await KnowledgeService(DeterministicFakeEmbedding(size=8), db_path).ingest_document("Hello.")

        with pytest.raises(KnowledgeSearchError):
            await KnowledgeService(DeterministicFakeEmbedding(size=16), db_path).search("Hello.")

    async def test_embedding_failure_raises(self, tmp_path):
        embeddings = MagicMock()
        embeddings.aembed_query = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        service = KnowledgeService(embeddings, str(tmp_path / "k.db"))

        with pytest.raises(KnowledgeSearchError):
            await service.search("hours")
