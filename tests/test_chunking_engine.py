"""Unit tests for ChunkingEngine."""
import pytest

from docqa.errors import InvalidConfiguration
from docqa.models.document import Document
from docqa.services.chunking_engine import ChunkingEngine

LONG_TEXT = (
    "Zeta Finance was founded in 2009.\n\n"
    "The company offers retail banking, wealth management and small business loans. "
    "Its headquarters are in Dublin. Regional offices operate in Cork and Galway.\n"
    "Customer support is available every day of the week.\n\n"
    "Professor Kerry Walsh chairs the advisory board. "
    "Her research covers behavioural finance and risk.\n\n"
    "Averyveryveryverylongwordwithoutanybreaksthatmustbesplitbycharacters ends here."
)


class TestChunkingEngine:
    """Test suite for ChunkingEngine."""

    @pytest.fixture
    def engine(self):
        return ChunkingEngine(chunk_size=60, chunk_overlap=15)

    @pytest.mark.parametrize("size,overlap", [(20, 0), (20, 20), (20, 25), (20, -1)])
    def test_invalid_overlap_raises(self, size, overlap):
        with pytest.raises(InvalidConfiguration):
            ChunkingEngine(chunk_size=size, chunk_overlap=overlap)

    def test_separators_must_end_with_character_fallback(self):
        with pytest.raises(InvalidConfiguration):
            ChunkingEngine(chunk_size=20, chunk_overlap=5, separators=["\n\n", " "])

    def test_empty_text_returns_no_chunks(self, engine):
        assert engine.split_text("") == []
        assert engine.split_spans("") == []
        assert engine.chunk_document(Document(source="empty.txt", text="")) == []

    def test_short_text_is_single_chunk(self, engine):
        text = "Short text.\n\nStill short."
        assert engine.split_spans(text) == [(0, len(text))]
        assert engine.split_text(text) == [text]

    def test_split_is_deterministic(self, engine):
        first = engine.split_text(LONG_TEXT)
        second = engine.split_text(LONG_TEXT)
        assert first == second
        assert ChunkingEngine(chunk_size=60, chunk_overlap=15).split_text(LONG_TEXT) == first

    def test_spans_cover_text_without_gaps(self, engine):
        spans = engine.split_spans(LONG_TEXT)

        assert spans[0][0] == 0
        assert spans[-1][1] == len(LONG_TEXT)

        rebuilt = LONG_TEXT[spans[0][0]:spans[0][1]]
        for (prev_start, prev_end), (start, end) in zip(spans, spans[1:]):
            assert prev_start < start <= prev_end
            rebuilt += LONG_TEXT[prev_end:end]
        assert rebuilt == LONG_TEXT

    def test_chunks_respect_max_size(self, engine):
        for start, end in engine.split_spans(LONG_TEXT):
            assert end - start <= 60

    def test_overlap_never_exceeds_configured_amount(self, engine):
        spans = engine.split_spans(LONG_TEXT)
        overlaps = [prev_end - start for (_, prev_end), (start, _) in zip(spans, spans[1:])]
        assert all(0 <= overlap <= 15 for overlap in overlaps)
        assert any(overlap > 0 for overlap in overlaps)

    def test_prefers_paragraph_breaks(self):
        engine = ChunkingEngine(chunk_size=8, chunk_overlap=2)
        assert engine.split_text("aaaa\n\nbbbb") == ["aaaa", "bbbb"]

    def test_falls_back_to_characters(self):
        engine = ChunkingEngine(chunk_size=4, chunk_overlap=1)
        assert engine.split_text("abcdefghij") == ["abcd", "defg", "ghij"]

    def test_two_paragraph_example(self):
        engine = ChunkingEngine(chunk_size=20, chunk_overlap=5)
        chunks = engine.split_text("Paragraph one.\n\nParagraph two about Kerry Walsh.")

        assert chunks == ["Paragraph one.", "Paragraph two about", "Kerry Walsh."]

    def test_chunk_document_assigns_ids_and_offsets(self, engine):
        document = Document(source="zeta.txt", text=LONG_TEXT)
        chunks = engine.chunk_document(document)

        assert [c.chunk_id for c in chunks] == [f"chunk_{i}" for i in range(len(chunks))]
        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        for chunk in chunks:
            assert chunk.source == "zeta.txt"
            assert LONG_TEXT[chunk.start_offset:chunk.end_offset] == chunk.text
            assert chunk.metadata()["source"] == "zeta.txt"
        assert [c.text for c in chunks] == engine.split_text(LONG_TEXT)

    def test_whitespace_only_chunks_are_dropped(self):
        engine = ChunkingEngine(chunk_size=5, chunk_overlap=1)
        chunks = engine.split_text("abc\n\n\n\n\n\n\n\ndef")
        assert chunks == ["abc", "def"]
