"""Tests for normalization, boundary splitting and the token-bounded chunker"""

import pytest

from conftest import WordCodec
from esg_rag.exceptions import ConfigurationError
from esg_rag.rag.chunking import (
    Codec,
    ChunkingOptions,
    TextChunker,
    TextUnit,
    TiktokenCodec,
    extract_page_number,
    normalize_text,
    split_paragraphs,
    split_sentences,
)


def words(prefix, count):
    return " ".join(f"{prefix}{i}" for i in range(count))


def sentence(label, length=10):
    """A sentence of ``length`` word tokens: 'Label w1 ... wN.'"""
    return " ".join([label] + [f"w{i}" for i in range(1, length)]) + "."


class Utf8ByteCodec(Codec):
    """One token per UTF-8 byte, so a token slice can cut a character in half."""

    name = "utf8-bytes"

    def encode(self, text):
        return list(text.encode("utf-8"))

    def decode(self, tokens):
        return bytes(tokens).decode("utf-8", errors="replace")


@pytest.fixture
def chunker(word_codec):
    return TextChunker(codec=word_codec)


class TestSplitting:
    """Normalization and paragraph/sentence splitting"""

    def test_normalize_text(self):
        raw = "First  line\r\nsecond\tline \n\n\n\n Next   paragraph  "
        assert normalize_text(raw) == "First line\nsecond line\n\nNext paragraph"

    def test_split_paragraphs_offsets(self):
        text = "Alpha para.\n\nBeta para."
        units = split_paragraphs(text)

        assert [u.text for u in units] == ["Alpha para.", "Beta para."]
        for unit in units:
            assert text[unit.start:unit.end] == unit.text

    def test_split_sentences(self):
        text = 'The board shall report. Emissions must be disclosed! Is scope 3 included? "Yes" it is.'
        unit = TextUnit(text, 10, 10 + len(text))
        sentences = split_sentences(unit)

        assert [s.text for s in sentences] == [
            "The board shall report.",
            "Emissions must be disclosed!",
            "Is scope 3 included?",
            '"Yes" it is.',
        ]
        assert sentences[0].separator == unit.separator
        assert all(s.separator == " " for s in sentences[1:])
        for s in sentences:
            assert text[s.start - 10:s.end - 10] == s.text

    def test_abbreviation_before_lowercase_is_not_a_boundary(self):
        unit = TextUnit("See e.g. the annex for details.", 0, 31)
        assert len(split_sentences(unit)) == 1

    def test_page_marker(self):
        text = "Page 3\n\nGovernance text. See p. 7 for metrics.\n\nMore text."
        assert extract_page_number(text, 0) is None
        assert extract_page_number(text, text.index("Governance")) == 3
        assert extract_page_number(text, text.index("More")) == 7


class TestOptions:

    def test_overlap_not_smaller_than_max(self, chunker):
        with pytest.raises(ConfigurationError):
            chunker.chunk("text", ChunkingOptions(max_tokens=100, overlap_tokens=100, min_chunk_size=10))

    def test_invalid_options_rejected_at_construction(self, word_codec):
        with pytest.raises(ConfigurationError):
            TextChunker(codec=word_codec, options=ChunkingOptions(max_tokens=0))

    def test_min_chunk_size_above_max(self, chunker):
        with pytest.raises(ConfigurationError):
            chunker.chunk("text", ChunkingOptions(max_tokens=50, overlap_tokens=5, min_chunk_size=60))


class TestParagraphChunking:
    """Paragraph-preserving mode"""

    def test_empty_text(self, chunker):
        assert chunker.chunk("") == []
        assert chunker.chunk(" \n\n \t ") == []

    def test_two_paragraphs_with_overlap(self, chunker):
        """Test 1500 tokens in 2 paragraphs split into 2 chunks joined by a 200-token tail"""
        first = words("alpha", 750)
        second = words("beta", 750)

        chunks = chunker.chunk(f"{first}\n\n{second}", ChunkingOptions(max_tokens=1000, overlap_tokens=200))

        assert len(chunks) == 2
        assert chunks[0].content == first
        assert chunks[0].token_count == 750
        tail = " ".join(first.split()[-200:])
        assert chunks[1].content.startswith(tail)
        assert chunks[1].content.endswith(second)
        assert chunks[1].token_count == 950

    def test_uneven_paragraphs_keep_full_overlap(self, chunker):
        """Test a paragraph too large for tail + paragraph is taken sentence by sentence behind the full tail"""
        first = " ".join(sentence(f"A{i}", 99) for i in range(6))
        second = " ".join(sentence(f"B{i}", 99) for i in range(9))

        chunks = chunker.chunk(f"{first}\n\n{second}", ChunkingOptions(max_tokens=1000, overlap_tokens=200))

        assert [c.token_count for c in chunks] == [594, 992, 299]
        assert chunks[0].content == first
        for current, following in zip(chunks, chunks[1:]):
            assert current.content.split()[-200:] == following.content.split()[:200]
        joined = " ".join(c.content for c in chunks)
        assert all(f"B{i} " in joined for i in range(9))

    def test_tail_shrinks_only_before_a_sentence_that_cannot_fit(self, chunker):
        first = sentence("First", 15)
        second = f"{sentence('Second', 15)} {sentence('Third', 3)}"
        options = ChunkingOptions(max_tokens=20, overlap_tokens=10, min_chunk_size=0)

        chunks = chunker.chunk(f"{first}\n\n{second}", options)

        assert chunks[0].content == first
        # 5-token tail + 15-token sentence; never a chunk made of the tail alone
        assert chunks[1].token_count == 20
        assert chunks[1].content.split()[:5] == first.split()[-5:]
        assert chunks[1].content.endswith(sentence("Second", 15))
        assert chunks[-1].content.endswith(sentence("Third", 3))
        assert all(c.token_count <= 20 for c in chunks)

    def test_paragraphs_accumulate(self, chunker):
        text = "\n\n".join(words(f"p{i}x", 10) for i in range(3))
        chunks = chunker.chunk(text, ChunkingOptions(max_tokens=100, overlap_tokens=10, min_chunk_size=5))

        assert len(chunks) == 1
        assert chunks[0].content == text
        assert chunks[0].start_char == 0
        assert chunks[0].end_char == len(text)

    def test_oversized_paragraph_is_split_into_sentences(self, chunker):
        paragraph = " ".join(sentence(f"S{i}") for i in range(3))
        options = ChunkingOptions(max_tokens=15, overlap_tokens=0, min_chunk_size=5)

        chunks = chunker.chunk(paragraph, options)

        assert [c.content for c in chunks] == [sentence(f"S{i}") for i in range(3)]
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        assert all(c.token_count <= 15 for c in chunks)

    def test_oversized_sentence_kept_whole(self, chunker):
        long_sentence = sentence("Long", 40)
        chunks = chunker.chunk(long_sentence, ChunkingOptions(max_tokens=20, overlap_tokens=5, min_chunk_size=5))

        assert len(chunks) == 1
        assert chunks[0].content == long_sentence
        assert chunks[0].token_count == 40

    def test_small_final_chunk_still_emitted(self, chunker):
        text = f"{words('big', 950)}\n\n{words('tail', 60)}"
        chunks = chunker.chunk(text, ChunkingOptions(max_tokens=1000, overlap_tokens=0, min_chunk_size=100))

        assert len(chunks) == 2
        assert chunks[-1].token_count == 60

    def test_token_limit_and_contiguous_indexes(self, chunker):
        paragraphs = [" ".join(sentence(f"P{p}s{s}", 7) for s in range(4)) for p in range(6)]
        options = ChunkingOptions(max_tokens=40, overlap_tokens=8, min_chunk_size=10)

        chunks = chunker.chunk("\n\n".join(paragraphs), options)

        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        assert all(c.token_count <= 40 for c in chunks)
        # every sentence survives somewhere
        joined = " ".join(c.content for c in chunks)
        for p in range(6):
            for s in range(4):
                assert f"P{p}s{s}" in joined

    def test_offsets_point_into_normalized_text(self, chunker):
        raw = "Intro  paragraph here.\r\n\r\n\r\nSecond   paragraph follows."
        normalized = normalize_text(raw)
        chunks = chunker.chunk(raw, ChunkingOptions(max_tokens=4, overlap_tokens=0, min_chunk_size=1))

        for chunk in chunks:
            assert normalized[chunk.start_char:chunk.end_char] == chunk.content


class TestSentenceChunking:
    """Sentence-preserving mode (paragraphs off)"""

    def test_overlap_tail_equals_next_head(self, chunker):
        text = " ".join(sentence(f"S{i}") for i in range(9))
        options = ChunkingOptions(
            max_tokens=30, overlap_tokens=5, preserve_paragraphs=False, min_chunk_size=0
        )

        chunks = chunker.chunk(text, options)

        assert len(chunks) > 2
        for current, following in zip(chunks, chunks[1:]):
            assert current.content.split()[-5:] == following.content.split()[:5]
        assert all(c.token_count <= 30 for c in chunks)

    def test_overlap_shrinks_to_fit(self, chunker):
        """Test the tail is shortened when tail + next sentence would exceed max_tokens"""
        text = f"{sentence('First', 10)} {sentence('Second', 18)}"
        options = ChunkingOptions(
            max_tokens=20, overlap_tokens=5, preserve_paragraphs=False, min_chunk_size=0
        )

        chunks = chunker.chunk(text, options)

        assert len(chunks) == 2
        assert chunks[1].token_count <= 20
        assert chunks[1].content.endswith(sentence("Second", 18))


class TestTokenWindows:
    """Raw token windows (no boundary preservation)"""

    def test_windows_step_by_max_minus_overlap(self, chunker):
        text = words("t", 25)
        options = ChunkingOptions(
            max_tokens=10, overlap_tokens=3, preserve_paragraphs=False, preserve_sentences=False, min_chunk_size=0
        )

        chunks = chunker.chunk(text, options)
        tokens = text.split()

        assert [c.content for c in chunks] == [
            " ".join(tokens[0:10]),
            " ".join(tokens[7:17]),
            " ".join(tokens[14:24]),
            " ".join(tokens[21:25]),
        ]
        for chunk in chunks:
            assert text[chunk.start_char:chunk.end_char] == chunk.content

    def test_single_window(self, chunker):
        options = ChunkingOptions(
            max_tokens=10, overlap_tokens=3, preserve_paragraphs=False, preserve_sentences=False, min_chunk_size=0
        )
        chunks = chunker.chunk("only four words here", options)

        assert len(chunks) == 1
        assert chunks[0].content == "only four words here"


class TestChunkWithMetadata:

    def test_metadata_and_page_numbers(self, chunker):
        text = f"Page 1\n\n{words('alpha', 20)}\n\nPage 2\n\n{words('beta', 20)}"
        options = ChunkingOptions(max_tokens=25, overlap_tokens=0, min_chunk_size=0)

        chunks = chunker.chunk_with_metadata(text, {"documentId": "doc_1", "region": "EU"}, options)

        assert len(chunks) == 2
        assert chunks[0].page_number is None
        assert chunks[1].page_number == 2
        assert all(c.metadata["documentId"] == "doc_1" for c in chunks)
        assert chunks[1].to_dict()["pageNumber"] == 2


class TestLifecycle:

    def test_context_manager_releases_codec(self):
        codec = WordCodec()
        with TextChunker(codec=codec) as chunker:
            chunker.chunk("Some text.")
        assert codec.closed

    def test_tiktoken_codec_round_trip(self):
        codec = TiktokenCodec("cl100k_base")
        try:
            tokens = codec.encode("Scope 3 emissions disclosure")
        except Exception as e:
            pytest.skip(f"tiktoken encoding unavailable: {e}")

        assert codec.decode(tokens) == "Scope 3 emissions disclosure"
        assert codec.count("Scope 3 emissions disclosure") == len(tokens)

        with TextChunker(codec=codec) as chunker:
            chunks = chunker.chunk("The board shall oversee climate risks.\n\nTargets must be disclosed.")
        assert len(chunks) == 1
        codec.close()


class TestMultiByteOverlap:
    """Overlap tails from byte-level codecs"""

    def test_tail_never_opens_mid_character(self):
        chunker = TextChunker(codec=Utf8ByteCodec())

        # "é" is two bytes; the last two bytes start inside it
        assert chunker._overlap_tail("report é2", 2) == "2"
        assert chunker._overlap_tail("report é2", 3) == "é2"

    def test_chunks_carry_no_replacement_characters(self):
        text = " ".join(f"Scope {i} Emissionen für Grünstrom prüfen." for i in range(12))
        options = ChunkingOptions(max_tokens=80, overlap_tokens=5, preserve_paragraphs=False, min_chunk_size=0)

        chunks = TextChunker(codec=Utf8ByteCodec()).chunk(text, options)

        assert len(chunks) > 2
        # a 5-byte tail of "prüfen." starts inside "ü"
        assert chunks[1].content.startswith("fen. Scope 1 ")
        assert all("\ufffd" not in c.content for c in chunks)
        assert all(c.token_count <= 80 for c in chunks)

    def test_tiktoken_tail_on_multibyte_text(self):
        codec = TiktokenCodec("cl100k_base")
        text = "温室效应气体排放披露要求。" * 20
        try:
            tokens = codec.encode(text)
        except Exception as e:
            pytest.skip(f"tiktoken encoding unavailable: {e}")

        chunker = TextChunker(codec=codec)
        for k in range(1, 12):
            tail = chunker._overlap_tail(text, k)
            assert "\ufffd" not in tail
            assert text.endswith(tail)
        assert len(tokens) > 12
        chunker.dispose()
