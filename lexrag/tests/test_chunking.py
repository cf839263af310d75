from __future__ import annotations

"""Chunking behavior tests."""

import pytest

from lexrag.loaders.chunking import ChunkAssembler, chunk_document, chunk_documents, normalize_text
from lexrag.rag.segmenter import segment_into_sentences
from lexrag.rag.types import Document, chunk_id_for

NUMBERED_TEXT = " ".join(
    f"Sentence number {idx} talks about topic {idx} in some detail." for idx in range(1, 41)
)


def _shared_prefix_words(previous: str, current: str) -> int:
    prev_words = previous.split()
    next_words = current.split()
    best = 0
    for size in range(1, min(len(prev_words), len(next_words)) + 1):
        if prev_words[-size:] == next_words[:size]:
            best = size
    return best


def test_single_passage_becomes_one_chunk() -> None:
    text = "Dr. Smith met Mrs. Jones at 3.5pm. They discussed the $1,200.50 budget."
    document = Document(source_id="meeting.txt", content=text)

    chunks = chunk_document(document, max_chars=1000)

    assert len(chunks) == 1
    assert chunks[0].text == text
    assert chunks[0].id == chunk_id_for("meeting.txt", 0)
    assert chunks[0].sequence_index == 0
    assert chunks[0].char_count == len(text)
    assert chunks[0].word_count == 12


@pytest.mark.parametrize("content", ["", "   \n\n  "])
def test_empty_document_yields_no_chunks(content: str) -> None:
    assert chunk_document(Document(source_id="empty.txt", content=content)) == []


def test_short_document_is_discarded() -> None:
    document = Document(source_id="short.txt", content="Too short to keep.")

    assert chunk_document(document) == []


def test_chunks_respect_max_chars() -> None:
    document = Document(source_id="numbers.txt", content=NUMBERED_TEXT)

    chunks = chunk_document(document, max_chars=300, overlap_words=20)

    assert len(chunks) > 1
    assert all(chunk.char_count <= 300 for chunk in chunks)
    assert [chunk.sequence_index for chunk in chunks] == list(range(len(chunks)))


def test_overlap_is_bounded_by_words_and_sentences() -> None:
    document = Document(source_id="numbers.txt", content=NUMBERED_TEXT)

    chunks = chunk_document(document, max_chars=300, overlap_words=20)

    assert _shared_prefix_words(chunks[0].text, chunks[1].text) > 0
    for previous, current in zip(chunks, chunks[1:]):
        assert _shared_prefix_words(previous.text, current.text) <= 20
        previous_sentences = set(segment_into_sentences(previous.text))
        repeated = 0
        for sentence in segment_into_sentences(current.text):
            if sentence not in previous_sentences:
                break
            repeated += 1
        assert repeated <= 2


def test_overlap_skips_fragments_after_first_choice() -> None:
    first = "Alpha beta gamma delta epsilon zeta eta theta iota kappa."
    second = "Lambda mu nu xi omicron pi rho sigma tau upsilon."
    fragment = "Short bit."
    fourth = "Phi chi psi omega alpha beta gamma delta epsilon zeta."
    fifth = "Another long sentence arrives here with many extra words inside."
    content = " ".join([first, second, fragment, fourth, fifth])

    chunks = chunk_document(Document(source_id="greek.txt", content=content), max_chars=200, overlap_words=30)

    assert len(chunks) == 2
    assert chunks[0].text == " ".join([first, second, fragment, fourth])
    assert chunks[1].text == " ".join([second, fourth, fifth])


def test_oversized_sentence_is_kept_whole() -> None:
    sentence = " ".join(["lorem"] * 120) + "."
    document = Document(source_id="long.txt", content=sentence)

    chunks = chunk_document(document, max_chars=500)

    assert len(chunks) == 1
    assert chunks[0].text == sentence


def test_duplicate_chunks_are_dropped() -> None:
    paragraph = (
        "Refunds are processed within five business days. "
        "Contact billing for any questions about invoices."
    )
    document = Document(source_id="faq.txt", content="\n\n".join([paragraph] * 6))

    chunks = chunk_document(document, max_chars=200)
    texts = [chunk.text for chunk in chunks]

    assert len(texts) == len(set(texts))
    assert len(chunks) < 6


def test_chunking_is_deterministic() -> None:
    document = Document(source_id="numbers.txt", content=NUMBERED_TEXT)

    first = chunk_document(document, max_chars=300, overlap_words=20)
    second = chunk_document(document, max_chars=300, overlap_words=20)

    assert [(chunk.id, chunk.text) for chunk in first] == [(chunk.id, chunk.text) for chunk in second]


def test_sections_are_hard_break_points() -> None:
    content = (
        "Overview\nThe platform indexes plain text documents for fast retrieval.\n\n"
        "Pricing\nPlans start at ten dollars per month for small teams."
    )
    document = Document(source_id="product.txt", content=content)

    sectioned = chunk_document(document)
    merged = chunk_document(document, use_sections=False)

    assert [chunk.text.split("\n")[0] for chunk in sectioned] == ["Overview", "Pricing"]
    assert len(merged) == 1
    assert "\n\nPricing" in merged[0].text


def test_structure_flag_marks_lists() -> None:
    listing = "- first item in the list\n- second item in the list\n- third item in the list"
    prose = "This paragraph is plain prose without any list or table markup in it."

    listed = chunk_document(Document(source_id="list.txt", content=listing))
    plain = chunk_document(Document(source_id="prose.txt", content=prose))

    assert listed[0].has_structure is True
    assert plain[0].has_structure is False


def test_chunk_documents_keeps_document_order() -> None:
    documents = [
        Document(source_id="b.txt", content="Bravo document text that is long enough to be kept."),
        Document(source_id="a.txt", content="Alpha document text that is long enough to be kept."),
    ]

    chunks = chunk_documents(documents, ChunkAssembler())

    assert [chunk.source_id for chunk in chunks] == ["b.txt", "a.txt"]
    assert [chunk.sequence_index for chunk in chunks] == [0, 0]


def test_normalize_text_collapses_whitespace() -> None:
    raw = "Line one\r\n  with   spaces\u00a0here\r\n\r\n\r\n\r\nLine two  "

    assert normalize_text(raw) == "Line one\nwith spaces here\n\nLine two"


@pytest.mark.parametrize(
    "options",
    [{"max_chars": 0}, {"overlap_words": -1}, {"min_flush_ratio": 1.5}],
)
def test_invalid_parameters_raise(options: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        ChunkAssembler(**options)


def test_short_sections_merge_forward() -> None:
    content = "Introduction\nShort intro text here.\nSummary\nShort summary text here."

    chunks = chunk_document(Document(source_id="a.txt", content=content))

    assert len(chunks) == 1
    assert chunks[0].text.startswith("Introduction\nShort intro text here.")
    assert chunks[0].text.endswith("Summary\nShort summary text here.")


def test_short_final_section_is_still_subject_to_the_floor() -> None:
    long_body = "The platform indexes plain text documents for fast retrieval by keyword."
    content = f"Overview\n{long_body}\n\nNotes\nSee above."

    chunks = chunk_document(Document(source_id="notes.txt", content=content))

    assert [chunk.text.split("\n")[0] for chunk in chunks] == ["Overview"]
    assert "See above." not in chunks[0].text


def test_numbered_steps_stay_in_one_chunk() -> None:
    content = (
        "Install steps for the desktop client:\n"
        "1. Download the installer package\n"
        "2. Run the setup wizard\n"
        "3. Restart the computer"
    )

    chunks = chunk_document(Document(source_id="install.txt", content=content))

    assert len(chunks) == 1
    assert chunks[0].text == content
    assert chunks[0].has_structure is True
