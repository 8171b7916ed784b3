"""Split source text into model-sized chunks at sentence boundaries."""

import re

DEFAULT_MAX_CHUNK_CHARS = 15000

# A run of non-terminal characters followed by terminal punctuation and
# either whitespace or end of text.
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+(?:\s+|$)")


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, keeping trailing whitespace on each.

    Text after the last terminal punctuation (or text with none at all) is
    kept as a final sentence so nothing is dropped.
    """
    sentences: list[str] = []
    end = 0
    for match in _SENTENCE_RE.finditer(text):
        # Punctuation not followed by whitespace ("3.14", "e.g.x") stays
        # attached to the sentence it belongs to.
        sentences.append(text[end : match.end()])
        end = match.end()
    if end < len(text):
        sentences.append(text[end:])
    return sentences or [text]


def chunk_text(text: str, max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS) -> list[str]:
    """Chunk text greedily by sentence.

    Sentences are accumulated until the next one would push the buffer past
    ``max_chunk_chars``. A single sentence longer than the limit becomes its
    own oversized chunk instead of being cut mid-sentence.

    Args:
        text: Source text
        max_chunk_chars: Soft upper bound on chunk length

    Returns:
        Non-empty chunks in document order
    """
    if max_chunk_chars <= 0:
        raise ValueError("max_chunk_chars must be positive")
    if len(text) <= max_chunk_chars:
        return [text] if text else []

    chunks: list[str] = []
    buffer = ""
    for sentence in split_sentences(text):
        if buffer and len(buffer) + len(sentence) > max_chunk_chars:
            chunks.append(buffer)
            buffer = sentence
        else:
            buffer += sentence
    if buffer:
        chunks.append(buffer)

    return chunks
