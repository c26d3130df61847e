"""Paragraph-aware text splitting."""

DEFAULT_CHUNK_SIZE = 3500


def split_text(text: str, max_length: int = DEFAULT_CHUNK_SIZE) -> list[str]:
    """Split text into chunks of at most ``max_length`` characters.

    Lines are accumulated into a buffer while they fit; the buffer is
    flushed when the next line would overflow it. A single line longer than
    ``max_length`` is hard-sliced into fixed windows, each its own chunk.
    Pure and deterministic, so a retried chunk is always the same chunk.

    Args:
        text: Text to split
        max_length: Maximum characters per chunk

    Returns:
        Ordered list of non-empty chunks
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    buffer = ""

    for paragraph in text.split("\n"):
        if len(paragraph) > max_length:
            if buffer:
                chunks.append(buffer.strip())
                buffer = ""
            for start in range(0, len(paragraph), max_length):
                chunks.append(paragraph[start:start + max_length])
        elif len(buffer) + len(paragraph) < max_length:
            buffer += paragraph + "\n"
        else:
            chunks.append(buffer.strip())
            buffer = paragraph + "\n"

    if buffer:
        chunks.append(buffer.strip())

    return [chunk for chunk in chunks if chunk]
