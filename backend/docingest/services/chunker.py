from docingest.config import settings


def _find_boundary(text: str, start: int, end: int, chunk_size: int) -> int:
    """Return where the chunk starting at ``start`` should end.

    Prefers the last newline, then the last sentence end, then the last space
    at or before ``end``. A boundary only counts when it lies past the middle
    of the window, so chunks never shrink below half of ``chunk_size``.
    """
    midpoint = start + chunk_size * 0.5

    last_newline = text.rfind("\n", 0, end + 1)
    if last_newline > midpoint:
        return last_newline + 1

    last_period = text.rfind(". ", 0, end + 2)
    if last_period > midpoint:
        return last_period + 2

    last_space = text.rfind(" ", 0, end + 1)
    if last_space > midpoint:
        return last_space + 1

    return end


def split_text_into_chunks(
    text: str,
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
) -> list[str]:
    """Split text into overlapping, boundary-aware chunks.

    Consecutive chunks share up to ``chunk_overlap`` characters. Chunks that
    are empty after trimming are dropped.
    """
    chunk_size = chunk_size or settings.chunk_size
    chunk_overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap
    if chunk_overlap * 2 >= chunk_size:
        raise ValueError("chunk_overlap must be less than half of chunk_size")

    chunks = []
    start = 0
    while start < len(text):
        end = min(start + chunk_size, len(text))
        chunk_end = end
        if end < len(text):
            chunk_end = _find_boundary(text, start, end, chunk_size)

        chunk = text[start:chunk_end].strip()
        if chunk:
            chunks.append(chunk)

        if chunk_end >= len(text):
            break
        start = max(chunk_end - chunk_overlap, 0)

    return chunks
