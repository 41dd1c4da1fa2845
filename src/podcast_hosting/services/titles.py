from __future__ import annotations


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def compose_title(
    book_name: str,
    book_series: str | None = None,
    chapter_title: str | None = None,
    chapter_number: int | None = None,
) -> str:
    """Build the display title of a chapter.

    ``Book [Series] | 3 Chapter``. A chapter number without a chapter title
    is dropped.
    """
    title = book_name
    if not _is_blank(book_series):
        title += f" [{book_series}]"
    if not _is_blank(chapter_title):
        if chapter_number is not None:
            title += f" | {chapter_number} {chapter_title}"
        else:
            title += f" | {chapter_title}"
    return title
