# ABOUTME: SQL queries against the Calibre metadata.db schema.
# ABOUTME: One statement per entity list or association lookup used by the store adapter.

ALL_BOOKS = """
SELECT b.id AS book_id, b.uuid, b.title, b.sort, b.path, b.series_index,
       b.timestamp, b.pubdate, b.last_modified, b.author_sort,
       COALESCE(NULLIF(b.isbn, ''),
                (SELECT i.val FROM identifiers i
                 WHERE i.book = b.id AND i.type = 'isbn' LIMIT 1), '') AS isbn,
       r.rating AS rating
FROM books b
LEFT JOIN books_ratings_link brl ON brl.book = b.id
LEFT JOIN ratings r ON r.id = brl.rating
ORDER BY b.id
"""

ALL_AUTHORS = "SELECT id, name, sort FROM authors ORDER BY id"

ALL_PUBLISHERS = "SELECT id, name, sort FROM publishers ORDER BY id"

ALL_SERIES = "SELECT id, name, sort FROM series ORDER BY id"

ALL_TAGS = "SELECT id, name FROM tags ORDER BY id"

BOOKS_AUTHORS = "SELECT book, author FROM books_authors_link ORDER BY id"

BOOKS_PUBLISHERS = "SELECT book, publisher FROM books_publishers_link ORDER BY id"

BOOKS_SERIES = "SELECT book, series FROM books_series_link ORDER BY id"

BOOKS_TAGS = "SELECT book, tag FROM books_tags_link ORDER BY id"

BOOKS_COMMENTS = "SELECT book, text FROM comments ORDER BY id"

BOOKS_DATA = "SELECT book, format, name FROM data ORDER BY id"

BOOKS_LANGUAGES = """
SELECT bll.book, l.lang_code
FROM books_languages_link bll
JOIN languages l ON l.id = bll.lang_code
ORDER BY bll.book, bll.item_order
"""
