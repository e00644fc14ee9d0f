from connectors.books.books_client import (
    BOOKS_CONFIG,
    BOOKS_RESOURCES,
    ZohoBooksClient,
    organization_id_error_middleware,
    parse_books_page,
)

__all__ = [
    "BOOKS_CONFIG",
    "BOOKS_RESOURCES",
    "ZohoBooksClient",
    "organization_id_error_middleware",
    "parse_books_page",
]
