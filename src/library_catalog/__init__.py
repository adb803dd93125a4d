"""Library Catalog: a REST service for a lending library's catalog, members and loans."""

__version__ = "0.1.0"
