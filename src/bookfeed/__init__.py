# ABOUTME: bookfeed turns a Calibre library into a static, cross-linked OPDS catalog.
# ABOUTME: Package version lives here; the entry point is bookfeed.core.generate_catalog.

__version__ = "0.1.0"
