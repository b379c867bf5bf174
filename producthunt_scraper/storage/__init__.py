"""Output writers for crawl results."""
