"""Backend utilities for the PPT -> PDF converter.

Route handlers in server.py stay thin; the work lives here:
- soffice discovery and headless invocation
- per-request scratch directories and artifact storage
- one-time artifact registries with TTL eviction
- ZIP bundling of converted PDFs

Artifact ids are capability tokens (random UUID4). Anyone holding the id can
fetch the file once, so never log them next to filesystem paths in responses.
"""
