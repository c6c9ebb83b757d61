"""File upload and storage module for the family file share.

This module handles uploads, listing and deletion of shared files.
Files are stored flat as {uuid}.{ext} in the configured storage backend;
there is no database, every listing is rebuilt from storage.

Supported file types:
- Images: jpeg, png, gif, webp
- Documents: pdf, doc, docx
- Text: txt, md
- Max 10MB per file
"""
