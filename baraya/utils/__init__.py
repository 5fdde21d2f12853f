"""Stateless helpers: token codec, image compression, multipart, retry."""
