"""gdlsp-proxy - Content-Length framed language server proxy with result rewriting."""

__version__ = "0.1.0"
