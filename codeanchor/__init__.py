"""codeanchor keeps per-component markdown in sync with TypeScript sources."""

__version__ = "0.1.0"
