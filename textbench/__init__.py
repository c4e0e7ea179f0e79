"""TextBench — asynchronous language detection, summarization and translation workbench."""

__version__ = "0.1.0"
