"""End-to-end import flows built from the pipeline stages."""

from .import_flow import ImportSession, confirm, decode_many, import_file, preview

__all__ = ["ImportSession", "confirm", "decode_many", "import_file", "preview"]
