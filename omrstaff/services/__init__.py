"""Page-level services built on the layout stages."""

from .page import PageResult, process_page

__all__ = ["PageResult", "process_page"]
