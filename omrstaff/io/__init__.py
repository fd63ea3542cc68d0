"""Reading and writing staff geometry."""

from .staff_storage import load_from_disk, save_to_disk

__all__ = ["load_from_disk", "save_to_disk"]
