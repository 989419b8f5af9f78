"""
Local persistence: album blob and bitmap images
"""
from .album_store import save_album, load_album
from .bitmap_writer import save_bitmap

__all__ = [
    'save_album',
    'load_album',
    'save_bitmap',
]
