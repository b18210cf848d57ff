"""Image display widgets."""

from .image_view import ImageView

__all__ = ['ImageView']
