"""Background removal + centroid-aware square WebP canvases for product photos."""

__version__ = "0.1.0"
