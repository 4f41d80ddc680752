"""Rendering module for presentation concerns.

This module handles all presentation/rendering logic:
- Certificate template rendering (Jinja2 SVG layouts)
- PNG rasterization
- Temporary image files

This separates presentation concerns from business logic in services.
"""

from rendering.certificates import (
    RenderError,
    TemplateNotFoundError,
    certificate_image_file,
    list_certificate_templates,
    rasterize_markup,
    render_certificate_markup,
)

__all__ = [
    "RenderError",
    "TemplateNotFoundError",
    "certificate_image_file",
    "list_certificate_templates",
    "rasterize_markup",
    "render_certificate_markup",
]
