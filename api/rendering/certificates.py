"""Certificate rendering - template markup and PNG rasterization.

This module handles the visual/presentation aspects of certificates:
- Jinja2 template lookup and rendering (SVG layouts)
- PNG rasterization via CairoSVG
- Per-request temporary image files

Request validation, storage keys and uploads live in services/.
"""

import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any

import jinja2

from core.logger import get_logger

logger = get_logger(__name__)

TEMPLATE_SUFFIXES = (".svg",)


class TemplateNotFoundError(Exception):
    """Raised when the requested certificate layout does not exist."""

    def __init__(self, template_name: str):
        self.template_name = template_name
        super().__init__(f"template not found: {template_name}")


class RenderError(Exception):
    """Raised when a template or the rasterizer fails to produce an image."""

    pass


@lru_cache(maxsize=8)
def _get_environment(templates_dir: str) -> jinja2.Environment:
    """One Jinja2 environment per template directory, shared by all requests."""
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(templates_dir),
        autoescape=jinja2.select_autoescape(
            enabled_extensions=("svg", "html", "xml"),
            default_for_string=True,
        ),
        keep_trailing_newline=True,
    )


def list_certificate_templates(templates_dir: Path) -> list[str]:
    """Names of the layouts available in ``templates_dir``."""
    if not templates_dir.is_dir():
        return []
    env = _get_environment(str(templates_dir))
    return sorted(
        name for name in env.list_templates() if name.endswith(TEMPLATE_SUFFIXES)
    )


def render_certificate_markup(
    templates_dir: Path, template_name: str, context: dict[str, Any]
) -> str:
    """Render the named template against the certificate record.

    ``template_name`` is resolved inside ``templates_dir`` only; the Jinja2
    loader refuses ``..`` segments, so names cannot escape the directory.

    Args:
        templates_dir: Directory holding the certificate layouts
        template_name: Layout file name, e.g. ``classic.svg``
        context: Full normalized request record (camelCase keys)

    Returns:
        Rendered SVG markup

    Raises:
        TemplateNotFoundError: If the layout does not exist
        RenderError: If the layout has a syntax or runtime error
    """
    env = _get_environment(str(templates_dir))
    try:
        template = env.get_template(template_name)
    except jinja2.TemplateNotFound as e:
        raise TemplateNotFoundError(template_name) from e
    except jinja2.TemplateSyntaxError as e:
        raise RenderError(
            f"template {template_name} is invalid: {e.message} (line {e.lineno})"
        ) from e

    try:
        return template.render(**context)
    except jinja2.TemplateError as e:
        raise RenderError(f"template {template_name} failed to render: {e}") from e


def rasterize_markup(markup: str, output_path: Path, *, scale: float = 1.0) -> None:
    """Convert SVG markup to a PNG written at ``output_path`` using CairoSVG.

    Raises:
        RenderError: If cairo is missing, the markup is malformed, or an
            asset referenced by the template cannot be loaded
    """
    try:
        import cairosvg
    except OSError as e:
        if "cairo" in str(e).lower():
            raise RenderError(
                "PNG generation requires the Cairo library. "
                "On macOS: brew install cairo. "
                "On Ubuntu/Debian: apt-get install libcairo2-dev. "
                "On Alpine: apk add cairo-dev."
            ) from e
        raise

    try:
        cairosvg.svg2png(
            bytestring=markup.encode("utf-8"),
            write_to=str(output_path),
            scale=scale,
        )
    except Exception as e:
        # CairoSVG surfaces XML, URL and cairo failures with unrelated types
        raise RenderError(f"failed to rasterize certificate: {e}") from e


@contextmanager
def certificate_image_file(output_dir: Path) -> Iterator[Path]:
    """Yield a unique PNG path in ``output_dir``, deleted on exit.

    Each request gets its own file so concurrent renders never overwrite
    each other.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    fd, name = tempfile.mkstemp(prefix="certificate_", suffix=".png", dir=output_dir)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logger.warning("certificate.tempfile.cleanup_failed", path=str(path))
