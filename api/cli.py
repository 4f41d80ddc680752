#!/usr/bin/env python3
"""CLI for certificate layout work, without touching cloud storage.

Usage:
    python -m cli <command>

Commands:
    list-templates  List the certificate layouts in the template directory
    render          Render a request JSON file to a local PNG
"""

import argparse
import json
import logging
import shutil
import sys
from pathlib import Path

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def cmd_list_templates(templates_dir: Path) -> int:
    """List certificate layouts."""
    from rendering.certificates import list_certificate_templates

    names = list_certificate_templates(templates_dir)
    if not names:
        logger.warning(f"No certificate templates found in {templates_dir}")
        return 1

    for name in names:
        print(name)
    return 0


def cmd_render(request_file: Path, output: Path, templates_dir: Path, scale: float) -> int:
    """Validate a request file and rasterize it to ``output``."""
    from rendering.certificates import (
        RenderError,
        TemplateNotFoundError,
        certificate_image_file,
        rasterize_markup,
        render_certificate_markup,
    )
    from services.certificate_request_service import (
        normalize_certificate_request,
        validate_certificate_request,
    )
    from services.storage_service import certificate_storage_key

    try:
        data = json.loads(request_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error(f"Could not read {request_file}: {e}")
        return 1
    if not isinstance(data, dict):
        data = {}

    failure = validate_certificate_request(data)
    if failure is not None:
        logger.error(f"Invalid request: {failure.message}")
        return 1

    certificate = normalize_certificate_request(data)
    try:
        markup = render_certificate_markup(
            templates_dir, certificate.template_name, certificate.template_context()
        )
        with certificate_image_file(output.parent) as image_path:
            rasterize_markup(markup, image_path, scale=scale)
            shutil.copyfile(image_path, output)
    except (TemplateNotFoundError, RenderError) as e:
        logger.error(str(e))
        return 1

    key = certificate_storage_key(
        certificate.org_code, certificate.course_id, certificate.student_id
    )
    logger.info(f"Wrote {output} (would upload as {key})")
    return 0


def main() -> int:
    from core.config import Settings

    # Local rendering never needs a bucket
    settings = Settings(debug=True)

    parser = argparse.ArgumentParser(
        description="Certificate image service CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--templates-dir",
        type=Path,
        default=settings.templates_dir_path,
        help="Directory holding the certificate layouts",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "list-templates",
        help="List the certificate layouts in the template directory",
    )
    render_parser = subparsers.add_parser(
        "render",
        help="Render a request JSON file to a local PNG",
    )
    render_parser.add_argument("request_file", type=Path)
    render_parser.add_argument(
        "-o", "--output", type=Path, default=Path("certificate.png")
    )
    render_parser.add_argument("--scale", type=float, default=settings.raster_scale)

    args = parser.parse_args()

    if args.command == "list-templates":
        return cmd_list_templates(args.templates_dir)
    elif args.command == "render":
        return cmd_render(args.request_file, args.output, args.templates_dir, args.scale)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
