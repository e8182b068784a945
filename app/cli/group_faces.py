"""CLI tool for grouping the faces in a media library."""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from app.core.config import settings
from app.core.container import ServiceContainer
from app.core.logging import get_logger, setup_logging

logger = get_logger(__name__)


def print_progress(index: int, total: int, filename: str) -> None:
    """Print a one-line progress update."""
    print(f"[{index}/{total}] {filename}", flush=True)


async def process(filenames: List[str], subdir: str = "") -> int:
    """
    Group the faces in the given images, or in every image of the library.

    Args:
        filenames: Image paths relative to the media base path; empty means all images
        subdir: Restrict the library walk to this directory when filenames is empty

    Returns:
        Process exit code
    """
    container = ServiceContainer()
    await container.initialize()
    try:
        if not filenames:
            filenames = container.file_service.list_images(subdir)
            logger.info("Found images", count=len(filenames), base_path=settings.MEDIA_BASE_PATH)

        results = await container.face_grouping_service.process_images(filenames, print_progress)
    finally:
        await container.cleanup()

    failed = [r for r in results if not r.ok]
    faces = sum(len(r.record.faces) for r in results if r.record is not None)
    logger.info(
        "Face grouping completed",
        images=len(results),
        faces=faces,
        failed=len(failed)
    )
    for result in failed:
        print(f"FAILED {result.filename}: {result.error}", file=sys.stderr)
    return 1 if failed else 0


async def show_groups(group_id: Optional[str] = None) -> int:
    """
    Print all face groups, or the images of one group.

    Args:
        group_id: Group to list images for; None lists every group

    Returns:
        Process exit code
    """
    container = ServiceContainer()
    await container.initialize()
    try:
        service = container.face_grouping_service
        if group_id:
            for image in service.get_group_images(group_id):
                print(image)
            return 0
        for group in service.get_face_groups():
            print(f"{group.id}\t{group.image_count}")
        return 0
    finally:
        await container.cleanup()


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Group the photos of a media library by face")
    parser.add_argument(
        "--base-path",
        help="Media library root (overrides MEDIA_BASE_PATH)"
    )
    parser.add_argument(
        "--log-level",
        help="Log level (overrides LOG_LEVEL)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    process_parser = sub.add_parser("process", help="Detect and group faces")
    process_parser.add_argument(
        "filenames",
        nargs="*",
        help="Images relative to the base path; all library images when omitted"
    )
    process_parser.add_argument(
        "--subdir",
        default="",
        help="Only walk this directory of the library"
    )

    groups_parser = sub.add_parser("groups", help="List face groups")
    groups_parser.add_argument("group_id", nargs="?", help="List the images of this group")

    args = parser.parse_args(argv)

    if args.base_path:
        settings.MEDIA_BASE_PATH = str(Path(args.base_path))
    setup_logging(level=args.log_level, stream=sys.stderr)

    if args.command == "process":
        exit_code = asyncio.run(process(args.filenames, args.subdir))
    else:
        exit_code = asyncio.run(show_groups(args.group_id))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
