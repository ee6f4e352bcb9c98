"""
End-to-end demo script to showcase the review workflow.

Creates sample near-duplicate images with and without embedded metadata,
writes a group partition file the way the similarity tool would, then ranks
each group and deletes the rejects of one group.
"""

import json
import os
from pathlib import Path
from tempfile import TemporaryDirectory

from PIL import ExifTags, Image

from dupe_review.context import create_context
from dupe_review.core.errors import GroupNotFoundError
from dupe_review.core.store import GroupStore
from dupe_review.ui.review import ReviewUI


def _save(path: Path, size, color, **tags) -> dict:
    """Save a JPEG with optional EXIF tags and return its partition record."""
    exif = Image.Exif()
    for name, value in tags.items():
        exif[getattr(ExifTags.Base, name)] = value

    img = Image.new("RGB", size, color=color)
    if len(exif):
        img.save(path, "JPEG", quality=90, exif=exif.tobytes())
    else:
        img.save(path, "JPEG", quality=90)

    return {
        "path": str(path),
        "size": os.path.getsize(path),
        "width": size[0],
        "height": size[1],
        "modified_date": int(os.path.getmtime(path)),
        "hash": [0, 0, 0, 0],
    }


def create_demo_images(demo_dir: Path) -> list:
    """
    Create sample images for demonstration.

    Args:
        demo_dir: Directory to create images in

    Returns:
        Group partition, as the similarity tool would write it
    """
    print(f"Creating demo images in: {demo_dir}")

    beach = [
        _save(
            demo_dir / "beach_original.jpg",
            (1920, 1080),
            (70, 130, 180),
            Make="Canon",
            Model="Canon EOS 80D",
            DateTimeOriginal="2021:07:04 15:20:00",
            ImageDescription="Beach day with the cousins",
        ),
        _save(
            demo_dir / "beach_whatsapp.jpg",
            (1280, 720),
            (70, 130, 180),
        ),
        _save(
            demo_dir / "beach_edit.jpg",
            (1920, 1080),
            (72, 128, 180),
            Make="Canon",
            Model="Canon EOS 80D",
            DateTimeOriginal="2021:07:04 15:21:00",
            ImageDescription="CANON DIGITAL CAMERA",
        ),
    ]

    scans = [
        _save(demo_dir / "scan_a.jpg", (800, 1200), (220, 20, 60)),
        _save(demo_dir / "scan_b.jpg", (800, 1200), (220, 20, 60)),
    ]
    scans[1]["modified_date"] -= 86400

    single = [_save(demo_dir / "lonely.jpg", (640, 480), (50, 205, 50))]

    print("✓ Created 6 images in 3 groups")
    return [beach, scans, single]


def main():
    """Run the demo."""
    print("=" * 70)
    print("DUPE REVIEW - END-TO-END DEMO")
    print("=" * 70)
    print()

    with TemporaryDirectory() as temp_dir:
        demo_dir = Path(temp_dir) / "demo"
        demo_dir.mkdir()

        # Step 1: Create demo images and the partition file
        print("STEP 1: Creating demo images")
        print("-" * 70)
        groups = create_demo_images(demo_dir)
        groups_file = Path(temp_dir) / "groups.json"
        groups_file.write_text(json.dumps(groups, indent=2), encoding="utf-8")
        print()

        context = create_context(str(demo_dir), GroupStore.load(groups_file))
        review_ui = ReviewUI()

        try:
            # Step 2: Rank every group
            print("STEP 2: Ranking groups")
            print("-" * 70)
            for index in range(len(context.query)):
                review_ui.show_group(context.query.query_group(index), len(context.query))
            print()

            # Step 3: Keep the best beach photo, delete the rest
            print("STEP 3: Pruning group 0")
            print("-" * 70)
            view = context.query.query_group(0)
            print(f"  Keeping: {view.images[0].display_path}")
            results = [
                context.deletion.delete_image(image.record.path) for image in view.images[1:]
            ]
            review_ui.show_prune_results(results)

            # Deletion never touches the store; the next query just skips the files
            remaining = context.query.query_group(0)
            print(f"✓ Group 0 now holds {len(remaining.images)} image(s)")

            # An attempt outside the image root is refused
            refused = context.deletion.delete_image(str(groups_file))
            print(f"✓ Deleting {groups_file.name} refused: {refused.error}")
            print()
        except GroupNotFoundError as e:
            print(f"✗ {e}")
        finally:
            context.close()

        print("=" * 70)


if __name__ == "__main__":
    main()
