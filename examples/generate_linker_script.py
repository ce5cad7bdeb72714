import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure local repo package is used even if another "ldscript" is on PYTHONPATH.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ldscript import GnuLdSerializer, LayoutError, create_layout, list_available_targets


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a linker script for a target layout.")
    parser.add_argument(
        "target",
        help=f"Bundled target ({', '.join(list_available_targets())}) or layout name for --config",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to a YAML layout description (defaults to the bundled target)",
    )
    parser.add_argument(
        "--output",
        default="build",
        help="Directory to write the linker script into",
    )
    parser.add_argument(
        "--entry",
        default="Reset_Handler",
        help="Entry point symbol",
    )
    parser.add_argument(
        "--no-startup",
        action="store_true",
        help="Do not emit the C startup copy/zero glue",
    )
    parser.add_argument(
        "--describe",
        action="store_true",
        help="Print the validated layout as JSON instead of generating files",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    try:
        layout = create_layout(args.target, path=args.config)
        if args.describe:
            layout.validate()
            print(json.dumps(layout.describe(), indent=2))
            return 0

        serializer = GnuLdSerializer(entry=args.entry, emit_startup=not args.no_startup)
        written = layout.generate(args.output, serializer=serializer)
    except LayoutError as exc:
        logging.error("%s", exc)
        return 1

    for path in written:
        print(path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
