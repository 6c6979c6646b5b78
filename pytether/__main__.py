import argparse
import logging
import sys

from qtpy.QtWidgets import QApplication

from .config import SyncConfig


def parse_metadata(items):
    metadata = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"Expected KEY=VALUE, got {item!r}")
        metadata[key] = value
    return metadata


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pytether",
        description="Open a window that tracks every other pytether window on screen.",
    )
    parser.add_argument("--clear", action="store_true", help="wipe the shared registry and exit")
    parser.add_argument(
        "--metadata", action="append", metavar="KEY=VALUE", help="metadata for this window"
    )
    parser.add_argument("--heartbeat", type=float, help="heartbeat interval in seconds")
    parser.add_argument("--liveness", type=float, help="liveness timeout as a heartbeat multiple")
    parser.add_argument("--store-dir", help="directory holding the shared registry")
    parser.add_argument("--verbose", action="store_true", help="debug logging")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    try:
        config = SyncConfig.from_env().with_overrides(
            heartbeat_interval=args.heartbeat,
            liveness_multiplier=args.liveness,
            store_dir=args.store_dir,
        )
        metadata = parse_metadata(args.metadata)
    except (ValueError, argparse.ArgumentTypeError) as e:
        parser.error(str(e))

    if args.clear:
        from .store import FileStore

        FileStore(config.store_dir, config.store_key).clear()
        print(f"Cleared registry in {config.store_dir}")
        return 0

    # Create the Qt Application FIRST (before importing any modules that create QObjects)
    qt_app = QApplication(sys.argv[:1])

    from .ui import show

    window = show(metadata=metadata or {"foo": "bar"}, config=config)  # noqa: F841

    return qt_app.exec_()


if __name__ == "__main__":
    sys.exit(main())
