#!/usr/bin/env python3
"""
vds-sync CLI — CSS ↔ canvas 雙向同步

  vds-sync ingest src/styles/app.css      # CSS → canvas（單檔增量合併）
  vds-sync sync src/**/*.css              # CSS → canvas（多檔完整轉換）
  vds-sync generate                       # canvas → CSS
  vds-sync watch                          # 監聽 CSS 變更自動同步
  vds-sync tokens src/styles/tokens.css   # 擷取並輸出 design tokens
"""

import argparse
import glob
import json
import sys
import time

from vds_sync import __version__

from .config import DEFAULT_CONFIG_PATH, SyncOptions, load_config
from .css_parser import CSSParseError
from .orchestrator import ChangeOrchestrator
from .store import LocalFiles
from .tokens import export_tokens, extract_tokens
from .watch import WatchSession


def _print_descriptor(document, descriptor) -> None:
    if descriptor.is_error:
        print(f"   ❌ {descriptor.file_path}: {descriptor.error}")
        return
    counts = descriptor.counts or {}
    summary = ", ".join(f"{key} {value}" for key, value in counts.items())
    print(f"   ✅ {descriptor.file_path} → {len(document.elements)} elements ({summary})")
    for warning in descriptor.warnings:
        print(f"   ⚠️  {warning}")


def _expand(patterns) -> list:
    paths = []
    for pattern in patterns:
        matches = sorted(glob.glob(pattern, recursive=True)) or [pattern]
        for path in matches:
            if path not in paths:
                paths.append(path)
    return paths


def cmd_ingest(args, options: SyncOptions) -> int:
    """單檔增量合併進畫布文件。"""
    orchestrator = ChangeOrchestrator(options)
    orchestrator.add_observer(_print_descriptor)
    failed = 0
    for path in _expand(args.files):
        print(f"🔄 Ingesting {path}")
        if orchestrator.handle_file_change(path) is None:
            failed += 1
    if not options.update_canvas:
        print("   ⚠️  updateCanvas=false，畫布文件未寫入")
    return 1 if failed else 0


def cmd_sync(args, options: SyncOptions) -> int:
    """多個 CSS 檔案 → 全新畫布文件。"""
    paths = _expand(args.files)
    print(f"🔄 Converting {len(paths)} stylesheet(s) → {options.canvas_data_path}")
    try:
        document = ChangeOrchestrator(options).convert_css_to_canvas(paths)
    except (OSError, CSSParseError) as e:
        print(f"❌ Sync failed: {e}")
        return 1
    analysis = document.layout_analysis
    print(f"✅ {len(document.elements)} elements, {len(document.layers)} layers, "
          f"{len(analysis.containers)} containers, {len(analysis.groups)} groups")
    return 0


def cmd_generate(args, options: SyncOptions) -> int:
    """canvas → CSS 檔案。"""
    if args.output:
        options.output_dir = args.output
    print(f"🔄 Generating stylesheets from {options.canvas_data_path}")
    try:
        files = ChangeOrchestrator(options).sync_canvas_to_css()
    except Exception as e:
        print(f"❌ Generate failed: {e}")
        return 1
    for filename in files:
        print(f"   Generated: {options.output_dir}/{filename}")
    print(f"✅ Generated {len(files)} file(s) to {options.output_dir}")
    return 0


def cmd_watch(args, options: SyncOptions) -> int:
    """Watch: 監聽 CSS 變更並自動合併進畫布文件。"""
    print(f"👀 Watching for changes in '{args.root}'...")
    print(f"   Patterns: {', '.join(options.watch_paths)}")
    print(f"   Canvas: {options.canvas_data_path}")
    print("   Press Ctrl+C to stop.")

    session = WatchSession(ChangeOrchestrator(options), root=args.root)
    session.add_observer(_print_descriptor)
    session.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("\n👋 Stopping watch...")
    finally:
        session.stop()
    return 0


def cmd_tokens(args, options: SyncOptions) -> int:
    """CSS custom properties → tokens（CSS / Sass / JSON）。"""
    files = LocalFiles()
    tokens = {}
    for path in _expand(args.files):
        try:
            found = extract_tokens(files.read_text(path))
        except OSError as e:
            print(f"❌ Cannot read {path}: {e}")
            return 1
        for category, values in found.items():
            tokens.setdefault(category, {}).update(values)

    exported = export_tokens(tokens, prefix=args.prefix, sass=args.format == "scss")
    if args.format == "json":
        print(json.dumps(exported.json, indent=2, ensure_ascii=False))
    elif args.format == "scss":
        print(exported.sass, end="")
    else:
        print(exported.css, end="")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="vds-sync",
        description="vds-sync: CSS ↔ Canvas Bidirectional Sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Config path")
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    ingest_p = sub.add_parser("ingest", help="Merge stylesheet changes into the canvas document",
        epilog="Examples:\n  vds-sync ingest src/styles/app.css\n  vds-sync ingest 'src/**/*.css'",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    ingest_p.add_argument("files", nargs="+", help="CSS files or glob patterns")

    sync_p = sub.add_parser("sync", help="Build a fresh canvas document from stylesheets",
        epilog="Examples:\n  vds-sync sync src/styles/*.css",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    sync_p.add_argument("files", nargs="+", help="CSS files or glob patterns")

    gen_p = sub.add_parser("generate", help="Canvas → CSS",
        epilog="Examples:\n  vds-sync generate\n  vds-sync generate --output ./dist/styles",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    gen_p.add_argument("--output", help="Output directory (overrides outputDir)")

    watch_p = sub.add_parser("watch", help="Watch stylesheets and sync on change",
        epilog="Examples:\n  vds-sync watch\n  vds-sync watch --root ./frontend",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    watch_p.add_argument("--root", default=".", help="Directory to watch (watchPaths are relative to it)")

    tokens_p = sub.add_parser("tokens", help="Extract design tokens from custom properties",
        epilog="Examples:\n  vds-sync tokens src/styles/tokens.css --format json",
        formatter_class=argparse.RawDescriptionHelpFormatter)
    tokens_p.add_argument("files", nargs="+", help="CSS files or glob patterns")
    tokens_p.add_argument("--format", choices=["css", "scss", "json"], default="css", help="Output format")
    tokens_p.add_argument("--prefix", help="Re-prefix custom properties (e.g. --brand)")

    args = parser.parse_args(argv)
    options = SyncOptions.from_config(load_config(args.config))

    commands = {
        "ingest": cmd_ingest,
        "sync": cmd_sync,
        "generate": cmd_generate,
        "watch": cmd_watch,
        "tokens": cmd_tokens,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 0
    return command(args, options)


if __name__ == "__main__":
    sys.exit(main())
