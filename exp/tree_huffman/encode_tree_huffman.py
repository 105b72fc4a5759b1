#!/usr/bin/env python3
import argparse
import json
import os
import sys
from typing import Dict, Iterator, Tuple

from bit_io import BitReader, BitWriter, read_file, write_file_atomic
from huffman_tree_utils import HUFF_TREE, compress, huffman_stats


def iter_input_files(root: str, suffix: str) -> Iterator[Tuple[str, str]]:
    """Yield (path, path relative to root), skipping already-compressed files."""
    if os.path.isfile(root):
        yield root, os.path.basename(root)
        return
    for dirpath, _, filenames in os.walk(root):
        for name in sorted(filenames):
            if name.endswith(suffix) or name.endswith(suffix + ".json"):
                continue
            path = os.path.join(dirpath, name)
            yield path, os.path.relpath(path, root)


def write_json(path: str, payload: Dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def main() -> int:
    parser = argparse.ArgumentParser(description="Lossless Huffman compression with a tree header.")
    parser.add_argument("--input", required=True, help="File or directory to compress.")
    parser.add_argument("--out-dir", default="exp/tree_huffman/out", help="Output directory.")
    parser.add_argument("--suffix", default=".hf", help="Suffix appended to compressed files.")
    parser.add_argument("--write-meta", action="store_true", help="Write a JSON sidecar with stats per file.")
    parser.add_argument("--debug", type=int, default=0, help="Debug level (1 = low, 4 = high).")
    parser.add_argument("--overwrite", action="store_true")
    args = parser.parse_args()

    if not os.path.exists(args.input):
        raise SystemExit(f"input not found: {args.input}")

    inputs = list(iter_input_files(args.input, args.suffix))
    if not inputs:
        print(f"No input files found under {args.input}", file=sys.stderr)
        return 1

    encoded = 0
    skipped = 0
    errors = 0
    raw_total = 0
    comp_total = 0

    for src_path, rel_path in inputs:
        dst_path = os.path.join(args.out_dir, rel_path + args.suffix)
        if not args.overwrite and os.path.exists(dst_path):
            skipped += 1
            continue
        try:
            data = read_file(src_path)
            out = compress(BitReader(data), BitWriter(), args.debug)
            write_file_atomic(dst_path, out)
            if args.write_meta:
                meta = {
                    "source": os.path.abspath(src_path),
                    "compressed_file": os.path.basename(dst_path),
                    "format": f"0x{HUFF_TREE:08x}",
                    "layout": "tree_header_huffman",
                }
                meta.update(huffman_stats(data))
                meta["comp_bytes"] = len(out)
                write_json(dst_path + ".json", meta)
            raw_total += len(data)
            comp_total += len(out)
            encoded += 1
        except (OSError, ValueError) as exc:
            print(f"Error {src_path}: {exc}", file=sys.stderr)
            errors += 1

    print(f"Encoded: {encoded}")
    print(f"Skipped: {skipped}")
    if comp_total:
        print(f"Ratio: {raw_total / comp_total:.3f} ({raw_total} -> {comp_total} bytes)")
    if errors:
        print(f"Errors: {errors}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
