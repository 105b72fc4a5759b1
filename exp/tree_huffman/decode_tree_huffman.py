#!/usr/bin/env python3
import argparse
import os
import sys
from typing import Iterator, Tuple

from bit_io import BitReader, BitWriter, read_file, write_file_atomic
from huffman_tree_utils import HuffmanFormatError, decompress


def iter_compressed_files(root: str, suffix: str) -> Iterator[Tuple[str, str]]:
    if os.path.isfile(root):
        yield root, os.path.basename(root)
        return
    for dirpath, _, filenames in os.walk(root):
        for name in sorted(filenames):
            if name.endswith(suffix):
                path = os.path.join(dirpath, name)
                yield path, os.path.relpath(path, root)


def strip_suffix(rel_path: str, suffix: str) -> str:
    if suffix and rel_path.endswith(suffix):
        return rel_path[: -len(suffix)]
    return rel_path + ".out"


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode tree-header Huffman files and optionally verify exact match.")
    parser.add_argument("--input", required=True, help="Compressed file or directory.")
    parser.add_argument("--out-dir", default="exp/tree_huffman/decoded", help="Output directory.")
    parser.add_argument("--suffix", default=".hf", help="Suffix of compressed files.")
    parser.add_argument("--verify-dir", default="", help="Directory with the original files to compare against.")
    parser.add_argument("--debug", type=int, default=0, help="Debug level (1 = low, 4 = high).")
    parser.add_argument("--overwrite", action="store_true")
    args = parser.parse_args()

    if not os.path.exists(args.input):
        raise SystemExit(f"input not found: {args.input}")

    inputs = list(iter_compressed_files(args.input, args.suffix))
    if not inputs:
        print(f"No *{args.suffix} files found under {args.input}", file=sys.stderr)
        return 1

    decoded = 0
    skipped = 0
    failed = 0

    for src_path, rel_path in inputs:
        orig_rel = strip_suffix(rel_path, args.suffix)
        dst_path = os.path.join(args.out_dir, orig_rel)
        if not args.overwrite and os.path.exists(dst_path):
            skipped += 1
            continue
        try:
            out = decompress(BitReader(read_file(src_path)), BitWriter(), args.debug)
            write_file_atomic(dst_path, out)
        except (OSError, HuffmanFormatError) as exc:
            print(f"Error {src_path}: {exc}", file=sys.stderr)
            failed += 1
            continue
        decoded += 1

        if args.verify_dir:
            orig_path = os.path.join(args.verify_dir, orig_rel)
            if not os.path.exists(orig_path):
                print(f"Missing original for {src_path}", file=sys.stderr)
                failed += 1
            elif read_file(orig_path) != out:
                print(f"Mismatch: {src_path}", file=sys.stderr)
                failed += 1

    print(f"Decoded: {decoded}, Skipped: {skipped}, Failed: {failed}")
    return 0 if failed == 0 else 2


if __name__ == "__main__":
    raise SystemExit(main())
