#!/usr/bin/env python3
"""Huffman coding with the code tree stored as a preorder bit header.

Compressed layout (MSB first, zero padded to a whole byte):

    32 bits   HUFF_TREE marker
    variable  tree header: internal node = 0, leaf = 1 + 9-bit symbol
    variable  payload: one code per input byte, then the PSEUDO_EOF code

There is no length field; decoding stops at the PSEUDO_EOF leaf.
"""
import heapq
import sys
from typing import Dict, List, Tuple

import numpy as np

from bit_io import BitReader, BitWriter


BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
HUFF_NUMBER = 0xFACE8200
HUFF_TREE = HUFF_NUMBER | 1

DEBUG_LOW = 1
DEBUG_HIGH = 4

INTERNAL = -1


class HuffmanFormatError(ValueError):
    pass


class MalformedHeaderError(HuffmanFormatError):
    pass


class TruncatedPayloadError(HuffmanFormatError):
    pass


class HuffmanTree:
    """Arena of nodes addressed by index.

    A node is a leaf when ``symbol[i] >= 0``; otherwise it is internal and
    ``left[i]`` / ``right[i]`` hold its children. Weights are only known on
    the compress side; trees read back from a header carry weight 0.
    """

    def __init__(self) -> None:
        self.left: List[int] = []
        self.right: List[int] = []
        self.symbol: List[int] = []
        self.weight: List[int] = []
        self.root = -1

    def __len__(self) -> int:
        return len(self.symbol)

    def add_leaf(self, symbol: int, weight: int = 0) -> int:
        self.left.append(-1)
        self.right.append(-1)
        self.symbol.append(symbol)
        self.weight.append(weight)
        return len(self.symbol) - 1

    def add_internal(self, left: int, right: int, weight: int = 0) -> int:
        self.left.append(left)
        self.right.append(right)
        self.symbol.append(INTERNAL)
        self.weight.append(weight)
        return len(self.symbol) - 1

    def is_leaf(self, node: int) -> bool:
        return self.symbol[node] != INTERNAL

    def preorder(self) -> List[int]:
        order = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            order.append(node)
            if not self.is_leaf(node):
                stack.append(self.right[node])
                stack.append(self.left[node])
        return order

    def shape(self) -> Tuple[int, ...]:
        # Strictly binary, so the preorder leaf/internal sequence fixes the shape.
        return tuple(self.symbol[n] for n in self.preorder())

    def leaf_symbols(self) -> List[int]:
        return [s for s in self.shape() if s != INTERNAL]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HuffmanTree):
            return NotImplemented
        return self.shape() == other.shape()

    __hash__ = None


def _debug(debug: int, level: int, msg: str) -> None:
    if debug >= level:
        print(msg, file=sys.stderr)


def read_for_counts(reader: BitReader) -> List[int]:
    counts = [0] * (ALPH_SIZE + 1)
    word = reader.read_bits(BITS_PER_WORD)
    while word >= 0:
        counts[word] += 1
        word = reader.read_bits(BITS_PER_WORD)
    counts[PSEUDO_EOF] = 1
    return counts


def count_bytes(data: bytes) -> List[int]:
    arr = np.frombuffer(data, dtype=np.uint8)
    counts = np.bincount(arr, minlength=ALPH_SIZE + 1).tolist()
    counts[PSEUDO_EOF] = 1
    return counts


def make_tree_from_counts(counts: List[int]) -> HuffmanTree:
    # Ties go to the node pushed first; leaves are pushed in symbol order.
    tree = HuffmanTree()
    heap: List[Tuple[int, int, int]] = []
    for sym, f in enumerate(counts):
        if f > 0:
            heap.append((f, len(heap), tree.add_leaf(sym, f)))
    if not heap:
        raise ValueError("At least one symbol must have positive frequency.")
    if len(heap) == 1:
        # Empty input leaves only PSEUDO_EOF; pair it with a zero-weight
        # filler so the root stays internal and every code has >= 1 bit.
        filler = 1 if tree.symbol[0] == 0 else 0
        heap.append((0, len(heap), tree.add_leaf(filler, 0)))
    heapq.heapify(heap)
    seq = len(heap)

    while len(heap) > 1:
        f1, _, left = heapq.heappop(heap)
        f2, _, right = heapq.heappop(heap)
        node = tree.add_internal(left, right, f1 + f2)
        heapq.heappush(heap, (f1 + f2, seq, node))
        seq += 1

    tree.root = heap[0][2]
    return tree


def make_codings_from_tree(tree: HuffmanTree) -> Dict[int, str]:
    codes: Dict[int, str] = {}
    if tree.is_leaf(tree.root):
        raise ValueError("Tree root must be an internal node.")
    stack = [(tree.root, "")]
    while stack:
        node, path = stack.pop()
        if tree.is_leaf(node):
            codes[tree.symbol[node]] = path
            continue
        stack.append((tree.right[node], path + "1"))
        stack.append((tree.left[node], path + "0"))
    return codes


def write_header(tree: HuffmanTree, writer: BitWriter) -> None:
    for node in tree.preorder():
        if tree.is_leaf(node):
            writer.write_bits(1, 1)
            writer.write_bits(BITS_PER_WORD + 1, tree.symbol[node])
        else:
            writer.write_bits(1, 0)


def read_header(reader: BitReader) -> HuffmanTree:
    tree = HuffmanTree()
    # Internal nodes still waiting for a child.
    pending: List[int] = []
    while True:
        bit = reader.read_bits(1)
        if bit < 0:
            raise MalformedHeaderError("Tree header ended before the tree was complete.")
        if bit == 1:
            value = reader.read_bits(BITS_PER_WORD + 1)
            if value < 0:
                raise MalformedHeaderError("Tree header ended inside a leaf value.")
            if value > PSEUDO_EOF:
                raise MalformedHeaderError(f"Leaf symbol out of range: {value}")
            node = tree.add_leaf(value)
        else:
            node = tree.add_internal(-1, -1)

        if pending:
            parent = pending[-1]
            if tree.left[parent] < 0:
                tree.left[parent] = node
            else:
                tree.right[parent] = node
                pending.pop()
        else:
            tree.root = node

        if bit == 0:
            pending.append(node)
        if not pending:
            break

    if tree.is_leaf(tree.root):
        raise MalformedHeaderError("Tree header holds a single leaf; no codes can be walked.")
    return tree


def write_compressed_bits(codes: Dict[int, str], reader: BitReader, writer: BitWriter) -> None:
    word = reader.read_bits(BITS_PER_WORD)
    while word >= 0:
        code = codes[word]
        writer.write_bits(len(code), int(code, 2))
        word = reader.read_bits(BITS_PER_WORD)
    code = codes[PSEUDO_EOF]
    writer.write_bits(len(code), int(code, 2))


def read_compressed_bits(tree: HuffmanTree, reader: BitReader, writer: BitWriter) -> int:
    decoded = 0
    current = tree.root
    while True:
        bit = reader.read_bits(1)
        if bit < 0:
            raise TruncatedPayloadError(f"Payload ended before PSEUDO_EOF after {decoded} bytes.")
        current = tree.right[current] if bit else tree.left[current]
        if tree.is_leaf(current):
            sym = tree.symbol[current]
            if sym == PSEUDO_EOF:
                return decoded
            writer.write_bits(BITS_PER_WORD, sym)
            decoded += 1
            current = tree.root


def compress(reader: BitReader, writer: BitWriter, debug: int = 0) -> bytes:
    counts = read_for_counts(reader)
    count_bits = reader.bits_read
    tree = make_tree_from_counts(counts)
    codes = make_codings_from_tree(tree)
    _debug(debug, DEBUG_HIGH, f"tree built: {len(tree)} nodes, {len(codes)} leaves")
    if debug >= DEBUG_HIGH:
        for sym in sorted(codes):
            _debug(debug, DEBUG_HIGH, f"encoding for {sym} is {codes[sym]}")

    writer.write_bits(BITS_PER_INT, HUFF_TREE)
    write_header(tree, writer)
    header_bits = writer.bits_written - BITS_PER_INT
    reader.reset()
    write_compressed_bits(codes, reader, writer)
    _debug(debug, DEBUG_LOW,
           f"compress: counted {count_bits} bits, wrote {header_bits} header bits "
           f"+ {writer.bits_written - BITS_PER_INT - header_bits} payload bits")
    return writer.finish()


def decompress(reader: BitReader, writer: BitWriter, debug: int = 0) -> bytes:
    magic = reader.read_bits(BITS_PER_INT)
    if magic < 0:
        raise MalformedHeaderError("Input too short for the format marker.")
    if magic != HUFF_TREE:
        raise MalformedHeaderError(f"Illegal header starts with 0x{magic:08x}")
    tree = read_header(reader)
    header_bits = reader.bits_read - BITS_PER_INT
    _debug(debug, DEBUG_HIGH, f"tree read: {len(tree)} nodes, {len(tree.leaf_symbols())} leaves")
    decoded = read_compressed_bits(tree, reader, writer)
    _debug(debug, DEBUG_LOW,
           f"decompress: read {header_bits} header bits + {reader.bits_read - BITS_PER_INT - header_bits} "
           f"payload bits, wrote {decoded} bytes")
    return writer.finish()


def compress_bytes(data: bytes, debug: int = 0) -> bytes:
    return compress(BitReader(data), BitWriter(), debug)


def decompress_bytes(data: bytes, debug: int = 0) -> bytes:
    return decompress(BitReader(data), BitWriter(), debug)


def huffman_stats(data: bytes) -> Dict:
    counts = count_bytes(data)
    tree = make_tree_from_counts(counts)
    codes = make_codings_from_tree(tree)
    header = BitWriter()
    write_header(tree, header)
    payload_bits = sum(counts[sym] * len(code) for sym, code in codes.items())
    total_bits = BITS_PER_INT + header.bits_written + payload_bits
    comp_bytes = (total_bits + 7) // 8
    raw_bytes = len(data)
    data_bits = payload_bits - len(codes[PSEUDO_EOF])
    return {
        "raw_bytes": raw_bytes,
        "comp_bytes": comp_bytes,
        "header_bits": header.bits_written,
        "payload_bits": payload_bits,
        "distinct_symbols": sum(1 for f in counts[:ALPH_SIZE] if f),
        "avg_code_len": data_bits / raw_bytes if raw_bytes else 0.0,
        "ratio": raw_bytes / comp_bytes if comp_bytes > 0 else 0.0,
    }
