import random

import pytest

from bit_io import BitReader, BitWriter
from huffman_tree_utils import (
    ALPH_SIZE,
    HUFF_TREE,
    PSEUDO_EOF,
    HuffmanFormatError,
    HuffmanTree,
    MalformedHeaderError,
    TruncatedPayloadError,
    compress,
    compress_bytes,
    count_bytes,
    decompress,
    decompress_bytes,
    huffman_stats,
    make_codings_from_tree,
    make_tree_from_counts,
    read_compressed_bits,
    read_for_counts,
    read_header,
    write_header,
)


def sample_inputs():
    rng = random.Random(1234)
    return [
        b"",
        b"A",
        b"\x00",
        b"\xff" * 17,
        b"AABA",
        b"abracadabra",
        bytes(range(256)),
        bytes(rng.randrange(256) for _ in range(2000)),
        bytes(rng.choice(b"aaaaabbbc\n") for _ in range(3000)),
    ]


def header_roundtrip(tree):
    w = BitWriter()
    write_header(tree, w)
    return read_header(BitReader(w.finish()))


def test_counts_force_pseudo_eof_to_one():
    counts = read_for_counts(BitReader(bytes([65, 65, 66, 65])))
    assert len(counts) == ALPH_SIZE + 1
    assert counts[65] == 3
    assert counts[66] == 1
    assert counts[PSEUDO_EOF] == 1
    assert sum(counts) == 5


def test_counting_twice_over_rewound_reader_is_identical():
    reader = BitReader(b"mississippi")
    first = read_for_counts(reader)
    reader.reset()
    assert read_for_counts(reader) == first


@pytest.mark.parametrize("data", sample_inputs())
def test_numpy_counts_match_bit_reader_counts(data):
    assert count_bytes(data) == read_for_counts(BitReader(data))


def test_empty_table_rejected():
    with pytest.raises(ValueError):
        make_tree_from_counts([0] * (ALPH_SIZE + 1))


def test_concrete_scenario_codes():
    counts = read_for_counts(BitReader(bytes([65, 65, 66, 65])))
    tree = make_tree_from_counts(counts)
    codes = make_codings_from_tree(tree)
    assert set(codes) == {65, 66, PSEUDO_EOF}
    assert len(codes[65]) == 1
    assert len(codes[66]) == len(codes[PSEUDO_EOF]) == 2
    assert codes[66][0] == codes[PSEUDO_EOF][0]
    assert codes[66][1] != codes[PSEUDO_EOF][1]
    # 66 and PSEUDO_EOF merge first; the lighter merge goes left.
    assert codes == {66: "00", PSEUDO_EOF: "01", 65: "1"}
    assert tree.weight[tree.root] == 5


def test_concrete_scenario_bit_layout():
    data = bytes([65, 65, 66, 65])
    stats = huffman_stats(data)
    # 3 x "1" + "00" + "01"
    assert stats["payload_bits"] == 7
    # 2 internal nodes + 3 leaves of 1 + 9 bits
    assert stats["header_bits"] == 32
    out = compress_bytes(data)
    assert len(out) == (32 + 32 + 7 + 7) // 8
    assert out[:4] == HUFF_TREE.to_bytes(4, "big")
    assert decompress_bytes(out) == data


@pytest.mark.parametrize("data", sample_inputs())
def test_codes_are_prefix_free(data):
    codes = make_codings_from_tree(make_tree_from_counts(count_bytes(data)))
    values = list(codes.values())
    assert all(values)
    for i, a in enumerate(values):
        for j, b in enumerate(values):
            if i != j:
                assert not b.startswith(a)


@pytest.mark.parametrize("data", sample_inputs())
def test_code_table_covers_present_symbols(data):
    counts = count_bytes(data)
    codes = make_codings_from_tree(make_tree_from_counts(counts))
    present = {s for s, f in enumerate(counts) if f > 0}
    assert PSEUDO_EOF in codes
    if data:
        assert set(codes) == present
    else:
        # zero-weight filler leaf pairs with PSEUDO_EOF
        assert len(codes) == 2


def test_single_distinct_byte_gives_two_leaf_tree():
    data = b"z" * 50
    tree = make_tree_from_counts(count_bytes(data))
    assert sorted(tree.leaf_symbols()) == [ord("z"), PSEUDO_EOF]
    assert not tree.is_leaf(tree.root)
    codes = make_codings_from_tree(tree)
    assert {len(c) for c in codes.values()} == {1}
    assert decompress_bytes(compress_bytes(data)) == data


def test_empty_input_tree_is_still_internal():
    tree = make_tree_from_counts(count_bytes(b""))
    assert not tree.is_leaf(tree.root)
    assert PSEUDO_EOF in tree.leaf_symbols()
    codes = make_codings_from_tree(tree)
    assert len(codes[PSEUDO_EOF]) == 1


@pytest.mark.parametrize("data", sample_inputs())
def test_header_roundtrip_structural_equality(data):
    tree = make_tree_from_counts(count_bytes(data))
    rebuilt = header_roundtrip(tree)
    assert rebuilt == tree
    assert rebuilt.leaf_symbols() == tree.leaf_symbols()


def test_header_roundtrip_for_maximally_skewed_tree():
    counts = [0] * (ALPH_SIZE + 1)
    for sym in range(40):
        counts[sym] = 2 ** sym
    counts[PSEUDO_EOF] = 1
    tree = make_tree_from_counts(counts)
    codes = make_codings_from_tree(tree)
    assert max(len(c) for c in codes.values()) >= 39
    assert header_roundtrip(tree) == tree


def test_tree_equality_ignores_weights():
    a = HuffmanTree()
    a.root = a.add_internal(a.add_leaf(1, 10), a.add_leaf(PSEUDO_EOF, 1), 11)
    b = HuffmanTree()
    b.root = b.add_internal(b.add_leaf(1), b.add_leaf(PSEUDO_EOF))
    c = HuffmanTree()
    c.root = c.add_internal(c.add_leaf(PSEUDO_EOF), c.add_leaf(1))
    assert a == b
    assert a != c


@pytest.mark.parametrize("data", sample_inputs())
def test_roundtrip(data):
    assert decompress_bytes(compress_bytes(data)) == data


def test_compress_finishes_writer_and_rewinds_source():
    reader = BitReader(b"hello world")
    writer = BitWriter()
    out = compress(reader, writer)
    assert writer.closed
    assert reader.bits_read == 2 * 8 * len(b"hello world")
    assert huffman_stats(b"hello world")["comp_bytes"] == len(out)


def test_decompress_finishes_writer():
    writer = BitWriter()
    out = decompress(BitReader(compress_bytes(b"abc")), writer)
    assert out == b"abc"
    assert writer.closed


def test_wrong_marker_is_malformed_header():
    out = bytearray(compress_bytes(b"abracadabra"))
    out[0] ^= 0x01
    with pytest.raises(MalformedHeaderError):
        decompress_bytes(bytes(out))


def test_short_input_is_malformed_header():
    with pytest.raises(MalformedHeaderError):
        decompress_bytes(b"\xfa\xce")
    with pytest.raises(MalformedHeaderError):
        decompress_bytes(b"")


def test_header_exhaustion_is_malformed_header():
    out = compress_bytes(b"abracadabra")
    with pytest.raises(MalformedHeaderError):
        decompress_bytes(out[:6])
    with pytest.raises(MalformedHeaderError):
        decompress_bytes(out[:4])


def test_leaf_symbol_out_of_range_is_malformed_header():
    w = BitWriter()
    w.write_bits(32, HUFF_TREE)
    w.write_bits(1, 0)
    w.write_bits(1, 1)
    w.write_bits(9, 300)
    w.write_bits(1, 1)
    w.write_bits(9, PSEUDO_EOF)
    with pytest.raises(MalformedHeaderError):
        decompress_bytes(w.finish())


def test_single_leaf_header_is_malformed():
    w = BitWriter()
    w.write_bits(1, 1)
    w.write_bits(9, PSEUDO_EOF)
    with pytest.raises(MalformedHeaderError):
        read_header(BitReader(w.finish()))


@pytest.mark.parametrize("data", [b"AABA", b"abracadabra", bytes(range(256))])
def test_dropping_final_byte_is_truncated_payload(data):
    out = compress_bytes(data)
    with pytest.raises(TruncatedPayloadError):
        decompress_bytes(out[:-1])


def test_payload_without_end_marker_is_truncated():
    tree = make_tree_from_counts(count_bytes(b"AABA"))
    codes = make_codings_from_tree(tree)
    w = BitWriter()
    for byte in b"AABA":
        code = codes[byte]
        w.write_bits(len(code), int(code, 2))
    sink = BitWriter()
    with pytest.raises(TruncatedPayloadError):
        read_compressed_bits(tree, BitReader(w.finish()), sink)


def test_format_errors_are_value_errors():
    assert issubclass(MalformedHeaderError, HuffmanFormatError)
    assert issubclass(TruncatedPayloadError, HuffmanFormatError)
    assert issubclass(HuffmanFormatError, ValueError)


def test_debug_output_goes_to_stderr(capsys):
    decompress_bytes(compress_bytes(b"AABA", debug=4), debug=4)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "encoding for 65 is 1" in captured.err
    assert "decompress:" in captured.err


def test_debug_header_bits_exclude_marker(capsys):
    data = bytes([65, 65, 66, 65])
    out = compress_bytes(data, debug=1)
    decompress_bytes(out, debug=1)
    err = capsys.readouterr().err
    header_bits = huffman_stats(data)["header_bits"]
    assert f"wrote {header_bits} header bits + 7 payload bits" in err
    assert f"read {header_bits} header bits + 7 payload bits" in err
