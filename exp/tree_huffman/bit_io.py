#!/usr/bin/env python3
import os
import tempfile


EOF_SIGNAL = -1


class BitWriter:
    def __init__(self) -> None:
        self._buf = bytearray()
        self._acc = 0
        self._nbits = 0
        self._closed = False
        self.bits_written = 0

    def write_bit(self, bit: int) -> None:
        if self._closed:
            raise RuntimeError("BitWriter already finished.")
        self._acc = (self._acc << 1) | (bit & 1)
        self._nbits += 1
        self.bits_written += 1
        if self._nbits == 8:
            self._buf.append(self._acc & 0xFF)
            self._acc = 0
            self._nbits = 0

    def write_bits(self, n: int, value: int) -> None:
        if n < 0 or value < 0 or value >> n:
            raise ValueError(f"Value {value} does not fit in {n} bits.")
        for i in range(n - 1, -1, -1):
            self.write_bit((value >> i) & 1)

    def finish(self) -> bytes:
        if self._closed:
            raise RuntimeError("BitWriter already finished.")
        if self._nbits:
            self._acc <<= (8 - self._nbits)
            self._buf.append(self._acc & 0xFF)
            self._acc = 0
            self._nbits = 0
        self._closed = True
        return bytes(self._buf)

    @property
    def closed(self) -> bool:
        return self._closed


class BitReader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._idx = 0
        self._acc = 0
        self._nbits = 0
        self.bits_read = 0

    def read_bit(self) -> int:
        if self._nbits == 0:
            if self._idx >= len(self._data):
                return EOF_SIGNAL
            self._acc = self._data[self._idx]
            self._idx += 1
            self._nbits = 8
        bit = (self._acc >> (self._nbits - 1)) & 1
        self._nbits -= 1
        self.bits_read += 1
        return bit

    def read_bits(self, n: int) -> int:
        value = 0
        for _ in range(n):
            bit = self.read_bit()
            if bit < 0:
                return EOF_SIGNAL
            value = (value << 1) | bit
        return value

    def reset(self) -> None:
        self._idx = 0
        self._acc = 0
        self._nbits = 0

    def bits_remaining(self) -> int:
        return (len(self._data) - self._idx) * 8 + self._nbits


def read_file(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def write_file_atomic(path: str, data: bytes) -> None:
    # Output only appears under `path` once fully written.
    dirpath = os.path.dirname(os.path.abspath(path))
    os.makedirs(dirpath, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp_", dir=dirpath)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
